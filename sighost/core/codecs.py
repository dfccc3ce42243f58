"""Textual and DER wrappers shared by public keys and signatures.

Decoders raise ``ValueError`` on malformed input; callers decide whether
that means ``invalidkey`` or ``invalidsignature``.
"""

from __future__ import annotations

import base64
import binascii

from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

_URL_TO_STANDARD = bytes.maketrans(b"-_", b"+/")

TEXT_ENCODINGS: frozenset[str] = frozenset(
    {
        "hex",
        "base64_original",
        "base64_original_nopadding",
        "base64_url",
        "base64_url_nopadding",
    }
)


def encode_text(raw: bytes, encoding: str) -> bytes:
    if encoding == "hex":
        return binascii.hexlify(raw)
    if encoding == "base64_original":
        return base64.b64encode(raw)
    if encoding == "base64_original_nopadding":
        return base64.b64encode(raw).rstrip(b"=")
    if encoding == "base64_url":
        return base64.urlsafe_b64encode(raw)
    if encoding == "base64_url_nopadding":
        return base64.urlsafe_b64encode(raw).rstrip(b"=")
    raise ValueError(f"not a text encoding: {encoding}")


def decode_text(data: bytes, encoding: str) -> bytes:
    if encoding == "hex":
        return binascii.unhexlify(data)

    if encoding not in TEXT_ENCODINGS:
        raise ValueError(f"not a text encoding: {encoding}")

    padded = not encoding.endswith("_nopadding")
    if not padded:
        if b"=" in data:
            raise ValueError("unexpected padding")
        data = data + b"=" * (-len(data) % 4)
    if encoding.startswith("base64_url"):
        if b"+" in data or b"/" in data:
            raise ValueError("standard alphabet in URL-safe base64")
        data = data.translate(_URL_TO_STANDARD)
    return base64.b64decode(data, validate=True)


def signature_to_der(raw: bytes, coordinate_size: int) -> bytes:
    """Convert a fixed-width ``r || s`` ECDSA signature to ASN.1 DER."""
    if len(raw) != 2 * coordinate_size:
        raise ValueError("fixed-width signature has the wrong length")
    r = int.from_bytes(raw[:coordinate_size], "big")
    s = int.from_bytes(raw[coordinate_size:], "big")
    return encode_dss_signature(r, s)


def _check_scalars(r: int, s: int, coordinate_size: int) -> None:
    limit = 1 << (8 * coordinate_size)
    if not (0 < r < limit and 0 < s < limit):
        raise ValueError("signature scalar out of range")


def check_fixed_signature(raw: bytes, coordinate_size: int) -> None:
    """Apply the DER decoder's scalar checks to a fixed-width ``r || s`` signature."""
    if len(raw) != 2 * coordinate_size:
        raise ValueError("fixed-width signature has the wrong length")
    _check_scalars(
        int.from_bytes(raw[:coordinate_size], "big"),
        int.from_bytes(raw[coordinate_size:], "big"),
        coordinate_size,
    )


def signature_from_der(der: bytes, coordinate_size: int) -> bytes:
    """Convert an ASN.1 DER ECDSA signature to fixed-width ``r || s``."""
    r, s = decode_dss_signature(der)
    _check_scalars(r, s, coordinate_size)
    return r.to_bytes(coordinate_size, "big") + s.to_bytes(coordinate_size, "big")


__all__ = [
    "TEXT_ENCODINGS",
    "check_fixed_signature",
    "decode_text",
    "encode_text",
    "signature_from_der",
    "signature_to_der",
]
