from __future__ import annotations

from enum import IntEnum, StrEnum
from typing import TypeVar

from sighost.errors import CryptoErrno, CryptoError


class KeypairEncoding(IntEnum):
    raw = 0
    pkcs8 = 1
    der = 2
    pem = 3


class PublicKeyEncoding(IntEnum):
    raw = 0
    hex = 1
    base64_original = 2
    base64_original_nopadding = 3
    base64_url = 4
    base64_url_nopadding = 5


class SignatureEncoding(IntEnum):
    raw = 0
    hex = 1
    base64_original = 2
    base64_original_nopadding = 3
    base64_url = 4
    base64_url_nopadding = 5
    der = 6


class HandleKind(StrEnum):
    array_output = "array_output"
    signature_op = "signature_op"
    keypair_builder = "keypair_builder"
    keypair = "keypair"
    publickey = "publickey"
    signature = "signature"
    signature_state = "signature_state"
    verification_state = "verification_state"


_E = TypeVar("_E", KeypairEncoding, PublicKeyEncoding, SignatureEncoding)


def coerce_encoding(enum_cls: type[_E], value: object) -> _E:
    """Map a guest-supplied integer onto an encoding, or fail with ``notavailable``."""
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, int) or isinstance(value, bool):
        raise CryptoError(CryptoErrno.notavailable, f"unsupported {enum_cls.__name__}: {value!r}")
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise CryptoError(
            CryptoErrno.notavailable, f"unsupported {enum_cls.__name__}: {value!r}"
        ) from exc


__all__ = [
    "HandleKind",
    "KeypairEncoding",
    "PublicKeyEncoding",
    "SignatureEncoding",
    "coerce_encoding",
]
