from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass
from enum import StrEnum

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from sighost.errors import CryptoErrno, CryptoError
from sighost.models.encodings import KeypairEncoding, PublicKeyEncoding, SignatureEncoding

logger = logging.getLogger(__name__)


class SignatureFamily(StrEnum):
    eddsa = "eddsa"
    ecdsa = "ecdsa"
    rsa = "rsa"


class RsaPadding(StrEnum):
    pkcs1v15 = "pkcs1v15"
    pss = "pss"


_CURVES: dict[str, type[ec.EllipticCurve]] = {
    "secp256r1": ec.SECP256R1,
    "secp384r1": ec.SECP384R1,
}

_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


@dataclass(frozen=True, slots=True)
class SignatureAlgorithm:
    """Everything the host needs to know about one signature system."""

    name: str
    family: SignatureFamily
    signature_size: int
    curve_name: str | None = None
    hash_name: str | None = None
    rsa_bits: int | None = None
    rsa_padding: RsaPadding | None = None
    default_keypair_encoding: KeypairEncoding = KeypairEncoding.pkcs8
    default_publickey_encoding: PublicKeyEncoding = PublicKeyEncoding.raw
    default_signature_encoding: SignatureEncoding = SignatureEncoding.raw

    @property
    def coordinate_size(self) -> int:
        """Byte length of one ECDSA scalar (r, s or the private key)."""
        if self.family is not SignatureFamily.ecdsa:
            raise ValueError(f"{self.name} has no coordinate size")
        return self.signature_size // 2

    def curve(self) -> ec.EllipticCurve:
        if self.curve_name is None:
            raise ValueError(f"{self.name} is not an elliptic-curve algorithm")
        return _CURVES[self.curve_name]()

    def hash_algorithm(self) -> hashes.HashAlgorithm:
        if self.hash_name is None:
            raise ValueError(f"{self.name} does not pre-hash its input")
        return _HASHES[self.hash_name]()


ALGORITHMS: dict[str, SignatureAlgorithm] = {
    alg.name.upper(): alg
    for alg in (
        SignatureAlgorithm(
            name="Ed25519",
            family=SignatureFamily.eddsa,
            signature_size=64,
        ),
        SignatureAlgorithm(
            name="ECDSA_P256_SHA256",
            family=SignatureFamily.ecdsa,
            signature_size=64,
            curve_name="secp256r1",
            hash_name="sha256",
        ),
        SignatureAlgorithm(
            name="ECDSA_P384_SHA384",
            family=SignatureFamily.ecdsa,
            signature_size=96,
            curve_name="secp384r1",
            hash_name="sha384",
        ),
        SignatureAlgorithm(
            name="RSA_PKCS1_2048_SHA256",
            family=SignatureFamily.rsa,
            signature_size=256,
            hash_name="sha256",
            rsa_bits=2048,
            rsa_padding=RsaPadding.pkcs1v15,
        ),
        SignatureAlgorithm(
            name="RSA_PKCS1_3072_SHA384",
            family=SignatureFamily.rsa,
            signature_size=384,
            hash_name="sha384",
            rsa_bits=3072,
            rsa_padding=RsaPadding.pkcs1v15,
        ),
        SignatureAlgorithm(
            name="RSA_PSS_2048_SHA256",
            family=SignatureFamily.rsa,
            signature_size=256,
            hash_name="sha256",
            rsa_bits=2048,
            rsa_padding=RsaPadding.pss,
        ),
    )
}


@dataclass(frozen=True, slots=True)
class OperationContext:
    """Resolved operation descriptor shared by every object opened against it.

    Immutable, so builders, keys and states keep a plain reference and stay
    valid after the operation handle itself is closed.
    """

    descriptor: str
    algorithm: SignatureAlgorithm


def lookup_algorithm(name: str) -> SignatureAlgorithm | None:
    return ALGORITHMS.get(name.strip().upper())


def resolve_operation(descriptor: object, enabled: Collection[str] | None = None) -> OperationContext:
    """Parse a guest descriptor such as ``"ECDSA_P256_SHA256"``.

    ``enabled`` restricts the host to a subset of the known algorithms;
    ``None`` enables all of them.
    """
    if isinstance(descriptor, bytes | bytearray | memoryview):
        try:
            descriptor = bytes(descriptor).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CryptoError(CryptoErrno.notavailable, "operation name is not UTF-8") from exc
    if not isinstance(descriptor, str) or not descriptor.strip():
        raise CryptoError(CryptoErrno.notavailable, "empty operation name")

    algorithm = lookup_algorithm(descriptor)
    if algorithm is None:
        raise CryptoError(CryptoErrno.notavailable, f"unsupported operation {descriptor!r}")
    if enabled is not None and algorithm.name.upper() not in {name.strip().upper() for name in enabled}:
        logger.debug("operation %s is disabled by configuration", algorithm.name)
        raise CryptoError(CryptoErrno.notavailable, f"operation {algorithm.name} is disabled")
    return OperationContext(descriptor=descriptor, algorithm=algorithm)


__all__ = [
    "ALGORITHMS",
    "OperationContext",
    "RsaPadding",
    "SignatureAlgorithm",
    "SignatureFamily",
    "lookup_algorithm",
    "resolve_operation",
]
