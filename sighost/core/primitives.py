"""Adapter over ``cryptography`` for the supported signature systems.

This is the only module that calls the primitives library directly. It
translates library exceptions into ``CryptoError`` so the rest of the
host deals with a single failure type.
"""

from __future__ import annotations

from cryptography.exceptions import InternalError, InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa

from sighost.core import codecs
from sighost.core.algorithms import RsaPadding, SignatureAlgorithm, SignatureFamily
from sighost.errors import CryptoErrno, CryptoError
from sighost.models.encodings import KeypairEncoding

PrivateKey = ed25519.Ed25519PrivateKey | ec.EllipticCurvePrivateKey | rsa.RSAPrivateKey
PublicKey = ed25519.Ed25519PublicKey | ec.EllipticCurvePublicKey | rsa.RSAPublicKey

_RSA_PUBLIC_EXPONENT = 65537


def generate_private_key(alg: SignatureAlgorithm) -> PrivateKey:
    try:
        if alg.family is SignatureFamily.eddsa:
            return ed25519.Ed25519PrivateKey.generate()
        if alg.family is SignatureFamily.ecdsa:
            return ec.generate_private_key(alg.curve())
        if alg.family is SignatureFamily.rsa and alg.rsa_bits is not None:
            return rsa.generate_private_key(public_exponent=_RSA_PUBLIC_EXPONENT, key_size=alg.rsa_bits)
    except UnsupportedAlgorithm as exc:
        raise CryptoError(CryptoErrno.notavailable, f"{alg.name} generation unsupported") from exc
    except InternalError as exc:
        raise CryptoError(CryptoErrno.rngerror, f"{alg.name} key generation failed") from exc
    raise CryptoError(CryptoErrno.notavailable, f"cannot generate {alg.name} keys")


def _matches_private(alg: SignatureAlgorithm, key: object) -> bool:
    if alg.family is SignatureFamily.eddsa:
        return isinstance(key, ed25519.Ed25519PrivateKey)
    if alg.family is SignatureFamily.ecdsa:
        return isinstance(key, ec.EllipticCurvePrivateKey) and key.curve.name == alg.curve_name
    if alg.family is SignatureFamily.rsa:
        return isinstance(key, rsa.RSAPrivateKey) and key.key_size == alg.rsa_bits
    return False


def _matches_public(alg: SignatureAlgorithm, key: object) -> bool:
    if alg.family is SignatureFamily.eddsa:
        return isinstance(key, ed25519.Ed25519PublicKey)
    if alg.family is SignatureFamily.ecdsa:
        return isinstance(key, ec.EllipticCurvePublicKey) and key.curve.name == alg.curve_name
    if alg.family is SignatureFamily.rsa:
        return isinstance(key, rsa.RSAPublicKey) and key.key_size == alg.rsa_bits
    return False


def load_private_key(alg: SignatureAlgorithm, data: bytes, encoding: KeypairEncoding) -> PrivateKey:
    try:
        if encoding is KeypairEncoding.raw:
            key: object = _private_from_raw(alg, data)
        elif encoding in (KeypairEncoding.pkcs8, KeypairEncoding.der):
            key = serialization.load_der_private_key(data, password=None)
        elif encoding is KeypairEncoding.pem:
            key = serialization.load_pem_private_key(data, password=None)
        else:
            raise CryptoError(CryptoErrno.notavailable, f"unsupported keypair encoding {encoding!r}")
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise CryptoError(CryptoErrno.invalidkey, f"malformed {alg.name} private key") from exc

    if not _matches_private(alg, key):
        raise CryptoError(CryptoErrno.invalidkey, f"key is not a {alg.name} private key")
    return key  # type: ignore[return-value]


def _private_from_raw(alg: SignatureAlgorithm, data: bytes) -> PrivateKey:
    if alg.family is SignatureFamily.eddsa:
        return ed25519.Ed25519PrivateKey.from_private_bytes(data)
    if alg.family is SignatureFamily.ecdsa:
        if len(data) != alg.coordinate_size:
            raise ValueError("raw private scalar has the wrong length")
        return ec.derive_private_key(int.from_bytes(data, "big"), alg.curve())
    raise CryptoError(CryptoErrno.notavailable, f"{alg.name} has no raw private key form")


def dump_private_key(alg: SignatureAlgorithm, key: PrivateKey, encoding: KeypairEncoding) -> bytes:
    no_encryption = serialization.NoEncryption()
    if encoding is KeypairEncoding.raw:
        if isinstance(key, ed25519.Ed25519PrivateKey):
            return key.private_bytes(
                encoding=serialization.Encoding.Raw,
                format=serialization.PrivateFormat.Raw,
                encryption_algorithm=no_encryption,
            )
        if isinstance(key, ec.EllipticCurvePrivateKey):
            return key.private_numbers().private_value.to_bytes(alg.coordinate_size, "big")
        raise CryptoError(CryptoErrno.notavailable, f"{alg.name} has no raw private key form")

    if encoding is KeypairEncoding.pkcs8:
        fmt, enc = serialization.PrivateFormat.PKCS8, serialization.Encoding.DER
    elif encoding is KeypairEncoding.der:
        fmt, enc = serialization.PrivateFormat.TraditionalOpenSSL, serialization.Encoding.DER
    elif encoding is KeypairEncoding.pem:
        fmt, enc = serialization.PrivateFormat.PKCS8, serialization.Encoding.PEM
    else:
        raise CryptoError(CryptoErrno.notavailable, f"unsupported keypair encoding {encoding!r}")

    try:
        return key.private_bytes(encoding=enc, format=fmt, encryption_algorithm=no_encryption)
    except ValueError as exc:
        # Ed25519 has no traditional OpenSSL form.
        raise CryptoError(CryptoErrno.notavailable, f"{alg.name} cannot be exported as {encoding.name}") from exc


def load_public_key_raw(alg: SignatureAlgorithm, data: bytes) -> PublicKey:
    """Load the raw form: Ed25519 bytes, SEC1 point, or PKCS#1 DER for RSA."""
    try:
        if alg.family is SignatureFamily.eddsa:
            key: object = ed25519.Ed25519PublicKey.from_public_bytes(data)
        elif alg.family is SignatureFamily.ecdsa:
            key = ec.EllipticCurvePublicKey.from_encoded_point(alg.curve(), data)
        else:
            key = serialization.load_der_public_key(data)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise CryptoError(CryptoErrno.invalidkey, f"malformed {alg.name} public key") from exc

    if not _matches_public(alg, key):
        raise CryptoError(CryptoErrno.invalidkey, f"key is not a {alg.name} public key")
    return key  # type: ignore[return-value]


def dump_public_key_raw(key: PublicKey) -> bytes:
    if isinstance(key, ed25519.Ed25519PublicKey):
        return key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
    if isinstance(key, ec.EllipticCurvePublicKey):
        return key.public_bytes(
            encoding=serialization.Encoding.X962,
            format=serialization.PublicFormat.UncompressedPoint,
        )
    return key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.PKCS1,
    )


def _rsa_padding(alg: SignatureAlgorithm) -> padding.AsymmetricPadding:
    if alg.rsa_padding is RsaPadding.pss:
        hash_algorithm = alg.hash_algorithm()
        return padding.PSS(mgf=padding.MGF1(hash_algorithm), salt_length=hash_algorithm.digest_size)
    return padding.PKCS1v15()


def sign(alg: SignatureAlgorithm, key: PrivateKey, message: bytes) -> bytes:
    """Sign *message* and return the fixed-size raw signature."""
    try:
        if isinstance(key, ed25519.Ed25519PrivateKey):
            return key.sign(message)
        if isinstance(key, ec.EllipticCurvePrivateKey):
            der = key.sign(message, ec.ECDSA(alg.hash_algorithm()))
            return codecs.signature_from_der(der, alg.coordinate_size)
        if isinstance(key, rsa.RSAPrivateKey):
            return key.sign(message, _rsa_padding(alg), alg.hash_algorithm())
    except (InternalError, ValueError) as exc:
        raise CryptoError(CryptoErrno.algorithmfailure, f"{alg.name} signing failed") from exc
    raise CryptoError(CryptoErrno.algorithmfailure, f"key type does not match {alg.name}")


def verify(alg: SignatureAlgorithm, key: PublicKey, signature: bytes, message: bytes) -> None:
    """Raise ``verificationfailed`` unless *signature* (raw form) is valid."""
    try:
        if isinstance(key, ed25519.Ed25519PublicKey):
            key.verify(signature, message)
        elif isinstance(key, ec.EllipticCurvePublicKey):
            der = codecs.signature_to_der(signature, alg.coordinate_size)
            key.verify(der, message, ec.ECDSA(alg.hash_algorithm()))
        elif isinstance(key, rsa.RSAPublicKey):
            key.verify(signature, message, _rsa_padding(alg), alg.hash_algorithm())
        else:
            raise CryptoError(CryptoErrno.algorithmfailure, f"key type does not match {alg.name}")
    except InvalidSignature as exc:
        raise CryptoError(CryptoErrno.verificationfailed) from exc
    except ValueError as exc:
        raise CryptoError(CryptoErrno.invalidsignature, f"malformed {alg.name} signature") from exc


__all__ = [
    "PrivateKey",
    "PublicKey",
    "dump_private_key",
    "dump_public_key_raw",
    "generate_private_key",
    "load_private_key",
    "load_public_key_raw",
    "sign",
    "verify",
]
