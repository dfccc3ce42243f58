"""Shared test helpers for driving the errno boundary."""

from __future__ import annotations

from sighost.abi import SignaturesAbi
from sighost.errors import CryptoErrno

FAST_ALGORITHMS = ["Ed25519", "ECDSA_P256_SHA256", "ECDSA_P384_SHA384"]
RSA_ALGORITHMS = ["RSA_PKCS1_2048_SHA256", "RSA_PSS_2048_SHA256"]


def pull(abi: SignaturesAbi, output: int) -> bytes:
    errno, size = abi.array_output_len(output)
    assert errno is CryptoErrno.success
    buf = bytearray(size)
    errno, written = abi.array_output_pull(output, buf)
    assert errno is CryptoErrno.success
    assert written == size
    return bytes(buf)


def open_keypair(abi: SignaturesAbi, alg: str) -> tuple[int, int]:
    """Return ``(op, keypair)`` for a freshly generated key."""
    errno, op = abi.signature_op_open(alg)
    assert errno is CryptoErrno.success
    errno, builder = abi.signature_keypair_builder_open(op)
    assert errno is CryptoErrno.success
    errno, kp = abi.signature_keypair_generate(builder)
    assert errno is CryptoErrno.success
    assert abi.signature_keypair_builder_close(builder) is CryptoErrno.success
    return op, kp


def public_key_of(abi: SignaturesAbi, kp: int) -> int:
    errno, pk = abi.signature_keypair_publickey(kp)
    assert errno is CryptoErrno.success
    return pk


def sign_message(abi: SignaturesAbi, kp: int, *chunks: bytes) -> int:
    errno, state = abi.signature_state_open(kp)
    assert errno is CryptoErrno.success
    for chunk in chunks:
        assert abi.signature_state_update(state, chunk) is CryptoErrno.success
    errno, sig = abi.signature_state_sign(state)
    assert errno is CryptoErrno.success
    assert abi.signature_state_close(state) is CryptoErrno.success
    return sig


def verify_message(abi: SignaturesAbi, pk: int, sig: int, *chunks: bytes) -> CryptoErrno:
    errno, state = abi.signature_verification_state_open(pk)
    assert errno is CryptoErrno.success
    for chunk in chunks:
        assert abi.signature_verification_state_update(state, chunk) is CryptoErrno.success
    result = abi.signature_verification_state_verify(state, sig)
    assert abi.signature_verification_state_close(state) is CryptoErrno.success
    return result
