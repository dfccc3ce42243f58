from __future__ import annotations

import pytest
from sighost.core.algorithms import resolve_operation
from sighost.core.keys import Keypair, KeypairBuilder
from sighost.core.signatures import Signature
from sighost.core.states import SigningState, VerificationState
from sighost.errors import CryptoErrno, CryptoError

from tests.helpers import FAST_ALGORITHMS, RSA_ALGORITHMS


def _keypair(alg: str) -> Keypair:
    return KeypairBuilder(resolve_operation(alg)).generate()


def _verify(keypair: Keypair, signature: Signature, *chunks: bytes) -> None:
    verifier = VerificationState(keypair.public_key(), max_message_size=1 << 16)
    for chunk in chunks:
        verifier.update(chunk)
    verifier.verify(signature)


@pytest.mark.parametrize("alg", FAST_ALGORITHMS + RSA_ALGORITHMS)
def test_chunked_input_matches_single_update(alg: str) -> None:
    keypair = _keypair(alg)
    signer = SigningState(keypair, max_message_size=1 << 16)
    for chunk in (b"he", b"", b"llo ", b"world"):
        signer.update(chunk)

    signature = signer.sign()

    assert len(signature.raw) == keypair.algorithm.signature_size
    _verify(keypair, signature, b"hello world")


def test_sign_does_not_reset_accumulator() -> None:
    keypair = _keypair("Ed25519")
    signer = SigningState(keypair, max_message_size=1024)
    signer.update(b"first")
    checkpoint = signer.sign()
    signer.update(b"second")
    final = signer.sign()

    _verify(keypair, checkpoint, b"first")
    _verify(keypair, final, b"firstsecond")
    # Ed25519 is deterministic: re-signing the same data yields the same bytes.
    assert signer.sign() == final


def test_verify_is_repeatable_and_allows_more_updates() -> None:
    keypair = _keypair("ECDSA_P256_SHA256")
    signer = SigningState(keypair, max_message_size=1024)
    signer.update(b"abc")
    short = signer.sign()
    signer.update(b"def")
    long = signer.sign()

    verifier = VerificationState(keypair.public_key(), max_message_size=1024)
    verifier.update(b"abc")
    verifier.verify(short)
    verifier.verify(short)
    verifier.update(b"def")
    verifier.verify(long)
    with pytest.raises(CryptoError) as exc_info:
        verifier.verify(short)
    assert exc_info.value.errno is CryptoErrno.verificationfailed


def test_update_past_limit_overflows_without_consuming() -> None:
    keypair = _keypair("Ed25519")
    signer = SigningState(keypair, max_message_size=8)
    signer.update(b"12345")

    with pytest.raises(CryptoError) as exc_info:
        signer.update(b"6789")
    assert exc_info.value.errno is CryptoErrno.overflow

    signer.update(b"678")
    _verify(keypair, signer.sign(), b"12345678")


def test_sign_after_keypair_closed_reports_closed() -> None:
    keypair = _keypair("Ed25519")
    signer = SigningState(keypair, max_message_size=64)
    signer.update(b"data")
    keypair.dispose()

    with pytest.raises(CryptoError) as exc_info:
        signer.sign()
    assert exc_info.value.errno is CryptoErrno.closed


def test_verification_rejects_signature_from_other_algorithm() -> None:
    ed_keypair = _keypair("Ed25519")
    signer = SigningState(ed_keypair, max_message_size=64)
    signer.update(b"data")
    ed_signature = signer.sign()

    verifier = VerificationState(_keypair("ECDSA_P256_SHA256").public_key(), max_message_size=64)
    verifier.update(b"data")
    with pytest.raises(CryptoError) as exc_info:
        verifier.verify(ed_signature)
    assert exc_info.value.errno is CryptoErrno.invalidsignature


def test_disposed_state_rejects_further_use() -> None:
    signer = SigningState(_keypair("Ed25519"), max_message_size=64)
    signer.update(b"data")
    signer.dispose()

    with pytest.raises(CryptoError) as update_exc:
        signer.update(b"more")
    with pytest.raises(CryptoError) as sign_exc:
        signer.sign()
    assert update_exc.value.errno is CryptoErrno.invalidhandle
    assert sign_exc.value.errno is CryptoErrno.invalidhandle
