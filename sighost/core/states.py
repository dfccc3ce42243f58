"""Streaming signing and verification states.

Both states only ever append to their accumulator. Finalizing (``sign``
or ``verify``) reads a snapshot of everything seen so far and leaves the
accumulator untouched, so either call can be repeated and followed by
further updates.
"""

from __future__ import annotations

import threading

from sighost.core import primitives
from sighost.core.algorithms import SignatureAlgorithm
from sighost.core.keys import Keypair, PublicKey
from sighost.core.signatures import Signature
from sighost.errors import CryptoErrno, CryptoError
from sighost.models.encodings import SignatureEncoding


class _Accumulator:
    def __init__(self, max_size: int) -> None:
        self._max_size = max_size
        self._buffer = bytearray()
        self._closed = False
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    def append(self, data: bytes) -> None:
        with self._lock:
            self._check_open()
            if len(self._buffer) + len(data) > self._max_size:
                raise CryptoError(
                    CryptoErrno.overflow,
                    f"accumulated input would exceed {self._max_size} bytes",
                )
            self._buffer.extend(data)

    def snapshot(self) -> bytes:
        with self._lock:
            self._check_open()
            return bytes(self._buffer)

    def clear(self) -> None:
        with self._lock:
            for i in range(len(self._buffer)):
                self._buffer[i] = 0
            self._buffer.clear()
            self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise CryptoError(CryptoErrno.invalidhandle, "state was closed")


class SigningState:
    """Incremental signer bound to one keypair.

    The keypair is referenced, not owned: closing the keypair elsewhere makes
    later ``sign`` calls fail with ``closed``.
    """

    def __init__(self, keypair: Keypair, max_message_size: int) -> None:
        self._keypair = keypair
        self._input = _Accumulator(max_message_size)

    @property
    def algorithm(self) -> SignatureAlgorithm:
        return self._keypair.algorithm

    def update(self, data: bytes) -> None:
        self._input.append(data)

    def sign(self) -> Signature:
        message = self._input.snapshot()
        private_key = self._keypair.private_key()
        raw = primitives.sign(self._keypair.algorithm, private_key, message)
        return Signature(algorithm=self._keypair.algorithm, raw=raw, source_encoding=SignatureEncoding.raw)

    def dispose(self) -> None:
        self._input.clear()


class VerificationState:
    """Incremental verifier bound to an immutable public key."""

    def __init__(self, public_key: PublicKey, max_message_size: int) -> None:
        self._public_key = public_key
        self._input = _Accumulator(max_message_size)

    @property
    def algorithm(self) -> SignatureAlgorithm:
        return self._public_key.algorithm

    def update(self, data: bytes) -> None:
        self._input.append(data)

    def verify(self, signature: Signature) -> None:
        alg = self._public_key.algorithm
        if signature.algorithm != alg:
            raise CryptoError(
                CryptoErrno.invalidsignature,
                f"{signature.algorithm.name} signature cannot be checked with a {alg.name} key",
            )
        message = self._input.snapshot()
        primitives.verify(alg, self._public_key.key, signature.raw, message)

    def dispose(self) -> None:
        self._input.clear()


__all__ = ["SigningState", "VerificationState"]
