from __future__ import annotations

import logging
import threading

from cryptography.hazmat.primitives import serialization

from sighost.core import codecs, primitives
from sighost.core.algorithms import OperationContext, SignatureAlgorithm
from sighost.core.metrics import ZEROIZATIONS_TOTAL
from sighost.errors import CryptoErrno, CryptoError
from sighost.models.encodings import KeypairEncoding, PublicKeyEncoding

logger = logging.getLogger(__name__)


class KeypairBuilder:
    """Collects the operation a new keypair is generated or imported for."""

    def __init__(self, op: OperationContext) -> None:
        self._op = op

    @property
    def op(self) -> OperationContext:
        return self._op

    @property
    def algorithm(self) -> SignatureAlgorithm:
        return self._op.algorithm

    def generate(self) -> Keypair:
        private_key = primitives.generate_private_key(self.algorithm)
        return Keypair(self.algorithm, private_key)

    def import_keypair(self, data: bytes, encoding: KeypairEncoding) -> Keypair:
        private_key = primitives.load_private_key(self.algorithm, data, encoding)
        return Keypair(self.algorithm, private_key)

    def from_pkcs8(self, pkcs8: bytes, *, exportable: bool) -> Keypair:
        private_key = primitives.load_private_key(self.algorithm, pkcs8, KeypairEncoding.pkcs8)
        return Keypair(self.algorithm, private_key, exportable=exportable)


class Keypair:
    """Private key material plus the public half derived from it.

    The PKCS#8 serialization is kept in a mutable buffer so ``dispose`` can
    overwrite it in place; the primitive key object is dropped at the same
    time, and every later access fails with ``closed``.
    """

    def __init__(
        self,
        algorithm: SignatureAlgorithm,
        private_key: primitives.PrivateKey,
        *,
        exportable: bool = True,
    ) -> None:
        self._algorithm = algorithm
        self._exportable = exportable
        self._private_key: primitives.PrivateKey | None = private_key
        self._pkcs8 = bytearray(
            private_key.private_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        self._lock = threading.Lock()

    @property
    def algorithm(self) -> SignatureAlgorithm:
        return self._algorithm

    @property
    def exportable(self) -> bool:
        return self._exportable

    @property
    def zeroized(self) -> bool:
        with self._lock:
            return self._private_key is None and not any(self._pkcs8)

    def private_key(self) -> primitives.PrivateKey:
        with self._lock:
            if self._private_key is None:
                raise CryptoError(CryptoErrno.closed, "keypair was closed")
            return self._private_key

    def export(self, encoding: KeypairEncoding) -> bytes:
        if not self._exportable:
            raise CryptoError(CryptoErrno.notavailable, "keypair is not exportable")
        with self._lock:
            if self._private_key is None:
                raise CryptoError(CryptoErrno.closed, "keypair was closed")
            if encoding is KeypairEncoding.pkcs8:
                return bytes(self._pkcs8)
            private_key = self._private_key
        return primitives.dump_private_key(self._algorithm, private_key, encoding)

    def public_key(self) -> PublicKey:
        return PublicKey(self._algorithm, self.private_key().public_key())

    def dispose(self) -> None:
        with self._lock:
            for i in range(len(self._pkcs8)):
                self._pkcs8[i] = 0
            self._private_key = None
        ZEROIZATIONS_TOTAL.inc()
        logger.debug("zeroized %s keypair", self._algorithm.name)


class PublicKey:
    def __init__(self, algorithm: SignatureAlgorithm, public_key: primitives.PublicKey) -> None:
        self._algorithm = algorithm
        self._public_key = public_key

    @classmethod
    def import_publickey(
        cls, op: OperationContext, data: bytes, encoding: PublicKeyEncoding
    ) -> PublicKey:
        if encoding is not PublicKeyEncoding.raw:
            try:
                data = codecs.decode_text(data, encoding.name)
            except ValueError as exc:
                raise CryptoError(CryptoErrno.invalidkey, f"malformed {encoding.name} public key") from exc
        return cls(op.algorithm, primitives.load_public_key_raw(op.algorithm, data))

    @property
    def algorithm(self) -> SignatureAlgorithm:
        return self._algorithm

    @property
    def key(self) -> primitives.PublicKey:
        return self._public_key

    def export(self, encoding: PublicKeyEncoding) -> bytes:
        raw = primitives.dump_public_key_raw(self._public_key)
        if encoding is PublicKeyEncoding.raw:
            return raw
        return codecs.encode_text(raw, encoding.name)


__all__ = ["Keypair", "KeypairBuilder", "PublicKey"]
