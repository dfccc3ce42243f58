"""Host runtime for the signature capability surface.

``CryptoHost`` owns the handle table and implements every call in terms of
typed component objects. Its methods raise ``CryptoError``; the errno
translation guests see lives in ``sighost.abi``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import TracebackType
from typing import TypeVar, cast

from sighost.config import SighostSettings, load_config
from sighost.core.algorithms import OperationContext, lookup_algorithm, resolve_operation
from sighost.core.array_output import ArrayOutput
from sighost.core.handles import HandleTable
from sighost.core.keys import Keypair, KeypairBuilder, PublicKey
from sighost.core.logging import setup_logging
from sighost.core.signatures import Signature
from sighost.core.states import SigningState, VerificationState
from sighost.errors import CryptoErrno, CryptoError
from sighost.keystore import KeyStore, KeyStoreError, build_keystore
from sighost.models.encodings import (
    HandleKind,
    KeypairEncoding,
    PublicKeyEncoding,
    SignatureEncoding,
    coerce_encoding,
)

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class CryptoHost:
    """One runtime instance, shareable by every guest context that enters it."""

    def __init__(
        self,
        settings: SighostSettings | None = None,
        *,
        keystore: KeyStore | None = None,
    ) -> None:
        self._settings = settings if settings is not None else SighostSettings()
        self._handles = HandleTable(max_handles=self._settings.limits.max_handles)
        self._keystore = keystore if keystore is not None else build_keystore(self._settings.keystore)

    @property
    def settings(self) -> SighostSettings:
        return self._settings

    @property
    def handles(self) -> HandleTable:
        return self._handles

    @property
    def keystore(self) -> KeyStore | None:
        return self._keystore

    def close(self) -> int:
        """Close every outstanding handle, zeroizing any key material."""
        closed = self._handles.close_all()
        if closed:
            logger.info("host teardown closed %d outstanding handles", closed)
        return closed

    def __enter__(self) -> CryptoHost:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- array output -------------------------------------------------------

    def array_output_len(self, output: int) -> int:
        return self._get(output, HandleKind.array_output, ArrayOutput).length()

    def array_output_pull(self, output: int, buf: bytearray | memoryview, buf_len: int | None = None) -> int:
        staged = self._get(output, HandleKind.array_output, ArrayOutput)
        written = staged.pull_into(buf, buf_len)
        try:
            self._handles.retire(output, HandleKind.array_output)
        except CryptoError as exc:
            # Teardown got there first; the guest buffer is already filled.
            if exc.errno is not CryptoErrno.invalidhandle:
                raise
        return written

    def _stage(self, data: bytes) -> int:
        return self._handles.allocate(HandleKind.array_output, ArrayOutput(data))

    # -- operation ----------------------------------------------------------

    def op_open(self, descriptor: str | bytes) -> int:
        op = resolve_operation(descriptor, self._settings.algorithms.enabled)
        return self._handles.allocate(HandleKind.signature_op, op)

    def op_close(self, op: int) -> None:
        self._handles.retire(op, HandleKind.signature_op)

    # -- keypair builder ----------------------------------------------------

    def keypair_builder_open(self, op: int) -> int:
        context = self._get(op, HandleKind.signature_op, OperationContext)
        return self._handles.allocate(HandleKind.keypair_builder, KeypairBuilder(context))

    def keypair_builder_close(self, builder: int) -> None:
        self._handles.retire(builder, HandleKind.keypair_builder)

    # -- keypair ------------------------------------------------------------

    def keypair_generate(self, builder: int) -> int:
        kp_builder = self._get(builder, HandleKind.keypair_builder, KeypairBuilder)
        return self._register_keypair(kp_builder.generate())

    def keypair_import(self, builder: int, data: bytes, encoding: int) -> int:
        kp_builder = self._get(builder, HandleKind.keypair_builder, KeypairBuilder)
        keypair = kp_builder.import_keypair(data, coerce_encoding(KeypairEncoding, encoding))
        return self._register_keypair(keypair)

    def keypair_from_id(self, builder: int, kp_id: bytes) -> int:
        kp_builder = self._get(builder, HandleKind.keypair_builder, KeypairBuilder)
        if self._keystore is None:
            raise CryptoError(CryptoErrno.notavailable, "no key store is configured")
        try:
            key_id = kp_id.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CryptoError(CryptoErrno.invalidkey, "key identifier is not UTF-8") from exc

        try:
            stored = self._keystore.load(key_id)
        except KeyStoreError as exc:
            raise CryptoError(CryptoErrno.notavailable, str(exc)) from exc
        if stored is None:
            raise CryptoError(CryptoErrno.invalidkey, f"unknown key identifier {key_id!r}")

        alg_name, pkcs8 = stored
        if lookup_algorithm(alg_name) != kp_builder.algorithm:
            raise CryptoError(
                CryptoErrno.invalidkey,
                f"key {key_id!r} is a {alg_name} key, not {kp_builder.algorithm.name}",
            )
        keypair = kp_builder.from_pkcs8(pkcs8, exportable=self._settings.keystore.exportable)
        return self._register_keypair(keypair)

    def keypair_export(self, keypair: int, encoding: int) -> int:
        kp = self._get(keypair, HandleKind.keypair, Keypair)
        return self._stage(kp.export(coerce_encoding(KeypairEncoding, encoding)))

    def keypair_publickey(self, keypair: int) -> int:
        kp = self._get(keypair, HandleKind.keypair, Keypair)
        return self._handles.allocate(HandleKind.publickey, kp.public_key())

    def keypair_close(self, keypair: int) -> None:
        self._handles.retire(keypair, HandleKind.keypair)

    def _register_keypair(self, keypair: Keypair) -> int:
        try:
            return self._handles.allocate(HandleKind.keypair, keypair)
        except CryptoError:
            keypair.dispose()
            raise

    # -- public key ---------------------------------------------------------

    def publickey_import(self, op: int, data: bytes, encoding: int) -> int:
        context = self._get(op, HandleKind.signature_op, OperationContext)
        pk = PublicKey.import_publickey(context, data, coerce_encoding(PublicKeyEncoding, encoding))
        return self._handles.allocate(HandleKind.publickey, pk)

    def publickey_export(self, publickey: int, encoding: int) -> int:
        pk = self._get(publickey, HandleKind.publickey, PublicKey)
        return self._stage(pk.export(coerce_encoding(PublicKeyEncoding, encoding)))

    def publickey_close(self, publickey: int) -> None:
        self._handles.retire(publickey, HandleKind.publickey)

    # -- signature ----------------------------------------------------------

    def signature_export(self, signature: int, encoding: int) -> int:
        sig = self._get(signature, HandleKind.signature, Signature)
        return self._stage(sig.export(coerce_encoding(SignatureEncoding, encoding)))

    def signature_import(self, op: int, encoding: int, data: bytes) -> int:
        context = self._get(op, HandleKind.signature_op, OperationContext)
        sig = Signature.import_signature(context, coerce_encoding(SignatureEncoding, encoding), data)
        return self._handles.allocate(HandleKind.signature, sig)

    def signature_close(self, signature: int) -> None:
        self._handles.retire(signature, HandleKind.signature)

    # -- signing state ------------------------------------------------------

    def state_open(self, keypair: int) -> int:
        kp = self._get(keypair, HandleKind.keypair, Keypair)
        state = SigningState(kp, self._settings.limits.max_message_size)
        return self._handles.allocate(HandleKind.signature_state, state)

    def state_update(self, state: int, data: bytes) -> None:
        self._get(state, HandleKind.signature_state, SigningState).update(data)

    def state_sign(self, state: int) -> int:
        signature = self._get(state, HandleKind.signature_state, SigningState).sign()
        return self._handles.allocate(HandleKind.signature, signature)

    def state_close(self, state: int) -> None:
        self._handles.retire(state, HandleKind.signature_state)

    # -- verification state -------------------------------------------------

    def verification_state_open(self, publickey: int) -> int:
        pk = self._get(publickey, HandleKind.publickey, PublicKey)
        state = VerificationState(pk, self._settings.limits.max_message_size)
        return self._handles.allocate(HandleKind.verification_state, state)

    def verification_state_update(self, state: int, data: bytes) -> None:
        self._get(state, HandleKind.verification_state, VerificationState).update(data)

    def verification_state_verify(self, state: int, signature: int) -> None:
        verifier = self._get(state, HandleKind.verification_state, VerificationState)
        sig = self._get(signature, HandleKind.signature, Signature)
        verifier.verify(sig)

    def verification_state_close(self, state: int) -> None:
        self._handles.retire(state, HandleKind.verification_state)

    def _get(self, handle: int, kind: HandleKind, expected: type[_T]) -> _T:
        resource = self._handles.lookup(handle, kind)
        assert isinstance(resource, expected)
        return cast(_T, resource)


def bootstrap_host(config_path: str | Path | None = None) -> CryptoHost:
    """Load settings (from YAML when a path is given), configure logging, build a host."""
    settings = load_config(config_path) if config_path is not None else SighostSettings()
    setup_logging(settings.logging.level, json_output=settings.logging.json_output)
    host = CryptoHost(settings)
    logger.info(
        "sighost ready: max_handles=%d keystore=%s",
        settings.limits.max_handles,
        host.keystore.backend_name if host.keystore is not None else "none",
    )
    return host


__all__ = ["CryptoHost", "bootstrap_host"]
