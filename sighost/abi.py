"""Guest-facing boundary: every call returns an errno, never raises.

Each method mirrors one call of the signature capability surface. Calls
that produce a value return ``(errno, value)`` with ``value`` set to None
on failure; the rest return a bare errno. Guest errors are reported, not
logged. Anything other than a ``CryptoError`` is a host defect and is
logged and re-raised.
"""

from __future__ import annotations

import functools
import logging
import uuid
from collections.abc import Callable
from typing import Any, ParamSpec, TypeVar

from sighost.core.logging import guest_call
from sighost.core.metrics import record_call
from sighost.errors import CryptoErrno, CryptoError
from sighost.host import CryptoHost

logger = logging.getLogger(__name__)

_P = ParamSpec("_P")
_R = TypeVar("_R")

GuestBytes = bytes | bytearray | memoryview


def _boundary(*, returns_value: bool) -> Callable[[Callable[_P, _R]], Callable[_P, Any]]:
    def decorator(func: Callable[_P, _R]) -> Callable[_P, Any]:
        call = func.__name__

        @functools.wraps(func)
        def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> Any:
            abi = args[0]
            assert isinstance(abi, SignaturesAbi)
            with guest_call(abi.instance_id, call):
                try:
                    value = func(*args, **kwargs)
                except CryptoError as exc:
                    record_call(call, exc.errno.name)
                    return (exc.errno, None) if returns_value else exc.errno
                except Exception:
                    record_call(call, "defect")
                    logger.exception("host defect while servicing %s", call)
                    raise
            record_call(call, CryptoErrno.success.name)
            return (CryptoErrno.success, value) if returns_value else CryptoErrno.success

        return wrapper

    return decorator


def guest_bytes(data: GuestBytes, data_len: int | None = None) -> bytes:
    """Copy ``data[:data_len]`` out of a guest buffer."""
    view = memoryview(data).cast("B")
    if data_len is None:
        return view.tobytes()
    if isinstance(data_len, bool) or not isinstance(data_len, int) or not 0 <= data_len <= len(view):
        raise CryptoError(CryptoErrno.overflow, "length exceeds the supplied buffer")
    return view[:data_len].tobytes()


class SignaturesAbi:
    """Errno-returning view of a ``CryptoHost`` for one guest instance."""

    def __init__(self, host: CryptoHost, instance_id: str | None = None) -> None:
        self._host = host
        self.instance_id = instance_id or uuid.uuid4().hex

    @property
    def host(self) -> CryptoHost:
        return self._host

    # array output

    @_boundary(returns_value=True)
    def array_output_len(self, array_output: int) -> int:
        return self._host.array_output_len(array_output)

    @_boundary(returns_value=True)
    def array_output_pull(
        self, array_output: int, buf: bytearray | memoryview, buf_len: int | None = None
    ) -> int:
        return self._host.array_output_pull(array_output, buf, buf_len)

    # operation

    @_boundary(returns_value=True)
    def signature_op_open(self, op: str | GuestBytes) -> int:
        descriptor = op if isinstance(op, str) else guest_bytes(op)
        return self._host.op_open(descriptor)

    @_boundary(returns_value=False)
    def signature_op_close(self, op: int) -> None:
        self._host.op_close(op)

    # keypair builder

    @_boundary(returns_value=True)
    def signature_keypair_builder_open(self, op: int) -> int:
        return self._host.keypair_builder_open(op)

    @_boundary(returns_value=False)
    def signature_keypair_builder_close(self, kp_builder: int) -> None:
        self._host.keypair_builder_close(kp_builder)

    # keypair

    @_boundary(returns_value=True)
    def signature_keypair_generate(self, kp_builder: int) -> int:
        return self._host.keypair_generate(kp_builder)

    @_boundary(returns_value=True)
    def signature_keypair_import(
        self, kp_builder: int, encoded: GuestBytes, encoded_len: int | None, encoding: int
    ) -> int:
        return self._host.keypair_import(kp_builder, guest_bytes(encoded, encoded_len), encoding)

    @_boundary(returns_value=True)
    def signature_keypair_from_id(self, kp_builder: int, kp_id: GuestBytes, kp_id_len: int | None = None) -> int:
        return self._host.keypair_from_id(kp_builder, guest_bytes(kp_id, kp_id_len))

    @_boundary(returns_value=True)
    def signature_keypair_export(self, kp: int, encoding: int) -> int:
        return self._host.keypair_export(kp, encoding)

    @_boundary(returns_value=True)
    def signature_keypair_publickey(self, kp: int) -> int:
        return self._host.keypair_publickey(kp)

    @_boundary(returns_value=False)
    def signature_keypair_close(self, kp: int) -> None:
        self._host.keypair_close(kp)

    # public key

    @_boundary(returns_value=True)
    def signature_publickey_import(
        self, op: int, encoded: GuestBytes, encoded_len: int | None, encoding: int
    ) -> int:
        return self._host.publickey_import(op, guest_bytes(encoded, encoded_len), encoding)

    @_boundary(returns_value=True)
    def signature_publickey_export(self, pk: int, encoding: int) -> int:
        return self._host.publickey_export(pk, encoding)

    @_boundary(returns_value=False)
    def signature_publickey_close(self, pk: int) -> None:
        self._host.publickey_close(pk)

    # signature

    @_boundary(returns_value=True)
    def signature_export(self, signature: int, encoding: int) -> int:
        return self._host.signature_export(signature, encoding)

    @_boundary(returns_value=True)
    def signature_import(
        self, op: int, encoding: int, encoded: GuestBytes, encoded_len: int | None = None
    ) -> int:
        return self._host.signature_import(op, encoding, guest_bytes(encoded, encoded_len))

    @_boundary(returns_value=False)
    def signature_close(self, signature: int) -> None:
        self._host.signature_close(signature)

    # signing state

    @_boundary(returns_value=True)
    def signature_state_open(self, kp: int) -> int:
        return self._host.state_open(kp)

    @_boundary(returns_value=False)
    def signature_state_update(self, state: int, input: GuestBytes, input_len: int | None = None) -> None:
        self._host.state_update(state, guest_bytes(input, input_len))

    @_boundary(returns_value=True)
    def signature_state_sign(self, state: int) -> int:
        return self._host.state_sign(state)

    @_boundary(returns_value=False)
    def signature_state_close(self, state: int) -> None:
        self._host.state_close(state)

    # verification state

    @_boundary(returns_value=True)
    def signature_verification_state_open(self, pk: int) -> int:
        return self._host.verification_state_open(pk)

    @_boundary(returns_value=False)
    def signature_verification_state_update(
        self, state: int, input: GuestBytes, input_len: int | None = None
    ) -> None:
        self._host.verification_state_update(state, guest_bytes(input, input_len))

    @_boundary(returns_value=False)
    def signature_verification_state_verify(self, state: int, signature: int) -> None:
        self._host.verification_state_verify(state, signature)

    @_boundary(returns_value=False)
    def signature_verification_state_close(self, state: int) -> None:
        self._host.verification_state_close(state)


__all__ = ["GuestBytes", "SignaturesAbi", "guest_bytes"]
