from __future__ import annotations

import threading

from sighost.errors import CryptoErrno, CryptoError


class ArrayOutput:
    """One-shot staging buffer for a variable-length result.

    A pull into a buffer that is too small fails with ``overflow`` and
    leaves the output intact so the guest can retry with a larger one.
    """

    def __init__(self, data: bytes) -> None:
        self._data = bytearray(data)
        self._consumed = False
        self._lock = threading.Lock()

    def length(self) -> int:
        with self._lock:
            self._check_available()
            return len(self._data)

    def pull_into(self, buf: bytearray | memoryview, buf_len: int | None = None) -> int:
        view = memoryview(buf).cast("B")
        if buf_len is None:
            buf_len = len(view)
        if buf_len < 0 or buf_len > len(view):
            raise CryptoError(CryptoErrno.overflow, "buffer length exceeds the supplied buffer")

        with self._lock:
            self._check_available()
            size = len(self._data)
            if buf_len < size:
                raise CryptoError(CryptoErrno.overflow, f"output needs {size} bytes, buffer holds {buf_len}")
            view[:size] = self._data
            self._wipe()
            self._consumed = True
        return size

    def dispose(self) -> None:
        with self._lock:
            self._wipe()
            self._consumed = True

    def _wipe(self) -> None:
        for i in range(len(self._data)):
            self._data[i] = 0
        self._data.clear()

    def _check_available(self) -> None:
        if self._consumed:
            raise CryptoError(CryptoErrno.invalidhandle, "output was already pulled")


__all__ = ["ArrayOutput"]
