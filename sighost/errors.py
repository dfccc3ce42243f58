"""Error codes returned across the guest boundary.

Components raise ``CryptoError``; only the boundary layer in
``sighost.abi`` converts it into the bare errno a guest sees.
"""

from __future__ import annotations

from enum import IntEnum


class CryptoErrno(IntEnum):
    success = 0
    notavailable = 1
    invalidkey = 2
    verificationfailed = 3
    rngerror = 4
    algorithmfailure = 5
    invalidsignature = 6
    closed = 7
    invalidhandle = 8
    overflow = 9


class CryptoError(Exception):
    """A failure the guest is told about through an errno."""

    def __init__(self, errno: CryptoErrno, message: str | None = None) -> None:
        super().__init__(message or errno.name)
        self.errno = errno

    def __repr__(self) -> str:
        return f"CryptoError({self.errno.name}, {str(self)!r})"


def invalid_handle(handle: object) -> CryptoError:
    return CryptoError(CryptoErrno.invalidhandle, f"invalid handle {handle!r}")


__all__ = ["CryptoErrno", "CryptoError", "invalid_handle"]
