from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyStoreBackend(Protocol):
    """String storage behind ``keypair_from_id`` lookups."""

    def get(self, ref_id: str) -> str | None: ...

    def set(self, ref_id: str, value: str) -> None: ...

    def delete(self, ref_id: str) -> None: ...


__all__ = ["KeyStoreBackend"]
