from __future__ import annotations

from sighost.protocols.security import KeyStoreBackend

__all__ = ["KeyStoreBackend"]
