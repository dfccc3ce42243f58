"""Generational handle table shared by every guest-visible resource.

A handle packs ``(generation, index)`` into one unsigned 32-bit integer.
Retiring a handle bumps the slot's generation, so a stale id can never
name the slot's next occupant. A slot whose generation is exhausted is
retired for good instead of being recycled.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from sighost.core.metrics import LIVE_HANDLES
from sighost.errors import CryptoErrno, CryptoError, invalid_handle
from sighost.models.encodings import HandleKind

logger = logging.getLogger(__name__)

INDEX_BITS = 20
INDEX_MASK = (1 << INDEX_BITS) - 1
MAX_GENERATION = (1 << (32 - INDEX_BITS)) - 1


@runtime_checkable
class Disposable(Protocol):
    """Resource that must wipe or release state when its handle is retired."""

    def dispose(self) -> None: ...


@dataclass(slots=True)
class _Slot:
    generation: int = 1
    kind: HandleKind | None = None
    resource: object | None = None


class HandleTable:
    """Thread-safe registry mapping integer handles to host-owned resources."""

    def __init__(self, max_handles: int = INDEX_MASK + 1) -> None:
        if not 1 <= max_handles <= INDEX_MASK + 1:
            raise ValueError(f"max_handles must be between 1 and {INDEX_MASK + 1}")
        self._max_handles = max_handles
        self._slots: list[_Slot] = []
        self._free: deque[int] = deque()
        self._live = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return self._live

    def allocate(self, kind: HandleKind, resource: object) -> int:
        if resource is None:
            raise ValueError("cannot register None as a resource")
        with self._lock:
            if self._free:
                index = self._free.popleft()
            elif len(self._slots) < self._max_handles:
                index = len(self._slots)
                self._slots.append(_Slot())
            else:
                raise CryptoError(CryptoErrno.overflow, "handle table is full")
            slot = self._slots[index]
            slot.kind = kind
            slot.resource = resource
            self._live += 1
            handle = (slot.generation << INDEX_BITS) | index

        LIVE_HANDLES.labels(kind=kind.value).inc()
        logger.debug("allocated %s handle %d", kind.value, handle)
        return handle

    def lookup(self, handle: object, expected_kind: HandleKind) -> object:
        with self._lock:
            return self._resolve(handle, expected_kind).resource

    def retire(self, handle: object, expected_kind: HandleKind | None = None) -> object:
        """Remove *handle*, disposing its resource before the slot can be reused."""
        with self._lock:
            slot = self._resolve(handle, expected_kind)
            resource, kind = slot.resource, slot.kind
            # Unreachable from here on, but not yet reusable.
            slot.resource = None
            slot.kind = None
        assert isinstance(handle, int) and kind is not None

        try:
            if isinstance(resource, Disposable):
                resource.dispose()
        finally:
            self._recycle(handle & INDEX_MASK)
            LIVE_HANDLES.labels(kind=kind.value).dec()
            logger.debug("retired %s handle %d", kind.value, handle)
        return resource

    def live_handles(self) -> list[int]:
        with self._lock:
            return [
                (slot.generation << INDEX_BITS) | index
                for index, slot in enumerate(self._slots)
                if slot.resource is not None
            ]

    def close_all(self) -> int:
        """Retire every live handle; used on host teardown."""
        closed = 0
        for handle in self.live_handles():
            try:
                self.retire(handle)
            except CryptoError as exc:
                # Closed concurrently by its owner.
                if exc.errno is not CryptoErrno.invalidhandle:
                    raise
                continue
            closed += 1
        if closed:
            logger.debug("closed %d outstanding handles", closed)
        return closed

    def _resolve(self, handle: object, expected_kind: HandleKind | None) -> _Slot:
        if not isinstance(handle, int) or isinstance(handle, bool) or handle <= 0:
            raise invalid_handle(handle)
        index = handle & INDEX_MASK
        generation = handle >> INDEX_BITS
        if index >= len(self._slots):
            raise invalid_handle(handle)
        slot = self._slots[index]
        if slot.resource is None or slot.generation != generation:
            raise invalid_handle(handle)
        if expected_kind is not None and slot.kind is not expected_kind:
            raise invalid_handle(handle)
        return slot

    def _recycle(self, index: int) -> None:
        with self._lock:
            slot = self._slots[index]
            slot.generation += 1
            self._live -= 1
            if slot.generation > MAX_GENERATION:
                logger.debug("slot %d exhausted its generations; retiring it permanently", index)
                return
            self._free.append(index)


__all__ = ["Disposable", "HandleTable", "INDEX_BITS", "MAX_GENERATION"]
