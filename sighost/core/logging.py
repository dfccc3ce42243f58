"""Log setup for the host, tagging records with the guest call in progress."""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

_GUEST_CALL: contextvars.ContextVar[tuple[str, str] | None] = contextvars.ContextVar(
    "sighost_guest_call",
    default=None,
)


def current_guest_call() -> tuple[str, str] | None:
    """``(instance_id, call)`` of the boundary call being serviced, if any."""
    return _GUEST_CALL.get()


@contextmanager
def guest_call(instance_id: str, call: str) -> Iterator[None]:
    token = _GUEST_CALL.set((instance_id, call))
    try:
        yield
    finally:
        _GUEST_CALL.reset(token)


class GuestCallFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        instance_id, call = _GUEST_CALL.get() or (None, None)
        record.instance_id = instance_id
        record.call = call
        return True


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object | None] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "instance_id": getattr(record, "instance_id", None),
            "call": getattr(record, "call", None),
        }
        if record.exc_info is not None:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(instance_id)s %(call)s] %(message)s"


def setup_logging(level: int | str = logging.INFO, json_output: bool = False) -> None:
    """Replace root handlers with one stderr handler."""
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(_JsonFormatter() if json_output else logging.Formatter(_TEXT_FORMAT))
    handler.addFilter(GuestCallFilter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    root_logger.addHandler(handler)


__all__ = ["GuestCallFilter", "current_guest_call", "guest_call", "setup_logging"]
