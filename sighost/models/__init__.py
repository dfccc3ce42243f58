from __future__ import annotations

from sighost.models.encodings import (
    HandleKind,
    KeypairEncoding,
    PublicKeyEncoding,
    SignatureEncoding,
    coerce_encoding,
)

__all__ = [
    "HandleKind",
    "KeypairEncoding",
    "PublicKeyEncoding",
    "SignatureEncoding",
    "coerce_encoding",
]
