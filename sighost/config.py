from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sighost.core.algorithms import ALGORITHMS
from sighost.core.handles import INDEX_BITS


class LimitsConfig(BaseModel):
    max_handles: int = Field(default=65_536, ge=1, le=1 << INDEX_BITS)
    max_message_size: int = Field(default=64 * 1024 * 1024, ge=0)
    """Upper bound on bytes a signing or verification state may accumulate."""


class AlgorithmsConfig(BaseModel):
    enabled: list[str] | None = None
    """Descriptors the host accepts; ``None`` enables every known algorithm."""

    @field_validator("enabled", mode="before")
    @classmethod
    def _split_scalar(cls, value: object) -> object:
        # SIGHOST_ALGORITHMS__ENABLED=Ed25519,ECDSA_P256_SHA256
        if isinstance(value, str):
            return [name.strip() for name in value.split(",") if name.strip()]
        return value

    @field_validator("enabled")
    @classmethod
    def _known_algorithms(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        unknown = [name for name in value if name.strip().upper() not in ALGORITHMS]
        if unknown:
            raise ValueError(f"unknown signature algorithms: {', '.join(unknown)}")
        return value


class KeyStoreConfig(BaseModel):
    """External key material reachable through ``keypair_from_id``."""

    backend: Literal["none", "keyring", "file", "memory"] = "none"
    service_name: str = "sighost"
    file_path: Path = Path("./data/keys.enc")
    exportable: bool = False


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False


class SighostSettings(BaseSettings):
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    algorithms: AlgorithmsConfig = Field(default_factory=AlgorithmsConfig)
    keystore: KeyStoreConfig = Field(default_factory=KeyStoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="SIGHOST_",
        env_nested_delimiter="__",
        extra="ignore",
    )


def _coerce_env_value(value: str) -> object:
    parsed = yaml.safe_load(value)
    return value if parsed is None else parsed


def _set_nested(mapping: dict[str, object], path: list[str], value: object) -> None:
    current = mapping
    for key in path[:-1]:
        existing = current.get(key)
        if not isinstance(existing, dict):
            existing = {}
        else:
            existing = dict(existing)
        current[key] = existing
        current = existing
    current[path[-1]] = value


def _apply_env_overrides(data: dict[str, object]) -> dict[str, object]:
    merged = dict(data)
    prefix = "SIGHOST_"
    for key, raw_value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = key[len(prefix) :].lower().split("__")
        _set_nested(merged, path, _coerce_env_value(raw_value))
    return merged


def load_config(path: str | Path = "config/sighost.yaml") -> SighostSettings:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        raise ValueError("config file must contain a top-level mapping")

    raw = loaded.get("sighost", loaded)
    if not isinstance(raw, dict):
        raise ValueError("sighost config section must be a mapping")

    merged = _apply_env_overrides(raw)
    return SighostSettings.model_validate(merged)


__all__ = [
    "AlgorithmsConfig",
    "KeyStoreConfig",
    "LimitsConfig",
    "LoggingConfig",
    "SighostSettings",
    "load_config",
]
