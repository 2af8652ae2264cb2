"""Configuration loading utilities."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from core.config_models import RootConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "RBS_"
CONFIG_FILES = ("system.yaml", "backup.yaml")
# simulator ini section the backup options were historically read from
LEGACY_BACKUP_SECTION = "FileBasedSimulationData"


def load_config(path: Path, *, environ: Mapping[str, str] | None = None) -> RootConfig:
    """Load and validate YAML configuration from a file or a config directory.

    ``RBS_<SECTION>__<FIELD>`` variables from ``environ`` (the process
    environment by default) override file values.
    """

    raw = _load_raw_data(path)
    _lift_legacy_section(raw)
    raw = apply_env_overrides(raw, os.environ if environ is None else environ)
    try:
        return RootConfig.model_validate(raw)
    except ValidationError as exc:
        for error in exc.errors():
            location = ".".join(str(value) for value in error.get("loc", ()))
            logger.error("Config validation error", extra={"field": location, "error": error.get("msg")})
        raise


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of ``data`` with ``RBS_`` variables applied.

    Keys match ignoring case and underscores, so ``RBS_BACKUP__SAVE_CHANGES``
    replaces a ``SaveChanges`` entry read from YAML.
    """

    merged = _merge({}, data)
    for env_key, raw_value in sorted(environ.items()):
        if not env_key.startswith(ENV_PREFIX):
            continue
        *sections, leaf = env_key[len(ENV_PREFIX) :].lower().split("__")
        cursor = merged
        for section in sections:
            child = cursor.get(section)
            if not isinstance(child, dict):
                child = cursor[section] = {}
            cursor = child
        for stale in [key for key in cursor if _normalize_key(key) == _normalize_key(leaf)]:
            del cursor[stale]
        cursor[leaf] = yaml.safe_load(raw_value) if raw_value else raw_value
    return merged


def _load_raw_data(path: Path) -> dict[str, Any]:
    if not (path.is_dir() or path.suffix == ""):
        return _read_yaml(path)

    merged: dict[str, Any] = {}
    for file_name in CONFIG_FILES:
        _merge(merged, _read_yaml(path / file_name))
    return merged


def _lift_legacy_section(raw: dict[str, Any]) -> None:
    legacy = raw.pop(LEGACY_BACKUP_SECTION, None)
    if not isinstance(legacy, dict):
        return
    current = raw.get("backup")
    raw["backup"] = _merge(dict(legacy), current if isinstance(current, dict) else {})


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        logger.warning("Ignoring config file without a mapping at top level", extra={"path": str(path)})
        return {}
    return loaded


def _merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, dict):
            existing = base.get(key)
            base[key] = _merge(existing if isinstance(existing, dict) else {}, value)
        else:
            base[key] = value
    return base


def _normalize_key(key: str) -> str:
    return key.replace("_", "").lower()
