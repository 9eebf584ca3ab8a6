"""Config I/O utilities."""

from __future__ import annotations

import copy
import json
import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ..exceptions import ConfigurationError
from .models import ConfigModel, validate_config
from .schema import validate_config_schema

logger = logging.getLogger(__name__)

CONFIG_ENV = "ASSETPATCH_CONFIG"
YAML_SUFFIXES = (".yaml", ".yml")

PathLike = Union[str, os.PathLike]


def default_config_path() -> Path:
    return Path(__file__).resolve().parents[1] / "config.json"


def get_config_path() -> Optional[Path]:
    """User config path from ``ASSETPATCH_CONFIG``, if set."""
    override = os.environ.get(CONFIG_ENV, "").strip()
    if override:
        return Path(override)
    return None


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot parse config file: {exc}", file_path=str(path)) from exc
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file: {exc}", file_path=str(path)) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Config file must contain a mapping", file_path=str(path))
    return data


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[PathLike] = None) -> Dict[str, Any]:
    """Load the packaged defaults with the user config (JSON or YAML) merged on top."""
    data = _read_config_file(default_config_path())

    path = Path(config_path) if config_path is not None else get_config_path()
    if path is None:
        return data
    if not path.exists():
        logger.warning("Config file not found, using defaults: %s", path)
        return data

    data = _merge(data, _read_config_file(path))
    ok, error = validate_config_schema(data)
    if not ok:
        logger.warning("Config schema validation failed: %s", error)
    return data


def load_settings(config_path: Optional[PathLike] = None) -> ConfigModel:
    """Load and validate configuration into a ``ConfigModel``."""
    return validate_config(load_config(config_path))


def save_config(config_data: Dict[str, Any], config_path: PathLike) -> bool:
    path = Path(config_path)
    try:
        if path.parent and not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                yaml.safe_dump(dict(config_data or {}), f, sort_keys=False)
            else:
                json.dump(dict(config_data or {}), f, indent=2)
        return True
    except OSError as exc:
        logger.error("Failed to save config %s: %s", path, exc)
        return False
