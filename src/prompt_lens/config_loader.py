"""Utilities to load configuration YAML files into typed objects.

Each helper reads a YAML under ``configs/`` and validates it via the
``prompt_lens.config_types`` Pydantic models.  The functions purposely do
not cache results so that callers can decide caching behavior at a higher
level.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import yaml
from pydantic import ValidationError

from .config_types import DepartmentsConfig, GenerationConfig

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_DIR = PROJECT_ROOT / "configs"


class ConfigLoaderError(RuntimeError):
    """Raised when a configuration file is missing or malformed."""


def _load_yaml(path: Path) -> Dict[str, object]:
    if not path.exists():
        raise ConfigLoaderError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ConfigLoaderError(f"Config file {path} should contain a mapping at top level")
    return data


def load_generation(config_dir: Path | None = None) -> GenerationConfig:
    """Load per-pipeline provider/sampling profiles from configs/generation.yaml."""

    cfg_dir = config_dir or DEFAULT_CONFIG_DIR
    data = _load_yaml(cfg_dir / "generation.yaml")
    try:
        return GenerationConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigLoaderError(f"Invalid generation.yaml: {exc}") from exc


def load_departments(config_dir: Path | None = None) -> DepartmentsConfig:
    """Load department contexts; keys are normalized to lower case."""

    cfg_dir = config_dir or DEFAULT_CONFIG_DIR
    data = _load_yaml(cfg_dir / "departments.yaml")
    raw_departments = data.get("departments", {})
    if not isinstance(raw_departments, dict):
        raise ConfigLoaderError("`departments` must be a mapping in departments.yaml")
    payload = {
        "fallback": data.get("fallback"),
        "departments": {
            str(name).strip().lower(): text for name, text in raw_departments.items()
        },
    }
    try:
        return DepartmentsConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigLoaderError(f"Invalid departments.yaml: {exc}") from exc
