"""Runtime settings derived from environment variables.

Centralizes provider credentials, endpoints and deployment switches (use-case
output format, strict department list, logging) so the pipeline and API layers
receive them as explicit values. Values are cached per process.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from .config_loader import DEFAULT_CONFIG_DIR

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
USECASE_FORMATS = {"short", "long"}


@dataclass(frozen=True)
class RuntimeSettings:
    """Container for runtime flags."""

    log_level: str
    openai_api_key: Optional[str]
    openai_base_url: str
    gemini_api_key: Optional[str]
    gemini_base_url: str
    llm_timeout_seconds: float
    http_proxy: Optional[str]
    usecase_format: str
    strict_departments: bool
    config_dir: Path


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _normalize_log_level(value: str | None) -> str:
    if not value:
        return "INFO"
    level = value.strip().upper()
    if level in logging._nameToLevel:
        return level
    return "INFO"


def _env_float(value: str | None, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_path(value: str | None, default: Path) -> Path:
    if not value:
        return default
    return Path(value).expanduser()


def _env_secret(value: str | None) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _normalize_usecase_format(value: str | None) -> str:
    if not value:
        return "short"
    fmt = value.strip().lower()
    if fmt in USECASE_FORMATS:
        return fmt
    return "short"


def load_runtime_settings() -> RuntimeSettings:
    """Load settings without caching (useful for tests)."""

    return RuntimeSettings(
        log_level=_normalize_log_level(os.getenv("LOG_LEVEL")),
        openai_api_key=_env_secret(os.getenv("OPENAI_API_KEY")),
        openai_base_url=os.getenv("PROMPTLENS_OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL),
        gemini_api_key=_env_secret(os.getenv("GEMINI_API_KEY")),
        gemini_base_url=os.getenv("PROMPTLENS_GEMINI_BASE_URL", DEFAULT_GEMINI_BASE_URL),
        llm_timeout_seconds=_env_float(os.getenv("PROMPTLENS_LLM_TIMEOUT"), 60.0),
        http_proxy=os.getenv("PROMPTLENS_HTTP_PROXY"),
        usecase_format=_normalize_usecase_format(os.getenv("PROMPTLENS_USECASE_FORMAT")),
        strict_departments=_env_bool(os.getenv("PROMPTLENS_STRICT_DEPARTMENTS"), False),
        config_dir=_env_path(os.getenv("PROMPTLENS_CONFIG_DIR"), DEFAULT_CONFIG_DIR),
    )


@lru_cache(maxsize=1)
def get_runtime_settings() -> RuntimeSettings:
    """Cached accessor used by runtime code."""

    return load_runtime_settings()


def reset_runtime_settings_cache() -> None:
    """Testing helper to clear cached settings."""

    get_runtime_settings.cache_clear()
