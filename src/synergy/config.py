"""Profile-backed application configuration."""

from __future__ import annotations

import json
import math
import re
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .constants import (
    DEFAULT_AUTH_BASE_URL,
    DEFAULT_AUTH_TIMEOUT_SEC,
    DEFAULT_DATA_DIR,
    SESSION_STRATEGIES,
    SESSION_STRATEGY_LOCAL,
)
from .errors import ConfigError

_KNOWN_KEYS = {"data_dir", "session_strategy", "auth_base_url", "auth_timeout", "log_file"}


@dataclass(frozen=True, slots=True)
class AppConfig:
    data_dir: Path
    session_strategy: str = SESSION_STRATEGY_LOCAL
    auth_base_url: str = DEFAULT_AUTH_BASE_URL
    auth_timeout: float = DEFAULT_AUTH_TIMEOUT_SEC
    log_file: Path | None = None


def _runtime_app_root() -> Path:
    return Path(__file__).resolve().parent


def map_path(path: str, base_dir: Path | None = None) -> Path:
    """Resolve a path string to an absolute path.

    ~ or ~/...  -> user home directory
    @ or @/...  -> runtime app root (package directory)
    Absolute    -> used as-is
    Relative    -> resolved relative to base_dir if given; error otherwise
    """
    normalized = unicodedata.normalize("NFC", path)
    if "\0" in normalized:
        raise ConfigError("Path cannot contain NUL bytes")

    if normalized.startswith("@"):
        suffix = re.sub(r"[\\/]+", "/", normalized[1:]).lstrip("/")
        result = (_runtime_app_root() / suffix) if suffix else _runtime_app_root()
        return result.resolve()

    candidate = Path(normalized).expanduser()
    if candidate.is_absolute():
        return candidate.resolve()
    if base_dir is not None:
        return (base_dir / candidate).resolve()
    raise ConfigError(
        f"Relative path not supported here: {path}. "
        "Use an absolute path or start with '~/' or '@/'."
    )


def _require_string(profile: dict[str, Any], key: str) -> str:
    value = profile[key]
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{key} must be a non-empty string")
    return value.strip()


def _require_timeout(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError("auth_timeout must be a number")
    if not math.isfinite(value) or value <= 0:
        raise ConfigError("auth_timeout must be a positive number")
    return float(value)


def config_from_dict(profile: dict[str, Any], base_dir: Path | None = None) -> AppConfig:
    """Validate a profile mapping; missing keys take their defaults."""
    unknown = set(profile) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(f"Unknown profile keys: {', '.join(sorted(unknown))}")

    data_dir = map_path(DEFAULT_DATA_DIR)
    if "data_dir" in profile:
        data_dir = map_path(_require_string(profile, "data_dir"), base_dir)

    strategy = SESSION_STRATEGY_LOCAL
    if "session_strategy" in profile:
        strategy = _require_string(profile, "session_strategy")
        if strategy not in SESSION_STRATEGIES:
            raise ConfigError(
                f"session_strategy must be one of: {', '.join(SESSION_STRATEGIES)}"
            )

    auth_base_url = DEFAULT_AUTH_BASE_URL
    if "auth_base_url" in profile:
        auth_base_url = _require_string(profile, "auth_base_url")

    auth_timeout = float(DEFAULT_AUTH_TIMEOUT_SEC)
    if "auth_timeout" in profile:
        auth_timeout = _require_timeout(profile["auth_timeout"])

    log_file = None
    if profile.get("log_file") is not None:
        log_file = map_path(_require_string(profile, "log_file"), base_dir)

    return AppConfig(
        data_dir=data_dir,
        session_strategy=strategy,
        auth_base_url=auth_base_url,
        auth_timeout=auth_timeout,
        log_file=log_file,
    )


def load_config(profile_path: Path | None = None) -> AppConfig:
    """Load configuration from a JSON profile, or defaults when none is given."""
    if profile_path is None:
        return config_from_dict({})

    try:
        with open(profile_path, "r", encoding="utf-8") as f:
            profile = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Profile not found: {profile_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in profile: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read profile: {profile_path}: {e}") from e

    if not isinstance(profile, dict):
        raise ConfigError("Profile must be a JSON object")
    return config_from_dict(profile, base_dir=Path(profile_path).resolve().parent)
