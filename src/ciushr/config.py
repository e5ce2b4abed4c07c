"""Runtime settings for the invoice codec.

Settings are resolved from built-in defaults, then an optional JSON file
pointed at by ``CIUSHR_SETTINGS_PATH`` and finally individual environment
variables.  The JSON file is cached by path and modification time.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigError

LOGGER = logging.getLogger("ciushr.config")

_SETTINGS_ENV_VAR = "CIUSHR_SETTINGS_PATH"
_ENV_OVERRIDES = {
    "line_tax_category_policy": "CIUSHR_LINE_TAX_CATEGORY_POLICY",
    "strict_exemption_reason": "CIUSHR_STRICT_EXEMPTION_REASON",
    "timezone": "CIUSHR_TIMEZONE",
    "log_level": "CIUSHR_LOG_LEVEL",
}

LINE_TAX_CATEGORY_POLICIES = ("strip", "reject")
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    """Behaviour switches shared by validation and building."""

    line_tax_category_policy: str = "strip"
    strict_exemption_reason: bool = False
    timezone: str | None = None
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.line_tax_category_policy not in LINE_TAX_CATEGORY_POLICIES:
            choices = ", ".join(LINE_TAX_CATEGORY_POLICIES)
            raise ConfigError(
                f"line_tax_category_policy must be one of: {choices} "
                f"(got {self.line_tax_category_policy!r})"
            )
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigError(f"Unknown log level {self.log_level!r}")
        object.__setattr__(self, "log_level", self.log_level.upper())
        if self.timezone is not None:
            _load_zone(self.timezone)

    def tzinfo(self):
        """Return the configured :class:`zoneinfo.ZoneInfo` or ``None``."""

        if self.timezone is None:
            return None
        return _load_zone(self.timezone)


DEFAULT_SETTINGS = Settings()

_CACHED_FILE: tuple[Path, float, dict[str, Any]] | None = None


def _load_zone(name: str):
    from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone {name!r}") from exc


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean (got {value!r})")


def _resolve_settings_path(environ: Mapping[str, str]) -> Path | None:
    candidate = environ.get(_SETTINGS_ENV_VAR)
    if candidate:
        return Path(candidate)
    return None


def _load_file(path: Path) -> dict[str, Any]:
    global _CACHED_FILE

    if not path.exists():
        msg = f"Settings file '{path}' not found"
        raise ConfigError(msg)

    mtime = path.stat().st_mtime
    if _CACHED_FILE and _CACHED_FILE[0] == path and _CACHED_FILE[1] == mtime:
        return _CACHED_FILE[2]

    with path.open("r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            msg = f"Settings file '{path}' is not valid JSON"
            raise ConfigError(msg) from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"Settings file '{path}' must contain a JSON object")

    unknown = sorted(set(payload) - set(_ENV_OVERRIDES))
    if unknown:
        LOGGER.warning("Ignoring unknown settings in %s: %s", path, ", ".join(unknown))

    values = {key: payload[key] for key in _ENV_OVERRIDES if key in payload}
    _CACHED_FILE = (path, mtime, values)
    return values


def _coerce(values: Mapping[str, Any]) -> dict[str, Any]:
    coerced: dict[str, Any] = {}
    for key, value in values.items():
        if key == "strict_exemption_reason":
            coerced[key] = _parse_bool(key, value)
        elif key == "timezone":
            coerced[key] = str(value) if value not in (None, "") else None
        else:
            coerced[key] = str(value).strip()
    return coerced


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from the settings file and environment."""

    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}

    path = _resolve_settings_path(env)
    if path is not None:
        values.update(_load_file(path))

    for key, variable in _ENV_OVERRIDES.items():
        if variable in env:
            values[key] = env[variable]

    return replace(DEFAULT_SETTINGS, **_coerce(values))


def get_settings(settings: Settings | None = None) -> Settings:
    """Return ``settings`` when given, otherwise the active configuration."""

    if settings is not None:
        return settings
    return load_settings()


def clear_cache() -> None:
    global _CACHED_FILE
    _CACHED_FILE = None


__all__ = [
    "Settings",
    "DEFAULT_SETTINGS",
    "LINE_TAX_CATEGORY_POLICIES",
    "load_settings",
    "get_settings",
    "clear_cache",
]
