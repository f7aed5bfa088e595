"""calendarsync_lite.config_loader

Lightweight config loader for calendarsync_lite.

- Reads YAML with PyYAML; a missing file yields defaults.
- Environment variables (CALENDARSYNC_*) override file values.
- Exposes a typed dataclass `Config` and a `load_config()` helper.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from calendarsync_lite.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DATE_ONLY_POLICIES = ("retain", "compare")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class Config:
    """Typed configuration for calendarsync_lite.

    Fields:
        feed_url: URL of the calendar feed
        calendar_name: target calendar name passed to the publisher
        credentials_path: credentials file passed to the publisher
        date_only_policy: "retain" keeps all date-only events, "compare" checks the date
        request_timeout: HTTP read timeout in seconds (1..300)
        output_indent: JSON indentation for the printed event array
        log_level: logging level name
    """

    feed_url: str = ""
    calendar_name: str = "Test"
    credentials_path: str = "credentials.json"
    date_only_policy: str = "retain"
    request_timeout: int = 30
    output_indent: int = 2
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric values are coerced to int and clamped; unknown enum-like
        values fall back to defaults with a warning.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                return int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default

        def _coerce_str(key: str, default: str) -> str:
            raw = data.get(key, default)
            return str(raw) if raw is not None else default

        timeout = _coerce_int("request_timeout", 30)
        if timeout < 1:
            logger.warning("request_timeout %d below minimum; coercing to 1", timeout)
            timeout = 1
        elif timeout > 300:
            logger.warning("request_timeout %d above maximum; coercing to 300", timeout)
            timeout = 300

        indent = _coerce_int("output_indent", 2)
        if indent < 0:
            logger.warning("output_indent %d is negative; coercing to 0", indent)
            indent = 0

        policy = _coerce_str("date_only_policy", "retain").lower()
        if policy not in DATE_ONLY_POLICIES:
            logger.warning("Unknown date_only_policy %r; using 'retain'", policy)
            policy = "retain"

        log_level = _coerce_str("log_level", "INFO").upper()
        if log_level not in LOG_LEVELS:
            logger.warning("Unknown log_level %r; using INFO", log_level)
            log_level = "INFO"

        return cls(
            feed_url=_coerce_str("feed_url", ""),
            calendar_name=_coerce_str("calendar_name", "Test"),
            credentials_path=_coerce_str("credentials_path", "credentials.json"),
            date_only_policy=policy,
            request_timeout=timeout,
            output_indent=indent,
            log_level=log_level,
        )


ENV_OVERRIDES = {
    "CALENDARSYNC_FEED_URL": "feed_url",
    "CALENDARSYNC_CALENDAR_NAME": "calendar_name",
    "CALENDARSYNC_CREDENTIALS_PATH": "credentials_path",
    "CALENDARSYNC_DATE_ONLY_POLICY": "date_only_policy",
    "CALENDARSYNC_REQUEST_TIMEOUT": "request_timeout",
    "CALENDARSYNC_LOG_LEVEL": "log_level",
}


def config_to_dict(config: Config) -> dict[str, Any]:
    """Return the config fields as a plain dict."""
    return {
        "feed_url": config.feed_url,
        "calendar_name": config.calendar_name,
        "credentials_path": config.credentials_path,
        "date_only_policy": config.date_only_policy,
        "request_timeout": config.request_timeout,
        "output_indent": config.output_indent,
        "log_level": config.log_level,
    }


def apply_env_overrides(config: Config, environ: Mapping[str, str] | None = None) -> Config:
    """Return a copy of ``config`` with CALENDARSYNC_* environment values applied."""
    env = os.environ if environ is None else environ
    data = config_to_dict(config)
    changed = False
    for env_key, field_name in ENV_OVERRIDES.items():
        value = env.get(env_key)
        if value:
            data[field_name] = value
            changed = True
            logger.debug("Applied environment override %s", env_key)
    return Config.from_dict(data) if changed else config


def apply_overrides(config: Config, **overrides: Any) -> Config:
    """Return a copy of ``config`` with non-None keyword overrides applied."""
    values = {key: value for key, value in overrides.items() if value is not None}
    if not values:
        return config
    return Config.from_dict({**config_to_dict(config), **values})


def load_config(path: str | None = None, environ: Mapping[str, str] | None = None) -> Config:
    """Load configuration from a YAML file and the environment.

    Args:
        path: Optional path to the config file. Defaults to ./calendarsync.yaml.
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Config dataclass instance

    Behavior:
    - If file is missing: defaults (plus environment overrides).
    - If file exists but top-level is not a mapping: raises ConfigError.
    - If the YAML is invalid: raises ConfigError.
    """
    p = Path(path) if path else Path.cwd() / "calendarsync.yaml"
    logger.debug("Attempting to load config from %s", p)

    if not p.exists():
        logger.debug("Config file %s not found; using defaults", p)
        return apply_env_overrides(Config(), environ)

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {p}: {e}") from e

    # safe_load returns None for empty files
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ConfigError("Config file must contain a mapping at top level")

    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    return apply_env_overrides(cfg, environ)


__all__ = ["Config", "apply_env_overrides", "apply_overrides", "load_config"]
