"""
Central logging configuration for calendarsync_lite.

Keeps diagnostics from the feed parser and filter visible while quieting
HTTP client chatter from third-party libraries.
"""

import logging
import os
from typing import Optional

PACKAGE_LOGGERS = [
    "calendarsync_lite",
    "calendarsync_lite.calendar.feed_parser",
    "calendarsync_lite.calendar.event_extractor",
    "calendarsync_lite.calendar.datetime_normalizer",
    "calendarsync_lite.calendar.feed_fetcher",
    "calendarsync_lite.domain.future_filter",
    "calendarsync_lite.domain.pipeline",
    "calendarsync_lite.domain.publisher",
]

NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "asyncio",
    "urllib3.connectionpool",
    "charset_normalizer",
]


def configure_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    log_level: Optional[str] = None,
) -> None:
    """
    Configure logger levels for calendarsync_lite.

    Args:
        debug_mode: Whether to enable debug logging for calendarsync_lite modules
        force_debug: Override debug mode setting (None to use env var detection)
        log_level: Configured level name for root and package loggers; ignored in debug mode

    Environment Variables:
        CALENDARSYNC_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CALENDARSYNC_LOG_LEVEL: Override the configured level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("CALENDARSYNC_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("CALENDARSYNC_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    configured_level = logging.INFO
    for level_name in (env_log_level, (log_level or "").upper()):
        if level_name in ("DEBUG", "INFO", "WARNING", "ERROR"):
            configured_level = getattr(logging, level_name)
            break

    root_level = logging.DEBUG if final_debug else configured_level

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    logger_config: dict[str, int] = {name: logging.WARNING for name in NOISY_LOGGERS}

    package_level = logging.DEBUG if final_debug else configured_level
    for module in PACKAGE_LOGGERS:
        logger_config[module] = package_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.debug("Debug logging enabled for calendarsync_lite modules")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}

    for logger_name in ["calendarsync_lite", "httpx", "asyncio"]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)

    return status
