"""Logger configuration for the CLI."""

import json
import logging
from datetime import UTC, datetime

from rich.console import Console
from rich.logging import RichHandler

from trivy_zarf.consts import LOG_FORMATS, LOG_LEVELS
from trivy_zarf.exceptions import ConfigError

ROOT_LOGGER_NAME = "trivy_zarf"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class JsonFormatter(logging.Formatter):
    """Formats each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def parse_level(level: str) -> int:
    """Convert a level name (debug, info, warn, error) to a logging level.

    Raises:
        ConfigError: If the level is unknown
    """
    try:
        return _LEVELS[level.lower()]
    except KeyError:
        raise ConfigError(
            f"invalid log level '{level}' (expected one of: {', '.join(LOG_LEVELS)})"
        ) from None


def _build_handler(fmt: str, color: bool) -> logging.Handler:
    if fmt == "console":
        console = Console(stderr=True, no_color=not color, highlight=color)
        return RichHandler(console=console, show_path=False, markup=False)
    if fmt == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        return handler
    if fmt == "dev":
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s")
        )
        return handler
    return logging.NullHandler()


def setup_logging(level: str = "info", fmt: str = "console", color: bool = True) -> logging.Logger:
    """Configure the package logger.

    Replaces any handlers installed by a previous call.

    Args:
        level: Log level name (debug, info, warn, error)
        fmt: Log format (console, json, dev, none)
        color: Colorize console output

    Returns:
        The configured package logger

    Raises:
        ConfigError: If level or fmt is invalid
    """
    log_level = parse_level(level)
    if fmt not in LOG_FORMATS:
        raise ConfigError(f"invalid log format '{fmt}' (expected one of: {', '.join(LOG_FORMATS)})")

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    root.addHandler(_build_handler(fmt, color))
    root.setLevel(log_level)
    root.propagate = False

    root.debug(f"logger successfully initialized (level={level}, format={fmt}, color={color})")
    return root
