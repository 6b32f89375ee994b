"""Console logging for the command line tool: ``[LEVEL] module - message``."""
from __future__ import annotations
import logging
import os
import sys
from typing import Dict, Optional, TextIO, Union

_RESET = "\033[0m"
_BOLD = "\033[1m"
_MODULE_COLOR = "\033[94m"
_LEVEL_COLORS: Dict[str, str] = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}

# Libraries whose request lines duplicate the client's own INFO logs
_QUIET_LOGGERS = ("httpx", "httpcore")


def use_color(stream: TextIO) -> bool:
    """Whether ANSI colors should be written to ``stream``.

    NO_COLOR (https://no-color.org/) disables and FORCE_COLOR enables colors;
    otherwise they are used only on a terminal.
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class ColoredFormatter(logging.Formatter):
    """Formatter producing ``[LEVEL] module - message``, colored when enabled.

    Args:
        color: Emit ANSI colors; detected from stderr when None.
    """

    def __init__(self, color: Optional[bool] = None) -> None:
        super().__init__()
        self._color = use_color(sys.stderr) if color is None else color

    def _paint(self, text: str, code: str) -> str:
        return f"{code}{text}{_RESET}" if self._color else text

    def format(self, record: logging.LogRecord) -> str:
        level = self._paint(f"[{record.levelname}]", _LEVEL_COLORS.get(record.levelname, "") + _BOLD)
        formatted = f"{level} {self._paint(record.name, _MODULE_COLOR)} - {record.getMessage()}"
        if record.exc_info:
            formatted = f"{formatted}\n{self.formatException(record.exc_info)}"
        return formatted


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Configure root logging with colored console output on stderr.

    Args:
        level: Logging level as int or name; unknown names fall back to INFO.

    Example:
        >>> from polygon_weather.utils.logging_config import configure_logging
        >>> configure_logging("DEBUG")
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter())
    root_logger.addHandler(handler)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["use_color", "ColoredFormatter", "configure_logging"]
