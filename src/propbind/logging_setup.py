import logging
import json
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from propbind.configuration.models import LoggingConfiguration


class LogFormat(Enum):
    PRETTY = "pretty"
    JSON = "json"


# ANSI color codes
RESET = "\033[0m"
COLORS = {
    "DEBUG": "\033[37m",   # White
    "INFO": "\033[36m",    # Cyan
    "WARNING": "\033[33m", # Yellow
    "ERROR": "\033[31m",   # Red
    "CRITICAL": "\033[41m\033[97m",  # White on Red background
    "TIME": "\033[90m",    # Gray for timestamps
    "MODULE": "\033[35m",  # Magenta
    "MESSAGE": "\033[0m",  # Default
}

_STD_RECORD_KEYS = frozenset((
    "name", "args", "msg", "levelname", "levelno", "pathname", "filename",
    "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "taskName", "message", "asctime",
))


class PrettyColoredFormatter(logging.Formatter):
    """
    Pretty, human-readable, colored log formatter.
    Format:
    2025-08-13 14:35:12.345 UTC | INFO     | application:42 | Project Name: demo
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        timestamp_colored = f"{COLORS['TIME']}{timestamp} UTC{RESET}"

        level_color = COLORS.get(record.levelname, "")
        level_name_colored = f"{level_color}{record.levelname:<8}{RESET}"

        location_colored = f"{COLORS['MODULE']}{record.module}:{record.lineno}{RESET}"

        message_colored = f"{COLORS['MESSAGE']}{record.getMessage()}{RESET}"

        if record.exc_info:
            message_colored += "\n" + self.formatException(record.exc_info)

        return f"{timestamp_colored} | {level_name_colored} | {location_colored} | {message_colored}"


class JsonFormatter(logging.Formatter):
    """Minimal JSON formatter for structured logs."""
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        # Merge extra attributes passed through `extra=`
        for k, v in record.__dict__.items():
            if k in _STD_RECORD_KEYS:
                continue
            try:
                json.dumps(v)
                base[k] = v
            except (TypeError, ValueError):
                base[k] = str(v)
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, separators=(",", ":"))


def setup_logging(config: Optional[LoggingConfiguration] = None) -> logging.Logger:
    """Install a single stdout handler on the package logger."""
    config = config or LoggingConfiguration()
    logger = logging.getLogger(config.logger_name)
    logger.setLevel(getattr(logging, config.level, logging.INFO))
    handler = logging.StreamHandler(sys.stdout)

    if config.format == LogFormat.PRETTY.value:
        handler.setFormatter(PrettyColoredFormatter())
    elif config.format == LogFormat.JSON.value:
        handler.setFormatter(JsonFormatter())
    else:
        raise ValueError(f"Unknown log format: {config.format}")

    logger.handlers = [handler]
    logger.propagate = False
    return logger
