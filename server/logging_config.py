"""
Structured logging configuration for the Playing Cards bot.

Provides:
- JSONFormatter for production (machine-readable logs)
- Human-readable formatter for development
- Contextual logging (guild_id, channel_id, user_id)
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

# Context variables for event-scoped data (set by the Discord adapter per event)
guild_id_var: ContextVar[Optional[int]] = ContextVar("guild_id", default=None)
user_id_var: ContextVar[Optional[int]] = ContextVar("user_id", default=None)

CONTEXT_FIELDS = ("guild_id", "channel_id", "user_id", "command")


def _context(record: logging.LogRecord) -> dict:
    """Collect context from context variables and record extras."""
    context = {}
    guild_id = guild_id_var.get()
    if guild_id:
        context["guild_id"] = guild_id
    user_id = user_id_var.get()
    if user_id:
        context["user_id"] = user_id
    for name in CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value:
            context[name] = value
    return context


class JSONFormatter(logging.Formatter):
    """
    Format logs as JSON for production log aggregation.

    Output format is compatible with common log aggregation systems
    (ELK, CloudWatch, Datadog, etc.).
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(_context(record))

        # Add source location for errors
        if record.levelno >= logging.ERROR:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter with colors and guild context."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""

        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        context_parts = []
        for key, value in _context(record).items():
            short = key.split("_")[0]
            context_parts.append(f"{short}={value}")
        context = f" [{', '.join(context_parts)}]" if context_parts else ""

        output = f"{timestamp} {color}{record.levelname:8}{reset} {record.name}{context} - {record.getMessage()}"

        if record.exc_info:
            output += "\n" + self.formatException(record.exc_info)

        return output


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        environment: Environment name (production uses JSON, else human-readable).
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if environment == "production":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(DevelopmentFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("discord.gateway").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level}, environment={environment}")


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that automatically includes context.

    Usage:
        logger = get_logger(__name__)
        logger.with_context(guild_id=1234, channel_id=5678).info("Game started")
    """

    def __init__(self, logger: logging.Logger, extra: Optional[dict] = None):
        super().__init__(logger, extra or {})

    def with_context(self, **kwargs) -> "ContextLogger":
        """Create a new logger with additional context."""
        return ContextLogger(self.logger, {**self.extra, **kwargs})

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    """Get a context-aware logger (name is typically __name__)."""
    return ContextLogger(logging.getLogger(name))
