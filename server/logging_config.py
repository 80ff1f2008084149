"""
Logging setup for the UNO room server.

Records carry up to four pieces of context:
    connection_id  from connection_id_var, set once per WebSocket
    room_code, player_id, game_id  passed as ``extra=`` by room and handler code

Production writes one JSON object per line; development writes colored
single lines with the connection and room inline.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

connection_id_var: ContextVar[Optional[str]] = ContextVar("connection_id", default=None)

CONTEXT_FIELDS = ("room_code", "player_id", "game_id")

QUIET_LOGGERS = ("uvicorn.access", "uvicorn.error", "websockets", "asyncio")


def record_context(record: logging.LogRecord) -> dict:
    """Connection and room context attached to a record, empty values dropped."""
    context = {"connection_id": connection_id_var.get()}
    for name in CONTEXT_FIELDS:
        context[name] = getattr(record, name, None)
    return {k: v for k, v in context.items() if v}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.levelno >= logging.ERROR:
            entry["source"] = f"{record.pathname}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Colored one-liners: time, level, logger, [conn, room], message."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        level = f"{color}{record.levelname:8}\033[0m" if color else f"{record.levelname:8}"

        context = record_context(record)
        tags = []
        if "connection_id" in context:
            tags.append(f"conn={context['connection_id'][:8]}")
        if "room_code" in context:
            tags.append(f"room={context['room_code']}")
        where = f" [{', '.join(tags)}]" if tags else ""

        line = f"{datetime.now():%H:%M:%S} {level} {record.name}{where} - {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """
    Route all logging to stdout.

    Args:
        level: Root log level name; unknown names fall back to INFO.
        environment: "production" selects JSON output.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if environment == "production" else DevelopmentFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level}, environment={environment}")
