"""Logging setup for the flowgraph server and CLI.

Usage:
    from flowserver.logging_config import configure_logging

    configure_logging()  # once, at startup

Modules log through `logging.getLogger(__name__)` with messages shaped as
`event_name: key=value ...`.

Environment Variables:
    FLOW_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    FLOW_LOG_FORMAT: Output format ("text" or "json")
"""

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Literal

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


class JsonFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def configure_logging(
    level: str | None = None,
    format: Literal["text", "json"] | None = None,
    force: bool = False,
) -> None:
    """Configure the root logger.

    Later calls are ignored unless force=True.

    Args:
        level: Log level. Defaults to FLOW_LOG_LEVEL or "INFO".
        format: Output format. Defaults to FLOW_LOG_FORMAT or "text".
        force: Reconfigure even if already configured.
    """
    global _configured
    if _configured and not force:
        return

    level = level or os.getenv("FLOW_LOG_LEVEL", "INFO")
    format = format or os.getenv("FLOW_LOG_FORMAT", "text")  # type: ignore

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    if format == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    _configured = True
