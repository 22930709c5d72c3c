from __future__ import annotations
import json
import logging as std_logging
import os
import sys
import time
from typing import Any, Dict

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SERVICE_NAME = os.getenv("APP_NAME", "task-command-gateway")

# Extra attributes copied from a record into the JSON line when present
_EXTRA_KEYS = ("request_id", "session_id", "user_id", "provider", "route", "status")


class JsonFormatter(std_logging.Formatter):
    def format(self, record: std_logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "ts": int(time.time() * 1000),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
            "service": SERVICE_NAME,
        }
        for key in _EXTRA_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                base[key] = val
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def configure_json_logging(level: str | None = None) -> None:
    handler = std_logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root = std_logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(std_logging, (level or LOG_LEVEL).upper(), std_logging.INFO))

    # structlog events render to a key=value string and go through the same
    # stdlib handler, so both styles end up as one JSON line each.
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# Convenience logger
logger = std_logging.getLogger("gateway")
