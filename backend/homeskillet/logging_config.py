# backend/homeskillet/logging_config.py
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from .config import settings
from .middleware.request_id import get_request_id

# structured extras callers pass via `extra={...}`
_EXTRA_KEYS = ("user_id", "property_id", "project_id", "task_id", "document_id", "item_id")

_HANDLER_NAME = "homeskillet-json"


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line: ts, level, logger, message, env, and the
    request id when the record was emitted inside a request.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "env": settings.app_env,
        }

        rid = get_request_id()
        if rid:
            payload["request_id"] = rid

        for k in _EXTRA_KEYS:
            v = getattr(record, k, None)
            if v is not None:
                payload[k] = v

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: Optional[str] = None) -> None:
    lvl = (level or os.getenv("LOG_LEVEL") or "INFO").upper()

    root = logging.getLogger()
    root.setLevel(lvl)

    # create_app() can run more than once (tests, --reload); keep a single handler
    handler = next((h for h in root.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
    handler.setLevel(lvl)

    # StructuredLoggingMiddleware already writes the access line
    logging.getLogger("uvicorn.access").setLevel("WARNING")
    logging.getLogger("multipart").setLevel("WARNING")
    logging.getLogger("sqlalchemy.engine").setLevel((os.getenv("SQL_LOG_LEVEL") or "WARNING").upper())
