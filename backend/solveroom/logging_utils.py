from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import sys
from typing import Any, MutableMapping, Optional

from .config import settings

# Structured fields lifted from `extra=` onto the JSON line, in output order.
CONTEXT_FIELDS = (
    "event",
    "room_code",
    "client_id",
    "cell_id",
    "action",
    "role",
    "denial",
    "reason",
    "status",
)


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (key, getattr(record, key))
            for key in CONTEXT_FIELDS
            if getattr(record, key, None) is not None
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True)


class SessionLogAdapter(logging.LoggerAdapter):
    """Stamps every record with the room and client it concerns.

    Fields passed through `extra=` at the call site win over the bound ones.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def session_logger(
    logger: logging.Logger,
    room_code: str,
    client_id: Optional[str] = None,
) -> SessionLogAdapter:
    bound: dict[str, Any] = {"room_code": room_code.upper()}
    if client_id is not None:
        bound["client_id"] = client_id
    return SessionLogAdapter(logger, bound)


def configure_logging() -> None:
    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root.setLevel(getattr(logging, settings.log_level, logging.INFO))
    root.addHandler(handler)
