"""Structured logging for the coupon service.

Every record carries the request id of the HTTP call that produced it. The
JSON output puts the admission fields (requester, outcome, failed step,
sequence, quota) at fixed top-level keys so grants and failures can be
filtered without parsing messages. Store and broker credentials are masked
wherever they show up: as an extra's key, or inside a connection URL quoted
in an error message.
"""

from __future__ import annotations

import contextlib
import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator

from coupon_api.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

# Keys the engine and adapters attach through ``extra``, in output order
ADMISSION_FIELDS: tuple[str, ...] = (
    "requester_id",
    "outcome",
    "failed_step",
    "sequence",
    "quota",
)

SECRET_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "redis_url",
        "store_redis_url",
        "sasl_plain_password",
        "authorization",
    }
)

# user:password@ inside redis:// or kafka URLs
_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-z][a-z0-9+.-]*://)[^/@\s]*@", re.IGNORECASE)

_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    return _request_id_var.get()


@contextlib.contextmanager
def request_context(request_id: str) -> Iterator[None]:
    """Bind ``request_id`` to every record logged inside the block."""
    token = _request_id_var.set(request_id)
    try:
        yield
    finally:
        _request_id_var.reset(token)


def mask_credentials(text: str) -> str:
    """Replace the userinfo part of any URL in ``text``."""
    return _URL_CREDENTIALS.sub(lambda m: f"{m.group('scheme')}{REDACTED}@", text)


def _scrub(key: str, value: Any) -> Any:
    if key.lower() in SECRET_KEYS:
        return REDACTED
    if isinstance(value, str):
        return mask_credentials(value)
    if isinstance(value, dict):
        return {k: _scrub(k, v) for k, v in value.items()}
    return value


def _extras(record: LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and key != "request_id" and not key.startswith("_")
    }


class ContextFilter(logging.Filter):
    """Attach the current request id and scrub secrets from the record."""

    def filter(self, record: LogRecord) -> bool:
        request_id = get_request_id()
        if request_id and getattr(record, "request_id", None) is None:
            record.request_id = request_id
        for key, value in _extras(record).items():
            setattr(record, key, _scrub(key, value))
        if isinstance(record.msg, str):
            record.msg = mask_credentials(record.msg)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: envelope, admission fields, other extras."""

    def format(self, record: LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        extras = {key: _scrub(key, value) for key, value in _extras(record).items()}
        for field in ADMISSION_FIELDS:
            if extras.get(field) is not None:
                payload[field] = extras.pop(field)
            else:
                extras.pop(field, None)
        payload.update(extras)

        if record.exc_info:
            payload["exc_info"] = mask_credentials(self.formatException(record.exc_info))

        return json.dumps(payload, default=str)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() == "file":
        file_path = Path(log_settings.file_path or "logs/coupon_api.log")
        file_path.parent.mkdir(parents=True, exist_ok=True)
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.StreamHandler(sys.stdout)


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single root handler according to ``LOG_*`` settings."""
    cfg = log_settings or settings.log
    level = getattr(logging, cfg.level.upper(), logging.INFO)

    handler = _build_handler(cfg)
    handler.addFilter(ContextFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s [%(request_id)s] %(name)s %(message)s",
                defaults={"request_id": "-"},
            )
        )
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # kafka-python logs connection and metadata churn at INFO
    logging.getLogger("kafka").setLevel(max(level, logging.WARNING))
    logging.getLogger("uvicorn.access").propagate = False
