from __future__ import annotations

import contextvars
import datetime as dt
import json
import logging
import os
import traceback
from typing import Any

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)

_CONFIGURED = False

# Attributes every LogRecord carries; anything else was passed through `extra`.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName", "request_id", "trace_id", "span_id"}


def get_request_id() -> str | None:
    return request_id_var.get()


def _get_trace_context() -> tuple[str | None, str | None]:
    try:
        from opentelemetry.trace import get_current_span
    except ImportError:
        return None, None

    context = get_current_span().get_span_context()
    if not context or not context.is_valid:
        return None, None
    return f"{context.trace_id:032x}", f"{context.span_id:016x}"


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        record.trace_id, record.span_id = _get_trace_context()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": dt.datetime.fromtimestamp(record.created, dt.UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key in ("request_id", "trace_id", "span_id"):
            value = getattr(record, key, None)
            if value:
                payload[key] = value

        if record.exc_info:
            payload["exc_type"] = record.exc_info[0].__name__
            payload["exc"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or value is None:
                continue
            payload[key] = value

        return json.dumps(payload, default=str)


def configure_logging(*, default_level: str = "INFO") -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return

    level = os.getenv("LOG_LEVEL", default_level).upper()
    log_format = os.getenv("LOG_FORMAT", "json").lower()

    handler: logging.Handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s %(message)s"))
    handler.addFilter(RequestContextFilter())

    base = logging.getLogger("artdex_api")
    base.setLevel(level)
    base.propagate = False
    if not base.handlers:
        base.addHandler(handler)

    _CONFIGURED = True


def access_log(event: dict[str, object]) -> None:
    logging.getLogger("artdex_api.access").info("http_request", extra=event)
