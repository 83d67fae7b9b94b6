from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.trace.status import Status, StatusCode

from artdex_api.domain.errors import AppError
from artdex_api.observability import metrics

logger = logging.getLogger(__name__)

_tracer = trace.get_tracer("artdex_api")


@asynccontextmanager
async def observe_operation(
    operation: str,
    *,
    attributes: dict[str, Any] | None = None,
) -> AsyncIterator[None]:
    """Wrap a service operation in a span and record its outcome and duration.

    ``AppError`` is an expected outcome (validation, not found) and is counted
    under its code; anything else is recorded on the span as an exception.
    """
    start = time.perf_counter()
    outcome = "success"
    error_code = ""
    span_attributes = {key: value for key, value in (attributes or {}).items() if value is not None}
    with _tracer.start_as_current_span(f"artdex.{operation}", attributes=span_attributes) as span:
        try:
            yield
        except AppError as exc:
            outcome = "error"
            error_code = exc.code
            span.set_attribute("app.error_code", exc.code)
            span.set_status(Status(StatusCode.ERROR, description=exc.code))
            raise
        except Exception as exc:  # noqa: BLE001
            outcome = "error"
            error_code = "unhandled_exception"
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR))
            raise
        finally:
            duration = time.perf_counter() - start
            span.set_attribute("artdex.outcome", outcome)
            metrics.operation_total.labels(
                operation=operation, outcome=outcome, error_code=error_code
            ).inc()
            metrics.operation_duration_seconds.labels(operation=operation, outcome=outcome).observe(
                duration
            )
            logger.debug(
                "operation_finished",
                extra={
                    "operation": operation,
                    "outcome": outcome,
                    "error_code": error_code or None,
                    "duration_ms": round(duration * 1000.0, 3),
                    **span_attributes,
                },
            )
