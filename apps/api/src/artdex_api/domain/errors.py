from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class AppError(Exception):
    code: str
    message: str
    status_code: int = 400
    details: dict[str, Any] | None = None


FieldErrors = dict[str, list[str]]


def add_field_error(errors: FieldErrors, field: str, message: str) -> None:
    errors.setdefault(field, []).append(message)


def artist_invalid(errors: FieldErrors) -> AppError:
    return AppError(
        code="artist_invalid",
        message="Artist is invalid",
        status_code=422,
        details={"errors": errors},
    )
