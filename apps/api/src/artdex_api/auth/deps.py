from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from artdex_api.domain.errors import AppError


async def get_updater_id(
    x_updater_id: Annotated[str | None, Header()] = None,
) -> uuid.UUID | None:
    """The editing user as asserted by the upstream auth layer; anonymous when absent."""
    if x_updater_id is None or not x_updater_id.strip():
        return None
    try:
        return uuid.UUID(x_updater_id.strip())
    except ValueError as exc:
        raise AppError(
            code="invalid_updater_id",
            message="X-Updater-Id must be a UUID",
            status_code=400,
        ) from exc


UpdaterId = Annotated[uuid.UUID | None, Depends(get_updater_id)]
