from __future__ import annotations

import logging

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from artdex_api.api.schemas import HealthResponse
from artdex_api.db.session import DbSessionDep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(db: DbSessionDep) -> HealthResponse:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("health_database_unavailable", exc_info=True)
        return HealthResponse(status="degraded", database="unavailable")
    return HealthResponse()
