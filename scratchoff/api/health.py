"""
Liveness and readiness probes.

/health answers as long as the process is up. /ready also checks that the
cards table is reachable and reports whether claim signing is configured.
"""

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from scratchoff.api.dependencies import get_signer
from scratchoff.db.database import get_session
from scratchoff.models.db import CardDB

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: Literal["healthy", "ready", "not ready"]
    database: Literal["connected", "disconnected"] | None = None
    signer: Literal["configured", "missing"] | None = None


async def _cards_table_reachable(session: AsyncSession) -> bool:
    try:
        await session.execute(select(func.count()).select_from(CardDB))
    except Exception as e:
        logger.warning("Readiness check could not query cards: %s", e)
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe. Does not touch the database or signer."""
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> HealthResponse:
    """
    Readiness probe.

    Returns 503 when the cards table cannot be queried. A missing signer is
    reported but does not fail readiness: cards can still be provisioned
    and scratched without one.
    """
    signer = "configured" if get_signer() is not None else "missing"
    if not await _cards_table_reachable(session):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not ready", database="disconnected", signer=signer)
    return HealthResponse(status="ready", database="connected", signer=signer)
