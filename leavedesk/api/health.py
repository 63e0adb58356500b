import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from leavedesk.config import get_settings
from leavedesk.db import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    service: str
    status: Literal["ok", "degraded"]
    database: Literal["connected", "unreachable"]
    version: str
    environment: str


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Report service metadata and whether the database answers.

    Always 200 so load balancers can tell a degraded instance from a dead one.
    """
    settings = get_settings()

    try:
        await session.execute(text("SELECT 1"))
        database: Literal["connected", "unreachable"] = "connected"
    except Exception:
        logger.exception("Health check: database connectivity failed")
        database = "unreachable"

    return HealthResponse(
        service=settings.app_name,
        status="ok" if database == "connected" else "degraded",
        database=database,
        version=settings.app_version,
        environment=settings.environment,
    )
