import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agencytax.config import settings
from agencytax.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


@router.get("/health/ready")
async def health_ready(db: AsyncSession = Depends(get_db)):
    """Readiness: database reachable, plus which upstreams are configured."""
    upstreams = {
        "aggregator": "configured" if settings.plaid_client_id and settings.plaid_secret else "missing",
        "classifier": "configured" if settings.openai_api_key else "missing",
    }
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.error("Readiness check failed: database unreachable", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not ready", "database": "disconnected", **upstreams},
        )
    return {"status": "ready", "database": "connected", **upstreams}
