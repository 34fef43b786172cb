"""
Vidstream API — Health check.
"""
from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.schemas.schemas import HealthcheckResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/healthcheck", tags=["Health"])

_started_at = time.time()


@router.get("", response_model=HealthcheckResponse)
async def healthcheck(db: AsyncSession = Depends(get_db)):
    """Uptime plus a database round-trip."""
    try:
        await db.execute(text("SELECT 1"))
        db_ok = True
    except Exception as e:
        logger.warning(f"Healthcheck database probe failed: {e}")
        db_ok = False

    return HealthcheckResponse(
        status="OK" if db_ok else "DEGRADED",
        uptime_seconds=int(time.time() - _started_at),
        database=db_ok,
        message="Systems are operational" if db_ok else "Database unreachable",
    )
