"""Liveness and readiness probes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from progress_service.db.engine import engine
from progress_service.db.redis import redis_pool

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    """Always 200 while the process serves; `status` says whether a
    configured backing store is unreachable."""
    checks: dict[str, str] = {}
    overall = "ok"

    if redis_pool is not None:
        try:
            await redis_pool.ping()  # type: ignore[misc]
            checks["redis"] = "ok"
        except Exception:
            logger.warning("Health check: redis unreachable", exc_info=True)
            checks["redis"] = "degraded"
            overall = "degraded"
    else:
        checks["redis"] = "not_configured"

    if engine is not None:
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception:
            logger.warning("Health check: database unreachable", exc_info=True)
            checks["database"] = "degraded"
            overall = "degraded"
    else:
        checks["database"] = "not_configured"

    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    # Every store has an in-memory fallback, so an instance that can
    # answer can take traffic.
    return Response(status_code=200)
