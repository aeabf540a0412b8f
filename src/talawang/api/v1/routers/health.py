from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from talawang.infrastructure.db.session import AsyncSessionLocal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


async def _check_postgres() -> None:
    async with AsyncSessionLocal() as session:
        await session.execute(text("SELECT 1"))


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Database always; Redis only when the app opened a connection to it."""
    checks: dict[str, str] = {}

    try:
        await _check_postgres()
        checks["postgres"] = "ok"
    except Exception as exc:  # noqa: BLE001
        logger.warning("Readiness: postgres unavailable: %s", exc)
        checks["postgres"] = str(exc) or type(exc).__name__

    redis = getattr(request.app.state, "redis", None)
    if redis is not None:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:  # noqa: BLE001
            logger.warning("Readiness: redis unavailable: %s", exc)
            checks["redis"] = str(exc) or type(exc).__name__

    ready = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "unavailable", "checks": checks},
    )
