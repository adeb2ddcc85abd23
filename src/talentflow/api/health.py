"""Health check endpoint.

Learn: Liveness plus dependency reachability. The database is required;
Redis only backs rate limiting, so its absence marks the service
'degraded' rather than unhealthy.
"""

from fastapi import APIRouter
from sqlalchemy import text

from talentflow import __version__
from talentflow.cache import get_redis
from talentflow.db.engine import engine

router = APIRouter()


async def _check_database() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        return f"error: {e}"
    return "ok"


async def _check_redis() -> str:
    try:
        await get_redis().ping()
    except RuntimeError:
        return "unavailable"
    except Exception as e:
        return f"error: {e}"
    return "ok"


@router.get("/health")
async def health_check():
    checks = {"database": await _check_database(), "redis": await _check_redis()}

    if checks["database"] != "ok":
        status = "unhealthy"
    elif checks["redis"] != "ok":
        status = "degraded"
    else:
        status = "healthy"

    return {"status": status, "server": "ok", "version": __version__, **checks}
