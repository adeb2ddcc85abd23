"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis, database engine).
Middleware, CORS, the error handler and routers are all registered here.

Services never raise HTTPException. They raise DomainError subclasses,
and the single handler below turns each ErrorKind into its status code,
so the same failure looks the same on every route.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from talentflow import __version__
from talentflow.api import api_router
from talentflow.cache import close_redis, init_redis
from talentflow.config import settings
from talentflow.errors import DomainError, ErrorKind

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at shutdown.
    """
    logger.info(
        "talentflow.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    try:
        await init_redis()
        logger.info("talentflow.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Only rate limiting depends on Redis
        logger.warning("talentflow.redis_unavailable", error=str(e))

    yield

    logger.info("talentflow.shutdown")
    await close_redis()

    from talentflow.db.engine import engine
    await engine.dispose()


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.kind == ErrorKind.SIGNING_ERROR:
        logger.error("http.domain_error", kind=exc.kind.value, error=exc.message)
    else:
        logger.info("http.domain_error", kind=exc.kind.value, status_code=exc.status_code)

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind.value},
        headers=headers,
    )


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="TalentFlow",
        description="Recruitment platform: accounts, job postings and the application lifecycle",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.
    # Request flow: CORS → RateLimit → Security → RequestId → handler

    from talentflow.middleware.rate_limit import RateLimitMiddleware
    from talentflow.middleware.request_id import RequestIdMiddleware
    from talentflow.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DomainError, domain_error_handler)
    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: talentflow.main:app)
app = create_app()
