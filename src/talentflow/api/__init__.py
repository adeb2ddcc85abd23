"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Authentication is applied at the include_router level using
FastAPI's dependencies parameter, so every route in a protected router
runs the session guard before its handler. Role gates (admin/candidate)
are then added per route. Health and auth routers are open; the auth
router guards its own /me, /profile, /logout and /change-password.
"""

from fastapi import APIRouter, Depends

from talentflow.api.applications import router as applications_router
from talentflow.api.auth import router as auth_router
from talentflow.api.candidates import router as candidates_router
from talentflow.api.health import router as health_router
from talentflow.api.jobs import router as jobs_router
from talentflow.auth.dependencies import get_current_user

_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api/v1")

# Open routes
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes
api_router.include_router(jobs_router, tags=["jobs"], dependencies=_auth)
api_router.include_router(applications_router, tags=["applications"], dependencies=_auth)
api_router.include_router(candidates_router, tags=["candidates"], dependencies=_auth)
