"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. Health and auth routers are open; competency
routes require a valid bearer token.
"""

from fastapi import APIRouter, Depends

from devnorth.api.auth import router as auth_router
from devnorth.api.competencies import router as competencies_router
from devnorth.api.health import router as health_router
from devnorth.auth.dependencies import get_current_identity

API_PREFIX = "/api/v1"

# All protected routers require authentication
_auth = [Depends(get_current_identity)]

api_router = APIRouter(prefix=API_PREFIX)

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid JWT
api_router.include_router(competencies_router, tags=["competencies"], dependencies=_auth)
