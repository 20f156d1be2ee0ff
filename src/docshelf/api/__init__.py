"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in the documents router
without modifying individual handlers. Health and auth routers are open;
the users router mixes open and protected routes, so its handlers declare
the guard themselves.
"""

from fastapi import APIRouter, Depends

from docshelf.api.auth import router as auth_router
from docshelf.api.documents import router as documents_router
from docshelf.api.health import router as health_router
from docshelf.api.users import router as users_router
from docshelf.auth.guards import require_bearer

# All protected routers require a bearer token
_auth = [Depends(require_bearer)]

api_router = APIRouter(prefix="/api/v1")

# Open routes: no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])

# Protected routes: require a valid bearer token
api_router.include_router(documents_router, tags=["documents"], dependencies=_auth)
