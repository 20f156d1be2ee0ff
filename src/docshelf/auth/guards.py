"""Request-scoped auth guards and the FastAPI dependencies built from them.

Learn: A guard is a small async function that looks at the request and
either returns an Identity, returns None ("not my kind of credentials"),
or raises UnauthorizedError ("my kind of credentials, but wrong").

authenticate(*guards) composes an explicit, ordered list of guards into a
single dependency. The first guard that produces an identity wins; if none
applies, the request is rejected with 401. Routers pick the chain they need:

    require_bearer = authenticate(bearer_guard)
    require_basic = authenticate(basic_guard)
"""

from typing import Awaitable, Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from docshelf.auth.tokens import parse_basic_authorization, parse_bearer_authorization
from docshelf.db.engine import get_db
from docshelf.errors import UnauthorizedError
from docshelf.services.auth_service import AuthService, Identity

Guard = Callable[[Request, AuthService], Awaitable[Optional[Identity]]]


async def bearer_guard(request: Request, auth: AuthService) -> Optional[Identity]:
    """Resolve `Authorization: Bearer <token>` against the tokens table."""
    token = parse_bearer_authorization(request.headers.get("Authorization"))
    if token is None:
        return None
    return await auth.resolve_bearer_token(token)


async def basic_guard(request: Request, auth: AuthService) -> Optional[Identity]:
    """Resolve `Authorization: Basic <email:password>` against the users table."""
    credentials = parse_basic_authorization(request.headers.get("Authorization"))
    if credentials is None:
        return None
    email, password = credentials
    return await auth.resolve_basic_credentials(email, password)


def authenticate(*guards: Guard):
    """Build a dependency that runs `guards` in order and returns the identity."""

    async def dependency(
        request: Request,
        db: AsyncSession = Depends(get_db),
    ) -> Identity:
        auth = AuthService(db)
        for guard in guards:
            identity = await guard(request, auth)
            if identity is not None:
                return identity
        raise UnauthorizedError("Authentication required")

    return dependency


require_bearer = authenticate(bearer_guard)
require_basic = authenticate(basic_guard)


def bearer_token(request: Request) -> str:
    """The raw bearer token value of the request (401 if absent)."""
    token = parse_bearer_authorization(request.headers.get("Authorization"))
    if token is None:
        raise UnauthorizedError("Missing or invalid token")
    return token
