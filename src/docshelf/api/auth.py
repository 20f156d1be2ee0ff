"""Auth API — registration and login.

Learn: Routes for obtaining a bearer token:
- POST /auth/register → {username, email, password} → Token
- POST /auth/login → HTTP Basic (email as username) → Token (rotated)

The login route sits behind the basic-credentials guard, so by the time the
handler runs the password has already been verified; the handler only
mints and stores the new token value.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from docshelf.auth.guards import require_basic
from docshelf.db.engine import get_db
from docshelf.schemas.auth import RegisterRequest, TokenRead
from docshelf.services.auth_service import AuthService, Identity

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post("/register", response_model=TokenRead)
async def register(body: RegisterRequest, svc: AuthService = Depends(_svc)):
    """Create a new account and return its first token."""
    _, token = await svc.register_user(
        username=body.username,
        email=body.email,
        password=body.password,
    )
    return token


@router.post("/login", response_model=TokenRead)
async def login(
    identity: Identity = Depends(require_basic),
    svc: AuthService = Depends(_svc),
):
    """Basic credentials → freshly rotated bearer token."""
    return await svc.rotate_token(identity.user_id)
