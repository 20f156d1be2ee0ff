"""Users API.

- GET /users → all users (public projection, no auth)
- GET /users/me → the caller
- PUT /users → partial profile update of the caller
- DELETE /users → delete the caller's account, documents, and files
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from docshelf.auth.guards import bearer_token, require_bearer
from docshelf.db.engine import get_db
from docshelf.schemas.auth import UserRead, UserUpdate
from docshelf.services.auth_service import Identity
from docshelf.services.user_service import UserService
from docshelf.storage.local import LocalFileStorage, get_storage

router = APIRouter(prefix="/users")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("", response_model=list[UserRead])
async def list_users(svc: UserService = Depends(_svc)):
    return await svc.list_users()


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: Identity = Depends(require_bearer),
    svc: UserService = Depends(_svc),
):
    return await svc.get_user(identity.user_id)


@router.put("", response_model=UserRead, dependencies=[Depends(require_bearer)])
async def update_me(
    body: UserUpdate,
    token: str = Depends(bearer_token),
    svc: UserService = Depends(_svc),
):
    """Update username, email, and/or password. Omitted fields are kept."""
    return await svc.update_profile(token, body)


@router.delete("", status_code=204)
async def delete_me(
    identity: Identity = Depends(require_bearer),
    svc: UserService = Depends(_svc),
    storage: LocalFileStorage = Depends(get_storage),
):
    await svc.delete_user(identity.user_id, storage)
    return Response(status_code=204)
