"""User service — listing, profile updates, account deletion.

Learn: update_profile() resolves the caller from the raw bearer token value
rather than from an already-resolved identity. That keeps it usable from
anything holding a token, and a token that vanished mid-request simply
yields 401.
"""

import uuid

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docshelf.auth.password import hash_password
from docshelf.db.models import Document, Token, User
from docshelf.errors import ConflictError, NotFoundError
from docshelf.schemas.auth import UserUpdate
from docshelf.services.auth_service import AuthService
from docshelf.services.document_service import DocumentService
from docshelf.storage.local import LocalFileStorage

logger = structlog.get_logger()


class UserService:
    """Business logic for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_users(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.created_at, User.id))
        return list(result.scalars().all())

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_profile(self, token_value: str, patch: UserUpdate) -> User:
        """Apply the provided profile fields to the token's owner."""
        identity = await AuthService(self.db).resolve_bearer_token(token_value)
        user = await self.get_user(identity.user_id)

        if patch.username is not None:
            user.username = patch.username
        if patch.email is not None and patch.email != user.email:
            taken = await self.db.execute(
                select(User.id).where(User.email == patch.email)
            )
            if taken.first() is not None:
                raise ConflictError("Email already registered")
            user.email = patch.email
        if patch.password is not None:
            user.password_hash = hash_password(patch.password)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Email already registered")
        return user

    async def delete_user(self, user_id: uuid.UUID, storage: LocalFileStorage) -> None:
        """Delete an account together with its token, documents, and files.

        Files go first (best-effort); the rows are removed in one transaction
        so a failure never leaves a user without its token but with documents.
        """
        user = await self.get_user(user_id)

        result = await self.db.execute(
            select(Document.id, Document.file_url).where(Document.user_id == user_id)
        )
        files = result.all()
        docs = DocumentService(self.db, storage)
        for document_id, file_url in files:
            await docs.remove_file(file_url, document_id=document_id)

        try:
            await self.db.execute(delete(Document).where(Document.user_id == user_id))
            await self.db.execute(delete(Token).where(Token.user_id == user_id))
            await self.db.execute(delete(User).where(User.id == user.id))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info("docshelf.user_deleted", user_id=str(user_id), documents=len(files))
