"""Auth service — registration, login, and identity resolution.

Learn: This is the Authenticator. Two ways to prove who you are:
1. Basic credentials (email + password) → only used by the login route
2. Bearer token → every other protected route

Login is an upsert keyed on tokens.user_id: the first login inserts the
row, every later login overwrites its value. A user therefore never has
more than one live token, and logging in again revokes the old one.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docshelf.auth.password import hash_password, verify_password
from docshelf.auth.tokens import generate_token_value
from docshelf.db.models import Token, User
from docshelf.errors import ConflictError, UnauthorizedError

logger = structlog.get_logger()


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as resolved by a guard.

    All downstream code scopes its queries by user_id.
    """

    user_id: uuid.UUID
    method: str  # "bearer" or "basic"


class AuthService:
    """Credential and token store operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Registration ───────────────────────────────────

    async def register_user(
        self, username: str, email: str, password: str
    ) -> tuple[User, Token]:
        """Create a user plus its first token.

        Raises ConflictError if the email is taken — either found up front
        or rejected by the unique index when two registrations race.
        """
        if await self._user_by_email(email) is not None:
            raise ConflictError("Email already registered")

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
        )
        self.db.add(user)
        try:
            await self.db.flush()
            token = Token(user_id=user.id, value=generate_token_value())
            self.db.add(token)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Email already registered")

        logger.info("docshelf.user_registered", user_id=str(user.id))
        return user, token

    # ─── Login ──────────────────────────────────────────

    async def login_with_basic_credentials(self, email: str, password: str) -> Token:
        identity = await self.resolve_basic_credentials(email, password)
        return await self.rotate_token(identity.user_id)

    async def rotate_token(self, user_id: uuid.UUID) -> Token:
        """Give the user a fresh token value, reusing their row if they have one."""
        value = generate_token_value()

        token = await self._token_for_user(user_id)
        if token is not None:
            token.value = value
            await self.db.commit()
            logger.info("docshelf.token_rotated", user_id=str(user_id))
            return token

        token = Token(user_id=user_id, value=value)
        self.db.add(token)
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent login inserted the row first, rotate that one instead.
            await self.db.rollback()
            token = await self._token_for_user(user_id)
            if token is None:
                raise
            token.value = value
            await self.db.commit()

        logger.info("docshelf.login", user_id=str(user_id))
        return token

    # ─── Resolution ─────────────────────────────────────

    async def resolve_bearer_token(self, value: str) -> Identity:
        """Exact match on tokens.value. No expiry — a token lives until rotated."""
        result = await self.db.execute(select(Token).where(Token.value == value))
        token = result.scalars().first()
        if token is None:
            raise UnauthorizedError("Invalid or expired token")
        return Identity(user_id=token.user_id, method="bearer")

    async def resolve_basic_credentials(self, email: str, password: str) -> Identity:
        user = await self._user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise UnauthorizedError("Invalid credentials")
        return Identity(user_id=user.id, method="basic")

    # ─── Helpers ────────────────────────────────────────

    async def _user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def _token_for_user(self, user_id: uuid.UUID) -> Optional[Token]:
        result = await self.db.execute(select(Token).where(Token.user_id == user_id))
        return result.scalars().first()
