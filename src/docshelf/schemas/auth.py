"""Pydantic schemas for registration, tokens, and users.

Learn: The wire format is camelCase ({"userId": ...}) while Python stays
snake_case. alias_generator=to_camel handles the mapping; populate_by_name
lets tests and services build models with either spelling.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


# ─── Auth ───────────────────────────────────────────────


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1)


class TokenRead(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    value: str

    model_config = {**CAMEL, "from_attributes": True}


# ─── Users ──────────────────────────────────────────────


class UserRead(BaseModel):
    """Public projection of a user — the password hash never leaves the server."""
    id: uuid.UUID
    username: str
    email: str

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    """Partial profile update. Fields left out (or null) keep their value."""
    username: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(
        None, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$"
    )
    password: Optional[str] = Field(None, min_length=1)
