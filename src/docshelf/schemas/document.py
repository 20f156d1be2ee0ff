"""Pydantic schemas for documents.

Learn: Upload metadata arrives as a JSON string in the "data" part of a
multipart request, so DocumentCreate is validated by hand with
model_validate_json() rather than by FastAPI's body parser.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, Field

from docshelf.schemas.auth import CAMEL


class DocumentCreate(BaseModel):
    file_type: str = Field(..., min_length=1, max_length=50)
    create_time: str = Field(..., min_length=1, max_length=50)
    artist_name: str = Field(..., max_length=255)
    artist_nickname: str = Field(..., max_length=255)
    composition_name: str = Field(..., max_length=255)
    price: str = Field(..., max_length=50)
    comment: Optional[str] = None
    is_favorite: Optional[bool] = None

    model_config = CAMEL


class DocumentUpdate(BaseModel):
    """Only comment and isFavorite are mutable after upload."""
    comment: Optional[str] = None
    is_favorite: Optional[bool] = None

    model_config = CAMEL


class DocumentRead(BaseModel):
    """Public projection — everything except the owning user."""
    id: uuid.UUID
    file_name: str
    file_url: str = Field(..., alias="fileURL")
    file_type: str
    create_time: str
    comment: Optional[str] = None
    is_favorite: bool
    artist_name: str
    artist_nickname: str
    composition_name: str
    price: str

    model_config = {**CAMEL, "from_attributes": True}
