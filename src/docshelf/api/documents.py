"""Documents API — upload, list, fetch, download, update, delete.

Learn: The whole router is mounted behind require_bearer (see api/__init__.py),
and each handler also asks for the Identity so it can hand the owner id to
the service. FastAPI caches dependencies per request, so the token is only
looked up once.

Upload is multipart/form-data:
- "file": the document bytes
- "data": JSON string {fileType, createTime, artistName, artistNickname,
  compositionName, price, comment?, isFavorite?}

Ids that don't parse as UUIDs get the same 404 as unknown or foreign ids.
"""

import uuid

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from fastapi.responses import FileResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from docshelf.auth.guards import require_bearer
from docshelf.db.engine import get_db
from docshelf.errors import NotFoundError, ValidationError
from docshelf.schemas.document import DocumentCreate, DocumentRead, DocumentUpdate
from docshelf.services.auth_service import Identity
from docshelf.services.document_service import DocumentService
from docshelf.storage.local import LocalFileStorage, get_storage

router = APIRouter(prefix="/documents")

# Matches the documents.file_name column.
MAX_FILENAME_LENGTH = 255


def _svc(
    db: AsyncSession = Depends(get_db),
    storage: LocalFileStorage = Depends(get_storage),
) -> DocumentService:
    return DocumentService(db, storage)


def _document_id(document_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(document_id)
    except ValueError:
        raise NotFoundError("Document not found")


# ─── Collection ─────────────────────────────────────────


@router.post("", response_model=DocumentRead)
async def upload_document(
    file: UploadFile = File(...),
    data: str = Form(...),
    identity: Identity = Depends(require_bearer),
    svc: DocumentService = Depends(_svc),
):
    """Store an uploaded file with its metadata."""
    try:
        metadata = DocumentCreate.model_validate_json(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid JSON in data field: {e.error_count()} error(s)")
    if not file.filename:
        raise ValidationError("Uploaded file needs a filename")
    if len(file.filename) > MAX_FILENAME_LENGTH:
        raise ValidationError(
            f"Filename is longer than {MAX_FILENAME_LENGTH} characters"
        )

    content = await file.read()
    return await svc.create(identity.user_id, metadata, content, file.filename)


@router.get("", response_model=list[DocumentRead])
async def list_documents(
    identity: Identity = Depends(require_bearer),
    svc: DocumentService = Depends(_svc),
):
    return await svc.list_documents(identity.user_id)


@router.delete("", status_code=204)
async def delete_all_documents(
    identity: Identity = Depends(require_bearer),
    svc: DocumentService = Depends(_svc),
):
    """Delete every document the caller owns."""
    await svc.delete_all(identity.user_id)
    return Response(status_code=204)


# ─── Single document ────────────────────────────────────


@router.get("/{document_id}", response_model=DocumentRead)
async def get_document(
    document_id: str,
    identity: Identity = Depends(require_bearer),
    svc: DocumentService = Depends(_svc),
):
    return await svc.get(identity.user_id, _document_id(document_id))


@router.get("/{document_id}/download")
async def download_document(
    document_id: str,
    identity: Identity = Depends(require_bearer),
    svc: DocumentService = Depends(_svc),
):
    """Stream the stored file back with its original filename."""
    path, doc = await svc.download(identity.user_id, _document_id(document_id))
    return FileResponse(path, filename=doc.file_name)


@router.put("/{document_id}", response_model=DocumentRead)
async def update_document(
    document_id: str,
    body: DocumentUpdate,
    identity: Identity = Depends(require_bearer),
    svc: DocumentService = Depends(_svc),
):
    """Update comment and/or isFavorite. Omitted fields are kept."""
    return await svc.update(identity.user_id, _document_id(document_id), body)


@router.delete("/{document_id}", status_code=204)
async def delete_document(
    document_id: str,
    identity: Identity = Depends(require_bearer),
    svc: DocumentService = Depends(_svc),
):
    await svc.delete_one(identity.user_id, _document_id(document_id))
    return Response(status_code=204)
