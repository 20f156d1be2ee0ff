"""Document service — the ownership gateway for every document operation.

Learn: Every method takes the owner_id of the authenticated caller. Any
id-addressed operation loads the row and compares its user_id to owner_id;
a mismatch raises exactly the same NotFoundError as a missing id, so a
caller can never probe for other users' document ids.

Deletes are file-first, row-second. The file removal is best-effort (a
missing or locked file is logged and ignored) while a failure deleting the
row propagates. delete_all() commits row by row, so an error halfway
through leaves the earlier deletions in place.
"""

import uuid
from pathlib import Path
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docshelf.db.models import Document
from docshelf.errors import NotFoundError
from docshelf.schemas.document import DocumentCreate, DocumentUpdate
from docshelf.storage.local import LocalFileStorage

logger = structlog.get_logger()


class DocumentService:
    """Owner-scoped CRUD over documents and their stored files."""

    def __init__(self, db: AsyncSession, storage: LocalFileStorage):
        self.db = db
        self.storage = storage

    async def create(
        self,
        owner_id: uuid.UUID,
        metadata: DocumentCreate,
        data: bytes,
        original_filename: str,
    ) -> Document:
        """Store the file, then persist its metadata row."""
        relative_path = await self.storage.save(data, original_filename)

        doc = Document(
            user_id=owner_id,
            file_name=original_filename,
            file_url=relative_path,
            file_type=metadata.file_type,
            create_time=metadata.create_time,
            comment=metadata.comment,
            is_favorite=bool(metadata.is_favorite),
            artist_name=metadata.artist_name,
            artist_nickname=metadata.artist_nickname,
            composition_name=metadata.composition_name,
            price=metadata.price,
        )
        self.db.add(doc)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await self.remove_file(relative_path)
            raise

        logger.info(
            "docshelf.document_uploaded",
            document_id=str(doc.id),
            user_id=str(owner_id),
            size=len(data),
        )
        return doc

    async def list_documents(self, owner_id: uuid.UUID) -> list[Document]:
        result = await self.db.execute(
            select(Document)
            .where(Document.user_id == owner_id)
            .order_by(Document.uploaded_at, Document.id)
        )
        return list(result.scalars().all())

    async def get(self, owner_id: uuid.UUID, document_id: uuid.UUID) -> Document:
        doc = await self.db.get(Document, document_id)
        if doc is None or doc.user_id != owner_id:
            raise NotFoundError("Document not found")
        return doc

    async def download(
        self, owner_id: uuid.UUID, document_id: uuid.UUID
    ) -> tuple[Path, Document]:
        """Resolve the on-disk file of an owned document.

        A row whose file has vanished from disk is reported as not found too.
        """
        doc = await self.get(owner_id, document_id)
        path = self.storage.path_for(doc.file_url)
        if not path.is_file():
            logger.warning(
                "docshelf.file_missing",
                document_id=str(doc.id),
                file_url=doc.file_url,
            )
            raise NotFoundError("Document file not found")
        return path, doc

    async def update(
        self,
        owner_id: uuid.UUID,
        document_id: uuid.UUID,
        patch: DocumentUpdate,
    ) -> Document:
        """Apply only the fields present in the patch."""
        doc = await self.get(owner_id, document_id)
        changes = patch.model_dump(exclude_none=True)
        for field, value in changes.items():
            setattr(doc, field, value)
        await self.db.commit()
        return doc

    async def delete_one(self, owner_id: uuid.UUID, document_id: uuid.UUID) -> None:
        doc = await self.get(owner_id, document_id)
        await self._delete(doc)

    async def delete_all(self, owner_id: uuid.UUID) -> int:
        """Delete every document of the owner. Stops at the first row failure."""
        docs = await self.list_documents(owner_id)
        for doc in docs:
            await self._delete(doc)
        logger.info("docshelf.documents_purged", user_id=str(owner_id), count=len(docs))
        return len(docs)

    # ─── Helpers ────────────────────────────────────────

    async def _delete(self, doc: Document) -> None:
        await self.remove_file(doc.file_url, document_id=doc.id)
        await self.db.delete(doc)
        await self.db.commit()
        logger.info("docshelf.document_deleted", document_id=str(doc.id))

    async def remove_file(
        self, file_url: str, document_id: Optional[uuid.UUID] = None
    ) -> None:
        """Best-effort removal of a stored file. Failures are logged, never raised."""
        try:
            await self.storage.remove(file_url)
        except (OSError, NotFoundError) as e:
            logger.warning(
                "docshelf.file_remove_failed",
                document_id=str(document_id) if document_id else None,
                file_url=file_url,
                error=str(e),
            )
