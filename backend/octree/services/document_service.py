"""
Document storage: a plain key-value store with last-write-wins overwrites.
"""

from __future__ import annotations

from typing import List, Optional

from loguru import logger
from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from octree.core.database import AsyncSessionLocal
from octree.models.document import Document
from octree.utils.exceptions import DocumentNotFoundError, PersistenceError


class DocumentService:
    async def create_document(self, title: str, content: str, db: AsyncSession) -> Document:
        document = Document(title=title, content=content)
        db.add(document)
        await db.commit()
        await db.refresh(document)
        logger.info(f"Created document {document.id}")
        return document

    async def get_document(self, document_id: str, db: AsyncSession) -> Optional[Document]:
        """
        Get a document by ID.

        Args:
            document_id: Document id
            db: Database session

        Returns:
            Document object or None if not found
        """
        return await db.get(Document, document_id)

    async def list_documents(self, db: AsyncSession, limit: int = 50, offset: int = 0) -> List[Document]:
        result = await db.execute(
            select(Document).order_by(desc(Document.updated_at)).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    async def save(self, document_id: str, content: str, db: AsyncSession, title: Optional[str] = None) -> Document:
        """
        Overwrite a document's content.

        Raises:
            DocumentNotFoundError: If the document does not exist
            PersistenceError: If the write fails
        """
        try:
            document = await db.get(Document, document_id)
            if document is None:
                raise DocumentNotFoundError(document_id)
            document.content = content
            if title is not None:
                document.title = title
            await db.commit()
            await db.refresh(document)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Error saving document {document_id}: {e}")
            raise PersistenceError(document_id, str(e))
        logger.info(f"Saved document {document_id} ({len(content)} chars)")
        return document


class DocumentSaver:
    """`save(document_id, content)` collaborator used by editor sessions; opens its own DB session."""

    def __init__(self, service: Optional[DocumentService] = None, session_factory: Optional[async_sessionmaker] = None):
        self.service = service or document_service
        self.session_factory = session_factory or AsyncSessionLocal

    async def save(self, document_id: str, content: str) -> None:
        try:
            async with self.session_factory() as db:
                await self.service.save(document_id, content, db)
        except (PersistenceError, DocumentNotFoundError):
            raise
        except SQLAlchemyError as e:
            raise PersistenceError(document_id, str(e))


document_service = DocumentService()
