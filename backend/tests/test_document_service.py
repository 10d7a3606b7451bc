"""
Tests for document storage.
"""

from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from octree.services.document_service import DocumentSaver, DocumentService
from octree.utils.exceptions import DocumentNotFoundError


@pytest.mark.asyncio
async def test_create_and_get(db_session: AsyncSession):
    service = DocumentService()
    document = await service.create_document("Paper", "\\section{A}", db_session)

    found = await service.get_document(document.id, db_session)
    assert found is not None
    assert found.content == "\\section{A}"


@pytest.mark.asyncio
async def test_get_missing_returns_none(db_session: AsyncSession):
    assert await DocumentService().get_document(str(uuid4()), db_session) is None


@pytest.mark.asyncio
async def test_save_overwrites(db_session: AsyncSession):
    service = DocumentService()
    document = await service.create_document("Paper", "old", db_session)

    await service.save(document.id, "new", db_session, title="Renamed")

    documents = await service.list_documents(db_session)
    assert [(d.title, d.content) for d in documents] == [("Renamed", "new")]


@pytest.mark.asyncio
async def test_save_missing_document_raises(db_session: AsyncSession):
    with pytest.raises(DocumentNotFoundError):
        await DocumentService().save(str(uuid4()), "x", db_session)


@pytest.mark.asyncio
async def test_saver_uses_its_own_session(db_session: AsyncSession):
    service = DocumentService()
    document = await service.create_document("Paper", "old", db_session)

    await DocumentSaver().save(document.id, "from session")

    await db_session.refresh(document)
    assert document.content == "from session"
