"""
Document storage endpoints.
"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from octree.core.database import get_db
from octree.schemas.document import DocumentCreate, DocumentResponse, DocumentUpdate
from octree.services.document_service import document_service
from octree.utils.exceptions import DocumentNotFoundError

router = APIRouter()


@router.post("/", response_model=DocumentResponse, status_code=201)
async def create_document(payload: DocumentCreate, db: AsyncSession = Depends(get_db)):
    document = await document_service.create_document(payload.title, payload.content, db)
    return DocumentResponse.model_validate(document)


@router.get("/", response_model=List[DocumentResponse])
async def list_documents(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    documents = await document_service.list_documents(db, limit=limit, offset=offset)
    return [DocumentResponse.model_validate(d) for d in documents]


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str, db: AsyncSession = Depends(get_db)):
    document = await document_service.get_document(document_id, db)
    if document is None:
        raise DocumentNotFoundError(document_id)
    return DocumentResponse.model_validate(document)


@router.put("/{document_id}", response_model=DocumentResponse)
async def update_document(document_id: str, payload: DocumentUpdate, db: AsyncSession = Depends(get_db)):
    document = await document_service.save(document_id, payload.content, db, title=payload.title)
    return DocumentResponse.model_validate(document)
