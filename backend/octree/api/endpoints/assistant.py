"""
Stand-alone conflict resolution endpoint for clients that hold their own buffer.
"""

from fastapi import APIRouter
from loguru import logger

from octree.schemas.latex import ConflictResolveRequest, ConflictResolveResponse
from octree.services.conflict_resolver import conflict_resolver

router = APIRouter()


@router.post("/conflict", response_model=ConflictResolveResponse)
async def resolve_conflict(payload: ConflictResolveRequest):
    suggestions = await conflict_resolver.resolve(
        payload.file_content,
        payload.suggestion,
        payload.current_text,
        payload.is_small_change,
    )
    logger.info(f"Resolved suggestion {payload.suggestion.id} into {len(suggestions)} replacement(s)")
    return ConflictResolveResponse(suggestions=suggestions)
