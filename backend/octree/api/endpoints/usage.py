"""
Edit usage endpoint.
"""

from fastapi import APIRouter

from octree.schemas.usage import UsageResponse
from octree.services.edit_limit_service import edit_limit_service

router = APIRouter()


@router.get("/{user_id}", response_model=UsageResponse)
async def get_usage(user_id: str):
    return await edit_limit_service.usage(user_id)
