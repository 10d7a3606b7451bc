"""
Main API router configuration.
"""

from fastapi import APIRouter
from octree.api.endpoints import assistant, compile, documents, sessions, usage

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(documents.router, prefix="/documents", tags=["documents"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(assistant.router, prefix="/assistant", tags=["assistant"])
api_router.include_router(compile.router, prefix="/compile", tags=["compile"])
api_router.include_router(usage.router, prefix="/usage", tags=["usage"])
