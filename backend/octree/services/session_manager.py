"""
Process-local registry of open editor sessions.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from octree.services.document_service import DocumentSaver, document_service
from octree.services.edit_limit_service import edit_limit_service
from octree.services.editor_session import EditorSession
from octree.utils.exceptions import DocumentNotFoundError, SessionNotFoundError


class SessionManager:
    def __init__(self) -> None:
        self._sessions: Dict[str, EditorSession] = {}

    async def open(self, document_id: str, user_id: str, db: AsyncSession, **kwargs) -> EditorSession:
        document = await document_service.get_document(document_id, db)
        if document is None:
            raise DocumentNotFoundError(document_id)

        session = EditorSession(
            document_id=document.id,
            text=document.content or "",
            user_id=user_id,
            persister=kwargs.pop("persister", None) or DocumentSaver(),
            gate=kwargs.pop("gate", None) or edit_limit_service.gate_for(user_id),
            **kwargs,
        )
        self._sessions[session.id] = session
        logger.info(f"Opened editor session {session.id} for document {document_id} (user {user_id})")
        return session

    def get(self, session_id: str) -> EditorSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def find(self, session_id: str) -> Optional[EditorSession]:
        return self._sessions.get(session_id)

    def list(self) -> List[EditorSession]:
        return list(self._sessions.values())

    async def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        await session.close()
        logger.info(f"Closed editor session {session_id}")

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id)


session_manager = SessionManager()
