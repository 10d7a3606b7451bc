"""
Editor session endpoints: buffer edits, assistant turns and suggestion actions.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from octree.core.database import get_db
from octree.schemas.editor import TextRange
from octree.schemas.session import (
    ActionResponse,
    ApplyResponse,
    AssistantRequest,
    AssistantResponseRequest,
    AssistantTurnResponse,
    SessionCreate,
    SessionState,
    UserEditRequest,
)
from octree.services.editor_session import EditorSession
from octree.services.session_manager import session_manager
from octree.utils.exceptions import SuggestionNotFoundError, ValidationError

router = APIRouter()


def _state(session: EditorSession) -> SessionState:
    return SessionState(
        id=session.id,
        document_id=session.document_id,
        user_id=session.user_id,
        content=session.content,
        version=session.buffer.version,
        dirty=session.dirty,
        suggestions=session.suggestions,
        backlog_size=len(session.store.backlog),
        has_more=session.has_more_suggestions,
        decorations=session.decorations,
        notifications=session.drain_notifications(),
        compiling=session.compiling,
        compilation_error=session.compilation_error,
        has_pdf=session.pdf_bytes is not None,
        selected_text=session.selected_text,
        last_saved_at=session.last_saved_at,
    )


@router.post("/", response_model=SessionState, status_code=201)
async def open_session(payload: SessionCreate, db: AsyncSession = Depends(get_db)):
    session = await session_manager.open(payload.document_id, payload.user_id, db)
    return _state(session)


@router.get("/{session_id}", response_model=SessionState)
async def get_session(session_id: str):
    return _state(session_manager.get(session_id))


@router.delete("/{session_id}", status_code=204)
async def close_session(session_id: str):
    await session_manager.close(session_id)
    return Response(status_code=204)


@router.post("/{session_id}/edits", response_model=SessionState)
async def apply_user_edit(session_id: str, payload: UserEditRequest):
    session = session_manager.get(session_id)
    try:
        session.apply_user_edit(payload.range, payload.text)
    except ValueError as e:
        raise ValidationError(str(e), field="range")
    return _state(session)


@router.post("/{session_id}/selection", response_model=SessionState)
async def set_selection(session_id: str, payload: TextRange):
    session = session_manager.get(session_id)
    try:
        session.select(payload)
    except ValueError as e:
        raise ValidationError(str(e), field="range")
    return _state(session)


@router.post("/{session_id}/assistant", response_model=AssistantTurnResponse)
async def ask_assistant(session_id: str, payload: AssistantRequest):
    session = session_manager.get(session_id)
    reply, suggestions = await session.ask_assistant(payload.prompt, payload.selection)
    return AssistantTurnResponse(reply=reply, suggestions=suggestions, session=_state(session))


@router.post("/{session_id}/assistant/response", response_model=AssistantTurnResponse)
async def receive_assistant_response(session_id: str, payload: AssistantResponseRequest):
    session = session_manager.get(session_id)
    suggestions = session.receive_assistant_response(payload.text)
    return AssistantTurnResponse(reply=payload.text, suggestions=suggestions, session=_state(session))


@router.post("/{session_id}/suggestions/continue", response_model=ActionResponse)
async def continue_suggestions(session_id: str):
    session = session_manager.get(session_id)
    advanced = session.continue_suggestions()
    return ActionResponse(success=advanced, session=_state(session))


@router.post("/{session_id}/suggestions/{suggestion_id}/accept", response_model=ApplyResponse)
async def accept_suggestion(session_id: str, suggestion_id: str):
    session = session_manager.get(session_id)
    if session.store.get(suggestion_id) is None:
        raise SuggestionNotFoundError(suggestion_id)
    result = await session.accept(suggestion_id)
    return ApplyResponse(
        outcome=result.outcome,
        suggestion_id=result.suggestion_id,
        message=result.message,
        replacements=result.replacements,
        persisted=result.persisted,
        session=_state(session),
    )


@router.post("/{session_id}/suggestions/{suggestion_id}/reject", response_model=ActionResponse)
async def reject_suggestion(session_id: str, suggestion_id: str):
    session = session_manager.get(session_id)
    if session.store.get(suggestion_id) is None:
        raise SuggestionNotFoundError(suggestion_id)
    rejected = session.reject(suggestion_id)
    return ActionResponse(success=rejected, session=_state(session))


@router.post("/{session_id}/save", response_model=ActionResponse)
async def save_session(session_id: str):
    session = session_manager.get(session_id)
    saved = await session.save()
    return ActionResponse(success=saved, session=_state(session))


@router.post("/{session_id}/compile", response_model=ActionResponse)
async def compile_session(session_id: str):
    session = session_manager.get(session_id)
    result = await session.retry_compile()
    return ActionResponse(success=bool(result and result.success), session=_state(session))


@router.get("/{session_id}/pdf")
async def get_session_pdf(session_id: str):
    session = session_manager.get(session_id)
    if session.pdf_bytes is None:
        raise HTTPException(status_code=404, detail="No compiled PDF available for this session")
    return Response(content=session.pdf_bytes, media_type="application/pdf")
