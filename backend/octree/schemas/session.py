"""
Pydantic schemas for editor sessions.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from octree.schemas.editor import CompilationErrorInfo, Decoration, Notification, TextRange
from octree.schemas.suggestion import EditSuggestion
from octree.services.edit_applicator import ApplyOutcome


class SessionCreate(BaseModel):
    document_id: str
    user_id: str = Field(default="anonymous", min_length=1, max_length=64)


class UserEditRequest(BaseModel):
    range: TextRange
    text: str = ""


class AssistantRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    selection: Optional[str] = None


class AssistantResponseRequest(BaseModel):
    text: str


class SessionState(BaseModel):
    id: str
    document_id: str
    user_id: Optional[str] = None
    content: str
    version: int
    dirty: bool
    suggestions: List[EditSuggestion]
    backlog_size: int
    has_more: bool
    decorations: List[Decoration]
    notifications: List[Notification]
    compiling: bool
    compilation_error: Optional[CompilationErrorInfo] = None
    has_pdf: bool
    selected_text: Optional[str] = None
    last_saved_at: Optional[datetime] = None


class AssistantTurnResponse(BaseModel):
    reply: str
    suggestions: List[EditSuggestion]
    session: SessionState


class ApplyResponse(BaseModel):
    outcome: ApplyOutcome
    suggestion_id: str
    message: Optional[str] = None
    replacements: List[EditSuggestion] = []
    persisted: Optional[bool] = None
    session: SessionState


class ActionResponse(BaseModel):
    success: bool
    session: SessionState
