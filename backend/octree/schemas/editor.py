"""
Pydantic schemas for the editor buffer surface: ranges, edits, decorations and notifications.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TextRange(BaseModel):
    """1-based, end-exclusive column range, same convention as the browser editor."""

    model_config = ConfigDict(frozen=True)

    start_line: int = Field(..., ge=1)
    start_column: int = Field(..., ge=1)
    end_line: int = Field(..., ge=1)
    end_column: int = Field(..., ge=1)

    @property
    def is_empty(self) -> bool:
        return self.start_line == self.end_line and self.start_column == self.end_column


class TextEdit(BaseModel):
    range: TextRange
    text: str = ""
    force_move_markers: bool = False


class Stickiness(str, Enum):
    NEVER_GROWS_WHEN_TYPING_AT_EDGES = "never_grows_when_typing_at_edges"
    ALWAYS_GROWS_WHEN_TYPING_AT_EDGES = "always_grows_when_typing_at_edges"


class DecorationKind(str, Enum):
    DELETED_RANGE = "deleted_range"
    INSERTION_POINT = "insertion_point"
    INLINE_PREVIEW = "inline_preview"


class DecorationOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    class_name: Optional[str] = None
    glyph_margin_class_name: Optional[str] = None
    glyph_margin_hover_message: Optional[str] = None
    after_content: Optional[str] = None
    after_inline_class_name: Optional[str] = None
    stickiness: Stickiness = Stickiness.NEVER_GROWS_WHEN_TYPING_AT_EDGES


class Decoration(BaseModel):
    model_config = ConfigDict(frozen=True)

    suggestion_id: str
    kind: DecorationKind
    range: TextRange
    options: DecorationOptions


class NotificationKind(str, Enum):
    LIMIT_REACHED = "limit_reached"
    APPLY_FAILED = "apply_failed"
    CONFLICT_RESOLVED = "conflict_resolved"
    CONFLICT_FAILED = "conflict_failed"
    SAVE_FAILED = "save_failed"
    COMPILE_FAILED = "compile_failed"
    MORE_SUGGESTIONS = "more_suggestions"
    INFO = "info"


class Notification(BaseModel):
    kind: NotificationKind
    level: str = "info"
    message: str
    suggestion_id: Optional[str] = None
    retryable: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)


class CompilationErrorInfo(BaseModel):
    message: str
    log: Optional[str] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    exit_code: Optional[int] = None


DecorationSet = List[Decoration]
