"""
Pydantic schemas for AI edit suggestions.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class EditSuggestion(BaseModel):
    """A proposed replacement of `original_line_count` lines starting at `start_line`."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    original: str = ""
    suggested: str = ""
    start_line: int = Field(..., ge=1, description="1-based first line of the original range")
    original_line_count: int = Field(default=0, ge=0, description="0 means insertion only")
    status: SuggestionStatus = SuggestionStatus.PENDING

    @model_validator(mode="after")
    def _insertion_needs_text(self) -> "EditSuggestion":
        if self.original_line_count == 0 and not self.suggested:
            raise ValueError("an insertion-only suggestion must carry suggested text")
        return self

    @property
    def end_line(self) -> int:
        return max(self.start_line, self.start_line + self.original_line_count - 1)

    @property
    def is_insertion(self) -> bool:
        return self.original_line_count == 0

    @property
    def is_pending(self) -> bool:
        return self.status == SuggestionStatus.PENDING


class DiffHunk(BaseModel):
    """One `@@ -a,b +c,d @@` header plus its body lines, as found inside a latex-diff block."""

    orig_start: int
    orig_count: Optional[int] = None
    new_start: int
    new_count: Optional[int] = None
    body: List[str] = []
