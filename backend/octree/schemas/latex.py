"""
Pydantic schemas for compilation and conflict resolution.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from octree.schemas.suggestion import EditSuggestion


class LatexCompileRequest(BaseModel):
    tex_source: str = Field(..., min_length=1)
    safe_mode: Optional[bool] = None
    preferred_engine: Optional[str] = Field(default=None, pattern="^(tectonic|pdflatex)$")


class LatexCompileResponse(BaseModel):
    success: bool
    engine: Optional[str] = None
    pdf_base64: Optional[str] = None
    error_message: Optional[str] = None
    log: str = ""
    exit_code: Optional[int] = None


class ConflictResolveRequest(BaseModel):
    file_content: str
    suggestion: EditSuggestion
    current_text: str = ""
    is_small_change: Optional[bool] = None


class ConflictResolveResponse(BaseModel):
    suggestions: List[EditSuggestion]
