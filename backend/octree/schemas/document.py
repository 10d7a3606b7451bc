"""
Pydantic schemas for documents.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DocumentCreate(BaseModel):
    title: str = Field(default="Untitled Document", max_length=500)
    content: str = ""


class DocumentUpdate(BaseModel):
    content: str
    title: Optional[str] = Field(default=None, max_length=500)


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
