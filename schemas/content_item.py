"""
Content item schemas for request/response validation.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from models.models import ContentFormatEnum


class ContentItemCreate(BaseModel):
    """Schema for creating a content item, optionally with its first version."""
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field("", description="Initial text; becomes version 1 when non-empty")
    format: ContentFormatEnum = ContentFormatEnum.plain
    note: Optional[str] = Field(None, max_length=2000)
    created_by: Optional[str] = Field(None, max_length=100)


class ContentItemRead(BaseModel):
    """Current snapshot of a content item."""
    id: int
    title: str
    content: str
    format: ContentFormatEnum
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
