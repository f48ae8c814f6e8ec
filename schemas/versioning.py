"""
Pydantic schemas for Content Versioning.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from services.diff_engine import DiffKind


class ContentVersionCreate(BaseModel):
    """Request body for appending a version."""
    content: str = Field(..., description="Full text of the new version")
    note: Optional[str] = Field(None, max_length=2000)
    created_by: Optional[str] = Field(None, max_length=100)


class ContentVersionRead(BaseModel):
    id: int
    content_item_id: int
    version_number: int
    content: str
    note: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ContentVersionSummary(BaseModel):
    """Version metadata without the text, used in comparison headers."""
    id: int
    content_item_id: int
    version_number: int
    note: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ContentVersionListResponse(BaseModel):
    """Response model for version listing."""
    versions: List[ContentVersionRead]
    total_count: int
    current_version: int
    has_more: bool


class DiffLineRead(BaseModel):
    kind: DiffKind
    text: str
    line_number: int
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None

    class Config:
        from_attributes = True


class SideBySideRead(BaseModel):
    old: List[DiffLineRead]
    new: List[DiffLineRead]


class DiffStats(BaseModel):
    added: int
    removed: int
    unchanged: int


class ContentVersionCompareResponse(BaseModel):
    """Response model for version comparison."""
    content_item_id: int
    old_version: ContentVersionSummary
    new_version: ContentVersionSummary
    unified: List[DiffLineRead]
    side_by_side: SideBySideRead
    stats: DiffStats
    change_percentage: int = Field(..., ge=0, le=100)


class ContentRestoreRequest(BaseModel):
    created_by: Optional[str] = Field(None, max_length=100)


class ContentRestoreResponse(BaseModel):
    """Response model for content restoration."""
    message: str
    content_item_id: int
    restored_from_version: int
    new_version: ContentVersionRead
