# Schemas package for Pydantic models
from .content_item import ContentItemCreate, ContentItemRead
from .versioning import (
    ContentVersionCreate, ContentVersionRead, ContentVersionSummary, ContentVersionListResponse,
    DiffLineRead, SideBySideRead, DiffStats, ContentVersionCompareResponse,
    ContentRestoreRequest, ContentRestoreResponse
)

__all__ = [
    "ContentItemCreate", "ContentItemRead",
    "ContentVersionCreate", "ContentVersionRead", "ContentVersionSummary", "ContentVersionListResponse",
    "DiffLineRead", "SideBySideRead", "DiffStats", "ContentVersionCompareResponse",
    "ContentRestoreRequest", "ContentRestoreResponse",
]
