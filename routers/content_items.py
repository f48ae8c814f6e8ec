"""
Router for content items (scenes) owning a version history.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from db_config import get_async_db
from schemas.content_item import ContentItemCreate, ContentItemRead
from services.versioning_service import ContentVersioningService

router = APIRouter(prefix="/content-items", tags=["Content Items"])


@router.post("", response_model=ContentItemRead, status_code=status.HTTP_201_CREATED)
async def create_content_item(
    payload: ContentItemCreate,
    db: AsyncSession = Depends(get_async_db)
):
    """Create a content item. Non-empty content is recorded as version 1."""
    versioning_service = ContentVersioningService(db)
    return await versioning_service.create_content_item(
        title=payload.title,
        content=payload.content,
        format=payload.format,
        note=payload.note,
        created_by=payload.created_by
    )


@router.get("/{content_item_id}", response_model=ContentItemRead)
async def get_content_item(
    content_item_id: int,
    db: AsyncSession = Depends(get_async_db)
):
    """Get the current snapshot of a content item."""
    versioning_service = ContentVersioningService(db)
    return await versioning_service.get_content_item(content_item_id)
