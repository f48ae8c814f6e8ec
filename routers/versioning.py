"""
Router for Content Versioning.
"""
from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from db_config import get_async_db
from core.config import settings
from schemas.versioning import (
    ContentVersionCreate, ContentVersionRead, ContentVersionListResponse,
    ContentVersionCompareResponse, ContentRestoreRequest, ContentRestoreResponse,
    ContentVersionSummary, DiffLineRead, SideBySideRead, DiffStats
)
from services import comparison
from services.versioning_service import ContentVersioningService, VersionComparison

router = APIRouter(prefix="/versioning", tags=["Content Versioning"])


def _comparison_response(result: VersionComparison) -> ContentVersionCompareResponse:
    old_side, new_side = comparison.side_by_side(result.diff)
    stats = comparison.diff_stats(result.diff)
    return ContentVersionCompareResponse(
        content_item_id=result.old_version.content_item_id,
        old_version=ContentVersionSummary.model_validate(result.old_version),
        new_version=ContentVersionSummary.model_validate(result.new_version),
        unified=[DiffLineRead.model_validate(line) for line in comparison.unified(result.diff)],
        side_by_side=SideBySideRead(
            old=[DiffLineRead.model_validate(line) for line in old_side],
            new=[DiffLineRead.model_validate(line) for line in new_side],
        ),
        stats=DiffStats(**stats),
        change_percentage=comparison.change_percentage(result.diff),
    )


@router.post(
    "/content-items/{content_item_id}/versions",
    response_model=ContentVersionRead,
    status_code=status.HTTP_201_CREATED
)
async def create_content_version(
    content_item_id: int,
    payload: ContentVersionCreate,
    db: AsyncSession = Depends(get_async_db)
):
    """Save new text for a content item as its next version."""
    versioning_service = ContentVersioningService(db)

    return await versioning_service.create_version(
        content_item_id=content_item_id,
        content=payload.content,
        note=payload.note,
        created_by=payload.created_by
    )


@router.get("/content-items/{content_item_id}/versions", response_model=ContentVersionListResponse)
async def get_content_versions(
    content_item_id: int,
    order: Literal["asc", "desc"] = Query("desc", description="Order by version number"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=settings.versions_page_size_max),
    db: AsyncSession = Depends(get_async_db)
):
    """Get the version history of a content item."""
    versioning_service = ContentVersioningService(db)

    versions, total_count, current_version = await versioning_service.get_version_history(
        content_item_id=content_item_id,
        descending=(order == "desc"),
        skip=skip,
        limit=limit
    )

    return ContentVersionListResponse(
        versions=[ContentVersionRead.model_validate(v) for v in versions],
        total_count=total_count,
        current_version=current_version,
        has_more=(skip + limit) < total_count
    )


@router.get("/content-items/{content_item_id}/versions/{version_id}", response_model=ContentVersionRead)
async def get_content_item_version(
    content_item_id: int,
    version_id: int,
    db: AsyncSession = Depends(get_async_db)
):
    """Get one version of a content item."""
    versioning_service = ContentVersioningService(db)
    return await versioning_service.get_version_for_item(content_item_id, version_id)


@router.get("/versions/{version_id}", response_model=ContentVersionRead)
async def get_version(
    version_id: int,
    db: AsyncSession = Depends(get_async_db)
):
    """Get a version by id."""
    versioning_service = ContentVersioningService(db)
    return await versioning_service.get_version(version_id)


@router.get("/compare", response_model=ContentVersionCompareResponse)
async def compare_versions(
    old_version_id: int = Query(..., description="Version shown as the old side"),
    new_version_id: int = Query(..., description="Version shown as the new side"),
    db: AsyncSession = Depends(get_async_db)
):
    """Compare two versions in exactly the order given."""
    versioning_service = ContentVersioningService(db)

    result = await versioning_service.compare_versions(old_version_id, new_version_id)
    return _comparison_response(result)


@router.get("/content-items/{content_item_id}/compare", response_model=ContentVersionCompareResponse)
async def compare_content_versions(
    content_item_id: int,
    version_a: int = Query(..., description="First version id to compare"),
    version_b: int = Query(..., description="Second version id to compare"),
    preserve_order: bool = Query(False, description="Keep version_a as the old side even if it is newer"),
    db: AsyncSession = Depends(get_async_db)
):
    """Compare two versions of a content item, older version on the old side."""
    versioning_service = ContentVersioningService(db)

    result = await versioning_service.compare_versions(
        version_a,
        version_b,
        content_item_id=content_item_id,
        order_by_version_number=not preserve_order
    )
    return _comparison_response(result)


@router.post(
    "/content-items/{content_item_id}/restore/{version_id}",
    response_model=ContentRestoreResponse,
    status_code=status.HTTP_201_CREATED
)
async def restore_content_version(
    content_item_id: int,
    version_id: int,
    payload: Optional[ContentRestoreRequest] = None,
    db: AsyncSession = Depends(get_async_db)
):
    """Restore an older version by appending a copy of it."""
    versioning_service = ContentVersioningService(db)

    target = await versioning_service.get_version_for_item(content_item_id, version_id)
    new_version = await versioning_service.restore_version(
        content_item_id=content_item_id,
        target_version_id=version_id,
        created_by=payload.created_by if payload else None
    )

    return ContentRestoreResponse(
        message=f"Restored to version {target.version_number}",
        content_item_id=content_item_id,
        restored_from_version=target.version_number,
        new_version=ContentVersionRead.model_validate(new_version)
    )
