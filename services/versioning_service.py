"""
Content versioning service: append-only history, comparison and restore.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from core.config import settings
from core.exceptions import APIException, OwnerMismatchException
from core.logging import get_logger
from models.models import ContentItem, ContentVersion, ContentFormatEnum
from services import comparison
from services.diff_engine import DiffLine, DiffResult, compute_diff
from services.version_store import (
    ContentItemLockRegistry, SQLAlchemyVersionStore, VersionStore, content_item_locks
)

logger = get_logger("versioning")


@dataclass(frozen=True)
class VersionComparison:
    """Two versions of one content item and the diff between them."""
    old_version: ContentVersion
    new_version: ContentVersion
    diff: DiffResult


class ContentVersioningService:
    """Service for managing content versions."""

    def __init__(
        self,
        db: Optional[AsyncSession] = None,
        store: Optional[VersionStore] = None,
        locks: ContentItemLockRegistry = content_item_locks
    ):
        if store is None:
            if db is None:
                raise ValueError("Either a database session or a store is required")
            store = SQLAlchemyVersionStore(db)
        self.store = store
        self.locks = locks

    # --- Content items ---

    async def create_content_item(
        self,
        title: str,
        content: str = "",
        format: ContentFormatEnum = ContentFormatEnum.plain,
        note: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> ContentItem:
        """Create a content item; non-empty content becomes its version 1."""
        item = ContentItem(title=title, content=content, format=format)
        try:
            await self.store.add_content_item(item)
            if content:
                await self.store.insert_version(ContentVersion(
                    content_item_id=item.id,
                    version_number=1,
                    content=content,
                    note=note or settings.initial_version_note,
                    created_by=created_by,
                ))
            await self.store.commit()
        except APIException:
            await self.store.rollback()
            raise

        await self.store.refresh(item)
        logger.info("Content item created", content_item_id=item.id, has_initial_version=bool(content))
        return item

    async def get_content_item(self, content_item_id: int) -> ContentItem:
        return await self.store.fetch_content_item(content_item_id)

    # --- Versions ---

    async def create_version(
        self,
        content_item_id: int,
        content: str,
        note: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> ContentVersion:
        """Append a version and make it the item's current content.

        The number is max + 1 for the item. The insert and the content update
        commit together; on any failure neither is kept.
        """
        async with self.locks.hold(content_item_id):
            try:
                await self.store.lock_content_item(content_item_id)
                version_number = await self.store.current_max_version_number(content_item_id) + 1
                version = await self.store.insert_version(ContentVersion(
                    content_item_id=content_item_id,
                    version_number=version_number,
                    content=content,
                    note=note,
                    created_by=created_by,
                ))
                await self.store.update_current_content(content_item_id, content)
                await self.store.commit()
            except APIException as e:
                await self.store.rollback()
                logger.warning(
                    "Version creation failed",
                    content_item_id=content_item_id,
                    exception_type=type(e).__name__,
                    detail=e.detail,
                )
                raise

        await self.store.refresh(version)
        logger.info("Version created", content_item_id=content_item_id, version_number=version_number)
        return version

    async def get_version(self, version_id: int) -> ContentVersion:
        return await self.store.fetch_version(version_id)

    async def get_version_for_item(self, content_item_id: int, version_id: int) -> ContentVersion:
        """Fetch a version, insisting that it belongs to ``content_item_id``."""
        version = await self.store.fetch_version(version_id)
        self._check_owner(version, content_item_id)
        return version

    async def list_versions(
        self,
        content_item_id: int,
        descending: bool = False,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[ContentVersion]:
        """Versions ordered by version number; each call re-reads the store."""
        await self.store.fetch_content_item(content_item_id)
        return await self.store.list_versions(content_item_id, descending=descending, skip=skip, limit=limit)

    async def get_version_history(
        self,
        content_item_id: int,
        descending: bool = True,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[ContentVersion], int, int]:
        """One page of versions, the total count and the current version number."""
        versions = await self.list_versions(content_item_id, descending=descending, skip=skip, limit=limit)
        total_count = await self.store.count_versions(content_item_id)
        current_version = await self.store.current_max_version_number(content_item_id)
        return versions, total_count, current_version

    # --- Comparison ---

    async def compare_versions(
        self,
        old_version_id: int,
        new_version_id: int,
        content_item_id: Optional[int] = None,
        order_by_version_number: bool = False
    ) -> VersionComparison:
        """Diff two versions of the same content item.

        The caller's old/new order is kept unless ``order_by_version_number``
        asks for the lower-numbered version on the old side.
        """
        old_version = await self.store.fetch_version(old_version_id)
        new_version = await self.store.fetch_version(new_version_id)

        if old_version.content_item_id != new_version.content_item_id:
            raise OwnerMismatchException(
                f"Versions {old_version_id} and {new_version_id} belong to different content items"
            )
        if content_item_id is not None:
            self._check_owner(old_version, content_item_id)

        if order_by_version_number and old_version.version_number > new_version.version_number:
            old_version, new_version = new_version, old_version

        diff = await run_in_threadpool(compute_diff, old_version.content, new_version.content)
        logger.info(
            "Versions compared",
            content_item_id=old_version.content_item_id,
            old_version_number=old_version.version_number,
            new_version_number=new_version.version_number,
            lines=len(diff),
        )
        return VersionComparison(old_version=old_version, new_version=new_version, diff=diff)

    @staticmethod
    def side_by_side(diff: DiffResult) -> Tuple[List[DiffLine], List[DiffLine]]:
        return comparison.side_by_side(diff)

    @staticmethod
    def change_percentage(diff: DiffResult) -> int:
        return comparison.change_percentage(diff)

    # --- Restore ---

    async def restore_version(
        self,
        content_item_id: int,
        target_version_id: int,
        created_by: Optional[str] = None
    ) -> ContentVersion:
        """Make an old version current again by appending a copy of it.

        History is never rewritten: restoring the same target twice yields
        two new versions with equal content.
        """
        target = await self.get_version_for_item(content_item_id, target_version_id)
        note = settings.restore_note_template.format(version_number=target.version_number)

        restored = await self.create_version(content_item_id, target.content, note=note, created_by=created_by)
        logger.info(
            "Version restored",
            content_item_id=content_item_id,
            restored_from=target.version_number,
            version_number=restored.version_number,
        )
        return restored

    @staticmethod
    def _check_owner(version: ContentVersion, content_item_id: int) -> None:
        if version.content_item_id != content_item_id:
            raise OwnerMismatchException(
                f"Version {version.id} does not belong to content item {content_item_id}"
            )
