"""
Append-only persistence of content versions.

``VersionStore`` is the storage boundary the versioning service talks to;
``SQLAlchemyVersionStore`` implements it on an async SQLAlchemy session.
Sequence numbers are serialized per content item by three layers: an
in-process lock per item id (``ContentItemLockRegistry``), a row lock on
the owning content item, and the unique constraint on
(content_item_id, version_number).
"""
import abc
import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import (
    ResourceNotFoundException, ConcurrencyConflictException, StorageFailureException
)
from core.logging import get_logger
from models.models import ContentItem, ContentVersion

logger = get_logger("versioning")


class ContentItemLockRegistry:
    """One asyncio lock per content item id, dropped once nobody holds or waits on it."""

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}
        self._users: Dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, content_item_id: int):
        lock = self._locks.get(content_item_id)
        if lock is None:
            lock = self._locks[content_item_id] = asyncio.Lock()
        self._users[content_item_id] = self._users.get(content_item_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[content_item_id] -= 1
            if self._users[content_item_id] == 0:
                del self._users[content_item_id]
                del self._locks[content_item_id]

    def __len__(self):
        return len(self._locks)


# Shared by every service instance in the process
content_item_locks = ContentItemLockRegistry()


class VersionStore(abc.ABC):
    """Storage operations consumed by the versioning service."""

    @abc.abstractmethod
    async def fetch_content_item(self, content_item_id: int) -> ContentItem:
        """Return the item or raise ResourceNotFoundException."""

    @abc.abstractmethod
    async def lock_content_item(self, content_item_id: int) -> ContentItem:
        """Row-lock the item for the rest of the transaction."""

    @abc.abstractmethod
    async def add_content_item(self, item: ContentItem) -> ContentItem:
        """Stage a new item and assign its id."""

    @abc.abstractmethod
    async def current_max_version_number(self, content_item_id: int) -> int:
        """Highest version number of the item, 0 when it has none."""

    @abc.abstractmethod
    async def insert_version(self, record: ContentVersion) -> ContentVersion:
        """Stage a new version; a duplicate number raises ConcurrencyConflictException."""

    @abc.abstractmethod
    async def update_current_content(self, content_item_id: int, content: str) -> None:
        """Overwrite the item's current content."""

    @abc.abstractmethod
    async def fetch_version(self, version_id: int) -> ContentVersion:
        """Return the version or raise ResourceNotFoundException."""

    @abc.abstractmethod
    async def list_versions(
        self,
        content_item_id: int,
        descending: bool = False,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[ContentVersion]:
        """Versions of the item ordered by version number."""

    @abc.abstractmethod
    async def count_versions(self, content_item_id: int) -> int:
        """Number of versions of the item."""

    @abc.abstractmethod
    async def commit(self) -> None:
        """Make every staged write durable at once."""

    @abc.abstractmethod
    async def rollback(self) -> None:
        """Discard every staged write."""

    @abc.abstractmethod
    async def refresh(self, instance) -> None:
        """Reload server-generated columns."""


class SQLAlchemyVersionStore(VersionStore):
    """VersionStore backed by an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def fetch_content_item(self, content_item_id: int) -> ContentItem:
        item = await self._run(self.db.get(ContentItem, content_item_id))
        if item is None:
            raise ResourceNotFoundException(f"Content item {content_item_id} not found")
        return item

    async def lock_content_item(self, content_item_id: int) -> ContentItem:
        # FOR UPDATE is dropped by dialects without row locks (SQLite)
        stmt = select(ContentItem).where(ContentItem.id == content_item_id).with_for_update()
        result = await self._run(self.db.execute(stmt))
        item = result.scalar_one_or_none()
        if item is None:
            raise ResourceNotFoundException(f"Content item {content_item_id} not found")
        return item

    async def add_content_item(self, item: ContentItem) -> ContentItem:
        self.db.add(item)
        await self._run(self.db.flush())
        return item

    async def current_max_version_number(self, content_item_id: int) -> int:
        stmt = select(func.max(ContentVersion.version_number)).where(
            ContentVersion.content_item_id == content_item_id
        )
        result = await self._run(self.db.execute(stmt))
        return result.scalar() or 0

    async def insert_version(self, record: ContentVersion) -> ContentVersion:
        self.db.add(record)
        try:
            await self.db.flush()
        except IntegrityError as e:
            logger.warning(
                "Version number already taken",
                content_item_id=record.content_item_id,
                version_number=record.version_number,
                error=str(e.orig),
            )
            raise ConcurrencyConflictException(
                f"Version {record.version_number} of content item {record.content_item_id} was written concurrently"
            ) from e
        except SQLAlchemyError as e:
            raise StorageFailureException(f"Failed to write version: {type(e).__name__}") from e
        return record

    async def update_current_content(self, content_item_id: int, content: str) -> None:
        item = await self.fetch_content_item(content_item_id)
        item.content = content
        # Set client-side so the attribute stays loaded after commit
        item.updated_at = datetime.now(timezone.utc)
        await self._run(self.db.flush())

    async def fetch_version(self, version_id: int) -> ContentVersion:
        version = await self._run(self.db.get(ContentVersion, version_id))
        if version is None:
            raise ResourceNotFoundException(f"Version {version_id} not found")
        return version

    async def list_versions(
        self,
        content_item_id: int,
        descending: bool = False,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[ContentVersion]:
        order = ContentVersion.version_number.desc() if descending else ContentVersion.version_number.asc()
        stmt = (
            select(ContentVersion)
            .where(ContentVersion.content_item_id == content_item_id)
            .order_by(order)
            .offset(skip)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._run(self.db.execute(stmt))
        return list(result.scalars().all())

    async def count_versions(self, content_item_id: int) -> int:
        stmt = select(func.count(ContentVersion.id)).where(
            ContentVersion.content_item_id == content_item_id
        )
        result = await self._run(self.db.execute(stmt))
        return result.scalar() or 0

    async def commit(self) -> None:
        await self._run(self.db.commit())

    async def rollback(self) -> None:
        await self.db.rollback()

    async def refresh(self, instance) -> None:
        await self._run(self.db.refresh(instance))

    async def _run(self, awaitable):
        """Await a session call, reporting driver errors as storage failures."""
        try:
            return await awaitable
        except IntegrityError as e:
            raise ConcurrencyConflictException("Conflicting concurrent write") from e
        except SQLAlchemyError as e:
            logger.error("Storage operation failed", error=str(e), exception_type=type(e).__name__)
            raise StorageFailureException(f"Storage operation failed: {type(e).__name__}") from e
