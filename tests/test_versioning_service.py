"""Tests for ContentVersioningService against a SQLite database."""
import asyncio

import pytest

from core.exceptions import (
    ConcurrencyConflictException, OwnerMismatchException, ResourceNotFoundException,
    StorageFailureException
)
from models.models import ContentFormatEnum, ContentVersion
from services.version_store import SQLAlchemyVersionStore, content_item_locks
from services.versioning_service import ContentVersioningService


async def _seed(service, item, *contents):
    return [await service.create_version(item.id, content) for content in contents]


class TestContentItems:

    async def test_empty_item_has_no_versions(self, service, scene):
        assert scene.content == ""
        assert scene.format is ContentFormatEnum.plain
        assert await service.list_versions(scene.id) == []

    async def test_initial_content_becomes_version_one(self, service):
        item = await service.create_content_item(
            title="Storm", content="It rains.", format=ContentFormatEnum.fountain, created_by="mara"
        )

        versions = await service.list_versions(item.id)
        assert [(v.version_number, v.content, v.note, v.created_by) for v in versions] == [
            (1, "It rains.", "Initial version", "mara")
        ]
        assert item.format is ContentFormatEnum.fountain

    async def test_unknown_item(self, service):
        with pytest.raises(ResourceNotFoundException):
            await service.get_content_item(999)


class TestCreateVersion:

    async def test_numbers_start_at_one_and_increase(self, service, scene):
        versions = await _seed(service, scene, "a", "b", "c")

        assert [v.version_number for v in versions] == [1, 2, 3]
        assert all(v.created_at is not None for v in versions)

    async def test_updates_current_content(self, service, scene):
        await _seed(service, scene, "first draft", "second draft")

        item = await service.get_content_item(scene.id)
        assert item.content == "second draft"

    async def test_note_and_author_are_stored(self, service, scene):
        version = await service.create_version(scene.id, "text", note="tightened dialogue", created_by="ed")

        fetched = await service.get_version(version.id)
        assert fetched.note == "tightened dialogue"
        assert fetched.created_by == "ed"

    async def test_unknown_item(self, service):
        with pytest.raises(ResourceNotFoundException):
            await service.create_version(12345, "text")

    async def test_items_are_numbered_independently(self, service, scene):
        other = await service.create_content_item(title="Epilogue")

        await _seed(service, scene, "a", "b")
        version = await service.create_version(other.id, "x")

        assert version.version_number == 1

    async def test_concurrent_writers_get_distinct_consecutive_numbers(self, session_factory, scene):
        async def write(i):
            async with session_factory() as session:
                version = await ContentVersioningService(session).create_version(scene.id, f"draft {i}")
                return version.version_number

        numbers = await asyncio.gather(*(write(i) for i in range(10)))

        assert sorted(numbers) == list(range(1, 11))
        assert len(content_item_locks) == 0

        async with session_factory() as session:
            service = ContentVersioningService(session)
            versions = await service.list_versions(scene.id)
            item = await service.get_content_item(scene.id)
        assert [v.version_number for v in versions] == list(range(1, 11))
        assert item.content == versions[-1].content

    async def test_concurrent_writers_on_different_items(self, session_factory, service, scene):
        other = await service.create_content_item(title="Second")

        async def write(item_id, i):
            async with session_factory() as session:
                version = await ContentVersioningService(session).create_version(item_id, f"draft {i}")
                return item_id, version.version_number

        results = await asyncio.gather(*(write(item_id, i) for i in range(4) for item_id in (scene.id, other.id)))

        for item_id in (scene.id, other.id):
            assert sorted(n for owner, n in results if owner == item_id) == [1, 2, 3, 4]

    async def test_duplicate_number_is_a_conflict(self, db_session, service, scene):
        await service.create_version(scene.id, "a")
        store = SQLAlchemyVersionStore(db_session)

        with pytest.raises(ConcurrencyConflictException):
            await store.insert_version(ContentVersion(content_item_id=scene.id, version_number=1, content="dup"))
        await store.rollback()

        assert [v.content for v in await service.list_versions(scene.id)] == ["a"]

    async def test_failed_write_keeps_neither_change(self, session_factory, scene):
        class FailingStore(SQLAlchemyVersionStore):
            async def update_current_content(self, content_item_id, content):
                raise StorageFailureException("disk full")

        async with session_factory() as session:
            await ContentVersioningService(session).create_version(scene.id, "kept")

        async with session_factory() as session:
            with pytest.raises(StorageFailureException):
                await ContentVersioningService(store=FailingStore(session)).create_version(scene.id, "lost")

        async with session_factory() as session:
            service = ContentVersioningService(session)
            versions = await service.list_versions(scene.id)
            item = await service.get_content_item(scene.id)
        assert [v.content for v in versions] == ["kept"]
        assert item.content == "kept"


class TestReadVersions:

    async def test_list_ascending_and_descending(self, service, scene):
        await _seed(service, scene, "a", "b", "c")

        ascending = await service.list_versions(scene.id)
        descending = await service.list_versions(scene.id, descending=True)

        assert [v.version_number for v in ascending] == [1, 2, 3]
        assert [v.version_number for v in descending] == [3, 2, 1]

    async def test_listing_again_sees_new_versions(self, service, scene):
        await _seed(service, scene, "a")
        first = await service.list_versions(scene.id)
        await _seed(service, scene, "b")
        second = await service.list_versions(scene.id)

        assert len(first) == 1
        assert len(second) == 2

    async def test_list_unknown_item(self, service):
        with pytest.raises(ResourceNotFoundException):
            await service.list_versions(404)

    async def test_history_page(self, service, scene):
        await _seed(service, scene, "a", "b", "c", "d", "e")

        versions, total, current = await service.get_version_history(scene.id, skip=1, limit=2)

        assert [v.version_number for v in versions] == [4, 3]
        assert total == 5
        assert current == 5

    async def test_get_unknown_version(self, service):
        with pytest.raises(ResourceNotFoundException):
            await service.get_version(777)

    async def test_get_version_for_wrong_item(self, service, scene):
        other = await service.create_content_item(title="Other")
        version = await service.create_version(other.id, "x")

        with pytest.raises(OwnerMismatchException):
            await service.get_version_for_item(scene.id, version.id)


class TestCompareVersions:

    async def test_compare_two_versions(self, service, scene):
        old, new = await _seed(service, scene, "A\nB\nC", "A\nX\nC")

        result = await service.compare_versions(old.id, new.id)

        assert result.old_version.id == old.id
        assert result.new_version.id == new.id
        assert [(line.kind.value, line.text) for line in result.diff] == [
            ("unchanged", "A"), ("removed", "B"), ("added", "X"), ("unchanged", "C")
        ]
        assert service.change_percentage(result.diff) == 50
        old_side, new_side = service.side_by_side(result.diff)
        assert [line.text for line in old_side] == ["A", "B", "C"]
        assert [line.text for line in new_side] == ["A", "X", "C"]

    async def test_same_version_compares_clean(self, service, scene):
        (version,) = await _seed(service, scene, "A\nB\nC")

        result = await service.compare_versions(version.id, version.id)

        assert result.diff.unchanged == 3
        assert service.change_percentage(result.diff) == 0

    async def test_caller_order_is_kept(self, service, scene):
        old, new = await _seed(service, scene, "A", "A\nB")

        result = await service.compare_versions(new.id, old.id)

        assert result.old_version.id == new.id
        assert result.diff.removed == 1

    async def test_order_by_version_number(self, service, scene):
        old, new = await _seed(service, scene, "A", "A\nB")

        result = await service.compare_versions(new.id, old.id, order_by_version_number=True)

        assert result.old_version.id == old.id
        assert result.diff.added == 1

    async def test_versions_of_different_items(self, service, scene):
        other = await service.create_content_item(title="Other")
        (mine,) = await _seed(service, scene, "a")
        (theirs,) = await _seed(service, other, "b")

        with pytest.raises(OwnerMismatchException):
            await service.compare_versions(mine.id, theirs.id)

    async def test_versions_outside_item_context(self, service, scene):
        other = await service.create_content_item(title="Other")
        first, second = await _seed(service, other, "a", "b")

        with pytest.raises(OwnerMismatchException):
            await service.compare_versions(first.id, second.id, content_item_id=scene.id)

    async def test_unknown_version(self, service, scene):
        (version,) = await _seed(service, scene, "a")

        with pytest.raises(ResourceNotFoundException):
            await service.compare_versions(version.id, 9999)


class TestRestoreVersion:

    async def test_restore_appends_copy_of_target(self, service, scene):
        v1, v2, v3 = await _seed(service, scene, "a", "b", "c")

        restored = await service.restore_version(scene.id, v1.id)

        assert restored.version_number == 4
        assert restored.content == "a"
        assert restored.note == "Restored from version 1"

        versions = await service.list_versions(scene.id)
        assert [v.version_number for v in versions] == [1, 2, 3, 4]
        assert [v.content for v in versions] == ["a", "b", "c", "a"]
        assert [v.id for v in versions[:3]] == [v1.id, v2.id, v3.id]

        item = await service.get_content_item(scene.id)
        assert item.content == "a"

    async def test_restore_twice_creates_two_versions(self, service, scene):
        v1, _ = await _seed(service, scene, "a", "b")

        first = await service.restore_version(scene.id, v1.id)
        second = await service.restore_version(scene.id, v1.id)

        assert (first.version_number, second.version_number) == (3, 4)
        assert first.content == second.content == "a"
        assert first.id != second.id

    async def test_restore_current_version_still_appends(self, service, scene):
        _, latest = await _seed(service, scene, "a", "b")

        restored = await service.restore_version(scene.id, latest.id, created_by="ed")

        assert restored.version_number == 3
        assert restored.content == "b"
        assert restored.created_by == "ed"

    async def test_restore_into_wrong_item(self, service, scene):
        other = await service.create_content_item(title="Other")
        (theirs,) = await _seed(service, other, "b")
        await _seed(service, scene, "a")

        with pytest.raises(OwnerMismatchException):
            await service.restore_version(scene.id, theirs.id)

        assert [v.content for v in await service.list_versions(scene.id)] == ["a"]

    async def test_restore_unknown_version(self, service, scene):
        await _seed(service, scene, "a")

        with pytest.raises(ResourceNotFoundException):
            await service.restore_version(scene.id, 31337)

        assert len(await service.list_versions(scene.id)) == 1
