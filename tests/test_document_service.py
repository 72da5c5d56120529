"""Tests for the document mutation service (save and restore transactions)."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from manualic_api.config import settings
from manualic_api.models import Document, DocumentVersion, WorkspaceRole
from manualic_api.services import blocks as block_store
from manualic_api.services import documents as document_service
from manualic_api.services import versions
from manualic_api.services.errors import (
    AccessDeniedError,
    InvalidBlockError,
    ResourceNotFoundError,
    VersionConflictError,
)
from tests.conftest import Manual, add_member, create_user


def text(content: str) -> dict:
    return {"blockType": "text", "content": content}


async def _contents(session: AsyncSession, document_id: str) -> list[str]:
    return [b.content for b in await block_store.list_blocks(session, document_id)]


async def _version_count(session: AsyncSession, document_id: str) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(DocumentVersion)
        .where(DocumentVersion.document_id == document_id)
    )
    return result.scalar_one()


async def _updated_at(session: AsyncSession, document_id: str):
    result = await session.execute(
        select(Document.updated_at).where(Document.id == document_id)
    )
    return result.scalar_one()


class TestSaveBlocks:
    """Tests for save_blocks."""

    async def test_save_without_version(
        self, async_session: AsyncSession, manual: Manual
    ):
        result = await document_service.save_blocks(
            async_session,
            manual.owner.id,
            manual.document.id,
            [text("A"), text("B")],
        )

        assert result.version is None
        assert [b.content for b in result.blocks] == ["A", "B"]
        assert [b.sort_order for b in result.blocks] == [1, 2]
        assert result.role == WorkspaceRole.OWNER
        assert await _version_count(async_session, manual.document.id) == 0

    async def test_save_with_version_snapshots_previous_state(
        self, async_session: AsyncSession, manual: Manual
    ):
        result = await document_service.save_blocks(
            async_session,
            manual.owner.id,
            manual.document.id,
            [text("A"), text("B")],
            create_version=True,
            change_summary="Add B",
        )

        assert result.version is not None
        assert result.version.version_number == 1
        assert result.version.change_summary == "Add B"
        assert result.latest_version == 1
        snapshot = versions.deserialize_snapshot(result.version.snapshot)
        assert [b.content for b in snapshot] == ["A"]
        assert await _contents(async_session, manual.document.id) == ["A", "B"]

    async def test_save_advances_updated_at(
        self, async_session: AsyncSession, manual: Manual
    ):
        before = await _updated_at(async_session, manual.document.id)

        result = await document_service.save_blocks(
            async_session, manual.owner.id, manual.document.id, [text("A")]
        )

        after = await _updated_at(async_session, manual.document.id)
        assert after > before
        assert result.document.updated_at == after

    @pytest.mark.parametrize(
        "role", [WorkspaceRole.WRITER, WorkspaceRole.EDITOR, WorkspaceRole.ADMIN]
    )
    async def test_writer_and_above_can_save(
        self, async_session: AsyncSession, manual: Manual, role: WorkspaceRole
    ):
        user = await add_member(async_session, manual.workspace, role)

        result = await document_service.save_blocks(
            async_session, user.id, manual.document.id, [text("mine")]
        )
        assert result.role == role
        assert await _contents(async_session, manual.document.id) == ["mine"]

    async def test_viewer_cannot_save(
        self, async_session: AsyncSession, manual: Manual
    ):
        viewer = await add_member(async_session, manual.workspace, WorkspaceRole.VIEWER)

        with pytest.raises(AccessDeniedError):
            await document_service.save_blocks(
                async_session,
                viewer.id,
                manual.document.id,
                [text("nope")],
                create_version=True,
            )

        assert await _contents(async_session, manual.document.id) == ["A"]
        assert await _version_count(async_session, manual.document.id) == 0

    async def test_stranger_cannot_save(
        self, async_session: AsyncSession, manual: Manual
    ):
        stranger = await create_user(async_session, "stranger@example.com")

        with pytest.raises(AccessDeniedError):
            await document_service.save_blocks(
                async_session, stranger.id, manual.document.id, [text("nope")]
            )

    async def test_missing_document(self, async_session: AsyncSession, manual: Manual):
        with pytest.raises(ResourceNotFoundError):
            await document_service.save_blocks(
                async_session, manual.owner.id, "missing", [text("x")]
            )

    async def test_invalid_block_rejected_before_snapshot(
        self, async_session: AsyncSession, manual: Manual
    ):
        with pytest.raises(InvalidBlockError):
            await document_service.save_blocks(
                async_session,
                manual.owner.id,
                manual.document.id,
                [text("ok"), {"blockType": "file"}],
                create_version=True,
            )

        assert await _contents(async_session, manual.document.id) == ["A"]
        assert await _version_count(async_session, manual.document.id) == 0

    async def test_failure_after_snapshot_rolls_back_everything(
        self, async_session: AsyncSession, manual: Manual, monkeypatch
    ):
        doc_id = manual.document.id
        before = await _updated_at(async_session, doc_id)

        async def broken_replace(db, document_id, blocks):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(block_store, "replace_all", broken_replace)

        with pytest.raises(RuntimeError):
            await document_service.save_blocks(
                async_session,
                manual.owner.id,
                doc_id,
                [text("B")],
                create_version=True,
            )

        assert await _version_count(async_session, doc_id) == 0
        assert await _contents(async_session, doc_id) == ["A"]
        assert await _updated_at(async_session, doc_id) == before

    async def test_successive_versions_differ_by_one_and_stay_immutable(
        self, async_session: AsyncSession, manual: Manual
    ):
        first = await document_service.save_blocks(
            async_session,
            manual.owner.id,
            manual.document.id,
            [text("A"), text("B")],
            create_version=True,
        )
        first_snapshot = first.version.snapshot

        second = await document_service.save_blocks(
            async_session,
            manual.owner.id,
            manual.document.id,
            [text("C")],
            create_version=True,
        )

        assert second.version.version_number == first.version.version_number + 1
        stored = await async_session.get(
            DocumentVersion, first.version.id, populate_existing=True
        )
        assert stored.snapshot == first_snapshot


class TestVersionRace:
    """A stale next-version number simulates a concurrent archiver winning."""

    async def _seed_version_one(
        self, session: AsyncSession, manual: Manual
    ) -> tuple[str, str]:
        owner_id, doc_id = manual.owner.id, manual.document.id
        await document_service.save_blocks(
            session, owner_id, doc_id, [text("A"), text("B")], create_version=True
        )
        return owner_id, doc_id

    async def test_conflict_is_retried_with_fresh_number(
        self, async_session: AsyncSession, manual: Manual, monkeypatch
    ):
        owner_id, doc_id = await self._seed_version_one(async_session, manual)
        real_next = versions.next_version_number
        calls = []

        async def stale_once(db, document_id):
            calls.append(document_id)
            if len(calls) == 1:
                return 1
            return await real_next(db, document_id)

        monkeypatch.setattr(versions, "next_version_number", stale_once)

        result = await document_service.save_blocks(
            async_session, owner_id, doc_id, [text("C")], create_version=True
        )

        assert len(calls) == 2
        assert result.version.version_number == 2
        numbers = (
            await async_session.execute(
                select(DocumentVersion.version_number)
                .where(DocumentVersion.document_id == doc_id)
                .order_by(DocumentVersion.version_number)
            )
        ).scalars().all()
        assert numbers == [1, 2]
        assert await _contents(async_session, doc_id) == ["C"]

    async def test_persistent_conflict_surfaces_and_rolls_back(
        self, async_session: AsyncSession, manual: Manual, monkeypatch
    ):
        owner_id, doc_id = await self._seed_version_one(async_session, manual)

        async def always_stale(db, document_id):
            return 1

        monkeypatch.setattr(versions, "next_version_number", always_stale)
        monkeypatch.setattr(settings, "version_conflict_retries", 1)

        with pytest.raises(VersionConflictError):
            await document_service.save_blocks(
                async_session, owner_id, doc_id, [text("C")], create_version=True
            )

        assert await _version_count(async_session, doc_id) == 1
        assert await _contents(async_session, doc_id) == ["A", "B"]


class TestRestoreVersion:
    """Tests for restore_version."""

    async def test_end_to_end_scenario(
        self, async_session: AsyncSession, manual: Manual
    ):
        doc_id = manual.document.id
        owner_id = manual.owner.id

        first = await document_service.save_blocks(
            async_session, owner_id, doc_id, [text("A"), text("B")], create_version=True
        )
        assert [
            b.content for b in versions.deserialize_snapshot(first.version.snapshot)
        ] == ["A"]
        assert await _contents(async_session, doc_id) == ["A", "B"]

        second = await document_service.save_blocks(
            async_session, owner_id, doc_id, [text("C")], create_version=True
        )
        assert second.version.version_number == 2
        assert [
            b.content for b in versions.deserialize_snapshot(second.version.snapshot)
        ] == ["A", "B"]
        assert await _contents(async_session, doc_id) == ["C"]

        await document_service.restore_version(
            async_session, owner_id, doc_id, first.version.id
        )
        assert await _contents(async_session, doc_id) == ["A"]

    async def test_restore_any_version_matches_its_snapshot(
        self, async_session: AsyncSession, manual: Manual
    ):
        saved = []
        for contents in (["x"], ["y", "z"], [], ["w"]):
            result = await document_service.save_blocks(
                async_session,
                manual.owner.id,
                manual.document.id,
                [text(c) for c in contents],
                create_version=True,
            )
            saved.append(result.version)

        for version in saved:
            expected = versions.deserialize_snapshot(version.snapshot)
            result = await document_service.restore_version(
                async_session,
                manual.owner.id,
                manual.document.id,
                version.id,
                snapshot_first=False,
            )
            stored = await block_store.list_blocks(async_session, manual.document.id)
            assert [(b.block_type, b.content) for b in stored] == [
                (b.block_type, b.content) for b in expected
            ]
            assert [b.sort_order for b in stored] == list(range(1, len(expected) + 1))
            assert result.restored_version.id == version.id

    async def test_restore_snapshots_current_state_first(
        self, async_session: AsyncSession, manual: Manual
    ):
        first = await document_service.save_blocks(
            async_session,
            manual.owner.id,
            manual.document.id,
            [text("B")],
            create_version=True,
        )

        result = await document_service.restore_version(
            async_session,
            manual.owner.id,
            manual.document.id,
            first.version.id,
            snapshot_first=True,
        )

        assert result.snapshot_version is not None
        assert result.snapshot_version.version_number == 2
        assert result.snapshot_version.change_summary == "Before restoring version 1"
        undo = versions.deserialize_snapshot(result.snapshot_version.snapshot)
        assert [b.content for b in undo] == ["B"]
        assert await _contents(async_session, manual.document.id) == ["A"]

    async def test_restore_without_snapshot_keeps_version_count(
        self, async_session: AsyncSession, manual: Manual
    ):
        first = await document_service.save_blocks(
            async_session,
            manual.owner.id,
            manual.document.id,
            [text("B")],
            create_version=True,
        )

        result = await document_service.restore_version(
            async_session,
            manual.owner.id,
            manual.document.id,
            first.version.id,
            snapshot_first=False,
        )

        assert result.snapshot_version is None
        assert await _version_count(async_session, manual.document.id) == 1

    async def test_restore_latest_version_still_advances_timestamp(
        self, async_session: AsyncSession, manual: Manual
    ):
        first = await document_service.save_blocks(
            async_session,
            manual.owner.id,
            manual.document.id,
            [text("A")],
            create_version=True,
        )
        before = await _updated_at(async_session, manual.document.id)

        await document_service.restore_version(
            async_session,
            manual.owner.id,
            manual.document.id,
            first.version.id,
            snapshot_first=False,
        )

        assert await _contents(async_session, manual.document.id) == ["A"]
        assert await _updated_at(async_session, manual.document.id) > before

    async def test_viewer_cannot_restore(
        self, async_session: AsyncSession, manual: Manual
    ):
        first = await document_service.save_blocks(
            async_session,
            manual.owner.id,
            manual.document.id,
            [text("B")],
            create_version=True,
        )
        viewer = await add_member(async_session, manual.workspace, WorkspaceRole.VIEWER)

        with pytest.raises(AccessDeniedError):
            await document_service.restore_version(
                async_session, viewer.id, manual.document.id, first.version.id
            )
        assert await _contents(async_session, manual.document.id) == ["B"]

    async def test_cross_document_version_rejected(
        self, async_session: AsyncSession, manual: Manual
    ):
        other = Document(
            category_id=manual.category.id,
            title="Other",
            created_by_id=manual.owner.id,
        )
        async_session.add(other)
        await async_session.commit()
        foreign = await document_service.save_blocks(
            async_session, manual.owner.id, other.id, [text("o")], create_version=True
        )

        owner_id, doc_id = manual.owner.id, manual.document.id

        with pytest.raises(ResourceNotFoundError):
            await document_service.restore_version(
                async_session, owner_id, doc_id, foreign.version.id
            )

        assert await _contents(async_session, doc_id) == ["A"]
        assert await _version_count(async_session, doc_id) == 0


class TestReads:
    """Tests for the read helpers."""

    async def test_get_document_for_viewer(
        self, async_session: AsyncSession, manual: Manual
    ):
        viewer = await add_member(async_session, manual.workspace, WorkspaceRole.VIEWER)

        state = await document_service.get_document(
            async_session, viewer.id, manual.document.id
        )
        assert state.role == WorkspaceRole.VIEWER
        assert state.author_name == "Owner"
        assert [b.content for b in state.blocks] == ["A"]
        assert state.latest_version is None

    async def test_list_versions_newest_first(
        self, async_session: AsyncSession, manual: Manual
    ):
        for contents in ("B", "C", "D"):
            await document_service.save_blocks(
                async_session,
                manual.owner.id,
                manual.document.id,
                [text(contents)],
                create_version=True,
            )

        rows = await document_service.list_versions(
            async_session, manual.owner.id, manual.document.id
        )
        assert [v.version_number for v, _ in rows] == [3, 2, 1]
        assert {name for _, name in rows} == {manual.owner.display_name}

    async def test_stranger_cannot_list_versions(
        self, async_session: AsyncSession, manual: Manual
    ):
        stranger = await create_user(async_session, "stranger@example.com")
        with pytest.raises(AccessDeniedError):
            await document_service.list_versions(
                async_session, stranger.id, manual.document.id
            )
