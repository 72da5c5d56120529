"""Document mutation service: the transaction boundary for block writes.

This is the only entry point the routes use to change a document's blocks.
Each mutation checks access, then runs lock -> snapshot -> replace ->
timestamp in one transaction that is either committed whole or rolled back
whole. The document row lock (a no-op on SQLite) serializes writers to one
document. A version number collision rolls back and retries (re-reading the
max); when retries run out it surfaces as VersionConflictError.

Concurrent saves are last-writer-wins; there is no compare-and-swap on
block content.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from manualic_api.config import settings
from manualic_api.models import Block, Document, DocumentVersion, User, WorkspaceRole
from manualic_api.models.base import utc_now
from manualic_api.schemas import BlockInput
from manualic_api.services import access
from manualic_api.services import blocks as block_store
from manualic_api.services import versions as version_store
from manualic_api.services.errors import (
    DocumentServiceError,
    ResourceNotFoundError,
    VersionConflictError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Saving and restoring are both writes
WRITE_ROLE = WorkspaceRole.WRITER
READ_ROLE = WorkspaceRole.VIEWER


@dataclass
class DocumentState:
    """A document with its current ordered blocks."""

    document: Document
    blocks: list[Block]
    role: WorkspaceRole | None = None
    latest_version: int | None = None
    author_name: str | None = None


@dataclass
class SaveResult(DocumentState):
    """Outcome of a block save."""

    version: DocumentVersion | None = None


@dataclass
class RestoreResult:
    """Outcome of a restore."""

    restored_version: DocumentVersion
    blocks: list[Block]
    snapshot_version: DocumentVersion | None = None


async def _touch_document(db: AsyncSession, document_id: str) -> None:
    """Advance the document's updated_at timestamp."""
    await db.execute(
        update(Document)
        .where(Document.id == document_id)
        .values(updated_at=utc_now())
    )


async def _lock_document(db: AsyncSession, document_id: str) -> None:
    """Lock the document row for the rest of the transaction."""
    result = await db.execute(
        select(Document.id).where(Document.id == document_id).with_for_update()
    )
    if result.scalar_one_or_none() is None:
        raise ResourceNotFoundError("Document not found")


async def _run_in_transaction(
    db: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    description: str,
    retries: int | None = None,
) -> T:
    """Run ``operation`` and commit, rolling back on any failure.

    Version conflicts are retried up to ``retries`` times.
    """
    max_retries = settings.version_conflict_retries if retries is None else retries
    attempt = 0
    while True:
        try:
            result = await operation()
            await db.commit()
            return result
        except VersionConflictError as e:
            await db.rollback()
            if attempt >= max_retries:
                logger.warning("%s: giving up after version conflict: %s", description, e)
                raise
            attempt += 1
            logger.warning(
                "%s: version conflict (%s), retrying (%d/%d)",
                description,
                e,
                attempt,
                max_retries,
            )
        except DocumentServiceError:
            await db.rollback()
            raise
        except Exception:
            await db.rollback()
            logger.exception("%s: rolled back after unexpected error", description)
            raise


async def _load_document(db: AsyncSession, document_id: str) -> Document:
    document = await db.get(Document, document_id, populate_existing=True)
    if document is None:
        raise ResourceNotFoundError("Document not found")
    return document


async def _author_name(db: AsyncSession, document: Document) -> str | None:
    result = await db.execute(
        select(User.display_name).where(User.id == document.created_by_id)
    )
    return result.scalar_one_or_none()


async def save_blocks(
    db: AsyncSession,
    user_id: str,
    document_id: str,
    blocks: Sequence[BlockInput | Mapping[str, Any]],
    create_version: bool = False,
    change_summary: str | None = None,
) -> SaveResult:
    """Replace a document's blocks, optionally archiving the prior state.

    Raises:
        ResourceNotFoundError: If the document does not exist
        AccessDeniedError: If the caller is below writer
        InvalidBlockError: If any block is malformed (nothing is written)
        VersionConflictError: If version numbering kept colliding
    """
    role = await access.require_access(
        db, user_id, access.ScopeType.DOCUMENT, document_id, WRITE_ROLE
    )
    inputs = block_store.validate_blocks(blocks)

    async def _save() -> tuple[list[Block], DocumentVersion | None]:
        await _lock_document(db, document_id)
        version = None
        if create_version:
            version = await version_store.snapshot(
                db, document_id, user_id, change_summary=change_summary
            )
        rows = await block_store.replace_all(db, document_id, inputs)
        await _touch_document(db, document_id)
        return rows, version

    rows, version = await _run_in_transaction(
        db, _save, f"Save blocks of document {document_id}"
    )

    document = await _load_document(db, document_id)
    latest = await version_store.latest_version_number(db, document_id)
    logger.info(
        "User %s saved document %s (%d blocks, version=%s)",
        user_id,
        document_id,
        len(rows),
        version.version_number if version else None,
    )
    return SaveResult(
        document=document,
        blocks=rows,
        role=role,
        latest_version=latest,
        author_name=await _author_name(db, document),
        version=version,
    )


async def restore_version(
    db: AsyncSession,
    user_id: str,
    document_id: str,
    version_id: str,
    snapshot_first: bool | None = None,
) -> RestoreResult:
    """Restore a document's blocks from one of its versions.

    With ``snapshot_first`` (default from settings) the blocks being
    overwritten are archived first, so the restore can itself be undone.
    Historical snapshots are never modified.

    Raises:
        ResourceNotFoundError: If the document or version is missing, or the
            version belongs to another document
        AccessDeniedError: If the caller is below writer
        VersionConflictError: If version numbering kept colliding
    """
    await access.require_access(
        db, user_id, access.ScopeType.DOCUMENT, document_id, WRITE_ROLE
    )
    if snapshot_first is None:
        snapshot_first = settings.snapshot_before_restore

    async def _restore() -> RestoreResult:
        await _lock_document(db, document_id)
        target = await version_store.get_version(db, document_id, version_id)
        pre_restore = None
        if snapshot_first:
            pre_restore = await version_store.snapshot(
                db,
                document_id,
                user_id,
                change_summary=f"Before restoring version {target.version_number}",
            )
        rows = await version_store.restore(db, document_id, version_id, user_id)
        await _touch_document(db, document_id)
        return RestoreResult(
            restored_version=target, blocks=rows, snapshot_version=pre_restore
        )

    result = await _run_in_transaction(
        db, _restore, f"Restore version {version_id} of document {document_id}"
    )
    logger.info(
        "User %s restored document %s to version %d",
        user_id,
        document_id,
        result.restored_version.version_number,
    )
    return result


async def get_document(
    db: AsyncSession, user_id: str, document_id: str
) -> DocumentState:
    """Get a document with its blocks (viewer or above)."""
    role = await access.require_access(
        db, user_id, access.ScopeType.DOCUMENT, document_id, READ_ROLE
    )
    document = await _load_document(db, document_id)
    rows = await block_store.list_blocks(db, document_id)
    latest = await version_store.latest_version_number(db, document_id)
    return DocumentState(
        document=document,
        blocks=rows,
        role=role,
        latest_version=latest,
        author_name=await _author_name(db, document),
    )


async def list_versions(
    db: AsyncSession, user_id: str, document_id: str
) -> list[tuple[DocumentVersion, str | None]]:
    """List version metadata newest first (viewer or above)."""
    await access.require_access(
        db, user_id, access.ScopeType.DOCUMENT, document_id, READ_ROLE
    )
    return await version_store.list_versions(db, document_id)


async def get_version_detail(
    db: AsyncSession, user_id: str, document_id: str, version_id: str
) -> tuple[DocumentVersion, list[BlockInput]]:
    """Get a version and its decoded blocks for previewing (viewer or above)."""
    await access.require_access(
        db, user_id, access.ScopeType.DOCUMENT, document_id, READ_ROLE
    )
    version = await version_store.get_version(db, document_id, version_id)
    return version, version_store.deserialize_snapshot(version.snapshot)
