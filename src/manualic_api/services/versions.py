"""Document version archiving and restoring.

A version is an immutable JSON snapshot of a document's block list. Version
numbers are assigned as ``max + 1`` per document; the unique constraint on
(document_id, version_number) rejects the loser of a concurrent race, which
surfaces here as VersionConflictError.

Snapshot payload (format 1)::

    {"format": 1, "blocks": [{"block_type": "text", "content": "...", ...}]}

Older payloads that are a bare JSON array of block rows are still readable.
"""

import json
import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from manualic_api.models import Block, DocumentVersion, User
from manualic_api.schemas import BlockInput
from manualic_api.services import blocks as block_store
from manualic_api.services.errors import (
    InvalidBlockError,
    ResourceNotFoundError,
    SnapshotFormatError,
    VersionConflictError,
)

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT = 1


def serialize_blocks(blocks: Sequence[Block]) -> str:
    """Serialize stored blocks into a snapshot payload."""
    entries = [
        BlockInput(
            block_type=block.block_type,
            content=block.content,
            file_url=block.file_url,
            file_name=block.file_name,
            file_size=block.file_size,
            metadata=block.block_metadata,
        ).model_dump(mode="json")
        for block in blocks
    ]
    return json.dumps({"format": SNAPSHOT_FORMAT, "blocks": entries})


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def deserialize_snapshot(payload: str) -> list[BlockInput]:
    """Decode a snapshot payload back into an ordered block input list.

    Raises:
        SnapshotFormatError: If the payload is not a recognised snapshot
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise SnapshotFormatError(f"Snapshot is not valid JSON: {e}") from e

    entries: Any
    if isinstance(data, list):
        # Legacy: raw block rows, possibly unordered. Rows without an integer
        # sort_order keep their stored order.
        entries = data
        if all(
            isinstance(e, dict) and _is_int(e.get("sort_order")) for e in entries
        ):
            entries = sorted(entries, key=lambda e: e["sort_order"])
    elif isinstance(data, dict) and data.get("format") == SNAPSHOT_FORMAT:
        entries = data.get("blocks")
    else:
        raise SnapshotFormatError("Unrecognised snapshot format")

    if not isinstance(entries, list):
        raise SnapshotFormatError("Snapshot has no block list")

    try:
        return block_store.validate_blocks(entries)
    except InvalidBlockError as e:
        raise SnapshotFormatError(f"Snapshot contains an invalid block: {e}") from e


async def next_version_number(db: AsyncSession, document_id: str) -> int:
    """Get the number the next version of a document would take."""
    return (await latest_version_number(db, document_id) or 0) + 1


async def snapshot(
    db: AsyncSession,
    document_id: str,
    acting_user_id: str,
    change_summary: str | None = None,
) -> DocumentVersion:
    """Archive the document's current blocks as a new version.

    Must run before the blocks are replaced. The row is flushed immediately
    so a number collision is detected before any block is touched.

    Raises:
        VersionConflictError: If a concurrent writer took the same number
    """
    current = await block_store.list_blocks(db, document_id)
    version_number = await next_version_number(db, document_id)

    version = DocumentVersion(
        document_id=document_id,
        version_number=version_number,
        snapshot=serialize_blocks(current),
        change_summary=change_summary,
        created_by_id=acting_user_id,
    )
    db.add(version)
    try:
        await db.flush()
    except IntegrityError as e:
        # Another transaction took this number first
        if "version_number" in str(e):
            raise VersionConflictError(document_id, version_number) from e
        raise

    logger.info(
        "Archived document %s as version %d (%d blocks)",
        document_id,
        version_number,
        len(current),
    )
    return version


async def get_version(
    db: AsyncSession, document_id: str, version_id: str
) -> DocumentVersion:
    """Get a version, insisting it belongs to ``document_id``.

    Raises:
        ResourceNotFoundError: If missing or owned by another document
    """
    version = await db.get(DocumentVersion, version_id)
    if version is None or version.document_id != document_id:
        raise ResourceNotFoundError("Version not found")
    return version


async def list_versions(
    db: AsyncSession, document_id: str
) -> list[tuple[DocumentVersion, str | None]]:
    """List a document's versions newest first, with creator display names."""
    result = await db.execute(
        select(DocumentVersion, User.display_name)
        .outerjoin(User, User.id == DocumentVersion.created_by_id)
        .where(DocumentVersion.document_id == document_id)
        .order_by(DocumentVersion.version_number.desc())
    )
    return [(version, name) for version, name in result.all()]


async def latest_version_number(db: AsyncSession, document_id: str) -> int | None:
    """Get the highest version number of a document, if any."""
    result = await db.execute(
        select(func.max(DocumentVersion.version_number)).where(
            DocumentVersion.document_id == document_id
        )
    )
    return result.scalar()


async def restore(
    db: AsyncSession,
    document_id: str,
    version_id: str,
    acting_user_id: str,
) -> list[Block]:
    """Replace the document's blocks with a version's snapshot.

    Only reads the version table. Restoring the latest version still runs
    the full replace.

    Raises:
        ResourceNotFoundError: If the version does not belong to the document
        SnapshotFormatError: If the stored snapshot cannot be decoded
    """
    version = await get_version(db, document_id, version_id)
    inputs = deserialize_snapshot(version.snapshot)
    rows = await block_store.replace_all(db, document_id, inputs)
    logger.debug(
        "User %s restored document %s from version %d (%d blocks)",
        acting_user_id,
        document_id,
        version.version_number,
        len(rows),
    )
    return rows
