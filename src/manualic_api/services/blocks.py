"""Ordered block storage for a single document.

Saves are full replacements: the caller always submits the complete
desired block list and every row is rewritten with sort orders 1..N.
Block lists are small, so the O(N) rewrite is cheaper than reasoning
about concurrent moves.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from manualic_api.models import Block, Document
from manualic_api.schemas import BlockInput
from manualic_api.services.errors import InvalidBlockError, ResourceNotFoundError

logger = logging.getLogger(__name__)


def validate_blocks(
    blocks: Sequence[BlockInput | Mapping[str, Any]],
) -> list[BlockInput]:
    """Coerce raw block entries into validated inputs.

    Raises:
        InvalidBlockError: On the first malformed entry
    """
    validated: list[BlockInput] = []
    for position, block in enumerate(blocks, start=1):
        if isinstance(block, BlockInput):
            validated.append(block)
            continue
        try:
            validated.append(BlockInput.model_validate(block))
        except ValidationError as e:
            errors = "; ".join(err["msg"] for err in e.errors())
            raise InvalidBlockError(f"Block {position} is invalid: {errors}") from e
    return validated


async def list_blocks(db: AsyncSession, document_id: str) -> list[Block]:
    """Get a document's blocks in sort order."""
    result = await db.execute(
        select(Block)
        .where(Block.document_id == document_id)
        .order_by(Block.sort_order)
    )
    return list(result.scalars().all())


async def replace_all(
    db: AsyncSession,
    document_id: str,
    blocks: Sequence[BlockInput | Mapping[str, Any]],
) -> list[Block]:
    """Replace every block of a document with ``blocks``, in input order.

    Does not commit; the caller owns the transaction. Access must already
    have been checked.

    Returns:
        The inserted rows ordered by sort_order (1..N)

    Raises:
        InvalidBlockError: If any entry is malformed (nothing is written)
        ResourceNotFoundError: If the document does not exist
    """
    inputs = validate_blocks(blocks)

    document = await db.get(Document, document_id)
    if document is None:
        raise ResourceNotFoundError("Document not found")

    await db.execute(delete(Block).where(Block.document_id == document_id))

    rows = [
        Block(
            document_id=document_id,
            block_type=block.block_type,
            content=block.content,
            file_url=block.file_url,
            file_name=block.file_name,
            file_size=block.file_size,
            block_metadata=block.metadata,
            sort_order=position,
        )
        for position, block in enumerate(inputs, start=1)
    ]
    db.add_all(rows)
    await db.flush()

    logger.debug("Replaced blocks of document %s (%d blocks)", document_id, len(rows))
    return rows
