"""Block model: one ordered content unit of a document."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from manualic_api.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    generate_uuid,
)
from manualic_api.models.enums import BlockType

if TYPE_CHECKING:
    from manualic_api.models.document import Document


class Block(Base, TimestampMixin, UpdatedAtMixin):
    """A text, image or file block.

    sort_order is 1-based and dense per document after every write.
    """

    __tablename__ = "blocks"
    __table_args__ = (
        UniqueConstraint("document_id", "sort_order", name="uq_block_document_order"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    document_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    block_type: Mapped[BlockType] = mapped_column(
        Enum(BlockType, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    file_url: Mapped[str | None] = mapped_column(String(500))
    file_name: Mapped[str | None] = mapped_column(String(255))
    file_size: Mapped[int | None] = mapped_column()
    # "metadata" is reserved on declarative classes
    block_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON)
    sort_order: Mapped[int] = mapped_column(nullable=False)

    # Relationships
    document: Mapped[Document] = relationship(back_populates="blocks")
