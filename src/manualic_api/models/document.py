"""Document model.

A document has no body column: its rendered state is exactly its current
set of blocks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from manualic_api.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    generate_uuid,
)
from manualic_api.models.enums import DocumentStatus, DocumentVisibility

if TYPE_CHECKING:
    from manualic_api.models.block import Block
    from manualic_api.models.category import Category
    from manualic_api.models.document_version import DocumentVersion
    from manualic_api.models.user import User


class Document(Base, TimestampMixin, UpdatedAtMixin):
    """Manual page belonging to one category."""

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    category_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False, index=True)
    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=DocumentStatus.DRAFT,
    )
    visibility: Mapped[DocumentVisibility] = mapped_column(
        Enum(DocumentVisibility, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=DocumentVisibility.PRIVATE,
        index=True,
    )
    created_by_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    category: Mapped[Category] = relationship(back_populates="documents")
    created_by: Mapped[User] = relationship()
    blocks: Mapped[list[Block]] = relationship(
        back_populates="document",
        order_by="Block.sort_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    versions: Mapped[list[DocumentVersion]] = relationship(
        back_populates="document",
        order_by="DocumentVersion.version_number",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
