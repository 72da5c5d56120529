"""Category model grouping documents inside a workspace."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from manualic_api.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    generate_uuid,
)

if TYPE_CHECKING:
    from manualic_api.models.document import Document
    from manualic_api.models.workspace import Workspace


class Category(Base, TimestampMixin, UpdatedAtMixin):
    """Section of a workspace. Deleting it removes its documents."""

    __tablename__ = "categories"
    __table_args__ = (
        # Best-effort ordering only, deliberately not unique
        Index("ix_categories_workspace_sort", "workspace_id", "sort_order"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(nullable=False, default=0)

    # Relationships
    workspace: Mapped[Workspace] = relationship(back_populates="categories")
    documents: Mapped[list[Document]] = relationship(
        back_populates="category",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
