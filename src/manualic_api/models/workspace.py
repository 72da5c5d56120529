"""Workspace model, the top-level tenant container."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from manualic_api.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    generate_uuid,
)
from manualic_api.models.enums import WorkspaceStatus

if TYPE_CHECKING:
    from manualic_api.models.category import Category
    from manualic_api.models.user import User
    from manualic_api.models.workspace_member import WorkspaceMember


class Workspace(Base, TimestampMixin, UpdatedAtMixin):
    """Project container owned by exactly one user.

    The owner is final authority over the workspace and is never stored
    as a membership row.
    """

    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    owner_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[WorkspaceStatus] = mapped_column(
        Enum(WorkspaceStatus, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=WorkspaceStatus.ACTIVE,
        index=True,
    )

    # Relationships
    owner: Mapped[User] = relationship()
    members: Mapped[list[WorkspaceMember]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    categories: Mapped[list[Category]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
