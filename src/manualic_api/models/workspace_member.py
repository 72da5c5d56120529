"""WorkspaceMember model for user-workspace relationships."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from manualic_api.models.base import Base, TimestampMixin, generate_uuid
from manualic_api.models.enums import WorkspaceRole

if TYPE_CHECKING:
    from manualic_api.models.user import User
    from manualic_api.models.workspace import Workspace


class WorkspaceMember(Base, TimestampMixin):
    """Junction table for user-workspace membership with roles.

    Users can have different roles in different workspaces. The owner role
    is implicit and cannot be stored here.
    """

    __tablename__ = "workspace_members"
    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
        CheckConstraint("role <> 'owner'", name="ck_workspace_member_not_owner"),
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
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[WorkspaceRole] = mapped_column(
        Enum(WorkspaceRole, values_callable=lambda e: [x.value for x in e]),
        nullable=False,
        default=WorkspaceRole.VIEWER,
    )
    invited_by_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    workspace: Mapped[Workspace] = relationship(back_populates="members")
    user: Mapped[User] = relationship(
        back_populates="memberships", foreign_keys=[user_id]
    )
