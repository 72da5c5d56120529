"""User model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from manualic_api.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from manualic_api.models.workspace_member import WorkspaceMember


class User(Base, TimestampMixin):
    """User entity.

    Credentials live with the authentication collaborator; this row only
    anchors ownership, membership and authorship.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    display_name: Mapped[str | None] = mapped_column(String(255))

    # Relationships
    memberships: Mapped[list[WorkspaceMember]] = relationship(
        back_populates="user",
        foreign_keys="WorkspaceMember.user_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
