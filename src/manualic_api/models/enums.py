"""Enumeration types for database models."""

import enum


class WorkspaceRole(str, enum.Enum):
    """Role of a user within a workspace, in ascending order of capability.

    ``OWNER`` is never stored as a membership row; it is derived from
    ``Workspace.owner_id``.
    """

    VIEWER = "viewer"  # Read documents
    WRITER = "writer"  # Create documents and save blocks
    EDITOR = "editor"  # Delete documents
    ADMIN = "admin"  # Manage members and categories
    OWNER = "owner"  # Final authority, implicit

    @property
    def rank(self) -> int:
        """Position of this role in the capability order."""
        return ROLE_RANK[self]


ROLE_RANK: dict[WorkspaceRole, int] = {
    WorkspaceRole.VIEWER: 0,
    WorkspaceRole.WRITER: 1,
    WorkspaceRole.EDITOR: 2,
    WorkspaceRole.ADMIN: 3,
    WorkspaceRole.OWNER: 4,
}


class WorkspaceStatus(str, enum.Enum):
    """Lifecycle status of a workspace."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class DocumentStatus(str, enum.Enum):
    """Publication status of a document."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class DocumentVisibility(str, enum.Enum):
    """Who may read a document outside its workspace."""

    PRIVATE = "private"
    PUBLIC_FREE = "public_free"
    PUBLIC_PAID = "public_paid"


class BlockType(str, enum.Enum):
    """Kind of content a block carries."""

    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
