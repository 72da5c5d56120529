"""Database models."""

from manualic_api.models.base import Base, TimestampMixin, UpdatedAtMixin
from manualic_api.models.block import Block
from manualic_api.models.category import Category
from manualic_api.models.document import Document
from manualic_api.models.document_version import DocumentVersion
from manualic_api.models.enums import (
    ROLE_RANK,
    BlockType,
    DocumentStatus,
    DocumentVisibility,
    WorkspaceRole,
    WorkspaceStatus,
)
from manualic_api.models.user import User
from manualic_api.models.workspace import Workspace
from manualic_api.models.workspace_member import WorkspaceMember

__all__ = [
    "ROLE_RANK",
    "Base",
    "Block",
    "BlockType",
    "Category",
    "Document",
    "DocumentStatus",
    "DocumentVersion",
    "DocumentVisibility",
    "TimestampMixin",
    "UpdatedAtMixin",
    "User",
    "Workspace",
    "WorkspaceMember",
    "WorkspaceRole",
    "WorkspaceStatus",
]
