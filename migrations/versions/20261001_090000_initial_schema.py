"""Initial schema: workspaces, categories, documents, blocks and versions.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-01 09:00:00

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    """Create the document management schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("display_name", sa.String(255), nullable=True),
        _timestamp("created_at"),
    )

    op.create_table(
        "workspaces",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "owner_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "status",
            sa.Enum("active", "inactive", "archived", name="workspacestatus"),
            nullable=False,
            server_default="active",
            index=True,
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    # Owner is implicit and never stored as a member
    op.create_table(
        "workspace_members",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "workspace_id",
            sa.String(36),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "role",
            sa.Enum(
                "viewer", "writer", "editor", "admin", "owner", name="workspacerole"
            ),
            nullable=False,
            server_default="viewer",
        ),
        sa.Column(
            "invited_by_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _timestamp("created_at"),
        sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
        sa.CheckConstraint("role <> 'owner'", name="ck_workspace_member_not_owner"),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "workspace_id",
            sa.String(36),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index(
        "ix_categories_workspace_sort", "categories", ["workspace_id", "sort_order"]
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "category_id",
            sa.String(36),
            sa.ForeignKey("categories.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("title", sa.String(300), nullable=False, index=True),
        sa.Column(
            "status",
            sa.Enum("draft", "published", "archived", name="documentstatus"),
            nullable=False,
            server_default="draft",
        ),
        sa.Column(
            "visibility",
            sa.Enum(
                "private", "public_free", "public_paid", name="documentvisibility"
            ),
            nullable=False,
            server_default="private",
            index=True,
        ),
        sa.Column(
            "created_by_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "blocks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "document_id",
            sa.String(36),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "block_type",
            sa.Enum("text", "image", "file", name="blocktype"),
            nullable=False,
        ),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        sa.Column("file_url", sa.String(500), nullable=True),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("file_size", sa.Integer, nullable=True),
        sa.Column("metadata", sa.JSON, nullable=True),
        sa.Column("sort_order", sa.Integer, nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint(
            "document_id", "sort_order", name="uq_block_document_order"
        ),
    )

    # The unique constraint serializes concurrent version numbering
    op.create_table(
        "document_versions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "document_id",
            sa.String(36),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("version_number", sa.Integer, nullable=False),
        sa.Column("snapshot", sa.Text, nullable=False),
        sa.Column("change_summary", sa.Text, nullable=True),
        sa.Column(
            "created_by_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _timestamp("created_at"),
        sa.UniqueConstraint(
            "document_id", "version_number", name="uq_document_version_number"
        ),
    )


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_table("document_versions")
    op.drop_table("blocks")
    op.drop_table("documents")
    op.drop_index("ix_categories_workspace_sort", table_name="categories")
    op.drop_table("categories")
    op.drop_table("workspace_members")
    op.drop_table("workspaces")
    op.drop_table("users")

    for enum_name in (
        "blocktype",
        "documentvisibility",
        "documentstatus",
        "workspacerole",
        "workspacestatus",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
