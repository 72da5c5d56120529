"""Effective role resolution for workspaces, categories and documents.

Every scope belongs to exactly one workspace. The workspace owner always
resolves to ``owner``; everyone else gets the role on their membership row,
or no role at all. Nothing here writes to the database.
"""

import enum
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from manualic_api.models import (
    Category,
    Document,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
)
from manualic_api.services.errors import AccessDeniedError, ResourceNotFoundError

logger = logging.getLogger(__name__)


class ScopeType(str, enum.Enum):
    """Kind of resource a role is resolved against."""

    WORKSPACE = "workspace"
    CATEGORY = "category"
    DOCUMENT = "document"


def role_satisfies(role: WorkspaceRole | None, required_role: WorkspaceRole) -> bool:
    """Check whether ``role`` grants at least ``required_role``.

    No role never satisfies anything.
    """
    if role is None:
        return False
    return role.rank >= required_role.rank


async def get_owning_workspace(
    db: AsyncSession,
    scope_type: ScopeType,
    scope_id: str,
) -> Workspace:
    """Walk document -> category -> workspace to find the owning workspace.

    Raises:
        ResourceNotFoundError: If the scope itself does not exist
    """
    stmt = select(Workspace)
    if scope_type == ScopeType.WORKSPACE:
        stmt = stmt.where(Workspace.id == scope_id)
    elif scope_type == ScopeType.CATEGORY:
        stmt = stmt.join(Category, Category.workspace_id == Workspace.id).where(
            Category.id == scope_id
        )
    else:
        stmt = (
            stmt.join(Category, Category.workspace_id == Workspace.id)
            .join(Document, Document.category_id == Category.id)
            .where(Document.id == scope_id)
        )

    result = await db.execute(stmt)
    workspace = result.scalar_one_or_none()
    if workspace is None:
        raise ResourceNotFoundError(f"{scope_type.value.capitalize()} not found")
    return workspace


async def get_membership(
    db: AsyncSession, user_id: str, workspace_id: str
) -> WorkspaceMember | None:
    """Get user's membership in a workspace."""
    result = await db.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.user_id == user_id,
            WorkspaceMember.workspace_id == workspace_id,
        )
    )
    return result.scalar_one_or_none()


async def resolve_role(
    db: AsyncSession,
    user_id: str,
    scope_type: ScopeType,
    scope_id: str,
) -> WorkspaceRole | None:
    """Compute the caller's effective role for a scope.

    Returns None when the user has no relationship with the workspace.
    The owner check comes first so an owner keeps access even if a stray
    membership row exists or is removed.
    """
    workspace = await get_owning_workspace(db, scope_type, scope_id)
    if workspace.owner_id == user_id:
        return WorkspaceRole.OWNER

    membership = await get_membership(db, user_id, workspace.id)
    if membership is None:
        return None
    return membership.role


async def has_access(
    db: AsyncSession,
    user_id: str,
    scope_type: ScopeType,
    scope_id: str,
    required_role: WorkspaceRole,
) -> bool:
    """Check if the caller's effective role meets ``required_role``."""
    role = await resolve_role(db, user_id, scope_type, scope_id)
    return role_satisfies(role, required_role)


async def require_access(
    db: AsyncSession,
    user_id: str,
    scope_type: ScopeType,
    scope_id: str,
    required_role: WorkspaceRole,
) -> WorkspaceRole:
    """Require the caller has at least ``required_role`` on a scope.

    Returns the effective role.

    Raises:
        ResourceNotFoundError: If the scope does not exist
        AccessDeniedError: If the role is missing or insufficient
    """
    role = await resolve_role(db, user_id, scope_type, scope_id)
    if not role_satisfies(role, required_role):
        logger.warning(
            "User %s denied %s access to %s %s (role=%s)",
            user_id,
            required_role.value,
            scope_type.value,
            scope_id,
            role.value if role else None,
        )
        raise AccessDeniedError()
    return role
