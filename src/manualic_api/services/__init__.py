"""Service layer: access resolution, block storage and versioning."""

from manualic_api.services.access import ScopeType, has_access, resolve_role
from manualic_api.services.documents import restore_version, save_blocks

__all__ = [
    "ScopeType",
    "has_access",
    "resolve_role",
    "restore_version",
    "save_blocks",
]
