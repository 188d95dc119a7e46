"""Core layer — identity, store, visibility, mutations, bulk operations."""

from familyvault.core.bulk import BulkCoordinator
from familyvault.core.exceptions import (
    FamilyVaultError,
    ForbiddenError,
    InvalidOperationError,
    NotAuthenticatedError,
    NotFoundError,
    NotInFamilyError,
)
from familyvault.core.identity import IdentityService
from familyvault.core.membership import MembershipService
from familyvault.core.mutations import MutationEngine
from familyvault.core.roles import Role
from familyvault.core.store import StoreService
from familyvault.core.types import (
    BulkOutcome,
    BulkResult,
    DeleteResult,
    FileInfo,
    FolderContents,
    FolderInfo,
    MemberInfo,
    PathEntry,
    PickerEntry,
    Scope,
    UserWithFamily,
)
from familyvault.core.visibility import VisibilityService

__all__ = [
    "BulkCoordinator",
    "BulkOutcome",
    "BulkResult",
    "DeleteResult",
    "FamilyVaultError",
    "FileInfo",
    "FolderContents",
    "FolderInfo",
    "ForbiddenError",
    "IdentityService",
    "InvalidOperationError",
    "MemberInfo",
    "MembershipService",
    "MutationEngine",
    "NotAuthenticatedError",
    "NotFoundError",
    "NotInFamilyError",
    "PathEntry",
    "PickerEntry",
    "Role",
    "Scope",
    "StoreService",
    "UserWithFamily",
    "VisibilityService",
]
