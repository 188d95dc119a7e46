"""familyvault: shared family file storage.

Folder/file visibility and authorization-checked mutations for a small
group with one owner and many members.
"""

__version__ = "0.1.0"

from familyvault._vault import FamilyVault
from familyvault._vault_async import FamilyVaultAsync
from familyvault.core.exceptions import (
    FamilyVaultError,
    ForbiddenError,
    InvalidOperationError,
    NotAuthenticatedError,
    NotFoundError,
    NotInFamilyError,
)
from familyvault.core.roles import Role
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
from familyvault.events import EventBus, EventType, VaultEvent

__all__ = [
    "BulkOutcome",
    "BulkResult",
    "DeleteResult",
    "EventBus",
    "EventType",
    "FamilyVault",
    "FamilyVaultAsync",
    "FamilyVaultError",
    "FileInfo",
    "FolderContents",
    "FolderInfo",
    "ForbiddenError",
    "InvalidOperationError",
    "MemberInfo",
    "NotAuthenticatedError",
    "NotFoundError",
    "NotInFamilyError",
    "PathEntry",
    "PickerEntry",
    "Role",
    "Scope",
    "UserWithFamily",
    "VaultEvent",
    "__version__",
]
