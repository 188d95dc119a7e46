"""Result types: FolderInfo, FileInfo, DeleteResult, BulkResult, etc."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True)
class Scope:
    """Which part of the folder tree a visibility query covers.

    ``Scope.root()`` covers root-level items, ``Scope.at(folder_id)`` the
    direct children of one folder, and ``Scope.everywhere()`` the whole
    family.
    """

    folder_id: str | None = None
    all_levels: bool = False

    @classmethod
    def root(cls) -> Scope:
        return cls()

    @classmethod
    def at(cls, folder_id: str | None) -> Scope:
        return cls(folder_id=folder_id)

    @classmethod
    def everywhere(cls) -> Scope:
        return cls(all_levels=True)


@dataclass
class MemberInfo:
    """Family member as shown in member lists."""

    id: str
    name: str
    email: str
    role: str | None = None
    image_url: str | None = None


@dataclass
class FolderInfo:
    """Folder metadata enriched for display."""

    id: str
    name: str
    family_id: str
    parent_folder_id: str | None
    created_by: str
    assigned_to: list[str] = field(default_factory=list)
    assignee_names: list[str] = field(default_factory=list)
    shared_with_family: bool = False
    shared_with: list[str] = field(default_factory=list)
    item_count: int = 0
    creator_name: str | None = None
    created_at: datetime | None = None


@dataclass
class FileInfo:
    """File metadata enriched for display."""

    id: str
    name: str
    original_name: str
    family_id: str
    folder_id: str | None
    uploaded_by: str
    storage_key: str
    mime_type: str
    size: int
    assigned_to: str | None = None
    assignee_name: str | None = None
    shared_with_family: bool = False
    shared_with: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    url: str | None = None
    uploader_name: str | None = None
    created_at: datetime | None = None


@dataclass
class PickerEntry:
    """Minimal folder entry for move/assign pickers."""

    id: str
    name: str
    parent_folder_id: str | None
    assigned_to: list[str] = field(default_factory=list)


@dataclass
class PathEntry:
    """One breadcrumb element."""

    id: str
    name: str


@dataclass
class FolderContents:
    """A folder with its direct files and subfolders."""

    folder: FolderInfo | None = None
    files: list[FileInfo] = field(default_factory=list)
    subfolders: list[FolderInfo] = field(default_factory=list)


@dataclass
class DeleteResult:
    """Result of a delete operation.

    ``storage_keys`` lists the external object handles of every removed
    file; the caller purges them from object storage.
    """

    storage_keys: list[str] = field(default_factory=list)
    folders_deleted: int = 0
    files_deleted: int = 0
    items_promoted: int = 0


@dataclass
class BulkOutcome:
    """Per-id outcome of a bulk operation."""

    item_id: str
    succeeded: bool
    reason: str | None = None


@dataclass
class BulkResult:
    """Aggregate result of a bulk operation.

    Skipped ids never raise; they only show up in ``skipped``.
    """

    storage_keys: list[str] = field(default_factory=list)
    succeeded: list[str] = field(default_factory=list)
    skipped: list[BulkOutcome] = field(default_factory=list)

    @property
    def outcomes(self) -> list[BulkOutcome]:
        done = [BulkOutcome(item_id=i, succeeded=True) for i in self.succeeded]
        return done + self.skipped


@dataclass
class UserWithFamily:
    """A user together with their family and its members."""

    user: MemberInfo | None = None
    family_id: str | None = None
    family_name: str | None = None
    invite_code: str | None = None
    members: list[MemberInfo] = field(default_factory=list)
