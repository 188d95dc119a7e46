"""VisibilityService — decides which folders and files an actor sees.

Two views per item type:

- **mine**: for the owner, everything they created; for a member,
  items assigned to them plus unassigned ("family") items.
- **shared**: the rest of the family's items that carry a sharing flag
  for the actor.  Files also inherit sharing from their direct
  containing folder (one level, not recursive).

Every query is read-only and never raises for authorization reasons:
an unknown actor or one without a family simply sees nothing.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .roles import Role
from .types import (
    FileInfo,
    FolderContents,
    FolderInfo,
    PathEntry,
    PickerEntry,
    Scope,
)
from .utils import matches_term, name_sort_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from familyvault.models.families import UserBase
    from familyvault.models.files import FileBase
    from familyvault.models.folders import FolderBase

    from .store import StoreService

logger = logging.getLogger(__name__)

UNKNOWN_USER_NAME = "Unknown"


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def is_owner(user: UserBase) -> bool:
    return user.role == Role.OWNER.value


def is_unassigned(item: FolderBase | FileBase) -> bool:
    return not item.assigned_to


def is_assigned_to(item: FolderBase | FileBase, user_id: str) -> bool:
    return user_id in (item.assigned_to or [])


def is_shared_with(item: FolderBase | FileBase, user_id: str) -> bool:
    return bool(item.shared_with_family) or user_id in (item.shared_with or [])


def creator_of(item: FolderBase | FileBase) -> str:
    """Creator of a folder or uploader of a file."""
    return item.created_by if hasattr(item, "created_by") else item.uploaded_by  # type: ignore[union-attr]


def is_mine(item: FolderBase | FileBase, user: UserBase) -> bool:
    """Whether *item* belongs in the actor's "mine" view."""
    if is_owner(user):
        return creator_of(item) == user.id
    return is_assigned_to(item, user.id) or is_unassigned(item)


def is_share_candidate(item: FolderBase | FileBase, user: UserBase) -> bool:
    """Items not already surfaced by "mine" for any role."""
    if creator_of(item) == user.id:
        return False
    if is_assigned_to(item, user.id):
        return False
    return not is_unassigned(item)


def can_access_folder(folder: FolderBase, user: UserBase) -> bool:
    """Whether *user* may open *folder* (creator, assignee, family folder, or shared)."""
    return (
        folder.created_by == user.id
        or is_assigned_to(folder, user.id)
        or is_unassigned(folder)
        or is_shared_with(folder, user.id)
    )


class VisibilityService:
    """Pure read-side computation over a store snapshot."""

    def __init__(self, store: StoreService) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Scope helpers
    # ------------------------------------------------------------------

    async def _folders_in_scope(
        self, session: AsyncSession, family_id: str, scope: Scope
    ) -> list[FolderBase]:
        if scope.all_levels:
            return await self._store.folders_by_family(session, family_id)
        return await self._store.folders_by_parent(session, family_id, scope.folder_id)

    async def _files_in_scope(
        self, session: AsyncSession, family_id: str, scope: Scope
    ) -> list[FileBase]:
        if scope.all_levels:
            return await self._store.files_by_family(session, family_id)
        return await self._store.files_by_folder(session, family_id, scope.folder_id)

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def _user_names(self, session: AsyncSession, ids: Iterable[str]) -> dict[str, str]:
        users = await self._store.get_users(session, ids)
        return {uid: u.name for uid, u in users.items()}

    async def folder_infos(
        self,
        session: AsyncSession,
        folders: list[FolderBase],
        *,
        with_creator: bool = False,
    ) -> list[FolderInfo]:
        """Enrich folders with assignee names, item counts and optionally creator name."""
        ids: set[str] = set()
        for folder in folders:
            ids.update(folder.assigned_to or [])
            if with_creator:
                ids.add(folder.created_by)
        names = await self._user_names(session, ids)

        infos: list[FolderInfo] = []
        for folder in sorted(folders, key=name_sort_key):
            assigned = list(folder.assigned_to or [])
            infos.append(
                FolderInfo(
                    id=folder.id,
                    name=folder.name,
                    family_id=folder.family_id,
                    parent_folder_id=folder.parent_folder_id,
                    created_by=folder.created_by,
                    assigned_to=assigned,
                    assignee_names=[names[a] for a in assigned if a in names],
                    shared_with_family=folder.shared_with_family,
                    shared_with=list(folder.shared_with or []),
                    item_count=await self._store.count_children(session, folder),
                    creator_name=(
                        names.get(folder.created_by, UNKNOWN_USER_NAME) if with_creator else None
                    ),
                    created_at=folder.created_at,
                )
            )
        return infos

    async def file_infos(
        self,
        session: AsyncSession,
        files: list[FileBase],
        *,
        with_uploader: bool = False,
        sort: bool = True,
    ) -> list[FileInfo]:
        """Enrich files with assignee name and optionally uploader name."""
        ids: set[str] = set()
        for file in files:
            ids.update(file.assigned_to or [])
            if with_uploader:
                ids.add(file.uploaded_by)
        names = await self._user_names(session, ids)

        ordered = sorted(files, key=name_sort_key) if sort else files
        infos: list[FileInfo] = []
        for file in ordered:
            assignee = file.assigned_to[0] if file.assigned_to else None
            infos.append(
                FileInfo(
                    id=file.id,
                    name=file.name,
                    original_name=file.original_name,
                    family_id=file.family_id,
                    folder_id=file.folder_id,
                    uploaded_by=file.uploaded_by,
                    storage_key=file.storage_key,
                    mime_type=file.mime_type,
                    size=file.size,
                    assigned_to=assignee,
                    assignee_name=names.get(assignee) if assignee else None,
                    shared_with_family=file.shared_with_family,
                    shared_with=list(file.shared_with or []),
                    tags=list(file.tags or []),
                    url=file.url,
                    uploader_name=(
                        names.get(file.uploaded_by, UNKNOWN_USER_NAME) if with_uploader else None
                    ),
                    created_at=file.created_at,
                )
            )
        return infos

    # ------------------------------------------------------------------
    # Folder queries
    # ------------------------------------------------------------------

    async def my_folders(
        self,
        session: AsyncSession,
        user: UserBase | None,
        scope: Scope | None = None,
    ) -> list[FolderInfo]:
        if user is None or not user.family_id:
            return []
        scope = scope or Scope.root()
        folders = await self._folders_in_scope(session, user.family_id, scope)
        visible = [f for f in folders if is_mine(f, user)]
        logger.debug("my_folders: %d of %d visible for %s", len(visible), len(folders), user.id)
        return await self.folder_infos(session, visible)

    async def shared_folders(
        self,
        session: AsyncSession,
        user: UserBase | None,
        scope: Scope | None = None,
    ) -> list[FolderInfo]:
        if user is None or not user.family_id:
            return []
        scope = scope or Scope.root()
        folders = await self._folders_in_scope(session, user.family_id, scope)
        visible = [
            f for f in folders if is_share_candidate(f, user) and is_shared_with(f, user.id)
        ]
        logger.debug("shared_folders: %d visible for %s", len(visible), user.id)
        return await self.folder_infos(session, visible, with_creator=True)

    async def folders_for_picker(
        self, session: AsyncSession, user: UserBase | None
    ) -> list[PickerEntry]:
        """Every folder the owner created, flat, for move/assign pickers."""
        if user is None or not user.family_id or not is_owner(user):
            return []
        folders = await self._store.folders_by_family(session, user.family_id)
        return [
            PickerEntry(
                id=f.id,
                name=f.name,
                parent_folder_id=f.parent_folder_id,
                assigned_to=list(f.assigned_to or []),
            )
            for f in sorted(folders, key=name_sort_key)
            if f.created_by == user.id
        ]

    async def folder_path(
        self,
        session: AsyncSession,
        user: UserBase | None,
        folder_id: str | None,
    ) -> list[PathEntry]:
        """Breadcrumb from the root down to *folder_id*.

        The walk stops at a missing folder or a family boundary and is
        bounded by the family's folder count.
        """
        if not folder_id or user is None or not user.family_id:
            return []
        bound = await self._store.count_folders_in_family(session, user.family_id) + 1
        path: list[PathEntry] = []
        current: str | None = folder_id
        while current and len(path) < bound:
            folder = await self._store.get_folder(session, current)
            if folder is None or folder.family_id != user.family_id:
                break
            path.insert(0, PathEntry(id=folder.id, name=folder.name))
            current = folder.parent_folder_id
        return path

    async def folder_contents(
        self,
        session: AsyncSession,
        user: UserBase | None,
        folder_id: str,
    ) -> FolderContents:
        """A folder with its direct files (newest first) and subfolders (by name)."""
        if user is None or not user.family_id:
            return FolderContents()
        folder = await self._store.get_folder(session, folder_id)
        if folder is None or folder.family_id != user.family_id:
            return FolderContents()
        if not can_access_folder(folder, user):
            return FolderContents()

        files = await self._store.files_by_folder(session, user.family_id, folder.id)
        files.sort(key=lambda f: (f.created_at.timestamp(), f.id), reverse=True)
        subfolders = await self._store.folders_by_parent(session, user.family_id, folder.id)
        (info,) = await self.folder_infos(session, [folder])
        return FolderContents(
            folder=info,
            files=await self.file_infos(session, files, sort=False),
            subfolders=await self.folder_infos(session, subfolders),
        )

    # ------------------------------------------------------------------
    # File queries
    # ------------------------------------------------------------------

    async def my_files(
        self,
        session: AsyncSession,
        user: UserBase | None,
        scope: Scope | None = None,
    ) -> list[FileInfo]:
        if user is None or not user.family_id:
            return []
        scope = scope or Scope.root()
        files = await self._files_in_scope(session, user.family_id, scope)
        visible = [f for f in files if is_mine(f, user)]
        logger.debug("my_files: %d of %d visible for %s", len(visible), len(files), user.id)
        return await self.file_infos(session, visible)

    async def _shared_file_records(
        self,
        session: AsyncSession,
        user: UserBase,
        family_id: str,
        scope: Scope,
    ) -> list[FileBase]:
        files = await self._files_in_scope(session, family_id, scope)
        candidates = [f for f in files if is_share_candidate(f, user)]

        parent_ids = {f.folder_id for f in candidates if f.folder_id and not is_shared_with(f, user.id)}
        shared_parents: set[str] = set()
        for parent_id in parent_ids:
            parent = await self._store.get_folder(session, parent_id)
            if (
                parent is not None
                and parent.family_id == family_id
                and is_shared_with(parent, user.id)
            ):
                shared_parents.add(parent_id)

        return [
            f
            for f in candidates
            if is_shared_with(f, user.id) or (f.folder_id is not None and f.folder_id in shared_parents)
        ]

    async def shared_files(
        self,
        session: AsyncSession,
        user: UserBase | None,
        scope: Scope | None = None,
    ) -> list[FileInfo]:
        if user is None or not user.family_id:
            return []
        visible = await self._shared_file_records(
            session, user, user.family_id, scope or Scope.root()
        )
        logger.debug("shared_files: %d visible for %s", len(visible), user.id)
        return await self.file_infos(session, visible, with_uploader=True)

    async def search_files(
        self,
        session: AsyncSession,
        user: UserBase | None,
        term: str,
    ) -> list[FileInfo]:
        """Substring search over the actor's mine + shared files, family-wide.

        Matches name, tags, containing folder name and assignee name.
        """
        if user is None or not user.family_id:
            return []
        everywhere = Scope.everywhere()
        found: dict[str, FileInfo] = {}
        for info in await self.my_files(session, user, everywhere):
            found[info.id] = info
        for info in await self.shared_files(session, user, everywhere):
            found.setdefault(info.id, info)

        folder_names = {
            f.id: f.name for f in await self._store.folders_by_family(session, user.family_id)
        }
        hits = [
            info
            for info in found.values()
            if matches_term(
                term,
                info.name,
                info.assignee_name,
                folder_names.get(info.folder_id) if info.folder_id else None,
                *info.tags,
            )
        ]
        return sorted(hits, key=name_sort_key)
