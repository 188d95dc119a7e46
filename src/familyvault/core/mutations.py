"""MutationEngine — authorization-checked state transitions.

Every operation follows the same shape: the caller must belong to a
family, the target must exist inside that family (anything else is
``NotFoundError``), then the per-operation rule applies.  Checks run
before any write, so a failing operation leaves no partial state.
Writes flush but do not commit; the caller owns the transaction.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import ForbiddenError, InvalidOperationError, NotFoundError
from .types import DeleteResult
from .utils import normalize_ids, normalize_tags, validate_name
from .visibility import is_assigned_to, is_owner

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from familyvault.models.families import UserBase
    from familyvault.models.files import FileBase
    from familyvault.models.folders import FolderBase

    from .identity import IdentityService
    from .store import StoreService

logger = logging.getLogger(__name__)


def _clean_name(name: str) -> str:
    valid, error = validate_name(name)
    if not valid:
        raise InvalidOperationError(error)
    return name.strip()


def _single_assignee(assigned_to: str | Sequence[str] | None) -> list[str]:
    """Normalize a file assignment to a list of at most one id."""
    if assigned_to is None:
        return []
    if isinstance(assigned_to, str):
        return [assigned_to] if assigned_to else []
    ids = normalize_ids(assigned_to)
    if len(ids) > 1:
        raise InvalidOperationError("a file can be assigned to at most one user")
    return ids


class MutationEngine:
    """Create, rename, move, delete, assign, share, and tag folders and files."""

    def __init__(self, store: StoreService, identity: IdentityService) -> None:
        self._store = store
        self._identity = identity

    # ------------------------------------------------------------------
    # Authorization helpers
    # ------------------------------------------------------------------

    def _require_owner(self, user: UserBase) -> str:
        family_id = self._identity.require_family(user)
        if not is_owner(user):
            raise ForbiddenError("only the family owner can do this")
        return family_id

    async def _load_folder(
        self, session: AsyncSession, family_id: str, folder_id: str | None
    ) -> FolderBase:
        folder = await self._store.get_folder(session, folder_id)
        if folder is None or folder.family_id != family_id:
            raise NotFoundError(f"folder not found: {folder_id}")
        return folder

    async def _load_file(
        self, session: AsyncSession, family_id: str, file_id: str | None
    ) -> FileBase:
        file = await self._store.get_file(session, file_id)
        if file is None or file.family_id != family_id:
            raise NotFoundError(f"file not found: {file_id}")
        return file

    async def _owned_folder(
        self, session: AsyncSession, user: UserBase, folder_id: str, action: str
    ) -> FolderBase:
        """Load a folder the caller may restructure: owner and creator."""
        family_id = self._identity.require_family(user)
        folder = await self._load_folder(session, family_id, folder_id)
        if not is_owner(user) or folder.created_by != user.id:
            raise ForbiddenError(f"not authorized to {action} this folder")
        return folder

    async def _owned_file(
        self, session: AsyncSession, user: UserBase, file_id: str, action: str
    ) -> FileBase:
        """Load a file the caller may restructure: owner and uploader."""
        family_id = self._identity.require_family(user)
        file = await self._load_file(session, family_id, file_id)
        if not is_owner(user) or file.uploaded_by != user.id:
            raise ForbiddenError(f"not authorized to {action} this file")
        return file

    async def _validate_members(
        self, session: AsyncSession, family_id: str, user_ids: list[str]
    ) -> None:
        """Every id must be a user in *family_id*."""
        if not user_ids:
            return
        users = await self._store.get_users(session, user_ids)
        strangers = [uid for uid in user_ids if uid not in users or users[uid].family_id != family_id]
        if strangers:
            raise InvalidOperationError(f"not members of this family: {', '.join(strangers)}")

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    async def create_folder(
        self,
        session: AsyncSession,
        user: UserBase,
        name: str,
        parent_folder_id: str | None = None,
        assigned_to: Sequence[str] | None = None,
    ) -> FolderBase:
        family_id = self._require_owner(user)
        clean = _clean_name(name)
        if parent_folder_id is not None:
            await self._load_folder(session, family_id, parent_folder_id)
        assignees = normalize_ids(assigned_to)
        await self._validate_members(session, family_id, assignees)

        folder = self._store.folder_model(
            name=clean,
            family_id=family_id,
            parent_folder_id=parent_folder_id,
            created_by=user.id,
            assigned_to=assignees,
            shared_with_family=False,
            shared_with=[],
        )
        await self._store.add(session, folder)
        return folder

    async def rename_folder(
        self, session: AsyncSession, user: UserBase, folder_id: str, new_name: str
    ) -> FolderBase:
        folder = await self._owned_folder(session, user, folder_id, "rename")
        folder.name = _clean_name(new_name)
        await session.flush()
        return folder

    async def move_folder(
        self,
        session: AsyncSession,
        user: UserBase,
        folder_id: str,
        new_parent_folder_id: str | None,
    ) -> FolderBase:
        """Re-parent a folder, rejecting moves into itself or a descendant.

        The ancestor walk from the target is bounded by the family's
        folder count so corrupt (already cyclic) data cannot loop forever.
        """
        folder = await self._owned_folder(session, user, folder_id, "move")

        if new_parent_folder_id is not None:
            await self._load_folder(session, folder.family_id, new_parent_folder_id)
            if new_parent_folder_id == folder.id:
                raise InvalidOperationError("cannot move a folder into itself")

            bound = await self._store.count_folders_in_family(session, folder.family_id) + 1
            steps = 0
            current: str | None = new_parent_folder_id
            while current is not None:
                if current == folder.id:
                    raise InvalidOperationError(
                        "cannot move a folder into itself or its descendants"
                    )
                steps += 1
                if steps > bound:
                    raise InvalidOperationError("folder tree contains a cycle")
                ancestor = await self._store.get_folder(session, current)
                current = ancestor.parent_folder_id if ancestor is not None else None

        folder.parent_folder_id = new_parent_folder_id
        await session.flush()
        logger.info("Moved folder %s under %s", folder.id, new_parent_folder_id or "root")
        return folder

    async def delete_folder(
        self,
        session: AsyncSession,
        user: UserBase,
        folder_id: str,
        delete_contents: bool,
    ) -> DeleteResult:
        """Delete a folder, cascading to its whole subtree or promoting its children.

        With *delete_contents* every descendant folder and file is removed
        and the files' storage keys are returned.  Without it, the direct
        files and subfolders move up to the folder's parent.
        """
        folder = await self._owned_folder(session, user, folder_id, "delete")
        family_id = folder.family_id
        result = DeleteResult()

        if delete_contents:
            # Breadth-first over the subtree; `seen` guards against corrupt cycles
            seen: set[str] = {folder.id}
            queue: list[FolderBase] = [folder]
            doomed: list[FolderBase] = []
            while queue:
                current = queue.pop(0)
                for file in await self._store.files_by_folder(session, family_id, current.id):
                    result.storage_keys.append(file.storage_key)
                    await session.delete(file)
                    result.files_deleted += 1
                for child in await self._store.folders_by_parent(session, family_id, current.id):
                    if child.id in seen:
                        continue
                    seen.add(child.id)
                    queue.append(child)
                    doomed.append(child)
            for child in doomed:
                await session.delete(child)
                result.folders_deleted += 1
        else:
            new_parent = folder.parent_folder_id
            for file in await self._store.files_by_folder(session, family_id, folder.id):
                file.folder_id = new_parent
                result.items_promoted += 1
            for child in await self._store.folders_by_parent(session, family_id, folder.id):
                child.parent_folder_id = new_parent
                result.items_promoted += 1

        await session.delete(folder)
        result.folders_deleted += 1
        await session.flush()
        logger.info(
            "Deleted folder %s (contents=%s): %d folder(s), %d file(s), %d promoted",
            folder_id,
            delete_contents,
            result.folders_deleted,
            result.files_deleted,
            result.items_promoted,
        )
        return result

    async def update_folder_assignment(
        self,
        session: AsyncSession,
        user: UserBase,
        folder_id: str,
        assigned_to: Sequence[str] | None,
    ) -> FolderBase:
        folder = await self._owned_folder(session, user, folder_id, "update")
        assignees = normalize_ids(assigned_to)
        await self._validate_members(session, folder.family_id, assignees)
        folder.assigned_to = assignees
        await session.flush()
        return folder

    async def update_folder_sharing(
        self,
        session: AsyncSession,
        user: UserBase,
        folder_id: str,
        share_with_family: bool,
        shared_with: Sequence[str] | None,
    ) -> FolderBase:
        """Replace both sharing fields. Allowed for the creating owner or an assignee."""
        family_id = self._identity.require_family(user)
        folder = await self._load_folder(session, family_id, folder_id)
        creator = is_owner(user) and folder.created_by == user.id
        if not creator and not is_assigned_to(folder, user.id):
            raise ForbiddenError("not authorized to share this folder")
        recipients = normalize_ids(shared_with)
        await self._validate_members(session, family_id, recipients)
        folder.shared_with_family = bool(share_with_family)
        folder.shared_with = recipients
        await session.flush()
        return folder

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def create_file(
        self,
        session: AsyncSession,
        user: UserBase,
        *,
        name: str,
        storage_key: str,
        original_name: str | None = None,
        mime_type: str = "application/octet-stream",
        size: int = 0,
        url: str | None = None,
        assigned_to: str | Sequence[str] | None = None,
        folder_id: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> FileBase:
        family_id = self._require_owner(user)
        clean = _clean_name(name)
        if not storage_key:
            raise InvalidOperationError("storage key is required")
        if size < 0:
            raise InvalidOperationError("size cannot be negative")
        if folder_id is not None:
            await self._load_folder(session, family_id, folder_id)
        assignees = _single_assignee(assigned_to)
        await self._validate_members(session, family_id, assignees)

        file = self._store.file_model(
            name=clean,
            original_name=original_name or clean,
            family_id=family_id,
            folder_id=folder_id,
            uploaded_by=user.id,
            assigned_to=assignees,
            shared_with_family=False,
            shared_with=[],
            tags=normalize_tags(tags),
            size=size,
            mime_type=mime_type,
            url=url,
            storage_key=storage_key,
        )
        await self._store.add(session, file)
        return file

    async def rename_file(
        self, session: AsyncSession, user: UserBase, file_id: str, new_name: str
    ) -> FileBase:
        file = await self._owned_file(session, user, file_id, "rename")
        file.name = _clean_name(new_name)
        await session.flush()
        return file

    async def move_file(
        self,
        session: AsyncSession,
        user: UserBase,
        file_id: str,
        folder_id: str | None,
    ) -> FileBase:
        file = await self._owned_file(session, user, file_id, "move")
        if folder_id is not None:
            await self._load_folder(session, file.family_id, folder_id)
        file.folder_id = folder_id
        await session.flush()
        return file

    async def delete_file(self, session: AsyncSession, user: UserBase, file_id: str) -> DeleteResult:
        file = await self._owned_file(session, user, file_id, "delete")
        storage_key = file.storage_key
        await self._store.delete(session, file)
        return DeleteResult(storage_keys=[storage_key], files_deleted=1)

    async def update_file_assignment(
        self,
        session: AsyncSession,
        user: UserBase,
        file_id: str,
        assigned_to: str | Sequence[str] | None,
    ) -> FileBase:
        file = await self._owned_file(session, user, file_id, "update")
        assignees = _single_assignee(assigned_to)
        await self._validate_members(session, file.family_id, assignees)
        file.assigned_to = assignees
        await session.flush()
        return file

    async def update_file_sharing(
        self,
        session: AsyncSession,
        user: UserBase,
        file_id: str,
        share_with_family: bool,
        shared_with: Sequence[str] | None,
    ) -> FileBase:
        """Replace both sharing fields. Allowed for the uploading owner or the assignee."""
        family_id = self._identity.require_family(user)
        file = await self._load_file(session, family_id, file_id)
        uploader = is_owner(user) and file.uploaded_by == user.id
        if not uploader and not is_assigned_to(file, user.id):
            raise ForbiddenError("not authorized to share this file")
        recipients = normalize_ids(shared_with)
        await self._validate_members(session, family_id, recipients)
        file.shared_with_family = bool(share_with_family)
        file.shared_with = recipients
        await session.flush()
        return file

    async def update_file_tags(
        self,
        session: AsyncSession,
        user: UserBase,
        file_id: str,
        tags: Sequence[str] | None,
    ) -> FileBase:
        file = await self._owned_file(session, user, file_id, "tag")
        file.tags = normalize_tags(tags)
        await session.flush()
        return file
