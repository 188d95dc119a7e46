"""FamilyVault — synchronous wrapper around FamilyVaultAsync."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any

from familyvault._vault_async import FamilyVaultAsync

if TYPE_CHECKING:
    from collections.abc import Sequence

    from familyvault.core.types import (
        BulkResult,
        DeleteResult,
        FileInfo,
        FolderContents,
        FolderInfo,
        MemberInfo,
        PathEntry,
        PickerEntry,
        UserWithFamily,
    )
    from familyvault.events import EventBus

logger = logging.getLogger(__name__)


class FamilyVault:
    """Synchronous facade backed by a private event loop in a background thread.

    The async vault (and its engine) is created on that loop, so it can
    be used from plain sync code or from inside another running loop.

    Usage::

        with FamilyVault("sqlite+aiosqlite:///vault.db") as vault:
            vault.get_or_create_user("tok-1", email="a@x.io", name="Ann")
            vault.create_family("tok-1", "The Smiths")
            vault.create_folder("tok-1", "Taxes")
    """

    def __init__(self, database_url: str | None = None, *, echo: bool = False) -> None:
        self._closed = False

        # Private event loop in a daemon thread
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._thread.start()

        try:
            self._vault: FamilyVaultAsync = self._run(self._async_init(database_url, echo))
        except Exception:
            self._closed = True
            self._stop_loop()
            raise

    async def _async_init(self, database_url: str | None, echo: bool) -> FamilyVaultAsync:
        vault = FamilyVaultAsync(database_url=database_url, echo=echo)
        await vault.open()
        return vault

    def _run(self, coro: Any) -> Any:
        """Submit *coro* to the private loop and block for the result."""
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    @property
    def event_bus(self) -> EventBus:
        return self._vault.event_bus

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Dispose the vault, stop the event loop and join the thread."""
        if self._closed:
            return
        self._closed = True

        try:
            self._run(self._vault.close())
        finally:
            self._stop_loop()

    def _stop_loop(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5)

    def __enter__(self) -> FamilyVault:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Identity & membership
    # ------------------------------------------------------------------

    def get_or_create_user(
        self,
        actor_token: str,
        *,
        email: str,
        name: str,
        image_url: str | None = None,
    ) -> MemberInfo:
        return self._run(
            self._vault.get_or_create_user(
                actor_token, email=email, name=name, image_url=image_url
            )
        )

    def get_current_user(self, actor_token: str) -> MemberInfo | None:
        return self._run(self._vault.get_current_user(actor_token))

    def get_user_with_family(self, actor_token: str) -> UserWithFamily:
        return self._run(self._vault.get_user_with_family(actor_token))

    def create_family(self, actor_token: str, name: str) -> str:
        return self._run(self._vault.create_family(actor_token, name))

    def join_family(self, actor_token: str, invite_code: str) -> str:
        return self._run(self._vault.join_family(actor_token, invite_code))

    def leave_family(self, actor_token: str) -> None:
        self._run(self._vault.leave_family(actor_token))

    def regenerate_invite_code(self, actor_token: str) -> str:
        return self._run(self._vault.regenerate_invite_code(actor_token))

    def get_family_members(self, actor_token: str) -> list[MemberInfo]:
        return self._run(self._vault.get_family_members(actor_token))

    def remove_member(self, actor_token: str, member_user_id: str) -> None:
        self._run(self._vault.remove_member(actor_token, member_user_id))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_my_folders(
        self, actor_token: str, parent_folder_id: str | None = None, *, all_levels: bool = False
    ) -> list[FolderInfo]:
        return self._run(
            self._vault.get_my_folders(actor_token, parent_folder_id, all_levels=all_levels)
        )

    def get_shared_folders(
        self, actor_token: str, parent_folder_id: str | None = None, *, all_levels: bool = False
    ) -> list[FolderInfo]:
        return self._run(
            self._vault.get_shared_folders(actor_token, parent_folder_id, all_levels=all_levels)
        )

    def get_all_folders_for_picker(self, actor_token: str) -> list[PickerEntry]:
        return self._run(self._vault.get_all_folders_for_picker(actor_token))

    def get_folder_path(self, actor_token: str, folder_id: str | None) -> list[PathEntry]:
        return self._run(self._vault.get_folder_path(actor_token, folder_id))

    def get_folder_contents(self, actor_token: str, folder_id: str) -> FolderContents:
        return self._run(self._vault.get_folder_contents(actor_token, folder_id))

    def get_my_files(
        self, actor_token: str, folder_id: str | None = None, *, all_levels: bool = False
    ) -> list[FileInfo]:
        return self._run(self._vault.get_my_files(actor_token, folder_id, all_levels=all_levels))

    def get_shared_files(
        self, actor_token: str, folder_id: str | None = None, *, all_levels: bool = False
    ) -> list[FileInfo]:
        return self._run(
            self._vault.get_shared_files(actor_token, folder_id, all_levels=all_levels)
        )

    def search_files(self, actor_token: str, term: str) -> list[FileInfo]:
        return self._run(self._vault.search_files(actor_token, term))

    # ------------------------------------------------------------------
    # Folder writes
    # ------------------------------------------------------------------

    def create_folder(
        self,
        actor_token: str,
        name: str,
        parent_folder_id: str | None = None,
        assigned_to: Sequence[str] | None = None,
    ) -> FolderInfo:
        return self._run(
            self._vault.create_folder(actor_token, name, parent_folder_id, assigned_to)
        )

    def rename_folder(self, actor_token: str, folder_id: str, new_name: str) -> FolderInfo:
        return self._run(self._vault.rename_folder(actor_token, folder_id, new_name))

    def move_folder(
        self, actor_token: str, folder_id: str, new_parent_folder_id: str | None
    ) -> FolderInfo:
        return self._run(self._vault.move_folder(actor_token, folder_id, new_parent_folder_id))

    def delete_folder(
        self, actor_token: str, folder_id: str, delete_contents: bool = False
    ) -> DeleteResult:
        return self._run(self._vault.delete_folder(actor_token, folder_id, delete_contents))

    def update_folder_assignment(
        self, actor_token: str, folder_id: str, assigned_to: Sequence[str] | None
    ) -> FolderInfo:
        return self._run(self._vault.update_folder_assignment(actor_token, folder_id, assigned_to))

    def update_folder_sharing(
        self,
        actor_token: str,
        folder_id: str,
        share_with_family: bool,
        shared_with: Sequence[str] | None = None,
    ) -> FolderInfo:
        return self._run(
            self._vault.update_folder_sharing(
                actor_token, folder_id, share_with_family, shared_with
            )
        )

    # ------------------------------------------------------------------
    # File writes
    # ------------------------------------------------------------------

    def create_file(self, actor_token: str, **kwargs: Any) -> FileInfo:
        """See ``FamilyVaultAsync.create_file`` for the keyword arguments."""
        return self._run(self._vault.create_file(actor_token, **kwargs))

    def rename_file(self, actor_token: str, file_id: str, new_name: str) -> FileInfo:
        return self._run(self._vault.rename_file(actor_token, file_id, new_name))

    def move_file(self, actor_token: str, file_id: str, folder_id: str | None) -> FileInfo:
        return self._run(self._vault.move_file(actor_token, file_id, folder_id))

    def delete_file(self, actor_token: str, file_id: str) -> DeleteResult:
        return self._run(self._vault.delete_file(actor_token, file_id))

    def update_file_assignment(
        self, actor_token: str, file_id: str, assigned_to: str | None
    ) -> FileInfo:
        return self._run(self._vault.update_file_assignment(actor_token, file_id, assigned_to))

    def update_file_sharing(
        self,
        actor_token: str,
        file_id: str,
        share_with_family: bool,
        shared_with: Sequence[str] | None = None,
    ) -> FileInfo:
        return self._run(
            self._vault.update_file_sharing(actor_token, file_id, share_with_family, shared_with)
        )

    def update_file_tags(
        self, actor_token: str, file_id: str, tags: Sequence[str] | None
    ) -> FileInfo:
        return self._run(self._vault.update_file_tags(actor_token, file_id, tags))

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    def bulk_delete_files(self, actor_token: str, file_ids: Sequence[str]) -> BulkResult:
        return self._run(self._vault.bulk_delete_files(actor_token, file_ids))

    def bulk_move_files(
        self, actor_token: str, file_ids: Sequence[str], folder_id: str | None
    ) -> BulkResult:
        return self._run(self._vault.bulk_move_files(actor_token, file_ids, folder_id))

    def bulk_assign_files(
        self, actor_token: str, file_ids: Sequence[str], assigned_to: str | None
    ) -> BulkResult:
        return self._run(self._vault.bulk_assign_files(actor_token, file_ids, assigned_to))

    def bulk_delete_folders(
        self, actor_token: str, folder_ids: Sequence[str], delete_contents: bool = True
    ) -> BulkResult:
        return self._run(
            self._vault.bulk_delete_folders(actor_token, folder_ids, delete_contents)
        )

    def bulk_move_folders(
        self, actor_token: str, folder_ids: Sequence[str], parent_folder_id: str | None
    ) -> BulkResult:
        return self._run(
            self._vault.bulk_move_folders(actor_token, folder_ids, parent_folder_id)
        )

    def bulk_assign_folders(
        self, actor_token: str, folder_ids: Sequence[str], assigned_to: Sequence[str] | None
    ) -> BulkResult:
        return self._run(self._vault.bulk_assign_folders(actor_token, folder_ids, assigned_to))
