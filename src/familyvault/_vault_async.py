"""FamilyVaultAsync — primary async facade, one session per operation."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from familyvault.core.bulk import BulkCoordinator
from familyvault.core.identity import IdentityService
from familyvault.core.membership import MembershipService, to_member_info
from familyvault.core.mutations import MutationEngine
from familyvault.core.store import StoreService
from familyvault.core.types import Scope
from familyvault.core.visibility import VisibilityService
from familyvault.events import EventBus, EventType, VaultEvent
from familyvault.models.families import Family, User
from familyvault.models.files import File
from familyvault.models.folders import Folder

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Sequence

    from sqlalchemy.ext.asyncio import AsyncEngine

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
    from familyvault.models.families import FamilyBase, UserBase
    from familyvault.models.files import FileBase
    from familyvault.models.folders import FolderBase

logger = logging.getLogger(__name__)

DATABASE_URL_ENV = "FAMILYVAULT_DATABASE_URL"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///familyvault.db"


def _scope(folder_id: str | None, all_levels: bool) -> Scope:
    return Scope.everywhere() if all_levels else Scope.at(folder_id)


class FamilyVaultAsync:
    """Async facade wiring identity, store, visibility, mutations, bulk and events.

    Every public method takes the caller's ``actor_token`` first.  Each
    call runs in its own session: commit on success, rollback on any
    exception.  Reads never raise for authorization reasons.

    Usage::

        engine = create_async_engine("sqlite+aiosqlite://")
        async with FamilyVaultAsync(engine=engine) as vault:
            await vault.get_or_create_user("tok-1", email="a@x.io", name="Ann")
            await vault.create_family("tok-1", "The Smiths")
            folder = await vault.create_folder("tok-1", "Taxes")

    Without *engine* or *database_url*, the ``FAMILYVAULT_DATABASE_URL``
    environment variable is used, falling back to a local SQLite file.
    """

    def __init__(
        self,
        *,
        engine: AsyncEngine | None = None,
        database_url: str | None = None,
        folder_model: type[FolderBase] | None = None,
        file_model: type[FileBase] | None = None,
        user_model: type[UserBase] | None = None,
        family_model: type[FamilyBase] | None = None,
        echo: bool = False,
    ) -> None:
        if engine is not None and database_url is not None:
            raise ValueError("Provide engine or database_url, not both")
        self._owns_engine = engine is None
        if engine is None:
            url = database_url or os.environ.get(DATABASE_URL_ENV, DEFAULT_DATABASE_URL)
            engine = create_async_engine(url, echo=echo)
        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )
        self._closed = False
        self._opened = False

        fm: type[FolderBase] = folder_model or Folder  # type: ignore[assignment]
        flm: type[FileBase] = file_model or File  # type: ignore[assignment]
        um: type[UserBase] = user_model or User  # type: ignore[assignment]
        fam: type[FamilyBase] = family_model or Family  # type: ignore[assignment]

        # Composed services
        self._event_bus = EventBus()
        self.store = StoreService(fm, flm, um, fam)
        self.identity = IdentityService(self.store)
        self.membership = MembershipService(self.store, self.identity)
        self.visibility = VisibilityService(self.store)
        self.mutations = MutationEngine(self.store, self.identity)
        self.bulk = BulkCoordinator(
            self.mutations,
            self.identity,
            self._session,
            emit=self._event_bus.emit,
        )

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Create the vault tables if they do not exist."""
        if self._opened:
            return
        store = self.store
        models = (store.family_model, store.user_model, store.folder_model, store.file_model)
        async with self._engine.begin() as conn:
            for model in models:
                await conn.run_sync(
                    lambda c, m=model: m.__table__.create(c, checkfirst=True)  # type: ignore[attr-defined]
                )
        self._opened = True

    async def close(self) -> None:
        """Clear event handlers and dispose the engine if this vault created it."""
        if self._closed:
            return
        self._closed = True
        self._event_bus.clear()
        if self._owns_engine:
            try:
                await self._engine.dispose()
            except Exception:
                logger.warning("Engine dispose failed", exc_info=True)

    async def __aenter__(self) -> FamilyVaultAsync:
        await self.open()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Session management (per-operation only)
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession]:
        """Yield a session; commit on success, rollback and re-raise on error."""
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def _emit(
        self,
        event_type: EventType,
        item_id: str,
        user: UserBase,
        storage_keys: Sequence[str] = (),
    ) -> None:
        await self._event_bus.emit(
            VaultEvent(
                event_type=event_type,
                item_id=item_id,
                family_id=user.family_id,
                actor_id=user.id,
                storage_keys=tuple(storage_keys),
            )
        )

    async def _folder_info(self, session: AsyncSession, folder: FolderBase) -> FolderInfo:
        (info,) = await self.visibility.folder_infos(session, [folder])
        return info

    async def _file_info(self, session: AsyncSession, file: FileBase) -> FileInfo:
        (info,) = await self.visibility.file_infos(session, [file])
        return info

    # ------------------------------------------------------------------
    # Identity & membership
    # ------------------------------------------------------------------

    async def get_or_create_user(
        self,
        actor_token: str,
        *,
        email: str,
        name: str,
        image_url: str | None = None,
    ) -> MemberInfo:
        async with self._session() as session:
            user = await self.identity.get_or_create_user(
                session, actor_token, email=email, name=name, image_url=image_url
            )
            return to_member_info(user)

    async def get_current_user(self, actor_token: str) -> MemberInfo | None:
        async with self._session() as session:
            user = await self.identity.try_resolve(session, actor_token)
            return to_member_info(user) if user is not None else None

    async def get_user_with_family(self, actor_token: str) -> UserWithFamily:
        async with self._session() as session:
            user = await self.identity.try_resolve(session, actor_token)
            return await self.membership.get_user_with_family(session, user)

    async def create_family(self, actor_token: str, name: str) -> str:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            family = await self.membership.create_family(session, user, name)
            return family.id

    async def join_family(self, actor_token: str, invite_code: str) -> str:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            family = await self.membership.join_family(session, user, invite_code)
            return family.id

    async def leave_family(self, actor_token: str) -> None:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            await self.membership.leave_family(session, user)

    async def regenerate_invite_code(self, actor_token: str) -> str:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            return await self.membership.regenerate_invite_code(session, user)

    async def get_family_members(self, actor_token: str) -> list[MemberInfo]:
        async with self._session() as session:
            user = await self.identity.try_resolve(session, actor_token)
            if user is None:
                return []
            return await self.membership.get_family_members(session, user)

    async def remove_member(self, actor_token: str, member_user_id: str) -> None:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            await self.membership.remove_member(session, user, member_user_id)

    # ------------------------------------------------------------------
    # Folder reads
    # ------------------------------------------------------------------

    async def get_my_folders(
        self,
        actor_token: str,
        parent_folder_id: str | None = None,
        *,
        all_levels: bool = False,
    ) -> list[FolderInfo]:
        async with self._session() as session:
            user = await self.identity.try_resolve(session, actor_token)
            return await self.visibility.my_folders(
                session, user, _scope(parent_folder_id, all_levels)
            )

    async def get_shared_folders(
        self,
        actor_token: str,
        parent_folder_id: str | None = None,
        *,
        all_levels: bool = False,
    ) -> list[FolderInfo]:
        async with self._session() as session:
            user = await self.identity.try_resolve(session, actor_token)
            return await self.visibility.shared_folders(
                session, user, _scope(parent_folder_id, all_levels)
            )

    async def get_all_folders_for_picker(self, actor_token: str) -> list[PickerEntry]:
        async with self._session() as session:
            user = await self.identity.try_resolve(session, actor_token)
            return await self.visibility.folders_for_picker(session, user)

    async def get_folder_path(self, actor_token: str, folder_id: str | None) -> list[PathEntry]:
        async with self._session() as session:
            user = await self.identity.try_resolve(session, actor_token)
            return await self.visibility.folder_path(session, user, folder_id)

    async def get_folder_contents(self, actor_token: str, folder_id: str) -> FolderContents:
        async with self._session() as session:
            user = await self.identity.try_resolve(session, actor_token)
            return await self.visibility.folder_contents(session, user, folder_id)

    # ------------------------------------------------------------------
    # File reads
    # ------------------------------------------------------------------

    async def get_my_files(
        self,
        actor_token: str,
        folder_id: str | None = None,
        *,
        all_levels: bool = False,
    ) -> list[FileInfo]:
        async with self._session() as session:
            user = await self.identity.try_resolve(session, actor_token)
            return await self.visibility.my_files(session, user, _scope(folder_id, all_levels))

    async def get_shared_files(
        self,
        actor_token: str,
        folder_id: str | None = None,
        *,
        all_levels: bool = False,
    ) -> list[FileInfo]:
        async with self._session() as session:
            user = await self.identity.try_resolve(session, actor_token)
            return await self.visibility.shared_files(
                session, user, _scope(folder_id, all_levels)
            )

    async def search_files(self, actor_token: str, term: str) -> list[FileInfo]:
        async with self._session() as session:
            user = await self.identity.try_resolve(session, actor_token)
            return await self.visibility.search_files(session, user, term)

    # ------------------------------------------------------------------
    # Folder writes
    # ------------------------------------------------------------------

    async def create_folder(
        self,
        actor_token: str,
        name: str,
        parent_folder_id: str | None = None,
        assigned_to: Sequence[str] | None = None,
    ) -> FolderInfo:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            folder = await self.mutations.create_folder(
                session, user, name, parent_folder_id, assigned_to
            )
            info = await self._folder_info(session, folder)
        await self._emit(EventType.FOLDER_CREATED, info.id, user)
        return info

    async def rename_folder(self, actor_token: str, folder_id: str, new_name: str) -> FolderInfo:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            folder = await self.mutations.rename_folder(session, user, folder_id, new_name)
            info = await self._folder_info(session, folder)
        await self._emit(EventType.FOLDER_RENAMED, folder_id, user)
        return info

    async def move_folder(
        self,
        actor_token: str,
        folder_id: str,
        new_parent_folder_id: str | None,
    ) -> FolderInfo:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            folder = await self.mutations.move_folder(
                session, user, folder_id, new_parent_folder_id
            )
            info = await self._folder_info(session, folder)
        await self._emit(EventType.FOLDER_MOVED, folder_id, user)
        return info

    async def delete_folder(
        self,
        actor_token: str,
        folder_id: str,
        delete_contents: bool = False,
    ) -> DeleteResult:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            result = await self.mutations.delete_folder(
                session, user, folder_id, delete_contents
            )
        await self._emit(EventType.FOLDER_DELETED, folder_id, user, result.storage_keys)
        return result

    async def update_folder_assignment(
        self,
        actor_token: str,
        folder_id: str,
        assigned_to: Sequence[str] | None,
    ) -> FolderInfo:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            folder = await self.mutations.update_folder_assignment(
                session, user, folder_id, assigned_to
            )
            info = await self._folder_info(session, folder)
        await self._emit(EventType.FOLDER_ASSIGNED, folder_id, user)
        return info

    async def update_folder_sharing(
        self,
        actor_token: str,
        folder_id: str,
        share_with_family: bool,
        shared_with: Sequence[str] | None = None,
    ) -> FolderInfo:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            folder = await self.mutations.update_folder_sharing(
                session, user, folder_id, share_with_family, shared_with
            )
            info = await self._folder_info(session, folder)
        await self._emit(EventType.FOLDER_SHARED, folder_id, user)
        return info

    # ------------------------------------------------------------------
    # File writes
    # ------------------------------------------------------------------

    async def create_file(
        self,
        actor_token: str,
        *,
        name: str,
        storage_key: str,
        original_name: str | None = None,
        mime_type: str = "application/octet-stream",
        size: int = 0,
        url: str | None = None,
        assigned_to: str | None = None,
        folder_id: str | None = None,
        tags: Sequence[str] | None = None,
    ) -> FileInfo:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            file = await self.mutations.create_file(
                session,
                user,
                name=name,
                storage_key=storage_key,
                original_name=original_name,
                mime_type=mime_type,
                size=size,
                url=url,
                assigned_to=assigned_to,
                folder_id=folder_id,
                tags=tags,
            )
            info = await self._file_info(session, file)
        await self._emit(EventType.FILE_CREATED, info.id, user)
        return info

    async def rename_file(self, actor_token: str, file_id: str, new_name: str) -> FileInfo:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            file = await self.mutations.rename_file(session, user, file_id, new_name)
            info = await self._file_info(session, file)
        await self._emit(EventType.FILE_RENAMED, file_id, user)
        return info

    async def move_file(self, actor_token: str, file_id: str, folder_id: str | None) -> FileInfo:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            file = await self.mutations.move_file(session, user, file_id, folder_id)
            info = await self._file_info(session, file)
        await self._emit(EventType.FILE_MOVED, file_id, user)
        return info

    async def delete_file(self, actor_token: str, file_id: str) -> DeleteResult:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            result = await self.mutations.delete_file(session, user, file_id)
        await self._emit(EventType.FILE_DELETED, file_id, user, result.storage_keys)
        return result

    async def update_file_assignment(
        self, actor_token: str, file_id: str, assigned_to: str | None
    ) -> FileInfo:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            file = await self.mutations.update_file_assignment(session, user, file_id, assigned_to)
            info = await self._file_info(session, file)
        await self._emit(EventType.FILE_ASSIGNED, file_id, user)
        return info

    async def update_file_sharing(
        self,
        actor_token: str,
        file_id: str,
        share_with_family: bool,
        shared_with: Sequence[str] | None = None,
    ) -> FileInfo:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            file = await self.mutations.update_file_sharing(
                session, user, file_id, share_with_family, shared_with
            )
            info = await self._file_info(session, file)
        await self._emit(EventType.FILE_SHARED, file_id, user)
        return info

    async def update_file_tags(
        self, actor_token: str, file_id: str, tags: Sequence[str] | None
    ) -> FileInfo:
        async with self._session() as session:
            user = await self.identity.resolve(session, actor_token)
            file = await self.mutations.update_file_tags(session, user, file_id, tags)
            info = await self._file_info(session, file)
        await self._emit(EventType.FILE_TAGGED, file_id, user)
        return info

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------

    async def bulk_delete_files(self, actor_token: str, file_ids: Sequence[str]) -> BulkResult:
        return await self.bulk.bulk_delete_files(actor_token, file_ids)

    async def bulk_move_files(
        self, actor_token: str, file_ids: Sequence[str], folder_id: str | None
    ) -> BulkResult:
        return await self.bulk.bulk_move_files(actor_token, file_ids, folder_id)

    async def bulk_assign_files(
        self, actor_token: str, file_ids: Sequence[str], assigned_to: str | None
    ) -> BulkResult:
        return await self.bulk.bulk_assign_files(actor_token, file_ids, assigned_to)

    async def bulk_delete_folders(
        self,
        actor_token: str,
        folder_ids: Sequence[str],
        delete_contents: bool = True,
    ) -> BulkResult:
        return await self.bulk.bulk_delete_folders(actor_token, folder_ids, delete_contents)

    async def bulk_move_folders(
        self,
        actor_token: str,
        folder_ids: Sequence[str],
        parent_folder_id: str | None,
    ) -> BulkResult:
        return await self.bulk.bulk_move_folders(actor_token, folder_ids, parent_folder_id)

    async def bulk_assign_folders(
        self,
        actor_token: str,
        folder_ids: Sequence[str],
        assigned_to: Sequence[str] | None,
    ) -> BulkResult:
        return await self.bulk.bulk_assign_folders(actor_token, folder_ids, assigned_to)
