"""StoreService — primitive folder/file/user lookups and writes.

Stateless service that receives the concrete models at construction
and a session at call time.  No business rules live here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlmodel import select

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from familyvault.models.families import FamilyBase, UserBase
    from familyvault.models.files import FileBase
    from familyvault.models.folders import FolderBase


class StoreService:
    """Primitive CRUD plus the two indexed lookups the engine relies on:
    items by parent folder and items by family.

    Writes flush but never commit; the caller owns the transaction.
    """

    def __init__(
        self,
        folder_model: type[FolderBase],
        file_model: type[FileBase],
        user_model: type[UserBase],
        family_model: type[FamilyBase],
    ) -> None:
        self.folder_model = folder_model
        self.file_model = file_model
        self.user_model = user_model
        self.family_model = family_model

    # ------------------------------------------------------------------
    # Point lookups
    # ------------------------------------------------------------------

    async def get_folder(self, session: AsyncSession, folder_id: str | None) -> FolderBase | None:
        if not folder_id:
            return None
        return await session.get(self.folder_model, folder_id)

    async def get_file(self, session: AsyncSession, file_id: str | None) -> FileBase | None:
        if not file_id:
            return None
        return await session.get(self.file_model, file_id)

    async def get_user(self, session: AsyncSession, user_id: str | None) -> UserBase | None:
        if not user_id:
            return None
        return await session.get(self.user_model, user_id)

    async def get_family(self, session: AsyncSession, family_id: str | None) -> FamilyBase | None:
        if not family_id:
            return None
        return await session.get(self.family_model, family_id)

    async def get_user_by_token(self, session: AsyncSession, actor_token: str) -> UserBase | None:
        model = self.user_model
        result = await session.execute(select(model).where(model.actor_token == actor_token))
        return result.scalar_one_or_none()

    async def get_family_by_invite_code(
        self, session: AsyncSession, invite_code: str
    ) -> FamilyBase | None:
        model = self.family_model
        result = await session.execute(select(model).where(model.invite_code == invite_code))
        return result.scalar_one_or_none()

    async def get_users(self, session: AsyncSession, user_ids: Iterable[str]) -> dict[str, UserBase]:
        """Return an ``id -> user`` map for the ids that exist."""
        ids = {uid for uid in user_ids if uid}
        if not ids:
            return {}
        model = self.user_model
        result = await session.execute(select(model).where(model.id.in_(ids)))  # type: ignore[union-attr]
        return {u.id: u for u in result.scalars().all()}

    # ------------------------------------------------------------------
    # Indexed lookups
    # ------------------------------------------------------------------

    async def folders_by_parent(
        self,
        session: AsyncSession,
        family_id: str,
        parent_folder_id: str | None,
    ) -> list[FolderBase]:
        """Folders directly under *parent_folder_id* (``None`` = root level)."""
        model = self.folder_model
        query = select(model).where(model.family_id == family_id)
        if parent_folder_id is None:
            query = query.where(model.parent_folder_id.is_(None))  # type: ignore[union-attr]
        else:
            query = query.where(model.parent_folder_id == parent_folder_id)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def files_by_folder(
        self,
        session: AsyncSession,
        family_id: str,
        folder_id: str | None,
    ) -> list[FileBase]:
        """Files directly inside *folder_id* (``None`` = root level)."""
        model = self.file_model
        query = select(model).where(model.family_id == family_id)
        if folder_id is None:
            query = query.where(model.folder_id.is_(None))  # type: ignore[union-attr]
        else:
            query = query.where(model.folder_id == folder_id)
        result = await session.execute(query)
        return list(result.scalars().all())

    async def folders_by_family(self, session: AsyncSession, family_id: str) -> list[FolderBase]:
        model = self.folder_model
        result = await session.execute(select(model).where(model.family_id == family_id))
        return list(result.scalars().all())

    async def files_by_family(self, session: AsyncSession, family_id: str) -> list[FileBase]:
        model = self.file_model
        result = await session.execute(select(model).where(model.family_id == family_id))
        return list(result.scalars().all())

    async def users_by_family(self, session: AsyncSession, family_id: str) -> list[UserBase]:
        model = self.user_model
        result = await session.execute(select(model).where(model.family_id == family_id))
        return list(result.scalars().all())

    async def count_folders_in_family(self, session: AsyncSession, family_id: str) -> int:
        model = self.folder_model
        result = await session.execute(
            select(func.count()).select_from(model).where(model.family_id == family_id)
        )
        return int(result.scalar_one())

    async def count_children(self, session: AsyncSession, folder: FolderBase) -> int:
        """Direct files plus direct subfolders of *folder* (not recursive)."""
        fm = self.file_model
        dm = self.folder_model
        files = await session.execute(
            select(func.count()).select_from(fm).where(fm.folder_id == folder.id)
        )
        subfolders = await session.execute(
            select(func.count()).select_from(dm).where(dm.parent_folder_id == folder.id)
        )
        return int(files.scalar_one()) + int(subfolders.scalar_one())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add(self, session: AsyncSession, record: object) -> None:
        session.add(record)
        await session.flush()

    async def delete(self, session: AsyncSession, record: object) -> None:
        await session.delete(record)
        await session.flush()
