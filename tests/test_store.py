"""Tests for StoreService — primitive lookups and indexed queries."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from familyvault.core.store import StoreService
from familyvault.models import Family, File, Folder, User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


@pytest.fixture
def store() -> StoreService:
    return StoreService(Folder, File, User, Family)


async def _tree(store: StoreService, session: AsyncSession) -> dict[str, Folder]:
    """fam-a: /Taxes, /Taxes/2024, /Medical ; fam-b: /Other"""
    taxes = Folder(name="Taxes", family_id="fam-a", created_by="u1")
    medical = Folder(name="Medical", family_id="fam-a", created_by="u1")
    other = Folder(name="Other", family_id="fam-b", created_by="u9")
    for folder in (taxes, medical, other):
        await store.add(session, folder)
    y2024 = Folder(name="2024", family_id="fam-a", created_by="u1", parent_folder_id=taxes.id)
    await store.add(session, y2024)
    return {"taxes": taxes, "medical": medical, "other": other, "2024": y2024}


class TestPointLookups:
    async def test_get_folder(self, store: StoreService, async_session: AsyncSession):
        tree = await _tree(store, async_session)
        found = await store.get_folder(async_session, tree["taxes"].id)
        assert found is not None
        assert found.name == "Taxes"

    async def test_get_missing_and_empty(self, store: StoreService, async_session: AsyncSession):
        assert await store.get_folder(async_session, "nope") is None
        assert await store.get_folder(async_session, None) is None
        assert await store.get_file(async_session, "") is None
        assert await store.get_user(async_session, None) is None

    async def test_get_user_by_token(self, store: StoreService, async_session: AsyncSession):
        user = User(actor_token="tok-1", name="Ann")
        await store.add(async_session, user)
        found = await store.get_user_by_token(async_session, "tok-1")
        assert found is not None
        assert found.id == user.id
        assert await store.get_user_by_token(async_session, "tok-2") is None

    async def test_get_users_map(self, store: StoreService, async_session: AsyncSession):
        a = User(actor_token="a", name="A")
        b = User(actor_token="b", name="B")
        await store.add(async_session, a)
        await store.add(async_session, b)
        users = await store.get_users(async_session, [a.id, b.id, "missing", ""])
        assert set(users) == {a.id, b.id}
        assert await store.get_users(async_session, []) == {}

    async def test_family_by_invite_code(self, store: StoreService, async_session: AsyncSession):
        family = Family(name="Smiths", owner_id="u1", invite_code="ABC234")
        await store.add(async_session, family)
        found = await store.get_family_by_invite_code(async_session, "ABC234")
        assert found is not None
        assert found.id == family.id


class TestIndexedLookups:
    async def test_folders_by_parent_root(self, store: StoreService, async_session: AsyncSession):
        await _tree(store, async_session)
        roots = await store.folders_by_parent(async_session, "fam-a", None)
        assert {f.name for f in roots} == {"Taxes", "Medical"}

    async def test_folders_by_parent_child(
        self, store: StoreService, async_session: AsyncSession
    ):
        tree = await _tree(store, async_session)
        children = await store.folders_by_parent(async_session, "fam-a", tree["taxes"].id)
        assert [f.name for f in children] == ["2024"]

    async def test_family_scoped(self, store: StoreService, async_session: AsyncSession):
        await _tree(store, async_session)
        assert len(await store.folders_by_family(async_session, "fam-a")) == 3
        assert len(await store.folders_by_family(async_session, "fam-b")) == 1
        assert await store.count_folders_in_family(async_session, "fam-a") == 3

    async def test_files_by_folder(self, store: StoreService, async_session: AsyncSession):
        tree = await _tree(store, async_session)
        await store.add(
            async_session,
            File(name="root.pdf", family_id="fam-a", uploaded_by="u1", storage_key="k1"),
        )
        await store.add(
            async_session,
            File(
                name="w2.pdf",
                family_id="fam-a",
                uploaded_by="u1",
                storage_key="k2",
                folder_id=tree["2024"].id,
            ),
        )
        root_files = await store.files_by_folder(async_session, "fam-a", None)
        assert [f.name for f in root_files] == ["root.pdf"]
        nested = await store.files_by_folder(async_session, "fam-a", tree["2024"].id)
        assert [f.name for f in nested] == ["w2.pdf"]
        assert await store.files_by_folder(async_session, "fam-b", None) == []
        assert len(await store.files_by_family(async_session, "fam-a")) == 2

    async def test_count_children(self, store: StoreService, async_session: AsyncSession):
        tree = await _tree(store, async_session)
        await store.add(
            async_session,
            File(
                name="a.pdf",
                family_id="fam-a",
                uploaded_by="u1",
                storage_key="k",
                folder_id=tree["taxes"].id,
            ),
        )
        assert await store.count_children(async_session, tree["taxes"]) == 2
        assert await store.count_children(async_session, tree["medical"]) == 0


class TestWrites:
    async def test_delete(self, store: StoreService, async_session: AsyncSession):
        tree = await _tree(store, async_session)
        await store.delete(async_session, tree["medical"])
        assert await store.get_folder(async_session, tree["medical"].id) is None
