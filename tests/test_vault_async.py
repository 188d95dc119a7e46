"""Tests for the FamilyVaultAsync facade: lifecycle, configuration, transactions."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from familyvault._vault_async import DATABASE_URL_ENV, FamilyVaultAsync
from familyvault.core.exceptions import InvalidOperationError
from familyvault.events import EventType
from familyvault.models import Folder
from tests.conftest import OWNER

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

    from tests.conftest import Household


# ------------------------------------------------------------------
# Construction
# ------------------------------------------------------------------


class TestConstruction:
    def test_engine_and_url_conflict(self, async_engine: AsyncEngine):
        with pytest.raises(ValueError, match="not both"):
            FamilyVaultAsync(engine=async_engine, database_url="sqlite+aiosqlite://")

    async def test_env_database_url(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        db = tmp_path / "env.db"
        monkeypatch.setenv(DATABASE_URL_ENV, f"sqlite+aiosqlite:///{db}")
        async with FamilyVaultAsync() as vault:
            await vault.get_or_create_user("tok", email="a@example.com", name="Ann")
        assert db.exists()

    async def test_explicit_url_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv(DATABASE_URL_ENV, f"sqlite+aiosqlite:///{tmp_path / 'env.db'}")
        explicit = tmp_path / "explicit.db"
        async with FamilyVaultAsync(database_url=f"sqlite+aiosqlite:///{explicit}") as vault:
            await vault.get_or_create_user("tok", email="a@example.com", name="Ann")
        assert explicit.exists()
        assert not (tmp_path / "env.db").exists()


# ------------------------------------------------------------------
# Lifecycle
# ------------------------------------------------------------------


class TestLifecycle:
    async def test_open_is_idempotent(self, vault: FamilyVaultAsync):
        await vault.open()
        await vault.open()

    async def test_close_idempotent(self, async_engine: AsyncEngine):
        vault = FamilyVaultAsync(engine=async_engine)
        await vault.open()
        await vault.close()
        await vault.close()

    async def test_close_clears_handlers(self, async_engine: AsyncEngine):
        vault = FamilyVaultAsync(engine=async_engine)

        async def handler(event: object) -> None:
            pass

        vault.event_bus.register(EventType.FILE_CREATED, handler)
        await vault.close()
        assert vault.event_bus.handler_count == 0

    async def test_borrowed_engine_not_disposed(self, async_engine: AsyncEngine):
        async with FamilyVaultAsync(engine=async_engine) as vault:
            await vault.get_or_create_user("tok", email="a@example.com", name="Ann")
        # Engine still usable by its owner
        async with FamilyVaultAsync(engine=async_engine) as again:
            assert await again.get_current_user("tok") is not None

    async def test_persists_across_instances(self, tmp_path: Path):
        url = f"sqlite+aiosqlite:///{tmp_path / 'vault.db'}"
        async with FamilyVaultAsync(database_url=url) as vault:
            await vault.get_or_create_user(OWNER, email="o@example.com", name="Olivia")
            await vault.create_family(OWNER, "Smiths")
            await vault.create_folder(OWNER, "Taxes")

        async with FamilyVaultAsync(database_url=url) as vault:
            assert [f.name for f in await vault.get_my_folders(OWNER)] == ["Taxes"]


# ------------------------------------------------------------------
# Transactions
# ------------------------------------------------------------------


class TestTransactions:
    async def test_failed_operation_rolls_back(
        self, vault: FamilyVaultAsync, household: Household
    ):
        folder = await vault.create_folder(OWNER, "A")
        with pytest.raises(InvalidOperationError):
            await vault.rename_folder(OWNER, folder.id, "")
        assert [f.name for f in await vault.get_my_folders(OWNER)] == ["A"]

    async def test_session_rolls_back_on_error(
        self, vault: FamilyVaultAsync, household: Household
    ):
        folder = await vault.create_folder(OWNER, "A")
        with pytest.raises(RuntimeError):
            async with vault._session() as session:
                row = await session.get(Folder, folder.id)
                assert row is not None
                row.name = "Changed"
                await session.flush()
                raise RuntimeError("abort")
        assert [f.name for f in await vault.get_my_folders(OWNER)] == ["A"]

    async def test_separate_engines_are_isolated(self, household: Household):
        engine = create_async_engine("sqlite+aiosqlite://")
        async with FamilyVaultAsync(engine=engine) as fresh:
            assert await fresh.get_current_user(OWNER) is None
        await engine.dispose()
