"""Tests for the synchronous FamilyVault wrapper."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import OperationalError

from familyvault import FamilyVault, ForbiddenError, InvalidOperationError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def vault(tmp_path: Path) -> Iterator[FamilyVault]:
    v = FamilyVault(f"sqlite+aiosqlite:///{tmp_path / 'vault.db'}")
    yield v
    v.close()


@pytest.fixture
def family(vault: FamilyVault) -> dict[str, str]:
    owner = vault.get_or_create_user("o", email="o@example.com", name="Olivia")
    vault.create_family("o", "Smiths")
    code = vault.get_user_with_family("o").invite_code
    assert code is not None
    member = vault.get_or_create_user("m", email="m@example.com", name="Max")
    vault.join_family("m", code)
    return {"owner": owner.id, "member": member.id}


class TestLifecycle:
    def test_close_idempotent(self, tmp_path: Path):
        v = FamilyVault(f"sqlite+aiosqlite:///{tmp_path / 'a.db'}")
        v.close()
        v.close()

    def test_failed_open_stops_loop_thread(self, tmp_path: Path):
        before = set(threading.enumerate())
        with pytest.raises(OperationalError):
            FamilyVault(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'v.db'}")
        leftover = [t for t in threading.enumerate() if t not in before and t.is_alive()]
        assert leftover == []

    def test_context_manager(self, tmp_path: Path):
        with FamilyVault(f"sqlite+aiosqlite:///{tmp_path / 'b.db'}") as v:
            assert v.get_current_user("nobody") is None


class TestSyncOperations:
    def test_folder_and_file_flow(self, vault: FamilyVault, family: dict[str, str]):
        folder = vault.create_folder("o", "Taxes", assigned_to=[family["member"]])
        f = vault.create_file(
            "o", name="w2.pdf", storage_key="blob-w2", folder_id=folder.id, size=5
        )
        assert [x.name for x in vault.get_my_folders("m")] == ["Taxes"]
        assert [x.id for x in vault.get_my_files("m", folder.id)] == [f.id]
        assert [p.name for p in vault.get_folder_path("m", folder.id)] == ["Taxes"]

        result = vault.delete_folder("o", folder.id, delete_contents=True)
        assert result.storage_keys == ["blob-w2"]
        assert vault.get_my_folders("o") == []

    def test_errors_propagate(self, vault: FamilyVault, family: dict[str, str]):
        with pytest.raises(ForbiddenError):
            vault.create_folder("m", "Nope")
        with pytest.raises(InvalidOperationError):
            vault.create_folder("o", "")

    def test_bulk(self, vault: FamilyVault, family: dict[str, str]):
        a = vault.create_file("o", name="a.pdf", storage_key="ka")
        b = vault.create_file("o", name="b.pdf", storage_key="kb")
        result = vault.bulk_delete_files("o", [a.id, "missing", b.id])
        assert sorted(result.storage_keys) == ["ka", "kb"]
        assert [s.item_id for s in result.skipped] == ["missing"]

    def test_members(self, vault: FamilyVault, family: dict[str, str]):
        assert [m.name for m in vault.get_family_members("m")] == ["Olivia", "Max"]
        vault.remove_member("o", family["member"])
        assert [m.name for m in vault.get_family_members("o")] == ["Olivia"]
