"""Tests for EventBus, event types, and events emitted by the vault."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from familyvault.core.exceptions import ForbiddenError
from familyvault.events import EventBus, EventType, VaultEvent
from tests.conftest import ALICE, OWNER

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from familyvault._vault_async import FamilyVaultAsync
    from familyvault.core.types import FileInfo
    from tests.conftest import Household

    Upload = Callable[..., Awaitable[FileInfo]]


# =========================================================================
# Helpers
# =========================================================================


async def _collecting_handler(events: list[VaultEvent], event: VaultEvent) -> None:
    """Append event to a list for assertion."""
    events.append(event)


async def _failing_handler(event: VaultEvent) -> None:
    """Handler that always raises."""
    raise RuntimeError(f"boom on {event.item_id}")


# =========================================================================
# EventType / VaultEvent
# =========================================================================


class TestEventType:
    def test_member_count(self) -> None:
        assert len(EventType) == 13

    def test_values(self) -> None:
        assert EventType.FOLDER_CREATED.value == "folder_created"
        assert EventType.FILE_DELETED.value == "file_deleted"
        assert EventType.FILE_TAGGED.value == "file_tagged"

    def test_unique_values(self) -> None:
        values = [et.value for et in EventType]
        assert len(values) == len(set(values))


class TestVaultEvent:
    def test_construction(self) -> None:
        ev = VaultEvent(event_type=EventType.FILE_CREATED, item_id="f1")
        assert ev.family_id is None
        assert ev.actor_id is None
        assert ev.storage_keys == ()

    def test_immutable(self) -> None:
        ev = VaultEvent(event_type=EventType.FILE_CREATED, item_id="f1")
        with pytest.raises(AttributeError):
            ev.item_id = "f2"  # type: ignore[misc]


# =========================================================================
# EventBus
# =========================================================================


class TestEventBusRegistration:
    def test_register_and_unregister(self) -> None:
        bus = EventBus()
        bus.register(EventType.FILE_DELETED, _failing_handler)
        bus.register(EventType.FOLDER_DELETED, _failing_handler)
        assert bus.handler_count == 2
        assert bus.unregister(EventType.FILE_DELETED, _failing_handler) is True
        assert bus.unregister(EventType.FILE_DELETED, _failing_handler) is False
        assert bus.handler_count == 1

    def test_register_all(self) -> None:
        bus = EventBus()
        bus.register_all(_failing_handler)
        assert bus.handler_count == len(EventType)

    def test_clear(self) -> None:
        bus = EventBus()
        bus.register(EventType.FILE_DELETED, _failing_handler)
        bus.clear()
        assert bus.handler_count == 0


class TestEventBusEmit:
    async def test_handlers_in_order(self) -> None:
        bus = EventBus()
        order: list[int] = []

        async def first(event: VaultEvent) -> None:
            order.append(1)

        async def second(event: VaultEvent) -> None:
            order.append(2)

        bus.register(EventType.FILE_DELETED, first)
        bus.register(EventType.FILE_DELETED, second)
        await bus.emit(VaultEvent(event_type=EventType.FILE_DELETED, item_id="f1"))
        assert order == [1, 2]

    async def test_type_filtering(self) -> None:
        bus = EventBus()
        created: list[VaultEvent] = []

        async def on_create(event: VaultEvent) -> None:
            await _collecting_handler(created, event)

        bus.register(EventType.FILE_CREATED, on_create)
        await bus.emit(VaultEvent(event_type=EventType.FILE_DELETED, item_id="f1"))
        assert created == []

    async def test_error_isolation(self, caplog: pytest.LogCaptureFixture) -> None:
        bus = EventBus()
        collected: list[VaultEvent] = []

        async def good_handler(event: VaultEvent) -> None:
            await _collecting_handler(collected, event)

        bus.register(EventType.FILE_DELETED, _failing_handler)
        bus.register(EventType.FILE_DELETED, good_handler)

        with caplog.at_level(logging.WARNING, logger="familyvault.events"):
            await bus.emit(
                VaultEvent(
                    event_type=EventType.FILE_DELETED,
                    item_id="f1",
                    family_id="fam-1",
                    actor_id="u-1",
                )
            )

        assert len(collected) == 1
        assert "failed" in caplog.text
        assert "file_deleted" in caplog.text
        assert "fam-1" in caplog.text
        assert "u-1" in caplog.text


# =========================================================================
# Integration: FamilyVaultAsync + EventBus
# =========================================================================


class TestVaultEvents:
    @pytest.fixture
    def collected(self, vault: FamilyVaultAsync) -> list[VaultEvent]:
        events: list[VaultEvent] = []

        async def handler(event: VaultEvent) -> None:
            await _collecting_handler(events, event)

        vault.event_bus.register_all(handler)
        return events

    async def test_folder_lifecycle(
        self, vault: FamilyVaultAsync, household: Household, collected: list[VaultEvent]
    ):
        folder = await vault.create_folder(OWNER, "A")
        await vault.rename_folder(OWNER, folder.id, "B")
        await vault.delete_folder(OWNER, folder.id)
        assert [e.event_type for e in collected] == [
            EventType.FOLDER_CREATED,
            EventType.FOLDER_RENAMED,
            EventType.FOLDER_DELETED,
        ]
        assert all(e.item_id == folder.id for e in collected)
        assert all(e.family_id == household.family_id for e in collected)

    async def test_file_delete_carries_keys(
        self,
        vault: FamilyVaultAsync,
        household: Household,
        upload: Upload,
        collected: list[VaultEvent],
    ):
        f = await upload(OWNER, "a.pdf")
        await vault.delete_file(OWNER, f.id)
        assert collected[-1].event_type is EventType.FILE_DELETED
        assert collected[-1].storage_keys == ("key-a.pdf",)

    async def test_failed_mutation_emits_nothing(
        self, vault: FamilyVaultAsync, household: Household, collected: list[VaultEvent]
    ):
        with pytest.raises(ForbiddenError):
            await vault.create_folder(ALICE, "A")
        assert collected == []

    async def test_failing_handler_keeps_commit(
        self, vault: FamilyVaultAsync, household: Household, upload: Upload
    ):
        vault.event_bus.register(EventType.FILE_DELETED, _failing_handler)
        f = await upload(OWNER, "a.pdf")
        result = await vault.delete_file(OWNER, f.id)
        assert result.storage_keys == ["key-a.pdf"]
        assert await vault.get_my_files(OWNER) == []
