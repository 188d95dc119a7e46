"""Shared fixtures for familyvault tests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from familyvault._vault_async import FamilyVaultAsync

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

    from familyvault.core.types import FileInfo

OWNER = "tok-owner"
ALICE = "tok-alice"
BOB = "tok-bob"
OTHER = "tok-other"
LONER = "tok-loner"
STRANGER = "tok-nobody"


@dataclass
class Household:
    """Ids of the users created by the ``household`` fixture."""

    family_id: str
    other_family_id: str
    owner_id: str
    alice_id: str
    bob_id: str
    other_id: str
    loner_id: str
    invite_code: str


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Async SQLModel session, rolled back after each test."""
    factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with factory() as session:
        yield session


@pytest.fixture
async def vault(async_engine: AsyncEngine) -> AsyncIterator[FamilyVaultAsync]:
    """FamilyVaultAsync bound to the in-memory engine."""
    v = FamilyVaultAsync(engine=async_engine)
    await v.open()
    yield v
    await v.close()


@pytest.fixture
async def household(vault: FamilyVaultAsync) -> Household:
    """Two families plus one user without a family.

    - Smiths: Olivia (owner), Alice and Bob (members)
    - Joneses: Oscar (owner)
    - Lou: no family
    """
    owner = await vault.get_or_create_user(OWNER, email="olivia@example.com", name="Olivia")
    family_id = await vault.create_family(OWNER, "Smiths")
    info = await vault.get_user_with_family(OWNER)
    assert info.invite_code is not None

    alice = await vault.get_or_create_user(ALICE, email="alice@example.com", name="Alice")
    await vault.join_family(ALICE, info.invite_code)
    bob = await vault.get_or_create_user(BOB, email="bob@example.com", name="Bob")
    await vault.join_family(BOB, info.invite_code.lower())

    other = await vault.get_or_create_user(OTHER, email="oscar@example.com", name="Oscar")
    other_family_id = await vault.create_family(OTHER, "Joneses")

    loner = await vault.get_or_create_user(LONER, email="lou@example.com", name="Lou")

    return Household(
        family_id=family_id,
        other_family_id=other_family_id,
        owner_id=owner.id,
        alice_id=alice.id,
        bob_id=bob.id,
        other_id=other.id,
        loner_id=loner.id,
        invite_code=info.invite_code,
    )


@pytest.fixture
def upload(vault: FamilyVaultAsync) -> Callable[..., Awaitable[FileInfo]]:
    """Create a file as *token* with a storage key derived from its name."""

    async def _upload(token: str, name: str, **kwargs: object) -> FileInfo:
        kwargs.setdefault("storage_key", f"key-{name}")
        kwargs.setdefault("mime_type", "application/pdf")
        kwargs.setdefault("size", 1024)
        return await vault.create_file(token, name=name, **kwargs)  # type: ignore[arg-type]

    return _upload
