"""Family and User models.

Provides ``FamilyBase`` / ``UserBase`` (non-table) and ``Family`` / ``User``
(concrete tables).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class FamilyBase(SQLModel):
    """Base fields for a family. Subclass with ``table=True`` for a concrete table."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(default="")
    owner_id: str = Field(index=True)
    invite_code: str = Field(index=True, unique=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )


class Family(FamilyBase, table=True):
    """Default family table — ``fv_families``."""

    __tablename__ = "fv_families"


class UserBase(SQLModel):
    """Base fields for a user record.

    ``actor_token`` is the opaque identifier handed over by the external
    auth provider. ``family_id`` and ``role`` are unset until the user
    creates or joins a family.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    actor_token: str = Field(index=True, unique=True)
    email: str = Field(default="")
    name: str = Field(default="")
    image_url: str | None = Field(default=None)
    family_id: str | None = Field(default=None, index=True)
    role: str | None = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )


class User(UserBase, table=True):
    """Default user table — ``fv_users``."""

    __tablename__ = "fv_users"
