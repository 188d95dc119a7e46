"""Folder model.

Folders form a tree through ``parent_folder_id`` (``None`` is the root
level).  Assignment and sharing lists are stored as JSON arrays of user
ids; always assign a new list rather than mutating in place so the
change is tracked.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime
from sqlmodel import Field, SQLModel


class FolderBase(SQLModel):
    """Base fields for a folder. Subclass with ``table=True`` for a concrete table."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(default="")
    family_id: str = Field(index=True)
    parent_folder_id: str | None = Field(default=None, index=True)
    created_by: str = Field(index=True)
    assigned_to: list[str] = Field(default_factory=list, sa_type=JSON)
    shared_with_family: bool = Field(default=False)
    shared_with: list[str] = Field(default_factory=list, sa_type=JSON)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )


class Folder(FolderBase, table=True):
    """Default folder table — ``fv_folders``."""

    __tablename__ = "fv_folders"
