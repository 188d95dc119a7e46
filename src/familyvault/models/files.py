"""File metadata model.

The binary object lives in an external store; ``storage_key`` is the
opaque handle returned to callers on delete so they can purge it.
``assigned_to`` holds at most one user id for files.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime
from sqlmodel import Field, SQLModel


class FileBase(SQLModel):
    """Base fields for a stored file. Subclass with ``table=True`` for a concrete table."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(default="")
    original_name: str = Field(default="")
    family_id: str = Field(index=True)
    folder_id: str | None = Field(default=None, index=True)
    uploaded_by: str = Field(index=True)
    assigned_to: list[str] = Field(default_factory=list, sa_type=JSON)
    shared_with_family: bool = Field(default=False)
    shared_with: list[str] = Field(default_factory=list, sa_type=JSON)
    tags: list[str] = Field(default_factory=list, sa_type=JSON)
    size: int = Field(default=0)
    mime_type: str = Field(default="application/octet-stream")
    url: str | None = Field(default=None)
    storage_key: str = Field(default="")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )


class File(FileBase, table=True):
    """Default file table — ``fv_files``."""

    __tablename__ = "fv_files"
