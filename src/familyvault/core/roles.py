"""Role enum for family membership."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role of a user within their family."""

    OWNER = "owner"
    MEMBER = "member"
