"""Name validation, id/tag normalization, invite codes, sort keys."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

# Invite codes skip look-alike characters (0/O, 1/I)
INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
INVITE_CODE_LENGTH = 6


def validate_name(name: str) -> tuple[bool, str]:
    """Validate a folder or file display name.

    Returns ``(is_valid, error_message)``.
    """
    if not name or not name.strip():
        return False, "Name cannot be empty"

    if "\0" in name:
        return False, "Name contains null byte"

    return True, ""


def normalize_ids(ids: Iterable[str] | None) -> list[str]:
    """Drop empty entries and duplicates, keeping first-seen order."""
    if not ids:
        return []
    seen: set[str] = set()
    out: list[str] = []
    for item in ids:
        if not item or item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Strip whitespace, drop blanks and duplicates, keep order."""
    if not tags:
        return []
    return normalize_ids(t.strip() for t in tags)


def generate_invite_code() -> str:
    """Return a random family invite code."""
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def name_sort_key(item: object) -> tuple[str, object, str]:
    """Case-sensitive name ordering with created_at/id tie-breaks."""
    created_at = getattr(item, "created_at", None)
    return (
        getattr(item, "name", ""),
        created_at.timestamp() if created_at is not None else 0.0,
        getattr(item, "id", ""),
    )


def matches_term(term: str, *fields: str | None) -> bool:
    """Case-insensitive substring match of *term* against any of *fields*."""
    needle = term.strip().lower()
    if not needle:
        return True
    return any(f is not None and needle in f.lower() for f in fields)
