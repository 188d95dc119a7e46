"""IdentityService — maps opaque actor tokens to user records."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import NotAuthenticatedError, NotInFamilyError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from familyvault.models.families import UserBase

    from .store import StoreService

logger = logging.getLogger(__name__)


class IdentityService:
    """Resolves actor tokens supplied by the external auth provider.

    Tokens are trusted as already authenticated; no authorization logic
    lives here.
    """

    def __init__(self, store: StoreService) -> None:
        self._store = store

    async def resolve(self, session: AsyncSession, actor_token: str | None) -> UserBase:
        """Return the user for *actor_token* or raise ``NotAuthenticatedError``."""
        if not actor_token:
            raise NotAuthenticatedError("actor token is required")
        user = await self._store.get_user_by_token(session, actor_token)
        if user is None:
            raise NotAuthenticatedError("actor token does not resolve to a user")
        return user

    async def try_resolve(self, session: AsyncSession, actor_token: str | None) -> UserBase | None:
        """Like ``resolve`` but returns ``None`` instead of raising."""
        if not actor_token:
            return None
        return await self._store.get_user_by_token(session, actor_token)

    @staticmethod
    def require_family(user: UserBase) -> str:
        """Return the user's family id or raise ``NotInFamilyError``."""
        if not user.family_id:
            raise NotInFamilyError(f"user {user.id!r} does not belong to a family")
        return user.family_id

    async def get_or_create_user(
        self,
        session: AsyncSession,
        actor_token: str,
        *,
        email: str,
        name: str,
        image_url: str | None = None,
    ) -> UserBase:
        """Upsert the user record for *actor_token*.

        Existing records only have their display fields patched, and only
        when they changed.  Flushes but does not commit.
        """
        if not actor_token:
            raise NotAuthenticatedError("actor token is required")
        existing = await self._store.get_user_by_token(session, actor_token)
        if existing is not None:
            if (
                existing.email != email
                or existing.name != name
                or existing.image_url != image_url
            ):
                existing.email = email
                existing.name = name
                existing.image_url = image_url
                await session.flush()
                logger.debug("Updated profile fields for user %s", existing.id)
            return existing

        user = self._store.user_model(
            actor_token=actor_token,
            email=email,
            name=name,
            image_url=image_url,
        )
        await self._store.add(session, user)
        logger.debug("Created user %s", user.id)
        return user
