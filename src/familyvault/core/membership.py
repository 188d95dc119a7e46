"""MembershipService — family creation, joining, leaving, member admin.

Enforces the single-owner-per-family invariant: creating a family makes
the caller its owner, joining always makes the caller a member, and the
owner can neither leave nor be removed.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import ForbiddenError, InvalidOperationError, NotFoundError
from .roles import Role
from .types import MemberInfo, UserWithFamily
from .utils import generate_invite_code, validate_name

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from familyvault.models.families import FamilyBase, UserBase

    from .identity import IdentityService
    from .store import StoreService

logger = logging.getLogger(__name__)

_MAX_CODE_ATTEMPTS = 20


def to_member_info(user: UserBase) -> MemberInfo:
    """Convert a user record to MemberInfo."""
    return MemberInfo(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        image_url=user.image_url,
    )


class MembershipService:
    """Family lifecycle operations. Flushes but does not commit."""

    def __init__(self, store: StoreService, identity: IdentityService) -> None:
        self._store = store
        self._identity = identity

    async def _unused_invite_code(self, session: AsyncSession) -> str:
        for _ in range(_MAX_CODE_ATTEMPTS):
            code = generate_invite_code()
            if await self._store.get_family_by_invite_code(session, code) is None:
                return code
        raise InvalidOperationError("could not allocate a unique invite code")

    def _require_owner(self, user: UserBase) -> str:
        family_id = self._identity.require_family(user)
        if user.role != Role.OWNER.value:
            raise ForbiddenError("only the family owner can do this")
        return family_id

    async def create_family(self, session: AsyncSession, user: UserBase, name: str) -> FamilyBase:
        """Create a family owned by *user*."""
        valid, error = validate_name(name)
        if not valid:
            raise InvalidOperationError(error)
        if user.family_id:
            raise InvalidOperationError("user already belongs to a family")

        family = self._store.family_model(
            name=name.strip(),
            owner_id=user.id,
            invite_code=await self._unused_invite_code(session),
        )
        await self._store.add(session, family)
        user.family_id = family.id
        user.role = Role.OWNER.value
        await session.flush()
        logger.info("Family %s created by %s", family.id, user.id)
        return family

    async def join_family(self, session: AsyncSession, user: UserBase, invite_code: str) -> FamilyBase:
        """Join the family identified by *invite_code* as a member."""
        if user.family_id:
            raise InvalidOperationError("user already belongs to a family")
        family = await self._store.get_family_by_invite_code(
            session, invite_code.strip().upper()
        )
        if family is None:
            raise NotFoundError("invalid invite code")
        user.family_id = family.id
        user.role = Role.MEMBER.value
        await session.flush()
        logger.info("User %s joined family %s", user.id, family.id)
        return family

    async def leave_family(self, session: AsyncSession, user: UserBase) -> None:
        """Leave the current family. The owner cannot leave."""
        self._identity.require_family(user)
        if user.role == Role.OWNER.value:
            raise InvalidOperationError(
                "owner cannot leave; transfer ownership or delete the family"
            )
        user.family_id = None
        user.role = None
        await session.flush()

    async def regenerate_invite_code(self, session: AsyncSession, user: UserBase) -> str:
        """Replace the family invite code (owner only)."""
        self._require_owner(user)
        family = await self._store.get_family(session, user.family_id)
        if family is None:
            raise NotFoundError("family not found")
        family.invite_code = await self._unused_invite_code(session)
        await session.flush()
        return family.invite_code

    async def get_family_members(self, session: AsyncSession, user: UserBase) -> list[MemberInfo]:
        """Members of the user's family: owner first, then by name."""
        if not user.family_id:
            return []
        members = await self._store.users_by_family(session, user.family_id)
        members.sort(key=lambda m: (m.role != Role.OWNER.value, m.name.lower(), m.name))
        return [to_member_info(m) for m in members]

    async def remove_member(self, session: AsyncSession, owner: UserBase, member_user_id: str) -> None:
        """Remove a member from the owner's family."""
        self._require_owner(owner)
        member = await self._store.get_user(session, member_user_id)
        if member is None or member.family_id != owner.family_id:
            raise NotFoundError("member not found in your family")
        if member.role == Role.OWNER.value:
            raise InvalidOperationError("cannot remove the owner")
        member.family_id = None
        member.role = None
        await session.flush()
        logger.info("User %s removed from family %s", member.id, owner.family_id)

    async def get_user_with_family(
        self, session: AsyncSession, user: UserBase | None
    ) -> UserWithFamily:
        """The user, their family, and its members."""
        if user is None:
            return UserWithFamily()
        info = to_member_info(user)
        if not user.family_id:
            return UserWithFamily(user=info)
        family = await self._store.get_family(session, user.family_id)
        if family is None:
            return UserWithFamily(user=info)
        return UserWithFamily(
            user=info,
            family_id=family.id,
            family_name=family.name,
            invite_code=family.invite_code,
            members=await self.get_family_members(session, user),
        )
