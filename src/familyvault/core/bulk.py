"""BulkCoordinator — best-effort mutations over lists of ids.

Each id runs the matching single-item ``MutationEngine`` operation in
its own session, sequentially.  Items that fail authorization or do not
resolve are skipped without raising; a crash part-way leaves completed
items committed and the rest untouched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from familyvault.events import EventType, VaultEvent

from .exceptions import FamilyVaultError
from .types import BulkOutcome, BulkResult, DeleteResult
from .utils import normalize_ids

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from contextlib import AbstractAsyncContextManager

    from sqlalchemy.ext.asyncio import AsyncSession

    from familyvault.models.families import UserBase

    from .identity import IdentityService
    from .mutations import MutationEngine

    SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]
    ItemOperation = Callable[[AsyncSession, UserBase, str], Awaitable[Any]]
    EventSink = Callable[[VaultEvent], Awaitable[None]]

logger = logging.getLogger(__name__)


class BulkCoordinator:
    """Applies one mutation to many ids with per-item, best-effort semantics."""

    def __init__(
        self,
        engine: MutationEngine,
        identity: IdentityService,
        session_scope: SessionScope,
        emit: EventSink | None = None,
    ) -> None:
        self._engine = engine
        self._identity = identity
        self._session_scope = session_scope
        self._emit = emit

    async def _run(
        self,
        actor_token: str,
        item_ids: Sequence[str],
        operation: ItemOperation,
        event_type: EventType,
    ) -> BulkResult:
        # Actor problems are not per-item: fail before touching anything
        async with self._session_scope() as session:
            await self._identity.resolve(session, actor_token)

        result = BulkResult()
        for item_id in normalize_ids(item_ids):
            try:
                async with self._session_scope() as session:
                    user = await self._identity.resolve(session, actor_token)
                    outcome = await operation(session, user, item_id)
                    family_id = user.family_id
                    actor_id = user.id
            except FamilyVaultError as e:
                logger.debug("Bulk %s skipped %s: %s", event_type.value, item_id, e)
                result.skipped.append(BulkOutcome(item_id=item_id, succeeded=False, reason=str(e)))
                continue

            keys = outcome.storage_keys if isinstance(outcome, DeleteResult) else []
            result.storage_keys.extend(keys)
            result.succeeded.append(item_id)
            if self._emit is not None:
                await self._emit(
                    VaultEvent(
                        event_type=event_type,
                        item_id=item_id,
                        family_id=family_id,
                        actor_id=actor_id,
                        storage_keys=tuple(keys),
                    )
                )

        logger.debug(
            "Bulk %s: %d succeeded, %d skipped",
            event_type.value,
            len(result.succeeded),
            len(result.skipped),
        )
        return result

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def bulk_delete_files(self, actor_token: str, file_ids: Sequence[str]) -> BulkResult:
        return await self._run(
            actor_token, file_ids, self._engine.delete_file, EventType.FILE_DELETED
        )

    async def bulk_move_files(
        self, actor_token: str, file_ids: Sequence[str], folder_id: str | None
    ) -> BulkResult:
        async def op(session: AsyncSession, user: UserBase, file_id: str) -> Any:
            return await self._engine.move_file(session, user, file_id, folder_id)

        return await self._run(actor_token, file_ids, op, EventType.FILE_MOVED)

    async def bulk_assign_files(
        self, actor_token: str, file_ids: Sequence[str], assigned_to: str | None
    ) -> BulkResult:
        async def op(session: AsyncSession, user: UserBase, file_id: str) -> Any:
            return await self._engine.update_file_assignment(session, user, file_id, assigned_to)

        return await self._run(actor_token, file_ids, op, EventType.FILE_ASSIGNED)

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    async def bulk_delete_folders(
        self, actor_token: str, folder_ids: Sequence[str], delete_contents: bool
    ) -> BulkResult:
        async def op(session: AsyncSession, user: UserBase, folder_id: str) -> Any:
            return await self._engine.delete_folder(session, user, folder_id, delete_contents)

        return await self._run(actor_token, folder_ids, op, EventType.FOLDER_DELETED)

    async def bulk_move_folders(
        self, actor_token: str, folder_ids: Sequence[str], parent_folder_id: str | None
    ) -> BulkResult:
        async def op(session: AsyncSession, user: UserBase, folder_id: str) -> Any:
            return await self._engine.move_folder(session, user, folder_id, parent_folder_id)

        return await self._run(actor_token, folder_ids, op, EventType.FOLDER_MOVED)

    async def bulk_assign_folders(
        self, actor_token: str, folder_ids: Sequence[str], assigned_to: Sequence[str] | None
    ) -> BulkResult:
        async def op(session: AsyncSession, user: UserBase, folder_id: str) -> Any:
            return await self._engine.update_folder_assignment(
                session, user, folder_id, assigned_to
            )

        return await self._run(actor_token, folder_ids, op, EventType.FOLDER_ASSIGNED)
