"""Append-only circle assignment ledger.

Every committed circle (chosen by the user or accepted from an AI
suggestion) is recorded here together with the circle it replaced. The
ledger is the only writer of a contact's live circle pointer. Writes for
one user are serialized so that ``from_circle`` always matches the
``to_circle`` of the previous record, even when the same contact is
committed from two places at once; the last writer wins the pointer.
A user's lock is dropped once no write holds or awaits it.
"""

import asyncio
import uuid
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog

from .cache import SuggestionCache
from .errors import ContactNotFoundError
from .models import AssignedBy, AssignmentRecord, CircleAssignment, Contact, DunbarCircle
from .stores import AssignmentStore, ContactStore

logger = structlog.get_logger()

USER_OVERRIDE_REASON = "User override"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AssignmentLedger:
    def __init__(
        self,
        contact_store: ContactStore,
        assignment_store: AssignmentStore,
        cache: SuggestionCache | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._contacts = contact_store
        self._assignments = assignment_store
        self._cache = cache
        self._clock = clock or _utcnow
        self._user_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _serialized(self, user_id: str) -> AsyncIterator[None]:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = self._user_locks[user_id] = asyncio.Lock()
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[user_id] -= 1
            if self._lock_users[user_id] == 0:
                del self._lock_users[user_id]
                del self._user_locks[user_id]

    async def _require_contact(self, contact_id: str, user_id: str) -> Contact:
        contact = await self._contacts.find_by_id(contact_id, user_id)
        if contact is None:
            raise ContactNotFoundError(contact_id, user_id)
        return contact

    async def record(
        self,
        user_id: str,
        contact_id: str,
        to_circle: str | DunbarCircle,
        assigned_by: AssignedBy = AssignedBy.USER,
        confidence: float | None = None,
        reason: str | None = None,
    ) -> AssignmentRecord:
        """Commit ``to_circle`` for a contact and append the history record.

        Raises:
            InvalidCircleError: ``to_circle`` is not a known circle.
            ContactNotFoundError: the contact does not exist for this user.
        """
        circle = DunbarCircle.parse(to_circle)
        async with self._serialized(user_id):
            await self._require_contact(contact_id, user_id)
            record = await self._append(
                user_id, contact_id, circle, assigned_by, confidence, reason
            )

        logger.info(
            "circle_assigned",
            user_id=user_id,
            contact_id=contact_id,
            from_circle=record.from_circle.value if record.from_circle else None,
            to_circle=circle.value,
            assigned_by=assigned_by.value,
        )
        return record

    async def batch_record(
        self,
        user_id: str,
        assignments: Sequence[CircleAssignment],
        assigned_by: AssignedBy = AssignedBy.USER,
    ) -> list[AssignmentRecord]:
        """Commit many assignments, all or nothing.

        Every circle tag and every contact is validated before the first
        record is written, so an invalid entry anywhere in the batch leaves
        the ledger untouched.
        """
        if not assignments:
            return []

        circles = [DunbarCircle.parse(a.circle) for a in assignments]

        records: list[AssignmentRecord] = []
        async with self._serialized(user_id):
            for assignment in assignments:
                await self._require_contact(assignment.contact_id, user_id)

            for assignment, circle in zip(assignments, circles):
                reason = USER_OVERRIDE_REASON if assignment.user_override else None
                records.append(
                    await self._append(
                        user_id,
                        assignment.contact_id,
                        circle,
                        assigned_by,
                        assignment.confidence,
                        reason,
                    )
                )

        logger.info(
            "circles_batch_assigned",
            user_id=user_id,
            count=len(records),
            assigned_by=assigned_by.value,
        )
        return records

    async def _append(
        self,
        user_id: str,
        contact_id: str,
        circle: DunbarCircle,
        assigned_by: AssignedBy,
        confidence: float | None,
        reason: str | None,
    ) -> AssignmentRecord:
        # Re-read inside the lock: an earlier entry of the same batch may have moved it.
        current = await self._require_contact(contact_id, user_id)
        record = AssignmentRecord(
            id=str(uuid.uuid4()),
            user_id=user_id,
            contact_id=contact_id,
            from_circle=current.dunbar_circle,
            to_circle=circle,
            assigned_by=assigned_by,
            confidence=confidence,
            reason=reason,
            assigned_at=self._clock(),
        )
        # History only records moves the pointer has already taken.
        await self._contacts.assign_circle(contact_id, user_id, circle, confidence)
        stored = await self._assignments.create(record)
        if self._cache is not None:
            self._cache.invalidate(user_id, contact_id)
        return stored

    async def history(self, user_id: str, contact_id: str) -> list[AssignmentRecord]:
        """All assignment records for the contact, newest first."""
        return await self._assignments.find_by_contact_id(contact_id, user_id)

    async def recent(self, user_id: str, limit: int = 10) -> list[AssignmentRecord]:
        return await self._assignments.find_by_user_id(user_id, limit=limit)
