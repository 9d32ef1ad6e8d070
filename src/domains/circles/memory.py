"""In-process implementations of the circle engine stores.

Useful for local runs and tests. Records are kept per user; nothing is
shared between store instances.
"""

from collections import defaultdict
from datetime import datetime

from .errors import ContactNotFoundError
from .models import (
    AssignmentRecord,
    CalendarEvent,
    CircleDistribution,
    Contact,
    DunbarCircle,
    InteractionLog,
    UserOverride,
)


class InMemoryContactStore:
    def __init__(self, contacts: list[Contact] | None = None) -> None:
        self._contacts: dict[tuple[str, str], Contact] = {}
        for contact in contacts or []:
            self.add(contact)

    def add(self, contact: Contact) -> Contact:
        self._contacts[(contact.user_id, contact.id)] = contact
        return contact

    def _require(self, contact_id: str, user_id: str) -> Contact:
        contact = self._contacts.get((user_id, contact_id))
        if contact is None:
            raise ContactNotFoundError(contact_id, user_id)
        return contact

    async def find_by_id(self, contact_id: str, user_id: str) -> Contact | None:
        return self._contacts.get((user_id, contact_id))

    async def find_all(
        self,
        user_id: str,
        circle: DunbarCircle | None = None,
        include_archived: bool = False,
    ) -> list[Contact]:
        contacts = [
            c
            for (owner, _), c in self._contacts.items()
            if owner == user_id
            and (include_archived or not c.archived)
            and (circle is None or c.dunbar_circle == circle)
        ]
        return sorted(contacts, key=lambda c: (c.name, c.id))

    async def assign_circle(
        self,
        contact_id: str,
        user_id: str,
        circle: DunbarCircle,
        confidence: float | None = None,
    ) -> Contact:
        contact = self._require(contact_id, user_id)
        updated = contact.model_copy(
            update={"dunbar_circle": circle, "circle_confidence": confidence}
        )
        return self.add(updated)

    async def archive(self, contact_id: str, user_id: str) -> Contact:
        contact = self._require(contact_id, user_id)
        return self.add(contact.model_copy(update={"archived": True}))

    async def unarchive(self, contact_id: str, user_id: str) -> Contact:
        contact = self._require(contact_id, user_id)
        return self.add(contact.model_copy(update={"archived": False}))


class InMemoryInteractionStore:
    def __init__(self, interactions: list[InteractionLog] | None = None) -> None:
        self._logs: dict[tuple[str, str], list[InteractionLog]] = defaultdict(list)
        for log in interactions or []:
            self.add(log)

    def add(self, log: InteractionLog) -> InteractionLog:
        self._logs[(log.user_id, log.contact_id)].append(log)
        return log

    async def find_by_contact_id(self, contact_id: str, user_id: str) -> list[InteractionLog]:
        logs = self._logs.get((user_id, contact_id), [])
        return sorted(logs, key=lambda log: log.occurred_at, reverse=True)


class InMemoryCalendarSource:
    def __init__(self, events: dict[str, list[CalendarEvent]] | None = None) -> None:
        self._events: dict[str, list[CalendarEvent]] = defaultdict(list)
        for user_id, user_events in (events or {}).items():
            self._events[user_id].extend(user_events)

    def add(self, user_id: str, event: CalendarEvent) -> CalendarEvent:
        self._events[user_id].append(event)
        return event

    async def get_events(self, user_id: str, start: datetime, end: datetime) -> list[CalendarEvent]:
        return [e for e in self._events.get(user_id, []) if start <= e.start_time <= end]


class InMemoryAssignmentStore:
    """Append-only assignment history; distribution reads live contact pointers."""

    def __init__(self, contact_store: InMemoryContactStore) -> None:
        self._contacts = contact_store
        self._records: dict[str, list[AssignmentRecord]] = defaultdict(list)

    async def create(self, record: AssignmentRecord) -> AssignmentRecord:
        self._records[record.user_id].append(record)
        return record

    async def find_by_contact_id(self, contact_id: str, user_id: str) -> list[AssignmentRecord]:
        records = [r for r in self._records.get(user_id, []) if r.contact_id == contact_id]
        return list(reversed(records))

    async def find_by_user_id(
        self, user_id: str, limit: int | None = None
    ) -> list[AssignmentRecord]:
        records = list(reversed(self._records.get(user_id, [])))
        return records[:limit] if limit else records

    async def get_circle_distribution(self, user_id: str) -> CircleDistribution:
        contacts = await self._contacts.find_all(user_id)
        return CircleDistribution.from_circles([c.dunbar_circle for c in contacts])

    async def get_contacts_in_circle(self, user_id: str, circle: DunbarCircle) -> list[str]:
        contacts = await self._contacts.find_all(user_id, circle=circle)
        return [c.id for c in contacts]


class InMemoryOverrideStore:
    def __init__(self) -> None:
        self._overrides: dict[str, list[UserOverride]] = defaultdict(list)

    async def create(self, override: UserOverride) -> UserOverride:
        self._overrides[override.user_id].append(override)
        return override

    async def find_by_user_id(self, user_id: str) -> list[UserOverride]:
        return sorted(
            self._overrides.get(user_id, []), key=lambda o: o.recorded_at, reverse=True
        )
