"""Collaborator interfaces consumed by the circle engine.

The engine never talks to a database or calendar API directly; it is
handed objects satisfying these protocols. ``src.db.repositories`` provides
SQLAlchemy implementations and ``memory`` provides in-process ones.
"""

from datetime import datetime
from typing import Protocol

from .models import (
    AssignmentRecord,
    CalendarEvent,
    CircleDistribution,
    Contact,
    DunbarCircle,
    InteractionLog,
    UserOverride,
)


class ContactStore(Protocol):
    async def find_by_id(self, contact_id: str, user_id: str) -> Contact | None: ...

    async def find_all(
        self,
        user_id: str,
        circle: DunbarCircle | None = None,
        include_archived: bool = False,
    ) -> list[Contact]: ...

    async def assign_circle(
        self,
        contact_id: str,
        user_id: str,
        circle: DunbarCircle,
        confidence: float | None = None,
    ) -> Contact: ...

    async def archive(self, contact_id: str, user_id: str) -> Contact: ...

    async def unarchive(self, contact_id: str, user_id: str) -> Contact: ...


class InteractionStore(Protocol):
    async def find_by_contact_id(self, contact_id: str, user_id: str) -> list[InteractionLog]:
        """Interactions for the contact, newest first."""
        ...


class CalendarSource(Protocol):
    async def get_events(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[CalendarEvent]: ...


class AssignmentStore(Protocol):
    async def create(self, record: AssignmentRecord) -> AssignmentRecord: ...

    async def find_by_contact_id(self, contact_id: str, user_id: str) -> list[AssignmentRecord]:
        """Assignment history for the contact, newest first."""
        ...

    async def find_by_user_id(
        self, user_id: str, limit: int | None = None
    ) -> list[AssignmentRecord]: ...

    async def get_circle_distribution(self, user_id: str) -> CircleDistribution: ...

    async def get_contacts_in_circle(self, user_id: str, circle: DunbarCircle) -> list[str]:
        """Non-archived contact ids in the circle, ordered by contact name."""
        ...


class OverrideStore(Protocol):
    async def create(self, override: UserOverride) -> UserOverride: ...

    async def find_by_user_id(self, user_id: str) -> list[UserOverride]: ...
