"""SQLAlchemy implementations of the circle engine stores.

Each store opens a short-lived session per call from the factory it is
given, so one instance can be shared across concurrent tasks.
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.db.models import CircleAssignmentDB, CircleOverrideDB, ContactDB, InteractionLogDB
from src.domains.circles.errors import ContactNotFoundError
from src.domains.circles.models import (
    AssignedBy,
    AssignmentRecord,
    CircleDistribution,
    Contact,
    DunbarCircle,
    InteractionChannel,
    InteractionLog,
    SuggestionFactor,
    UserOverride,
)

logger = structlog.get_logger()

SessionFactory = async_sessionmaker[AsyncSession]


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _circle(value: str | None) -> DunbarCircle | None:
    return DunbarCircle(value) if value is not None else None


def _contact_from_row(row: ContactDB) -> Contact:
    return Contact(
        id=row.id,
        user_id=row.user_id,
        name=row.name or "",
        email=row.email,
        phone=row.phone,
        location=row.location,
        notes=row.notes,
        linkedin=row.linkedin,
        instagram=row.instagram,
        x_handle=row.x_handle,
        other_social_media=row.other_social_media or {},
        dunbar_circle=_circle(row.dunbar_circle),
        circle_confidence=row.circle_confidence,
        archived=row.archived,
        created_at=_as_utc(row.created_at),
    )


def _record_from_row(row: CircleAssignmentDB) -> AssignmentRecord:
    return AssignmentRecord(
        id=row.assignment_id,
        user_id=row.user_id,
        contact_id=row.contact_id,
        from_circle=_circle(row.from_circle),
        to_circle=DunbarCircle(row.to_circle),
        assigned_by=AssignedBy(row.assigned_by),
        confidence=row.confidence,
        reason=row.reason,
        assigned_at=_as_utc(row.assigned_at),
    )


class SqlContactStore:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def add(self, contact: Contact) -> Contact:
        async with self._session_factory() as session:
            session.add(
                ContactDB(
                    id=contact.id,
                    user_id=contact.user_id,
                    name=contact.name,
                    email=contact.email,
                    phone=contact.phone,
                    location=contact.location,
                    notes=contact.notes,
                    linkedin=contact.linkedin,
                    instagram=contact.instagram,
                    x_handle=contact.x_handle,
                    other_social_media=dict(contact.other_social_media),
                    dunbar_circle=contact.dunbar_circle.value if contact.dunbar_circle else None,
                    circle_confidence=contact.circle_confidence,
                    archived=contact.archived,
                    created_at=contact.created_at,
                )
            )
            await session.commit()
        return contact

    async def find_by_id(self, contact_id: str, user_id: str) -> Contact | None:
        async with self._session_factory() as session:
            row = await self._get(session, contact_id, user_id)
            return _contact_from_row(row) if row is not None else None

    async def find_all(
        self,
        user_id: str,
        circle: DunbarCircle | None = None,
        include_archived: bool = False,
    ) -> list[Contact]:
        stmt = select(ContactDB).where(ContactDB.user_id == user_id)
        if not include_archived:
            stmt = stmt.where(ContactDB.archived.is_(False))
        if circle is not None:
            stmt = stmt.where(ContactDB.dunbar_circle == circle.value)
        stmt = stmt.order_by(ContactDB.name, ContactDB.id)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_contact_from_row(row) for row in result.scalars()]

    async def assign_circle(
        self,
        contact_id: str,
        user_id: str,
        circle: DunbarCircle,
        confidence: float | None = None,
    ) -> Contact:
        async with self._session_factory() as session:
            row = await self._require(session, contact_id, user_id)
            row.dunbar_circle = circle.value
            row.circle_confidence = confidence
            row.circle_assigned_at = datetime.now(UTC)
            contact = _contact_from_row(row)
            await session.commit()
            return contact

    async def archive(self, contact_id: str, user_id: str) -> Contact:
        return await self._set_archived(contact_id, user_id, True)

    async def unarchive(self, contact_id: str, user_id: str) -> Contact:
        return await self._set_archived(contact_id, user_id, False)

    async def _set_archived(self, contact_id: str, user_id: str, archived: bool) -> Contact:
        async with self._session_factory() as session:
            row = await self._require(session, contact_id, user_id)
            row.archived = archived
            contact = _contact_from_row(row)
            await session.commit()
            return contact

    @staticmethod
    async def _get(session: AsyncSession, contact_id: str, user_id: str) -> ContactDB | None:
        result = await session.execute(
            select(ContactDB).where(ContactDB.id == contact_id, ContactDB.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def _require(self, session: AsyncSession, contact_id: str, user_id: str) -> ContactDB:
        row = await self._get(session, contact_id, user_id)
        if row is None:
            raise ContactNotFoundError(contact_id, user_id)
        return row


class SqlInteractionStore:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def add(self, log: InteractionLog) -> InteractionLog:
        async with self._session_factory() as session:
            session.add(
                InteractionLogDB(
                    contact_id=log.contact_id,
                    user_id=log.user_id,
                    occurred_at=log.occurred_at,
                    channel=log.channel.value,
                    note=log.note,
                )
            )
            await session.commit()
        return log

    async def find_by_contact_id(self, contact_id: str, user_id: str) -> list[InteractionLog]:
        stmt = (
            select(InteractionLogDB)
            .where(InteractionLogDB.contact_id == contact_id, InteractionLogDB.user_id == user_id)
            .order_by(InteractionLogDB.occurred_at.desc(), InteractionLogDB.id.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [
                InteractionLog(
                    contact_id=row.contact_id,
                    user_id=row.user_id,
                    occurred_at=_as_utc(row.occurred_at),
                    channel=InteractionChannel(row.channel),
                    note=row.note,
                )
                for row in result.scalars()
            ]


class SqlAssignmentStore:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def create(self, record: AssignmentRecord) -> AssignmentRecord:
        async with self._session_factory() as session:
            session.add(
                CircleAssignmentDB(
                    assignment_id=record.id,
                    user_id=record.user_id,
                    contact_id=record.contact_id,
                    from_circle=record.from_circle.value if record.from_circle else None,
                    to_circle=record.to_circle.value,
                    assigned_by=record.assigned_by.value,
                    confidence=record.confidence,
                    reason=record.reason,
                    assigned_at=record.assigned_at,
                )
            )
            await session.commit()
        return record

    async def find_by_contact_id(self, contact_id: str, user_id: str) -> list[AssignmentRecord]:
        stmt = (
            select(CircleAssignmentDB)
            .where(
                CircleAssignmentDB.contact_id == contact_id,
                CircleAssignmentDB.user_id == user_id,
            )
            .order_by(CircleAssignmentDB.assigned_at.desc(), CircleAssignmentDB.id.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_record_from_row(row) for row in result.scalars()]

    async def find_by_user_id(
        self, user_id: str, limit: int | None = None
    ) -> list[AssignmentRecord]:
        stmt = (
            select(CircleAssignmentDB)
            .where(CircleAssignmentDB.user_id == user_id)
            .order_by(CircleAssignmentDB.assigned_at.desc(), CircleAssignmentDB.id.desc())
        )
        if limit:
            stmt = stmt.limit(limit)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [_record_from_row(row) for row in result.scalars()]

    async def get_circle_distribution(self, user_id: str) -> CircleDistribution:
        stmt = (
            select(ContactDB.dunbar_circle, func.count())
            .where(ContactDB.user_id == user_id, ContactDB.archived.is_(False))
            .group_by(ContactDB.dunbar_circle)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            counts = {_circle(circle): count for circle, count in result.all()}
        return CircleDistribution.from_counts(counts)

    async def get_contacts_in_circle(self, user_id: str, circle: DunbarCircle) -> list[str]:
        stmt = (
            select(ContactDB.id)
            .where(
                ContactDB.user_id == user_id,
                ContactDB.dunbar_circle == circle.value,
                ContactDB.archived.is_(False),
            )
            .order_by(ContactDB.name, ContactDB.id)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars())


class SqlOverrideStore:
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    async def create(self, override: UserOverride) -> UserOverride:
        async with self._session_factory() as session:
            session.add(
                CircleOverrideDB(
                    user_id=override.user_id,
                    contact_id=override.contact_id,
                    suggested_circle=override.suggested_circle.value,
                    actual_circle=override.actual_circle.value,
                    factors=[f.model_dump(mode="json") for f in override.factors],
                    recorded_at=override.recorded_at,
                )
            )
            await session.commit()

        logger.debug(
            "circle_override_stored",
            user_id=override.user_id,
            contact_id=override.contact_id,
        )
        return override

    async def find_by_user_id(self, user_id: str) -> list[UserOverride]:
        stmt = (
            select(CircleOverrideDB)
            .where(CircleOverrideDB.user_id == user_id)
            .order_by(CircleOverrideDB.recorded_at.desc(), CircleOverrideDB.id.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [
                UserOverride(
                    user_id=row.user_id,
                    contact_id=row.contact_id,
                    suggested_circle=DunbarCircle(row.suggested_circle),
                    actual_circle=DunbarCircle(row.actual_circle),
                    factors=[SuggestionFactor.model_validate(f) for f in row.factors or []],
                    recorded_at=_as_utc(row.recorded_at),
                )
                for row in result.scalars()
            ]
