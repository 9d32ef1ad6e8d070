"""SQLAlchemy ORM models for Dunbar Intelligence internal state."""

from datetime import datetime

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Float, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")
# SQLite only autoincrements INTEGER primary keys.
SurrogateKey = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    pass


class ContactDB(Base):
    __tablename__ = "contacts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    name: Mapped[str] = mapped_column(String, default="")
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(String, nullable=True)
    linkedin: Mapped[str | None] = mapped_column(String, nullable=True)
    instagram: Mapped[str | None] = mapped_column(String, nullable=True)
    x_handle: Mapped[str | None] = mapped_column(String, nullable=True)
    other_social_media: Mapped[dict] = mapped_column(JSONType, default=dict)
    dunbar_circle: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    circle_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    circle_assigned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    archived: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class InteractionLogDB(Base):
    __tablename__ = "interaction_logs"
    __table_args__ = (Index("ix_interaction_logs_user_contact", "user_id", "contact_id"),)

    id: Mapped[int] = mapped_column(SurrogateKey, primary_key=True, autoincrement=True)
    contact_id: Mapped[str] = mapped_column(String)
    user_id: Mapped[str] = mapped_column(String)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    channel: Mapped[str] = mapped_column(String)
    note: Mapped[str | None] = mapped_column(String, nullable=True)


class CircleAssignmentDB(Base):
    """Append-only assignment history. Rows are never updated."""

    __tablename__ = "circle_assignments"
    __table_args__ = (Index("ix_circle_assignments_user_contact", "user_id", "contact_id"),)

    id: Mapped[int] = mapped_column(SurrogateKey, primary_key=True, autoincrement=True)
    assignment_id: Mapped[str] = mapped_column(String, unique=True, index=True)
    user_id: Mapped[str] = mapped_column(String)
    contact_id: Mapped[str] = mapped_column(String)
    from_circle: Mapped[str | None] = mapped_column(String, nullable=True)
    to_circle: Mapped[str] = mapped_column(String)
    assigned_by: Mapped[str] = mapped_column(String)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


class CircleOverrideDB(Base):
    __tablename__ = "ai_circle_overrides"

    id: Mapped[int] = mapped_column(SurrogateKey, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    contact_id: Mapped[str] = mapped_column(String)
    suggested_circle: Mapped[str] = mapped_column(String)
    actual_circle: Mapped[str] = mapped_column(String)
    factors: Mapped[list] = mapped_column(JSONType, default=list)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
