"""Builders shared by the test modules."""

from datetime import UTC, datetime, timedelta

from src.domains.circles.models import (
    CircleSuggestion,
    Contact,
    DunbarCircle,
    InteractionChannel,
    InteractionLog,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
USER_ID = "user-1"


class FakeTimer:
    """Monotonic timer the test advances by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_contact(contact_id: str, user_id: str = USER_ID, **fields) -> Contact:
    fields.setdefault("name", f"Contact {contact_id}")
    return Contact(id=contact_id, user_id=user_id, **fields)


def make_interactions(
    contact_id: str,
    days_ago: list[float],
    channel: InteractionChannel = InteractionChannel.TEXT,
    user_id: str = USER_ID,
) -> list[InteractionLog]:
    return [
        InteractionLog(
            contact_id=contact_id,
            user_id=user_id,
            occurred_at=NOW - timedelta(days=d),
            channel=channel,
        )
        for d in days_ago
    ]


def make_suggestion(
    contact_id: str,
    circle: DunbarCircle = DunbarCircle.ACTIVE,
    confidence: float = 60.0,
) -> CircleSuggestion:
    return CircleSuggestion(
        contact_id=contact_id,
        suggested_circle=circle,
        confidence=confidence,
        weighted_score=30.0,
        scoring_version="test",
        computed_at=NOW,
    )
