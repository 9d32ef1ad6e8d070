"""Pydantic models for the Dunbar circle classification domain."""

from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from .errors import InvalidCircleError

# --- Enums ---


class DunbarCircle(StrEnum):
    """Relationship tiers, ordered from tightest to loosest."""

    INNER = "inner"
    CLOSE = "close"
    ACTIVE = "active"
    CASUAL = "casual"
    ACQUAINTANCE = "acquaintance"

    @classmethod
    def parse(cls, value: "str | DunbarCircle") -> "DunbarCircle":
        """Return the circle for ``value`` or raise InvalidCircleError."""
        try:
            return cls(value)
        except ValueError:
            raise InvalidCircleError(value) from None

    @property
    def rank(self) -> int:
        """0 for the tightest circle, increasing outward."""
        return list(DunbarCircle).index(self)


class InteractionChannel(StrEnum):
    TEXT = "text"
    CALL = "call"
    HANGOUT = "hangout"
    CALENDAR_EVENT = "calendar_event"


class ScoringMode(StrEnum):
    STANDARD = "standard"
    ONBOARDING = "onboarding"


class FactorType(StrEnum):
    COMMUNICATION_FREQUENCY = "communication_frequency"
    RECENCY = "recency"
    CONSISTENCY = "consistency"
    MULTI_CHANNEL = "multi_channel"
    CALENDAR_EVENTS = "calendar_events"
    METADATA_RICHNESS = "metadata_richness"
    CONTACT_AGE = "contact_age"


class AssignedBy(StrEnum):
    USER = "user"
    AI = "ai"


class CapacityStatus(StrEnum):
    UNDER = "under"
    OPTIMAL = "optimal"
    OVER = "over"


# --- Input Models ---


class Contact(BaseModel):
    id: str
    user_id: str
    name: str = ""
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    notes: str | None = None
    linkedin: str | None = None
    instagram: str | None = None
    x_handle: str | None = None
    other_social_media: dict[str, str] = Field(default_factory=dict)
    dunbar_circle: DunbarCircle | None = None
    circle_confidence: float | None = Field(default=None, ge=0, le=100)
    archived: bool = False
    created_at: datetime | None = None


class InteractionLog(BaseModel):
    contact_id: str
    user_id: str
    occurred_at: datetime
    channel: InteractionChannel
    note: str | None = None


class CalendarAttendee(BaseModel):
    # No email means the attendee can never be matched to a contact.
    email: str | None = None
    display_name: str | None = None


class CalendarEvent(BaseModel):
    start_time: datetime
    attendees: list[CalendarAttendee] = Field(default_factory=list)
    title: str | None = None

    def has_attendee(self, email: str) -> bool:
        target = email.strip().lower()
        return any(
            a.email is not None and a.email.strip().lower() == target for a in self.attendees
        )


# --- Suggestion Models ---


class SuggestionFactor(BaseModel):
    type: FactorType
    weight: float = Field(ge=0)
    value: int = Field(ge=0, le=100)
    description: str


class AlternativeCircle(BaseModel):
    circle: DunbarCircle
    confidence: float = Field(ge=0, le=100)


class CircleSuggestion(BaseModel):
    contact_id: str
    suggested_circle: DunbarCircle
    confidence: float = Field(ge=0, le=100)
    factors: list[SuggestionFactor] = Field(default_factory=list)
    alternative_circles: list[AlternativeCircle] = Field(default_factory=list)
    weighted_score: float = Field(ge=0, le=100)
    mode: ScoringMode = ScoringMode.STANDARD
    scoring_version: str
    computed_at: datetime


class UserOverride(BaseModel):
    user_id: str
    contact_id: str
    suggested_circle: DunbarCircle
    actual_circle: DunbarCircle
    factors: list[SuggestionFactor] = Field(default_factory=list)
    recorded_at: datetime


class BatchFailure(BaseModel):
    contact_id: str
    error_type: str
    message: str


class BatchAnalysisResult(BaseModel):
    succeeded: list[CircleSuggestion] = Field(default_factory=list)
    failed: list[BatchFailure] = Field(default_factory=list)


# --- Assignment Models ---


class CircleDefinition(BaseModel):
    circle: DunbarCircle
    name: str
    recommended_size: int = Field(gt=0)
    max_size: int = Field(gt=0)


class CircleAssignment(BaseModel):
    contact_id: str
    circle: str
    confidence: float | None = Field(default=None, ge=0, le=100)
    user_override: bool = False


class AssignmentRecord(BaseModel):
    id: str
    user_id: str
    contact_id: str
    from_circle: DunbarCircle | None = None
    to_circle: DunbarCircle
    assigned_by: AssignedBy
    confidence: float | None = Field(default=None, ge=0, le=100)
    reason: str | None = None
    assigned_at: datetime


class CircleDistribution(BaseModel):
    inner: int = 0
    close: int = 0
    active: int = 0
    casual: int = 0
    acquaintance: int = 0
    uncategorized: int = 0
    total: int = 0

    def count(self, circle: DunbarCircle) -> int:
        return getattr(self, circle.value)

    @classmethod
    def from_counts(cls, counts: "Mapping[DunbarCircle | None, int]") -> "CircleDistribution":
        """Build from per-circle counts; the ``None`` key counts uncategorized contacts."""
        distribution = cls()
        for circle, n in counts.items():
            if circle is None:
                distribution.uncategorized += n
            else:
                setattr(distribution, circle.value, distribution.count(circle) + n)
            distribution.total += n
        return distribution

    @classmethod
    def from_circles(cls, circles: "Iterable[DunbarCircle | None]") -> "CircleDistribution":
        """Tally live circle pointers (archived contacts must already be filtered out)."""
        return cls.from_counts(Counter(circles))


# --- Capacity Models ---


class CircleCapacity(BaseModel):
    circle: DunbarCircle
    current_size: int = Field(ge=0)
    recommended_size: int
    max_size: int
    status: CapacityStatus
    message: str | None = None


class RebalancingSuggestion(BaseModel):
    contact_id: str
    contact_name: str
    current_circle: DunbarCircle
    suggested_circle: DunbarCircle
    reason: str
    confidence: float = Field(ge=0, le=1)
