"""Behavioral signal extraction for circle suggestions.

Turns a contact's interaction history, profile metadata and (during
onboarding) shared calendar events into bounded 0-100 SuggestionFactors.
Every factor family maps a raw measurement through a configurable
breakpoint table; the active weight profile decides which families are
emitted and how much each one counts.
"""

import statistics
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

import structlog

from .config import CircleEngineConfig, default_config
from .errors import ContactNotFoundError, TransientSignalError
from .models import (
    CalendarEvent,
    Contact,
    FactorType,
    InteractionLog,
    ScoringMode,
    SuggestionFactor,
)
from .stores import CalendarSource, ContactStore, InteractionStore

logger = structlog.get_logger()

_SECONDS_PER_DAY = 86400.0


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _floor_map(value: float, breakpoints: Sequence[tuple[float, int]], floor_value: int) -> int:
    """First breakpoint whose threshold ``value`` reaches, else ``floor_value``."""
    for threshold, mapped in breakpoints:
        if value >= threshold:
            return mapped
    return floor_value


def _ceiling_map(value: float, breakpoints: Sequence[tuple[float, int]], floor_value: int) -> int:
    """First breakpoint whose threshold ``value`` stays under, else ``floor_value``."""
    for threshold, mapped in breakpoints:
        if value < threshold:
            return mapped
    return floor_value


def _days_between(later: datetime, earlier: datetime) -> float:
    return (later - earlier).total_seconds() / _SECONDS_PER_DAY


class SignalExtractor:
    """Computes weighted suggestion factors for one contact."""

    def __init__(
        self,
        contact_store: ContactStore,
        interaction_store: InteractionStore,
        calendar_source: CalendarSource | None = None,
        config: CircleEngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._contacts = contact_store
        self._interactions = interaction_store
        self._calendar = calendar_source
        self._config = config or default_config
        self._clock = clock or _utcnow

    async def extract(
        self,
        user_id: str,
        contact_id: str,
        mode: ScoringMode = ScoringMode.STANDARD,
    ) -> list[SuggestionFactor]:
        """Load the contact's signals and compute its factors.

        Raises:
            ContactNotFoundError: the contact does not exist for this user.
            TransientSignalError: the calendar source failed in onboarding mode.
        """
        contact = await self._contacts.find_by_id(contact_id, user_id)
        if contact is None:
            raise ContactNotFoundError(contact_id, user_id)

        interactions = await self._interactions.find_by_contact_id(contact_id, user_id)
        now = self._clock()

        events: list[CalendarEvent] = []
        weights = self._config.weights_for(mode)
        if self._calendar is not None and weights.calendar_events > 0 and contact.email:
            start = now - timedelta(days=self._config.calendar.window_days)
            try:
                events = await self._calendar.get_events(user_id, start, now)
            except Exception as exc:
                logger.warning(
                    "calendar_signal_unavailable",
                    user_id=user_id,
                    contact_id=contact_id,
                    error=str(exc),
                )
                raise TransientSignalError("calendar", contact_id, str(exc)) from exc

        return self.compute_factors(contact, interactions, events, mode, now)

    def compute_factors(
        self,
        contact: Contact,
        interactions: Sequence[InteractionLog],
        events: Sequence[CalendarEvent],
        mode: ScoringMode,
        now: datetime,
    ) -> list[SuggestionFactor]:
        """Pure factor computation; emits only factors weighted in ``mode``."""
        weights = self._config.weights_for(mode)
        history = sorted(interactions, key=lambda i: i.occurred_at, reverse=True)

        builders = {
            FactorType.COMMUNICATION_FREQUENCY: lambda: self._frequency(history, now, mode),
            FactorType.RECENCY: lambda: self._recency(history, now),
            FactorType.CONSISTENCY: lambda: self._consistency(history),
            FactorType.MULTI_CHANNEL: lambda: self._multi_channel(history),
            FactorType.CALENDAR_EVENTS: lambda: self._calendar_events(contact, events),
            FactorType.METADATA_RICHNESS: lambda: self._metadata_richness(contact),
            FactorType.CONTACT_AGE: lambda: self._contact_age(contact, now),
        }

        factors = []
        for factor_type in weights.active_factors():
            value, description = builders[factor_type]()
            factors.append(
                SuggestionFactor(
                    type=factor_type,
                    weight=weights.weight_for(factor_type),
                    value=max(0, min(100, value)),
                    description=description,
                )
            )

        logger.debug(
            "signals_extracted",
            contact_id=contact.id,
            mode=mode.value,
            interaction_count=len(history),
            factor_count=len(factors),
        )
        return factors

    # --- Interaction-based factors ---

    def _frequency(
        self, history: Sequence[InteractionLog], now: datetime, mode: ScoringMode
    ) -> tuple[int, str]:
        cfg = self._config.frequency
        if not history:
            if mode == ScoringMode.ONBOARDING:
                return cfg.onboarding_baseline, "No interaction history yet (onboarding baseline)"
            return cfg.empty_value, "No interaction history"

        window_start = now - timedelta(days=cfg.window_days)
        recent = [i for i in history if i.occurred_at >= window_start]
        months = max(1.0, cfg.window_days / cfg.days_per_month)
        per_month = len(recent) / months

        value = _floor_map(per_month, cfg.breakpoints, cfg.floor_value)
        return value, f"{per_month:.1f} interactions per month"

    def _recency(self, history: Sequence[InteractionLog], now: datetime) -> tuple[int, str]:
        cfg = self._config.recency
        if not history:
            return cfg.empty_value, "No recent interactions"

        days_since = _days_between(now, history[0].occurred_at)
        value = _ceiling_map(days_since, cfg.breakpoints, cfg.floor_value)
        return value, f"Last contact {max(0, int(days_since))} days ago"

    def _consistency(self, history: Sequence[InteractionLog]) -> tuple[int, str]:
        cfg = self._config.consistency
        if len(history) < cfg.min_interactions:
            return cfg.neutral_value, "Insufficient data for consistency analysis"

        gaps = [
            _days_between(newer.occurred_at, older.occurred_at)
            for newer, older in zip(history, history[1:])
        ]
        mean = statistics.fmean(gaps)
        # Every interaction at the same instant: nothing varies.
        variation = statistics.pstdev(gaps) / mean if mean > 0 else 0.0

        value = _ceiling_map(variation, cfg.breakpoints, cfg.floor_value)
        if variation < 0.5:
            label = "high"
        elif variation < 1.0:
            label = "moderate"
        else:
            label = "low"
        return value, f"Interaction pattern consistency: {label}"

    def _multi_channel(self, history: Sequence[InteractionLog]) -> tuple[int, str]:
        cfg = self._config.multi_channel
        channel_count = len({i.channel for i in history})
        if channel_count == 0:
            return cfg.floor_value, "No interaction channels"

        value = _floor_map(channel_count, cfg.breakpoints, cfg.floor_value)
        plural = "s" if channel_count != 1 else ""
        return value, f"{channel_count} communication channel{plural} used"

    # --- Onboarding factors ---

    def _calendar_events(
        self, contact: Contact, events: Sequence[CalendarEvent]
    ) -> tuple[int, str]:
        cfg = self._config.calendar
        if not contact.email:
            return cfg.floor_value, "No email on file to match calendar attendees"

        shared = sum(1 for event in events if event.has_attendee(contact.email))
        value = _floor_map(shared, cfg.breakpoints, cfg.floor_value)
        plural = "s" if shared != 1 else ""
        return value, f"{shared} shared calendar event{plural}"

    def _metadata_richness(self, contact: Contact) -> tuple[int, str]:
        cfg = self._config.metadata
        raw = 0
        populated = 0
        for present, points in (
            (contact.email, cfg.email_points),
            (contact.phone, cfg.phone_points),
            (contact.location, cfg.location_points),
            (contact.notes, cfg.notes_points),
            (contact.linkedin, cfg.social_profile_points),
            (contact.instagram, cfg.social_profile_points),
            (contact.x_handle, cfg.social_profile_points),
        ):
            if present:
                raw += points
                populated += 1

        platforms = len(contact.other_social_media)
        if platforms:
            raw += min(cfg.other_platform_cap, platforms * cfg.other_platform_points)
            populated += platforms

        value = min(100, round(raw * cfg.scale))
        return value, f"{populated} profile field{'s' if populated != 1 else ''} populated"

    def _contact_age(self, contact: Contact, now: datetime) -> tuple[int, str]:
        cfg = self._config.contact_age
        if contact.created_at is None:
            return cfg.missing_value, "Contact creation date unknown"

        age_days = _days_between(now, contact.created_at)
        value = _floor_map(age_days, cfg.breakpoints, cfg.floor_value)
        if age_days >= 365:
            return value, f"Known for {age_days / 365:.1f} years"
        return value, f"Known for {max(0, int(age_days))} days"
