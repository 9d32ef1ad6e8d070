"""Circle suggestion configuration with sensible defaults.

Every breakpoint table, weight profile, tier threshold and circle capacity
lives here so that tuning the engine is a data change. Breakpoint tables
are ordered lists of ``(threshold, value)`` pairs; see each dataclass for
whether the threshold is an inclusive floor (``>=``) or an exclusive
ceiling (``<``).
"""

import os
from dataclasses import dataclass, field

from .models import CircleDefinition, DunbarCircle, FactorType, ScoringMode


@dataclass
class FrequencyConfig:
    """Interactions per month over the trailing window. Thresholds are floors."""

    window_days: int = 182
    days_per_month: float = 30.0
    breakpoints: list[tuple[float, int]] = field(
        default_factory=lambda: [
            (20, 95),  # daily
            (10, 85),
            (8, 80),
            (4, 70),  # weekly
            (2, 50),
            (1, 40),  # monthly
            (0.5, 25),
        ]
    )
    floor_value: int = 10
    # Cold-start contacts have no history yet; don't score them as strangers.
    onboarding_baseline: int = 30
    empty_value: int = 0


@dataclass
class RecencyConfig:
    """Days since the last interaction. Thresholds are exclusive ceilings."""

    breakpoints: list[tuple[float, int]] = field(
        default_factory=lambda: [
            (7, 100),
            (14, 85),
            (30, 70),
            (60, 50),
            (90, 35),
            (180, 20),
        ]
    )
    floor_value: int = 10
    empty_value: int = 0


@dataclass
class ConsistencyConfig:
    """Coefficient of variation of gaps between interactions. Thresholds are ceilings."""

    min_interactions: int = 3
    neutral_value: int = 50
    breakpoints: list[tuple[float, int]] = field(
        default_factory=lambda: [
            (0.3, 90),
            (0.5, 75),
            (0.8, 60),
            (1.2, 45),
        ]
    )
    floor_value: int = 30


@dataclass
class MultiChannelConfig:
    """Distinct interaction channels. Thresholds are floors."""

    breakpoints: list[tuple[float, int]] = field(
        default_factory=lambda: [(4, 100), (3, 80), (2, 60), (1, 40)]
    )
    floor_value: int = 0


@dataclass
class CalendarConfig:
    """Shared calendar events with the contact. Thresholds are floors."""

    window_days: int = 182
    breakpoints: list[tuple[float, int]] = field(
        default_factory=lambda: [(10, 100), (5, 80), (3, 60), (2, 50), (1, 30)]
    )
    floor_value: int = 0


@dataclass
class MetadataConfig:
    """Points per populated contact field, rescaled onto 0-100."""

    email_points: int = 5
    phone_points: int = 5
    location_points: int = 10
    notes_points: int = 10
    social_profile_points: int = 5  # each of LinkedIn, Instagram, X
    other_platform_points: int = 5
    other_platform_cap: int = 15
    # Raw maximum is ~60; scale it onto 100.
    scale: float = 1.67


@dataclass
class ContactAgeConfig:
    """Days since the contact record was created. Thresholds are floors."""

    breakpoints: list[tuple[float, int]] = field(
        default_factory=lambda: [
            (5 * 365, 100),
            (3 * 365, 85),
            (365, 70),
            (180, 50),
            (90, 30),
        ]
    )
    floor_value: int = 10
    missing_value: int = 50


@dataclass
class WeightProfile:
    """Factor weights for one scoring mode. Zero-weight factors are not emitted."""

    communication_frequency: float = 0.0
    recency: float = 0.0
    consistency: float = 0.0
    multi_channel: float = 0.0
    calendar_events: float = 0.0
    metadata_richness: float = 0.0
    contact_age: float = 0.0

    def weight_for(self, factor: FactorType) -> float:
        return getattr(self, factor.value)

    def active_factors(self) -> list[FactorType]:
        return [f for f in FactorType if self.weight_for(f) > 0]

    @property
    def total(self) -> float:
        return sum(self.weight_for(f) for f in FactorType)

    def validate(self, label: str) -> None:
        for factor in FactorType:
            if self.weight_for(factor) < 0:
                raise ValueError(f"{label} weight for {factor.value} must be >= 0")
        if self.total <= 0:
            raise ValueError(f"{label} weights must have a positive total, got {self.total}")


def _standard_weights() -> WeightProfile:
    return WeightProfile(
        communication_frequency=0.30,
        recency=0.25,
        consistency=0.20,
        multi_channel=0.15,
    )


def _onboarding_weights() -> WeightProfile:
    # Calendar overlap and metadata are the strongest cold-start signals.
    return WeightProfile(
        calendar_events=0.35,
        metadata_richness=0.25,
        contact_age=0.15,
        communication_frequency=0.15,
        recency=0.10,
    )


@dataclass
class TierRule:
    """Score floor for a circle and its tier-local confidence line."""

    circle: DunbarCircle
    lower_bound: float
    confidence_base: float
    confidence_slope: float


@dataclass
class ClassificationConfig:
    tiers: list[TierRule] = field(
        default_factory=lambda: [
            TierRule(DunbarCircle.INNER, 65.0, 70.0, 2.0),
            TierRule(DunbarCircle.CLOSE, 45.0, 65.0, 2.0),
            TierRule(DunbarCircle.ACTIVE, 25.0, 60.0, 1.5),
            TierRule(DunbarCircle.CASUAL, 0.0, 55.0, 0.9),
        ]
    )
    tighter_alternative_offset: float = 10.0
    looser_alternative_offset: float = 15.0
    alternative_floor: float = 30.0

    def validate(self) -> None:
        if not self.tiers:
            raise ValueError("Classification needs at least one tier")
        bounds = [t.lower_bound for t in self.tiers]
        if any(a <= b for a, b in zip(bounds, bounds[1:])):
            raise ValueError(f"Tier lower bounds must be strictly descending, got {bounds}")
        if bounds[-1] != 0:
            raise ValueError("The last tier must start at 0 so every score is classified")
        ranks = [t.circle.rank for t in self.tiers]
        if ranks != sorted(ranks) or len(set(ranks)) != len(ranks):
            raise ValueError("Tiers must run from the tightest circle outward")


@dataclass
class CapacityConfig:
    """Dunbar-layer sizes. The overflow tier has no definition and is unbounded."""

    definitions: list[CircleDefinition] = field(
        default_factory=lambda: [
            CircleDefinition(
                circle=DunbarCircle.INNER, name="Inner Circle", recommended_size=10, max_size=10
            ),
            CircleDefinition(
                circle=DunbarCircle.CLOSE, name="Close Friends", recommended_size=25, max_size=25
            ),
            CircleDefinition(
                circle=DunbarCircle.ACTIVE, name="Active Friends", recommended_size=50, max_size=50
            ),
            CircleDefinition(
                circle=DunbarCircle.CASUAL, name="Casual Network", recommended_size=100, max_size=100
            ),
        ]
    )
    rebalance_ratio: float = 1.5
    rebalance_confidence: float = 0.7

    def definition_for(self, circle: DunbarCircle) -> CircleDefinition | None:
        for definition in self.definitions:
            if definition.circle == circle:
                return definition
        return None

    def ordered_definitions(self) -> list[CircleDefinition]:
        """Bounded circles from smallest to largest capacity."""
        return sorted(self.definitions, key=lambda d: (d.max_size, d.circle.rank))

    def validate(self) -> None:
        seen: set[DunbarCircle] = set()
        for definition in self.definitions:
            if definition.circle in seen:
                raise ValueError(f"Duplicate capacity definition for {definition.circle.value}")
            seen.add(definition.circle)
            if definition.recommended_size > definition.max_size:
                raise ValueError(
                    f"{definition.circle.value}: recommended_size "
                    f"({definition.recommended_size}) exceeds max_size ({definition.max_size})"
                )
        if self.rebalance_ratio < 1.0:
            raise ValueError("rebalance_ratio must be >= 1.0")
        if not 0.0 <= self.rebalance_confidence <= 1.0:
            raise ValueError("rebalance_confidence must be within [0, 1]")


@dataclass
class CircleEngineConfig:
    """Top-level circle engine configuration, validated at construction."""

    frequency: FrequencyConfig = field(default_factory=FrequencyConfig)
    recency: RecencyConfig = field(default_factory=RecencyConfig)
    consistency: ConsistencyConfig = field(default_factory=ConsistencyConfig)
    multi_channel: MultiChannelConfig = field(default_factory=MultiChannelConfig)
    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    metadata: MetadataConfig = field(default_factory=MetadataConfig)
    contact_age: ContactAgeConfig = field(default_factory=ContactAgeConfig)

    standard_weights: WeightProfile = field(default_factory=_standard_weights)
    onboarding_weights: WeightProfile = field(default_factory=_onboarding_weights)

    classification: ClassificationConfig = field(default_factory=ClassificationConfig)
    capacity: CapacityConfig = field(default_factory=CapacityConfig)

    cache_ttl_seconds: float = 300.0
    cache_maxsize: int = 10_000
    batch_concurrency: int = 5

    scoring_version: str = "circle-suggest-v2"

    def __post_init__(self) -> None:
        self.standard_weights.validate("standard")
        self.onboarding_weights.validate("onboarding")
        self.classification.validate()
        self.capacity.validate()
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        if self.cache_maxsize < 1:
            raise ValueError("cache_maxsize must be >= 1")
        if self.batch_concurrency < 1:
            raise ValueError("batch_concurrency must be >= 1")

    def weights_for(self, mode: ScoringMode) -> WeightProfile:
        if mode == ScoringMode.ONBOARDING:
            return self.onboarding_weights
        return self.standard_weights

    @classmethod
    def from_env(cls) -> "CircleEngineConfig":
        """Load config with environment variable overrides (CIRCLES_ prefix)."""
        config = cls()

        if v := os.getenv("CIRCLES_CACHE_TTL_SECONDS"):
            config.cache_ttl_seconds = float(v)
        if v := os.getenv("CIRCLES_CACHE_MAXSIZE"):
            config.cache_maxsize = int(v)
        if v := os.getenv("CIRCLES_BATCH_CONCURRENCY"):
            config.batch_concurrency = int(v)
        if v := os.getenv("CIRCLES_REBALANCE_RATIO"):
            config.capacity.rebalance_ratio = float(v)
        if v := os.getenv("CIRCLES_SCORING_VERSION"):
            config.scoring_version = v
        for factor in FactorType:
            if v := os.getenv(f"CIRCLES_STANDARD_WEIGHT_{factor.value.upper()}"):
                setattr(config.standard_weights, factor.value, float(v))
            if v := os.getenv(f"CIRCLES_ONBOARDING_WEIGHT_{factor.value.upper()}"):
                setattr(config.onboarding_weights, factor.value, float(v))

        # Re-validate after overrides
        config.__post_init__()
        return config


default_config = CircleEngineConfig()
