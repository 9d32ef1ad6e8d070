"""Circle classification.

Maps a weighted score onto a Dunbar circle using ordered tier floors, with
a tier-local confidence and the adjacent circles as ranked alternatives.
"""

from dataclasses import dataclass, field

from .config import CircleEngineConfig, TierRule, default_config
from .models import AlternativeCircle, DunbarCircle


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


@dataclass
class Classification:
    suggested_circle: DunbarCircle
    confidence: float
    alternatives: list[AlternativeCircle] = field(default_factory=list)


class CircleClassifier:
    """Classifies a 0-100 weighted score into a circle."""

    def __init__(self, config: CircleEngineConfig | None = None) -> None:
        self._config = config or default_config

    def classify(self, score: float) -> Classification:
        """Classify ``score``.

        Tiers are checked tightest first; the first tier whose lower bound
        the score reaches wins, so a higher score never yields a looser
        circle. Confidence grows linearly with the distance above the tier
        floor.
        """
        tiers = self._config.classification.tiers
        index = self._tier_index(score)
        tier = tiers[index]

        confidence = round(
            _clamp(tier.confidence_base + (score - tier.lower_bound) * tier.confidence_slope),
            2,
        )
        alternatives = self._alternatives(score, index, confidence)
        return Classification(
            suggested_circle=tier.circle,
            confidence=confidence,
            alternatives=alternatives,
        )

    def _tier_index(self, score: float) -> int:
        tiers = self._config.classification.tiers
        for index, tier in enumerate(tiers):
            if score >= tier.lower_bound:
                return index
        # Scores below 0 can't come out of the scorer; put them in the last tier.
        return len(tiers) - 1

    def _alternatives(
        self, score: float, index: int, confidence: float
    ) -> list[AlternativeCircle]:
        cfg = self._config.classification
        tiers: list[TierRule] = cfg.tiers
        alternatives: list[AlternativeCircle] = []

        if index > 0:
            tighter = max(cfg.alternative_floor, score - cfg.tighter_alternative_offset)
            alternatives.append(
                AlternativeCircle(
                    circle=tiers[index - 1].circle,
                    confidence=round(_clamp(min(tighter, confidence)), 2),
                )
            )
        if index < len(tiers) - 1:
            looser = max(cfg.alternative_floor, score - cfg.looser_alternative_offset)
            alternatives.append(
                AlternativeCircle(
                    circle=tiers[index + 1].circle,
                    confidence=round(_clamp(min(looser, confidence)), 2),
                )
            )

        return sorted(alternatives, key=lambda a: a.confidence, reverse=True)
