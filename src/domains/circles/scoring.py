"""Weighted factor scoring.

Combines a contact's 0-100 suggestion factors into one 0-100 score. The
score is normalized by the total weight actually present, so a mode that
emits fewer factors (or a config that zeroes one out) still lands on the
same scale.
"""

from collections.abc import Sequence

from .models import SuggestionFactor


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


class ScoringEngine:
    """Pure weighted-average scorer. No I/O."""

    def weighted_score(self, factors: Sequence[SuggestionFactor]) -> float:
        """Return ``sum(value * weight) / sum(weight)`` clamped to [0, 100].

        Raises:
            ValueError: no factors, or their weights sum to zero.
        """
        if not factors:
            raise ValueError("Cannot score an empty factor set")

        total_weight = sum(f.weight for f in factors)
        if total_weight <= 0:
            raise ValueError(f"Factor weights must have a positive total, got {total_weight}")

        weighted = sum(f.value * f.weight for f in factors)
        return _clamp(weighted / total_weight)
