"""Unit tests for score-to-circle classification."""

import pytest

from src.domains.circles.classification import CircleClassifier
from src.domains.circles.config import CircleEngineConfig, ClassificationConfig, TierRule
from src.domains.circles.models import DunbarCircle


@pytest.fixture
def classifier() -> CircleClassifier:
    return CircleClassifier()


class TestTiers:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (100, DunbarCircle.INNER),
            (65, DunbarCircle.INNER),
            (64.99, DunbarCircle.CLOSE),
            (45, DunbarCircle.CLOSE),
            (44.9, DunbarCircle.ACTIVE),
            (25, DunbarCircle.ACTIVE),
            (24.9, DunbarCircle.CASUAL),
            (0, DunbarCircle.CASUAL),
        ],
    )
    def test_thresholds(self, classifier, score, expected):
        assert classifier.classify(score).suggested_circle == expected

    def test_confidence_grows_above_tier_floor(self, classifier):
        assert classifier.classify(65).confidence == 70
        assert classifier.classify(80).confidence == 100
        assert classifier.classify(50).confidence == 75
        assert classifier.classify(30).confidence == 67.5
        assert classifier.classify(0).confidence == 55

    def test_confidence_clamped(self, classifier):
        assert classifier.classify(100).confidence == 100

    def test_custom_tiers(self):
        config = CircleEngineConfig(
            classification=ClassificationConfig(
                tiers=[
                    TierRule(DunbarCircle.INNER, 90, 80, 1),
                    TierRule(DunbarCircle.CASUAL, 0, 50, 0),
                ]
            )
        )
        classifier = CircleClassifier(config)
        assert classifier.classify(89).suggested_circle == DunbarCircle.CASUAL
        assert classifier.classify(95).suggested_circle == DunbarCircle.INNER


class TestAlternatives:
    def test_middle_tier_has_both_neighbours(self, classifier):
        result = classifier.classify(50)
        assert [(a.circle, a.confidence) for a in result.alternatives] == [
            (DunbarCircle.INNER, 40),
            (DunbarCircle.ACTIVE, 35),
        ]

    def test_first_tier_has_no_tighter_alternative(self, classifier):
        result = classifier.classify(65)
        assert [a.circle for a in result.alternatives] == [DunbarCircle.CLOSE]
        assert result.alternatives[0].confidence == 50

    def test_last_tier_has_no_looser_alternative(self, classifier):
        result = classifier.classify(10)
        assert [a.circle for a in result.alternatives] == [DunbarCircle.ACTIVE]
        assert result.alternatives[0].confidence == 30

    def test_alternatives_never_beat_primary(self, classifier):
        for tenths in range(0, 1001):
            result = classifier.classify(tenths / 10)
            for alternative in result.alternatives:
                assert alternative.confidence <= result.confidence

    def test_alternatives_sorted_descending(self, classifier):
        for score in range(0, 101):
            confidences = [a.confidence for a in classifier.classify(score).alternatives]
            assert confidences == sorted(confidences, reverse=True)


class TestProperties:
    def test_confidence_always_within_range(self, classifier):
        for tenths in range(0, 1001):
            assert 0 <= classifier.classify(tenths / 10).confidence <= 100

    def test_classification_is_monotonic(self, classifier):
        ranks = [classifier.classify(tenths / 10).suggested_circle.rank for tenths in range(1001)]
        # A higher score never yields a looser circle.
        assert all(later <= earlier for earlier, later in zip(ranks, ranks[1:]))
