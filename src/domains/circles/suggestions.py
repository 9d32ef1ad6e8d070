"""Circle suggestion pipeline: signals -> score -> classify, cached and batched."""

from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import structlog

from .batch import BatchCoordinator
from .cache import SuggestionCache
from .classification import CircleClassifier
from .config import CircleEngineConfig, default_config
from .ledger import AssignmentLedger
from .models import (
    AssignedBy,
    AssignmentRecord,
    BatchAnalysisResult,
    CircleSuggestion,
    DunbarCircle,
    ScoringMode,
    UserOverride,
)
from .scoring import ScoringEngine
from .signals import SignalExtractor
from .stores import OverrideStore

logger = structlog.get_logger()

ACCEPTED_SUGGESTION_REASON = "AI suggestion accepted"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CircleSuggestionService:
    """Suggests circles for contacts and records how users respond to them."""

    def __init__(
        self,
        extractor: SignalExtractor,
        ledger: AssignmentLedger,
        override_store: OverrideStore,
        cache: SuggestionCache | None = None,
        config: CircleEngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config or default_config
        self._extractor = extractor
        self._ledger = ledger
        self._overrides = override_store
        if cache is None:
            cache = SuggestionCache(
                ttl_seconds=self._config.cache_ttl_seconds,
                maxsize=self._config.cache_maxsize,
            )
        self._cache = cache
        self._clock = clock or _utcnow
        self._scorer = ScoringEngine()
        self._classifier = CircleClassifier(config=self._config)

    @property
    def cache(self) -> SuggestionCache:
        return self._cache

    async def analyze_contact(
        self,
        user_id: str,
        contact_id: str,
        mode: ScoringMode = ScoringMode.STANDARD,
    ) -> CircleSuggestion:
        """Suggest a circle for one contact, served from cache within the TTL.

        A cached suggestion scored in a different mode is recomputed.

        Raises:
            ContactNotFoundError: the contact does not exist for this user.
            TransientSignalError: a signal source was unavailable.
        """
        return await self._cache.get_or_compute(
            user_id, contact_id, lambda: self._compute(user_id, contact_id, mode), mode=mode
        )

    async def _compute(
        self, user_id: str, contact_id: str, mode: ScoringMode
    ) -> CircleSuggestion:
        factors = await self._extractor.extract(user_id, contact_id, mode)
        score = self._scorer.weighted_score(factors)
        classification = self._classifier.classify(score)

        suggestion = CircleSuggestion(
            contact_id=contact_id,
            suggested_circle=classification.suggested_circle,
            confidence=classification.confidence,
            factors=factors,
            alternative_circles=classification.alternatives,
            weighted_score=round(score, 2),
            mode=mode,
            scoring_version=self._config.scoring_version,
            computed_at=self._clock(),
        )

        logger.info(
            "circle_suggested",
            user_id=user_id,
            contact_id=contact_id,
            circle=suggestion.suggested_circle.value,
            confidence=suggestion.confidence,
            score=suggestion.weighted_score,
            mode=mode.value,
        )
        return suggestion

    async def batch_analyze(
        self,
        user_id: str,
        contact_ids: Sequence[str],
        concurrency: int | None = None,
        use_cache: bool = True,
        mode: ScoringMode = ScoringMode.STANDARD,
    ) -> BatchAnalysisResult:
        """Suggest circles for many contacts with bounded concurrency.

        A contact that fails (missing, or a signal source unavailable) is
        reported in ``failed`` and does not affect the others. With
        ``use_cache=False`` the targeted entries are evicted first so every
        contact is recomputed.
        """
        if not use_cache:
            self._cache.invalidate_many(user_id, contact_ids)

        if concurrency is None:
            concurrency = self._config.batch_concurrency
        coordinator = BatchCoordinator(concurrency)
        outcome = await coordinator.run(
            contact_ids, lambda contact_id: self.analyze_contact(user_id, contact_id, mode)
        )
        return BatchAnalysisResult(succeeded=outcome.succeeded, failed=outcome.failed)

    async def accept_suggestion(
        self,
        user_id: str,
        contact_id: str,
        mode: ScoringMode = ScoringMode.STANDARD,
    ) -> AssignmentRecord:
        """Commit the suggested circle for the contact as an AI assignment."""
        suggestion = await self.analyze_contact(user_id, contact_id, mode)
        return await self._ledger.record(
            user_id,
            contact_id,
            suggestion.suggested_circle,
            assigned_by=AssignedBy.AI,
            confidence=suggestion.confidence,
            reason=ACCEPTED_SUGGESTION_REASON,
        )

    async def record_user_override(
        self,
        user_id: str,
        contact_id: str,
        suggested_circle: str | DunbarCircle,
        actual_circle: str | DunbarCircle,
    ) -> UserOverride:
        """Store that the user picked a different circle than suggested.

        The factors at the time of the override are kept with it for later
        tuning. The committed assignment itself goes through the ledger.
        """
        suggested = DunbarCircle.parse(suggested_circle)
        actual = DunbarCircle.parse(actual_circle)

        factors = await self._extractor.extract(user_id, contact_id)
        override = await self._overrides.create(
            UserOverride(
                user_id=user_id,
                contact_id=contact_id,
                suggested_circle=suggested,
                actual_circle=actual,
                factors=factors,
                recorded_at=self._clock(),
            )
        )
        self._cache.invalidate(user_id, contact_id)

        logger.info(
            "circle_override_recorded",
            user_id=user_id,
            contact_id=contact_id,
            suggested=suggested.value,
            actual=actual.value,
        )
        return override

    async def improve_model(self, user_id: str) -> int:
        """Report how many overrides are available for tuning. No training happens."""
        overrides = await self._overrides.find_by_user_id(user_id)
        logger.info("circle_model_feedback", user_id=user_id, override_count=len(overrides))
        return len(overrides)
