"""Circle capacity checks and rebalancing recommendations.

Both read live membership through the AssignmentStore distribution, which
only counts non-archived contacts. The overflow tier has no capacity
definition: contacts may be assigned to it, but it is never checked and
never used as a rebalancing source or target.
"""

import math

import structlog

from .config import CircleEngineConfig, default_config
from .errors import InvalidCircleError
from .models import (
    CapacityStatus,
    CircleCapacity,
    CircleDefinition,
    CircleDistribution,
    DunbarCircle,
    RebalancingSuggestion,
)
from .stores import AssignmentStore, ContactStore

logger = structlog.get_logger()


def _capacity_status(current: int, definition: CircleDefinition) -> tuple[CapacityStatus, str | None]:
    recommended = definition.recommended_size
    if current < recommended:
        return (
            CapacityStatus.UNDER,
            f"You have room for {recommended - current} more contacts in this circle",
        )
    if current <= definition.max_size:
        if current > recommended:
            return (
                CapacityStatus.OPTIMAL,
                f"This circle is slightly above the recommended size of {recommended}",
            )
        return CapacityStatus.OPTIMAL, None
    return (
        CapacityStatus.OVER,
        f"This circle has {current - definition.max_size} more contacts than recommended. "
        "Consider moving some to a larger circle.",
    )


class CapacityAnalyzer:
    def __init__(
        self,
        assignment_store: AssignmentStore,
        config: CircleEngineConfig | None = None,
    ) -> None:
        self._assignments = assignment_store
        self._config = config or default_config

    async def get_circle_distribution(self, user_id: str) -> CircleDistribution:
        return await self._assignments.get_circle_distribution(user_id)

    async def validate_circle_capacity(
        self, user_id: str, circle: str | DunbarCircle
    ) -> CircleCapacity:
        """Compare a circle's live size against its recommended and max size.

        Raises:
            InvalidCircleError: unknown circle, or a circle with no capacity
                definition (the overflow tier).
        """
        parsed = DunbarCircle.parse(circle)
        definition = self._config.capacity.definition_for(parsed)
        if definition is None:
            raise InvalidCircleError(parsed)

        distribution = await self._assignments.get_circle_distribution(user_id)
        return self._capacity(distribution, definition)

    async def capacity_report(self, user_id: str) -> list[CircleCapacity]:
        """Capacity of every bounded circle, smallest first, from one distribution read."""
        distribution = await self._assignments.get_circle_distribution(user_id)
        return [
            self._capacity(distribution, definition)
            for definition in self._config.capacity.ordered_definitions()
        ]

    @staticmethod
    def _capacity(distribution: CircleDistribution, definition: CircleDefinition) -> CircleCapacity:
        current = distribution.count(definition.circle)
        status, message = _capacity_status(current, definition)
        return CircleCapacity(
            circle=definition.circle,
            current_size=current,
            recommended_size=definition.recommended_size,
            max_size=definition.max_size,
            status=status,
            message=message,
        )


class RebalanceAdvisor:
    """Suggests moving members out of circles far above their recommended size."""

    def __init__(
        self,
        contact_store: ContactStore,
        assignment_store: AssignmentStore,
        config: CircleEngineConfig | None = None,
    ) -> None:
        self._contacts = contact_store
        self._assignments = assignment_store
        self._config = config or default_config

    async def suggest_circle_rebalancing(self, user_id: str) -> list[RebalancingSuggestion]:
        cfg = self._config.capacity
        definitions = cfg.ordered_definitions()
        distribution = await self._assignments.get_circle_distribution(user_id)

        suggestions: list[RebalancingSuggestion] = []
        # The largest circle is never a source: there is nowhere larger to go.
        for source, target in zip(definitions, definitions[1:]):
            current = distribution.count(source.circle)
            if current <= source.recommended_size * cfg.rebalance_ratio:
                continue

            excess = math.ceil(current - source.recommended_size)
            member_ids = await self._assignments.get_contacts_in_circle(user_id, source.circle)
            moved = 0
            for contact_id in member_ids[:excess]:
                contact = await self._contacts.find_by_id(contact_id, user_id)
                if contact is None:
                    continue
                moved += 1
                suggestions.append(
                    RebalancingSuggestion(
                        contact_id=contact.id,
                        contact_name=contact.name,
                        current_circle=source.circle,
                        suggested_circle=target.circle,
                        reason=(
                            f"{source.name} is over capacity "
                            f"({current}/{source.recommended_size} recommended)"
                        ),
                        confidence=cfg.rebalance_confidence,
                    )
                )

            logger.info(
                "circle_rebalance_suggested",
                user_id=user_id,
                source=source.circle.value,
                target=target.circle.value,
                current_size=current,
                recommended_size=source.recommended_size,
                moves=moved,
            )

        return suggestions
