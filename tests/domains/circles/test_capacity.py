"""Unit tests for circle capacity checks and rebalancing."""

import pytest

from src.domains.circles.capacity import CapacityAnalyzer, RebalanceAdvisor
from src.domains.circles.config import CapacityConfig, CircleEngineConfig
from src.domains.circles.errors import InvalidCircleError
from src.domains.circles.memory import InMemoryAssignmentStore
from src.domains.circles.models import CapacityStatus, CircleDefinition, DunbarCircle
from tests.helpers import USER_ID, make_contact


@pytest.fixture
def small_inner_config() -> CircleEngineConfig:
    """Inner circle recommended at 5 with room for 10."""
    return CircleEngineConfig(
        capacity=CapacityConfig(
            definitions=[
                CircleDefinition(
                    circle=DunbarCircle.INNER, name="Inner Circle", recommended_size=5, max_size=10
                ),
                CircleDefinition(
                    circle=DunbarCircle.CLOSE, name="Close Friends", recommended_size=25, max_size=25
                ),
                CircleDefinition(
                    circle=DunbarCircle.ACTIVE,
                    name="Active Friends",
                    recommended_size=50,
                    max_size=50,
                ),
                CircleDefinition(
                    circle=DunbarCircle.CASUAL,
                    name="Casual Network",
                    recommended_size=100,
                    max_size=100,
                ),
            ]
        )
    )


def _populate(contact_store, circle: DunbarCircle | None, count: int, prefix: str = "c") -> None:
    for i in range(count):
        contact_store.add(make_contact(f"{prefix}{i:02d}", dunbar_circle=circle))


class TestCapacity:
    @pytest.mark.asyncio
    async def test_over_capacity(self, contact_store, assignment_store, small_inner_config):
        _populate(contact_store, DunbarCircle.INNER, 12)
        analyzer = CapacityAnalyzer(assignment_store, small_inner_config)

        capacity = await analyzer.validate_circle_capacity(USER_ID, "inner")

        assert capacity.status == CapacityStatus.OVER
        assert capacity.current_size == 12
        assert capacity.recommended_size == 5
        assert capacity.max_size == 10
        assert capacity.message.startswith("This circle has 2 more contacts than recommended")

    @pytest.mark.parametrize(
        "size,status",
        [
            (0, CapacityStatus.UNDER),
            (4, CapacityStatus.UNDER),
            (5, CapacityStatus.OPTIMAL),
            (10, CapacityStatus.OPTIMAL),
            (11, CapacityStatus.OVER),
        ],
    )
    @pytest.mark.asyncio
    async def test_status_thresholds(
        self, contact_store, assignment_store, small_inner_config, size, status
    ):
        _populate(contact_store, DunbarCircle.INNER, size)
        analyzer = CapacityAnalyzer(assignment_store, small_inner_config)
        capacity = await analyzer.validate_circle_capacity(USER_ID, DunbarCircle.INNER)
        assert capacity.status == status

    @pytest.mark.asyncio
    async def test_messages(self, contact_store, assignment_store, small_inner_config):
        analyzer = CapacityAnalyzer(assignment_store, small_inner_config)

        _populate(contact_store, DunbarCircle.INNER, 3)
        under = await analyzer.validate_circle_capacity(USER_ID, "inner")
        assert under.message == "You have room for 2 more contacts in this circle"

        _populate(contact_store, DunbarCircle.INNER, 5)
        exact = await analyzer.validate_circle_capacity(USER_ID, "inner")
        assert exact.message is None

        _populate(contact_store, DunbarCircle.INNER, 7)
        above = await analyzer.validate_circle_capacity(USER_ID, "inner")
        assert above.message == "This circle is slightly above the recommended size of 5"

    @pytest.mark.asyncio
    async def test_archived_contacts_excluded(self, contact_store, assignment_store):
        _populate(contact_store, DunbarCircle.INNER, 12)
        for i in range(4):
            await contact_store.archive(f"c{i:02d}", USER_ID)

        capacity = await CapacityAnalyzer(assignment_store).validate_circle_capacity(
            USER_ID, "inner"
        )
        assert capacity.current_size == 8
        assert capacity.status == CapacityStatus.UNDER

    @pytest.mark.asyncio
    async def test_overflow_tier_has_no_capacity(self, assignment_store):
        with pytest.raises(InvalidCircleError):
            await CapacityAnalyzer(assignment_store).validate_circle_capacity(
                USER_ID, "acquaintance"
            )

    @pytest.mark.asyncio
    async def test_unknown_circle(self, assignment_store):
        with pytest.raises(InvalidCircleError):
            await CapacityAnalyzer(assignment_store).validate_circle_capacity(USER_ID, "family")

    @pytest.mark.asyncio
    async def test_capacity_report_covers_bounded_circles(self, contact_store, assignment_store):
        _populate(contact_store, DunbarCircle.CLOSE, 30)
        report = await CapacityAnalyzer(assignment_store).capacity_report(USER_ID)

        assert [c.circle for c in report] == [
            DunbarCircle.INNER,
            DunbarCircle.CLOSE,
            DunbarCircle.ACTIVE,
            DunbarCircle.CASUAL,
        ]
        assert report[1].status == CapacityStatus.OVER


class TestDistribution:
    @pytest.mark.asyncio
    async def test_no_assignments(self, contact_store, assignment_store):
        _populate(contact_store, None, 10)
        distribution = await CapacityAnalyzer(assignment_store).get_circle_distribution(USER_ID)

        assert distribution.uncategorized == 10
        assert distribution.total == 10
        for circle in DunbarCircle:
            assert distribution.count(circle) == 0

    @pytest.mark.asyncio
    async def test_mixed(self, contact_store, assignment_store):
        _populate(contact_store, DunbarCircle.INNER, 2, prefix="i")
        _populate(contact_store, DunbarCircle.ACQUAINTANCE, 3, prefix="a")
        _populate(contact_store, None, 1, prefix="u")
        contact_store.add(make_contact("gone", dunbar_circle=DunbarCircle.INNER, archived=True))
        contact_store.add(make_contact("other", user_id="user-2", dunbar_circle=DunbarCircle.CLOSE))

        distribution = await assignment_store.get_circle_distribution(USER_ID)
        assert distribution.inner == 2
        assert distribution.acquaintance == 3
        assert distribution.uncategorized == 1
        assert distribution.close == 0
        assert distribution.total == 6


class TestRebalancing:
    @pytest.mark.asyncio
    async def test_moves_excess_to_next_circle(
        self, contact_store, assignment_store, small_inner_config
    ):
        _populate(contact_store, DunbarCircle.INNER, 12)
        advisor = RebalanceAdvisor(contact_store, assignment_store, small_inner_config)

        suggestions = await advisor.suggest_circle_rebalancing(USER_ID)

        assert len(suggestions) == 7
        assert [s.contact_id for s in suggestions] == [f"c{i:02d}" for i in range(7)]
        for suggestion in suggestions:
            assert suggestion.current_circle == DunbarCircle.INNER
            assert suggestion.suggested_circle == DunbarCircle.CLOSE
            assert suggestion.confidence == 0.7
            assert "over capacity" in suggestion.reason
        assert suggestions[0].reason == "Inner Circle is over capacity (12/5 recommended)"

    @pytest.mark.asyncio
    async def test_threshold_is_strict(self, contact_store, assignment_store):
        _populate(contact_store, DunbarCircle.INNER, 15)
        advisor = RebalanceAdvisor(contact_store, assignment_store)
        assert await advisor.suggest_circle_rebalancing(USER_ID) == []

        contact_store.add(make_contact("c99", dunbar_circle=DunbarCircle.INNER))
        assert len(await advisor.suggest_circle_rebalancing(USER_ID)) == 6

    @pytest.mark.asyncio
    async def test_largest_circle_is_never_a_source(self, contact_store, assignment_store):
        _populate(contact_store, DunbarCircle.CASUAL, 200)
        _populate(contact_store, DunbarCircle.ACQUAINTANCE, 500, prefix="a")

        suggestions = await RebalanceAdvisor(
            contact_store, assignment_store
        ).suggest_circle_rebalancing(USER_ID)
        assert suggestions == []

    @pytest.mark.asyncio
    async def test_cascades_per_circle(self, contact_store, assignment_store):
        _populate(contact_store, DunbarCircle.INNER, 20, prefix="i")
        _populate(contact_store, DunbarCircle.CLOSE, 40, prefix="c")

        suggestions = await RebalanceAdvisor(
            contact_store, assignment_store
        ).suggest_circle_rebalancing(USER_ID)

        moves = {(s.current_circle, s.suggested_circle) for s in suggestions}
        assert moves == {
            (DunbarCircle.INNER, DunbarCircle.CLOSE),
            (DunbarCircle.CLOSE, DunbarCircle.ACTIVE),
        }
        assert sum(s.current_circle == DunbarCircle.INNER for s in suggestions) == 10
        assert sum(s.current_circle == DunbarCircle.CLOSE for s in suggestions) == 15

    @pytest.mark.asyncio
    async def test_members_come_from_assignment_store(self, contact_store, small_inner_config):
        class NewestFirstAssignmentStore(InMemoryAssignmentStore):
            async def get_contacts_in_circle(self, user_id, circle):
                return list(reversed(await super().get_contacts_in_circle(user_id, circle)))

        _populate(contact_store, DunbarCircle.INNER, 12)
        advisor = RebalanceAdvisor(
            contact_store, NewestFirstAssignmentStore(contact_store), small_inner_config
        )

        suggestions = await advisor.suggest_circle_rebalancing(USER_ID)

        assert [s.contact_id for s in suggestions] == [f"c{i:02d}" for i in range(11, 4, -1)]
        assert suggestions[0].contact_name == "Contact c11"
