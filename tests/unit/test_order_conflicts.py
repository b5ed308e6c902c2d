"""Tests for route-order conflict detection and reordering."""

from datetime import UTC, datetime, timedelta

import pytest

from route_timeline.models.itinerary import PlaceSchedule
from route_timeline.service.conflicts import (
    apply_time_based_order,
    check_schedule_change,
    detect_order_conflicts,
)

DAY0 = datetime(2024, 6, 1, 9, 0, tzinfo=UTC)


def places(*start_days: float | None) -> list[PlaceSchedule]:
    """One stop per argument in route order, id = position + 1."""
    return [
        PlaceSchedule(
            id=i + 1,
            place_name=f"Stop {i + 1}",
            order_index=i,
            planned_start=None if day is None else DAY0 + timedelta(days=day),
        )
        for i, day in enumerate(start_days)
    ]


class TestDetect:
    def test_ordered_route_has_no_conflict(self) -> None:
        info = detect_order_conflicts(places(0, 1, 2))

        assert info.has_conflict is False
        assert info.conflicting_stops == []
        assert info.order_index_sequence == [1, 2, 3]
        assert info.time_sequence == [1, 2, 3]

    def test_swapped_stops_reported(self) -> None:
        """Test stops whose time position differs from route position are listed."""
        info = detect_order_conflicts(places(0, 2, 1))

        assert info.has_conflict is True
        assert info.time_sequence == [1, 3, 2]
        assert info.conflicting_ids == {2, 3}
        moved = info.stop_for(2)
        assert moved is not None
        assert moved.current_order_index == 1
        assert moved.new_time_position == 2
        assert moved.planned_start == DAY0 + timedelta(days=2)

    def test_equal_starts_keep_route_order(self) -> None:
        assert detect_order_conflicts(places(0, 1, 1)).has_conflict is False

    def test_untimed_stop_suppresses_detection(self) -> None:
        assert detect_order_conflicts(places(2, None, 0)).has_conflict is False

    def test_single_stop(self) -> None:
        assert detect_order_conflicts(places(0)).has_conflict is False

    def test_route_order_from_order_index_not_list_order(self) -> None:
        stops = places(0, 1)
        stops.reverse()

        assert detect_order_conflicts(stops).has_conflict is False


class TestCheckScheduleChange:
    def test_move_past_neighbour_would_conflict(self) -> None:
        result = check_schedule_change(places(0, 1, 2), 1, DAY0 + timedelta(days=1.5))

        assert result.would_create_conflict is True
        assert result.current_order_index == 0
        assert result.new_time_position == 1
        assert result.affected_stops == [1, 2]

    def test_move_within_gap_is_fine(self) -> None:
        result = check_schedule_change(places(0, 1, 2), 2, DAY0 + timedelta(days=1.5))

        assert result.would_create_conflict is False
        assert result.affected_stops == []

    def test_unknown_stop_raises(self) -> None:
        with pytest.raises(KeyError):
            check_schedule_change(places(0, 1), 99, DAY0)


class TestApplyTimeBasedOrder:
    def test_renumbers_by_start(self) -> None:
        stops = places(0, 2, 1)

        assert apply_time_based_order(stops) is True
        assert {p.id: p.order_index for p in stops} == {1: 0, 2: 2, 3: 1}
        assert detect_order_conflicts(stops).has_conflict is False

    def test_too_few_timed_stops(self) -> None:
        stops = places(None, 1)

        assert apply_time_based_order(stops) is False
        assert [p.order_index for p in stops] == [0, 1]
