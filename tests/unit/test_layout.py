"""Tests for the row layout engine."""

import random

from route_timeline.models.schedule import Leg, Stop
from route_timeline.timeline.layout import assign_rows, day_range, layout_timeline


def stop(rp_id: int, start_t: float, end_t: float) -> Stop:
    return Stop(route_place_id=rp_id, name=f"S{rp_id}", order_index=rp_id, start_t=start_t, end_t=end_t)


def random_stops(n: int, seed: int) -> list[Stop]:
    """Generate n stops with random bounds inside a 10-day axis."""
    rng = random.Random(seed)
    stops = []
    for i in range(n):
        start = rng.uniform(0, 9)
        stops.append(stop(i, start, start + rng.uniform(0.05, 3)))
    return stops


class TestDayRange:
    def test_whole_day(self) -> None:
        assert list(day_range(0.0, 1.0)) == [1]

    def test_spans_days(self) -> None:
        assert list(day_range(0.5, 1.5)) == [1, 2]

    def test_short_interval_occupies_one_day(self) -> None:
        assert list(day_range(2.1, 2.2)) == [3]


class TestAssignRows:
    """Greedy row assignment."""

    def test_touching_stops_share_row(self) -> None:
        """Test [0,1] and [1,2] share row 0 and an overlapping [0.5,1.5] goes to row 1."""
        stops = [stop(1, 0, 1), stop(2, 1, 2), stop(3, 0.5, 1.5)]

        assert assign_rows(stops) == [0, 0, 1]

    def test_first_fit(self) -> None:
        """Test a later stop reuses the lowest free row."""
        stops = [stop(1, 0, 2), stop(2, 0.5, 1.5), stop(3, 3, 4)]

        assert assign_rows(stops) == [0, 1, 0]

    def test_idempotent(self) -> None:
        """Test re-running layout on unchanged intervals gives identical rows."""
        stops = random_stops(20, seed=7)

        assert assign_rows(stops) == assign_rows(stops)

    def test_earlier_stops_unaffected_by_later_changes(self) -> None:
        """Test changing the last stop never moves the ones before it."""
        stops = random_stops(12, seed=3)
        before = assign_rows(stops)

        stops[-1].start_t = 0.0
        stops[-1].end_t = 9.5
        after = assign_rows(stops)

        assert after[:-1] == before[:-1]

    def test_no_overlap_in_any_row(self) -> None:
        """Test no two stops sharing a row have overlapping day buckets."""
        for seed in range(25):
            stops = random_stops(15, seed=seed)
            rows = assign_rows(stops)

            for i in range(len(stops)):
                for j in range(i + 1, len(stops)):
                    if rows[i] != rows[j]:
                        continue
                    a = set(day_range(stops[i].start_t, stops[i].end_t))
                    b = set(day_range(stops[j].start_t, stops[j].end_t))
                    assert not a & b, f"seed {seed}: stops {i} and {j} overlap in row {rows[i]}"


class TestLayoutTimeline:
    """Rows plus legs and container sizing."""

    def test_legs_get_dedicated_row(self) -> None:
        """Test legs sit one row below every stop row even when they touch stops."""
        stops = [stop(1, 0, 1), stop(2, 1.25, 2.5), stop(3, 2.75, 4)]
        legs = [
            Leg(leg_id=10, from_route_place_id=1, to_route_place_id=2, start_t=1.0, end_t=1.25),
            Leg(leg_id=11, from_route_place_id=2, to_route_place_id=3, start_t=2.5, end_t=2.75),
        ]

        result = layout_timeline(
            stops,
            legs,
            keys=[s.key for s in stops],
            leg_keys=[leg.key for leg in legs],
            row_height_px=45,
            leg_row_height_px=30,
        )

        assert result.stop_rows == [0, 0, 1]
        assert result.leg_row == 2
        assert result.rows_by_key["leg:10"] == 2
        assert result.rows_by_key["stop:3"] == 1
        assert result.top_px(result.leg_row) == 90

    def test_height_with_legs(self) -> None:
        """Test height is (maxStopRow + 1) * row height + leg row height."""
        stops = [stop(1, 0, 1), stop(2, 1, 2), stop(3, 0.5, 1.5)]
        legs = [Leg(leg_id=1, from_route_place_id=1, to_route_place_id=2, start_t=1, end_t=1)]

        result = layout_timeline(stops, legs, row_height_px=45, leg_row_height_px=30)

        assert result.max_stop_row == 1
        assert result.height_px == 2 * 45 + 30

    def test_height_without_legs_uses_padding(self) -> None:
        stops = [stop(1, 0, 1)]

        result = layout_timeline(stops, row_height_px=45, padding_px=10)

        assert result.height_px == 45 + 10

    def test_empty(self) -> None:
        """Test an empty timeline lays out without rows."""
        result = layout_timeline([], padding_px=10)

        assert result.stop_rows == []
        assert result.leg_row == 0
        assert result.max_stop_row == -1
        assert result.height_px == 10
