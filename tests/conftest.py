"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from route_timeline.adapters.route_api import RouteApiError
from route_timeline.models.conflicts import ConflictInfo
from route_timeline.models.itinerary import (
    ItineraryWithConflicts,
    LegScheduleUpdate,
    ScheduleSettingsUpdate,
    StopScheduleUpdate,
)
from route_timeline.models.schedule import Leg, Stop, TimelineSession
from route_timeline.timeline.view import RecordingTimelineView

ROUTE_ID = 7
ROUTE_START = datetime(2024, 6, 1, 9, 0, tzinfo=UTC)


class FakeRouteApi:
    """Stand-in for RouteApiClient that records calls in issue order.

    Usage:
        api.fail_on.add(("leg", 10))        # that save raises RouteApiError
        api.stop_responses[2] = conflict    # that stop save reports a conflict
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, int, Any]] = []
        self.stop_responses: dict[int, ConflictInfo | None] = {}
        self.fail_on: set[tuple[str, int]] = set()
        self.reorder_error: Exception | None = None
        self.itineraries: dict[int, ItineraryWithConflicts] = {}

    def _maybe_fail(self, kind: str, ident: int) -> None:
        if (kind, ident) in self.fail_on:
            raise RouteApiError(f"{kind} {ident} rejected", status_code=500)

    async def update_stop_schedule(
        self, route_id: int, route_place_id: int, update: StopScheduleUpdate
    ) -> ConflictInfo | None:
        self.calls.append(("stop", route_place_id, update))
        self._maybe_fail("stop", route_place_id)
        return self.stop_responses.get(route_place_id)

    async def update_leg_schedule(self, route_id: int, leg_id: int, update: LegScheduleUpdate) -> None:
        self.calls.append(("leg", leg_id, update))
        self._maybe_fail("leg", leg_id)

    async def resolve_conflict_by_reorder(
        self, route_id: int, recalculate_schedule: bool = False
    ) -> None:
        self.calls.append(("reorder", route_id, recalculate_schedule))
        if self.reorder_error is not None:
            raise self.reorder_error

    async def get_itinerary_with_conflicts(self, route_id: int) -> ItineraryWithConflicts:
        self.calls.append(("itinerary", route_id, None))
        return self.itineraries[route_id]

    async def update_route_schedule_settings(
        self, route_id: int, update: ScheduleSettingsUpdate
    ) -> None:
        self.calls.append(("settings", route_id, update))

    async def rebuild_legs(self, route_id: int) -> None:
        self.calls.append(("rebuild", route_id, None))

    async def recalculate_legs_from_osrm(self, route_id: int) -> dict[str, Any]:
        self.calls.append(("recalculate", route_id, None))
        return {}

    def saved(self) -> list[tuple[str, int]]:
        """(kind, id) of every schedule save, in issue order."""
        return [(kind, ident) for kind, ident, _ in self.calls if kind in ("stop", "leg")]


def build_route() -> tuple[list[Stop], list[Leg]]:
    """Three stops joined by two legs that tile [0, 4] days with no gaps."""
    stops = [
        Stop(route_place_id=1, name="Berlin", order_index=0, start_t=0.0, end_t=1.0),
        Stop(route_place_id=2, name="Dresden", order_index=1, start_t=1.25, end_t=2.5),
        Stop(route_place_id=3, name="Prague", order_index=2, start_t=2.75, end_t=4.0),
    ]
    legs = [
        Leg(leg_id=10, from_route_place_id=1, to_route_place_id=2, start_t=1.0, end_t=1.25),
        Leg(
            leg_id=11,
            from_route_place_id=2,
            to_route_place_id=3,
            start_t=2.5,
            end_t=2.75,
            order_index=1,
        ),
    ]
    return stops, legs


@pytest.fixture
def route() -> tuple[list[Stop], list[Leg]]:
    """Fresh stops and legs for one test."""
    return build_route()


@pytest.fixture
def session(route: tuple[list[Stop], list[Leg]]) -> TimelineSession:
    """Session over the sample route."""
    stops, legs = route
    return TimelineSession(
        route_id=ROUTE_ID, route_start_utc=ROUTE_START, stops=stops, legs=legs, total_days=4
    )


@pytest.fixture
def fake_api() -> FakeRouteApi:
    return FakeRouteApi()


@pytest.fixture
def view() -> RecordingTimelineView:
    """Headless view with an 800px viewport."""
    return RecordingTimelineView()


def _conflict_for(route_place_id: int, name: str, order_pos: int, time_pos: int) -> ConflictInfo:
    return ConflictInfo.model_validate(
        {
            "hasConflict": True,
            "conflictingStops": [
                {
                    "routePlaceId": route_place_id,
                    "placeName": name,
                    "currentOrderIndex": order_pos,
                    "newTimePosition": time_pos,
                }
            ],
            "orderIndexSequence": [1, 2, 3],
            "timeSequence": [1, 3, 2],
        }
    )


@pytest.fixture
def make_conflict() -> Callable[[int, str, int, int], ConflictInfo]:
    """Factory for ConflictInfo listing a single conflicting stop."""
    return _conflict_for
