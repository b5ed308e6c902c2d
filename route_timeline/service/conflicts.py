"""Route-order conflict detection and time-based reordering.

Route order is the orderIndex sequence (driving sequence); timeline order is
the plannedStart sequence. A conflict exists wherever the two disagree.
"""

import logging
from collections.abc import Sequence
from datetime import datetime

from route_timeline.models.conflicts import (
    ConflictInfo,
    ConflictingStop,
    ScheduleChangeConflict,
)
from route_timeline.models.itinerary import PlaceSchedule

logger = logging.getLogger(__name__)


def detect_order_conflicts(places: Sequence[PlaceSchedule]) -> ConflictInfo:
    """Compare route order with time order.

    Stops without a planned start make the time order undefined, so any
    such stop means no conflict is reported.
    """
    if len(places) < 2:
        return ConflictInfo(has_conflict=False)

    by_order = sorted(places, key=lambda p: p.order_index)
    timed = [p for p in places if p.planned_start is not None]
    if len(timed) < len(places):
        return ConflictInfo(has_conflict=False)

    # Stable sort keeps route order between equal start times
    by_time = sorted(by_order, key=lambda p: p.planned_start)
    time_ids = [p.id for p in by_time]

    conflicting = [
        ConflictingStop(
            route_place_id=place.id,
            place_name=place.place_name,
            current_order_index=i,
            new_time_position=time_ids.index(place.id),
            planned_start=place.planned_start,
        )
        for i, (place, timed_place) in enumerate(zip(by_order, by_time))
        if place.id != timed_place.id
    ]

    return ConflictInfo(
        has_conflict=bool(conflicting),
        conflicting_stops=conflicting,
        order_index_sequence=[p.id for p in by_order],
        time_sequence=time_ids,
    )


def check_schedule_change(
    places: Sequence[PlaceSchedule], route_place_id: int, new_start: datetime
) -> ScheduleChangeConflict:
    """Would giving one stop a new start time break route order?

    Stops without a planned start are left out of the hypothetical time order.

    Raises:
        KeyError: If the stop is not in the route
    """
    target = next((p for p in places if p.id == route_place_id), None)
    if target is None:
        raise KeyError(f"RoutePlace {route_place_id} not found")

    by_order = sorted(places, key=lambda p: p.order_index)
    starts = {p.id: new_start if p.id == route_place_id else p.planned_start for p in by_order}
    timed_ids = [pid for pid, start in starts.items() if start is not None]
    time_ids = sorted(timed_ids, key=lambda pid: starts[pid])

    time_position = time_ids.index(route_place_id)
    would_conflict = target.order_index != time_position
    affected = (
        [p.id for p, tid in zip(by_order, time_ids) if p.id != tid] if would_conflict else []
    )

    return ScheduleChangeConflict(
        would_create_conflict=would_conflict,
        route_place_id=route_place_id,
        place_name=target.place_name,
        current_order_index=target.order_index,
        new_time_position=time_position,
        affected_stops=affected,
    )


def apply_time_based_order(places: Sequence[PlaceSchedule]) -> bool:
    """Renumber orderIndex of timed stops by planned start.

    Returns:
        False if fewer than two stops have a planned start (nothing reordered)
    """
    timed = sorted(
        (p for p in places if p.planned_start is not None),
        key=lambda p: (p.planned_start, p.order_index),
    )
    if len(timed) < 2:
        logger.warning("Cannot apply time-based order: insufficient stops with times")
        return False

    for i, place in enumerate(timed):
        place.order_index = i
    logger.info("Applied time-based order: %d stops reordered", len(timed))
    return True
