"""Coordinate mapper - absolute timestamps <-> float-day coordinates.

Day 0 is anchored at midnight UTC of the route's start calendar date, not at
the start timestamp itself: a route starting at 14:00 puts its first stop at
startT = 0.583.
"""

import logging
import math
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from route_timeline.config import get_settings
from route_timeline.models.common import StopType
from route_timeline.models.itinerary import Itinerary, PlaceSchedule
from route_timeline.models.schedule import Leg, Stop

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0
DEFAULT_STAY = timedelta(hours=2)
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
COLOR_COUNT = 5


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def anchor_midnight(route_start: datetime) -> datetime:
    """Midnight UTC of the route's start calendar date."""
    start = _as_utc(route_start)
    return datetime(start.year, start.month, start.day, tzinfo=UTC)


def to_coordinate(timestamp: datetime, route_start: datetime) -> float:
    """Convert an absolute timestamp to float days since the anchor midnight."""
    delta = _as_utc(timestamp) - anchor_midnight(route_start)
    return delta.total_seconds() / SECONDS_PER_DAY


def to_timestamp(float_days: float, route_start: datetime) -> datetime:
    """Convert float days since the anchor midnight back to a UTC timestamp."""
    return anchor_midnight(route_start) + timedelta(seconds=float_days * SECONDS_PER_DAY)


def coords_to_utc(start_t: float, end_t: float, route_start: datetime) -> tuple[datetime, datetime]:
    """Convert an interval in float days to (start, end) UTC timestamps."""
    return to_timestamp(start_t, route_start), to_timestamp(end_t, route_start)


def resolve_planned_end(place: PlaceSchedule) -> datetime | None:
    """Planned end of a stop, falling back on its stay settings.

    Overnight stops default to start + stayNights days, timed stops to
    start + stayDurationMinutes, anything else to start + 2 hours.
    """
    if place.planned_end is not None:
        return place.planned_end
    if place.planned_start is None:
        return None

    start = place.planned_start
    if place.stop_type == StopType.overnight and place.stay_nights is not None:
        return start + timedelta(days=place.stay_nights)
    if place.stay_duration_minutes is not None:
        return start + timedelta(minutes=place.stay_duration_minutes)
    return start + DEFAULT_STAY


def calculate_total_days(stops: Sequence[Stop]) -> int:
    """Number of whole days the timeline spans (at least 1)."""
    if not stops:
        return 1
    max_end = max(s.end_t for s in stops)
    return max(1, math.ceil(max_end))


def route_start_of(itinerary: Itinerary) -> datetime:
    """Route start timestamp, or now when the route has none yet."""
    settings = itinerary.schedule_settings
    if settings is not None and settings.start_date_time is not None:
        return _as_utc(settings.start_date_time)
    logger.warning("Route %s has no start date time; anchoring at now", itinerary.id)
    return datetime.now(UTC)


def map_itinerary(
    itinerary: Itinerary,
    min_duration: float | None = None,
) -> tuple[list[Stop], list[Leg]]:
    """Map an itinerary onto timeline stops and legs in coordinate space.

    Args:
        itinerary: Route itinerary from the API
        min_duration: Minimum stop duration in days (defaults to settings)

    Returns:
        (stops, legs). Leg bounds are taken from their neighbouring stops so
        that stops and legs tile the axis with no gaps.
    """
    if not itinerary.places:
        logger.warning("Empty itinerary %s provided to mapper", itinerary.id)
        return [], []

    if min_duration is None:
        min_duration = get_settings().min_stop_duration_days

    route_start = route_start_of(itinerary)

    stops: list[Stop] = []
    for idx, place in enumerate(itinerary.places):
        end = resolve_planned_end(place)
        if place.planned_start is not None and end is not None:
            start_t = to_coordinate(place.planned_start, route_start)
            end_t = to_coordinate(end, route_start)
        else:
            # No schedule yet: one day per stop in route order
            start_t = float(idx)
            end_t = float(idx + 1)

        start_t = max(0.0, start_t)
        end_t = max(start_t + min_duration, end_t)

        stops.append(
            Stop(
                route_place_id=place.id,
                place_id=place.place_id,
                name=place.place_name or f"Stop {idx + 1}",
                latitude=place.latitude,
                longitude=place.longitude,
                order_index=place.order_index,
                stop_type=place.stop_type,
                color=f"color-{(idx % COLOR_COUNT) + 1}",
                start_t=start_t,
                end_t=end_t,
                is_start_locked=place.is_start_locked,
                is_end_locked=place.is_end_locked,
                original_start=place.planned_start,
                original_end=place.planned_end,
            )
        )
        logger.debug("Mapped stop %s: startT=%.2f endT=%.2f", place.id, start_t, end_t)

    by_id = {s.route_place_id: s for s in stops}
    legs: list[Leg] = []
    for raw in itinerary.legs:
        from_stop = by_id.get(raw.from_route_place_id)
        to_stop = by_id.get(raw.to_route_place_id)
        if from_stop is None or to_stop is None:
            logger.warning("Skipping leg %s: references a stop outside the route", raw.id)
            continue
        legs.append(
            Leg(
                leg_id=raw.id,
                from_route_place_id=raw.from_route_place_id,
                to_route_place_id=raw.to_route_place_id,
                order_index=raw.order_index,
                distance_meters=raw.distance_meters,
                duration_seconds=raw.duration_seconds,
                start_t=from_stop.end_t,
                end_t=to_stop.start_t,
                original_start=raw.planned_start,
                original_end=raw.planned_end,
            )
        )

    logger.info(
        "Mapped itinerary %s: %d stops, %d legs, route start %s",
        itinerary.id,
        len(stops),
        len(legs),
        route_start.isoformat(),
    )
    return stops, legs


def format_day_time(t: float, total_days: int, route_start: datetime | None) -> str:
    """Human-readable label for a float-day position.

    "Jun 1 · 14:00" when the route start is known, "Day N · HH:MM" otherwise.
    """
    if route_start is not None:
        moment = to_timestamp(t, route_start)
        # Round to the nearest minute
        moment = moment + timedelta(seconds=30)
        month = MONTH_NAMES[moment.month - 1]
        return f"{month} {moment.day} · {moment.hour:02d}:{moment.minute:02d}"

    day_index = math.floor(t) + 1
    day = max(1, min(day_index, total_days))
    minutes = round((t - math.floor(t)) * 24 * 60)
    if minutes >= 24 * 60:
        minutes = 0
    return f"Day {day} · {minutes // 60:02d}:{minutes % 60:02d}"


def format_day_label(day_index: int, route_start: datetime | None) -> str:
    """Ruler label for a zero-based day column."""
    if route_start is None:
        return f"Day {day_index + 1}"
    day = anchor_midnight(route_start) + timedelta(days=day_index)
    return f"Day {day_index + 1} · {MONTH_NAMES[day.month - 1]} {day.day}"
