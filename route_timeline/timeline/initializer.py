"""Schedule initializer - fill in defaults for routes without schedule data.

Runs once per route load, before the first render.
"""

import logging
from datetime import UTC, datetime, time, timedelta
from typing import Protocol

from route_timeline.adapters.route_api import RouteApiError
from route_timeline.config import get_settings
from route_timeline.models.common import StopType
from route_timeline.models.itinerary import (
    Itinerary,
    ScheduleSettingsUpdate,
    StopScheduleUpdate,
)

logger = logging.getLogger(__name__)


class InitializerApi(Protocol):
    """Endpoints the initializer calls."""

    async def update_route_schedule_settings(
        self, route_id: int, update: ScheduleSettingsUpdate
    ) -> None: ...

    async def update_stop_schedule(
        self, route_id: int, route_place_id: int, update: StopScheduleUpdate
    ) -> object: ...

    async def rebuild_legs(self, route_id: int) -> None: ...

    async def recalculate_legs_from_osrm(self, route_id: int) -> object: ...


def parse_clock(value: str | None, fallback: str) -> time:
    """Parse an "HH:MM" clock time, using the fallback when missing or malformed."""
    for candidate in (value, fallback):
        if not candidate:
            continue
        try:
            hours, minutes = (int(part) for part in candidate.split(":")[:2])
            return time(hours, minutes)
        except ValueError:
            logger.warning("Ignoring malformed clock time %r", candidate)
    return time(9, 0)


def default_route_start(itinerary: Itinerary, now: datetime | None = None) -> datetime:
    """Today at the route's default arrival time (09:00 when unset)."""
    settings = get_settings()
    now = now or datetime.now(UTC)
    arrival = itinerary.schedule_settings.default_arrival_time if itinerary.schedule_settings else None
    return datetime.combine(
        now.date(), parse_clock(arrival, settings.default_arrival_time), tzinfo=UTC
    )


def default_stop_schedule(route_start: datetime, index: int) -> StopScheduleUpdate:
    """One night per stop: day N at arrival time until the next day."""
    settings = get_settings()
    arrival = parse_clock(None, settings.default_arrival_time)
    start = datetime.combine(
        route_start.date() + timedelta(days=index), arrival, tzinfo=route_start.tzinfo or UTC
    )
    return StopScheduleUpdate(
        stop_type=StopType.overnight,
        time_zone_id=None,
        planned_start=start,
        planned_end=start + timedelta(days=settings.default_stay_nights),
        stay_nights=settings.default_stay_nights,
        stay_duration_minutes=None,
        is_start_locked=False,
        is_end_locked=False,
    )


async def initialize_schedule_if_needed(
    api: InitializerApi, itinerary: Itinerary, *, now: datetime | None = None
) -> bool:
    """Fill in a default route start, stop schedules and legs where missing.

    Single-stop failures are logged and skipped; settings and leg failures
    propagate.

    Args:
        api: Route planner API client
        itinerary: Itinerary as just loaded
        now: Clock override for the default start date

    Returns:
        True if anything was written and the itinerary should be reloaded

    Raises:
        RouteApiError: If updating schedule settings or rebuilding legs fails
    """
    settings = get_settings()
    route_id = itinerary.id
    changed = False

    route_settings = itinerary.schedule_settings
    route_start = route_settings.start_date_time if route_settings else None
    if route_start is None:
        route_start = default_route_start(itinerary, now)
        logger.info("Route %s has no start time, defaulting to %s", route_id, route_start.isoformat())
        await api.update_route_schedule_settings(
            route_id,
            ScheduleSettingsUpdate(
                time_zone_id=(route_settings.time_zone_id if route_settings else None)
                or settings.default_timezone_id,
                start_date_time=route_start,
                end_date_time=route_settings.end_date_time if route_settings else None,
                default_arrival_time=route_settings.default_arrival_time if route_settings else None,
                default_departure_time=route_settings.default_departure_time
                if route_settings
                else None,
            ),
        )
        changed = True

    places = sorted(itinerary.places, key=lambda p: p.order_index)
    if any(p.planned_start is None for p in places):
        logger.info("Generating default schedules for route %s", route_id)
        for index, place in enumerate(places):
            try:
                await api.update_stop_schedule(
                    route_id, place.id, default_stop_schedule(route_start, index)
                )
            except RouteApiError as e:
                logger.error("Failed to set schedule for %s: %s", place.place_name or place.id, e)
                continue
            changed = True

    if len(itinerary.legs) != max(len(places) - 1, 0):
        logger.info(
            "Route %s has %d legs for %d stops, rebuilding",
            route_id,
            len(itinerary.legs),
            len(places),
        )
        await api.rebuild_legs(route_id)
        if len(places) > 1:
            await api.recalculate_legs_from_osrm(route_id)
        changed = True

    return changed
