"""In-memory route store backing the reference API."""

import logging
from datetime import timedelta

from route_timeline.adapters.routing import estimate_leg
from route_timeline.models.common import StopType
from route_timeline.models.conflicts import ConflictInfo
from route_timeline.models.itinerary import (
    Itinerary,
    ItineraryWithConflicts,
    LegMetricsUpdate,
    LegSchedule,
    LegScheduleUpdate,
    PlaceSchedule,
    ScheduleSettings,
    ScheduleSettingsUpdate,
    StopScheduleUpdate,
)
from route_timeline.service.conflicts import apply_time_based_order, detect_order_conflicts

logger = logging.getLogger(__name__)


class RouteNotFoundError(LookupError):
    """No route with the given id."""


class PlaceNotFoundError(LookupError):
    """No stop with the given id in the route."""


class LegNotFoundError(LookupError):
    """No leg with the given id in the route."""


class InMemoryRouteStore:
    """Routes with their stops and legs, held in memory.

    Returned itineraries are copies; mutations go through the update methods.
    """

    def __init__(self) -> None:
        self._routes: dict[int, Itinerary] = {}
        self._next_leg_id = 1

    def add_route(self, itinerary: Itinerary) -> Itinerary:
        """Store a route, replacing any route with the same id."""
        stored = Itinerary.model_validate(itinerary.model_dump())
        for leg in stored.legs:
            self._next_leg_id = max(self._next_leg_id, leg.id + 1)
        self._routes[stored.id] = stored
        return self.get_itinerary(stored.id)

    def _route(self, route_id: int) -> Itinerary:
        route = self._routes.get(route_id)
        if route is None:
            raise RouteNotFoundError(f"Route {route_id} not found")
        return route

    def _place(self, route: Itinerary, route_place_id: int) -> PlaceSchedule:
        for place in route.places:
            if place.id == route_place_id:
                return place
        raise PlaceNotFoundError(f"RoutePlace {route_place_id} not found in route {route.id}")

    def _leg(self, route: Itinerary, leg_id: int) -> LegSchedule:
        for leg in route.legs:
            if leg.id == leg_id:
                return leg
        raise LegNotFoundError(f"Leg {leg_id} not found in route {route.id}")

    # Reads

    def get_itinerary(self, route_id: int) -> Itinerary:
        """Itinerary with stops and legs in route order."""
        route = self._route(route_id).model_copy(deep=True)
        route.places.sort(key=lambda p: p.order_index)
        route.legs.sort(key=lambda leg: leg.order_index)
        return route

    def get_itinerary_with_conflicts(self, route_id: int) -> ItineraryWithConflicts:
        itinerary = self.get_itinerary(route_id)
        return ItineraryWithConflicts(
            **dict(itinerary),
            conflict_info=detect_order_conflicts(itinerary.places),
        )

    def detect_conflicts(self, route_id: int) -> ConflictInfo:
        return detect_order_conflicts(self._route(route_id).places)

    # Schedule updates

    def update_schedule_settings(self, route_id: int, update: ScheduleSettingsUpdate) -> None:
        route = self._route(route_id)
        route.schedule_settings = ScheduleSettings(**dict(update))
        logger.info("Route %s starts at %s", route_id, update.start_date_time.isoformat())

    def update_stop_schedule(
        self, route_id: int, route_place_id: int, update: StopScheduleUpdate
    ) -> ConflictInfo | None:
        """Store a stop's schedule.

        Stay length fields left empty are derived from the bounds.

        Returns:
            Route conflict info if the new time breaks route order, else None
        """
        route = self._route(route_id)
        place = self._place(route, route_place_id)

        span = update.planned_end - update.planned_start
        stay_nights = update.stay_nights
        stay_minutes = update.stay_duration_minutes
        if update.stop_type == StopType.overnight and stay_nights is None:
            stay_nights = max(0, (update.planned_end.date() - update.planned_start.date()).days)
        if update.stop_type != StopType.overnight and stay_minutes is None:
            stay_minutes = max(0, round(span / timedelta(minutes=1)))

        place.stop_type = update.stop_type
        place.planned_start = update.planned_start
        place.planned_end = update.planned_end
        place.stay_nights = stay_nights
        place.stay_duration_minutes = stay_minutes
        place.is_start_locked = update.is_start_locked
        place.is_end_locked = update.is_end_locked

        conflict = detect_order_conflicts(route.places)
        return conflict if conflict.has_conflict else None

    def update_leg_schedule(self, route_id: int, leg_id: int, update: LegScheduleUpdate) -> None:
        leg = self._leg(self._route(route_id), leg_id)
        leg.planned_start = update.planned_start
        leg.planned_end = update.planned_end

    def update_leg_metrics(self, route_id: int, leg_id: int, update: LegMetricsUpdate) -> None:
        leg = self._leg(self._route(route_id), leg_id)
        leg.distance_meters = update.distance_meters
        leg.duration_seconds = update.duration_seconds

    # Legs

    def rebuild_legs(self, route_id: int) -> list[LegSchedule]:
        """Replace all legs with one per consecutive stop pair in route order.

        New legs span from the departure of one stop to the arrival at the
        next; routing metrics start at zero.
        """
        route = self._route(route_id)
        ordered = sorted(route.places, key=lambda p: p.order_index)

        legs = []
        for i, (origin, dest) in enumerate(zip(ordered, ordered[1:])):
            legs.append(
                LegSchedule(
                    id=self._next_leg_id,
                    from_route_place_id=origin.id,
                    to_route_place_id=dest.id,
                    order_index=i,
                    planned_start=origin.planned_end,
                    planned_end=dest.planned_start,
                )
            )
            self._next_leg_id += 1

        route.legs = legs
        logger.info("Rebuilt %d legs for route %s", len(legs), route_id)
        return [leg.model_copy() for leg in legs]

    def recalculate_legs(self, route_id: int) -> dict[str, int]:
        """Re-estimate distance and duration of every leg."""
        route = self._route(route_id)
        updated = 0
        for leg in route.legs:
            origin = self._place(route, leg.from_route_place_id)
            dest = self._place(route, leg.to_route_place_id)
            estimate = estimate_leg(origin.geo, dest.geo)
            leg.distance_meters = estimate.distance_meters
            leg.duration_seconds = estimate.duration_seconds
            updated += 1
        return {"legsUpdated": updated}

    # Conflicts

    def resolve_by_reorder(self, route_id: int, recalculate_schedule: bool = False) -> ConflictInfo:
        """Reorder stops by planned start and rebuild legs for the new sequence.

        Returns:
            Conflict info after the reorder
        """
        route = self._route(route_id)
        if apply_time_based_order(route.places):
            self.rebuild_legs(route_id)
            if recalculate_schedule:
                self.recalculate_legs(route_id)
        return detect_order_conflicts(route.places)
