"""Itinerary and schedule endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from route_timeline.api.deps import get_store, not_found
from route_timeline.models.itinerary import (
    Itinerary,
    ItineraryWithConflicts,
    ScheduleSettingsUpdate,
    StopScheduleUpdate,
)
from route_timeline.service.store import InMemoryRouteStore, PlaceNotFoundError, RouteNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routes")

Store = Annotated[InMemoryRouteStore, Depends(get_store)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_route(itinerary: Itinerary, store: Store) -> Itinerary:
    """Create or replace a route with its stops and legs."""
    return store.add_route(itinerary)


@router.get("/{route_id}/itinerary", response_model=None)
async def get_itinerary(
    route_id: int,
    store: Store,
    include_conflicts: Annotated[bool, Query(alias="includeConflicts")] = False,
) -> Itinerary | ItineraryWithConflicts:
    """Get route itinerary with schedule settings, stops and legs.

    Args:
        route_id: Route ID
        store: Route store
        include_conflicts: Also report route-order conflicts

    Returns:
        Itinerary (camelCase JSON)

    Raises:
        HTTPException: 404 if the route does not exist
    """
    try:
        if include_conflicts:
            return store.get_itinerary_with_conflicts(route_id)
        return store.get_itinerary(route_id)
    except RouteNotFoundError as e:
        raise not_found(e) from e


@router.put("/{route_id}/schedule-settings", status_code=status.HTTP_204_NO_CONTENT)
async def update_schedule_settings(
    route_id: int, update: ScheduleSettingsUpdate, store: Store
) -> Response:
    try:
        store.update_schedule_settings(route_id, update)
    except RouteNotFoundError as e:
        raise not_found(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{route_id}/places/{route_place_id}/schedule", response_model=None)
async def update_stop_schedule(
    route_id: int, route_place_id: int, update: StopScheduleUpdate, store: Store
) -> Response:
    """Update a stop's schedule.

    Returns:
        204 when route order still matches time order,
        200 with ConflictInfo JSON when it no longer does

    Raises:
        HTTPException: 404 if the route or stop does not exist
    """
    try:
        conflict = store.update_stop_schedule(route_id, route_place_id, update)
    except (RouteNotFoundError, PlaceNotFoundError) as e:
        raise not_found(e) from e

    if conflict is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    logger.info(
        "Schedule change on route %s created %d conflicts",
        route_id,
        len(conflict.conflicting_stops),
    )
    return Response(
        content=conflict.model_dump_json(by_alias=True),
        media_type="application/json",
    )
