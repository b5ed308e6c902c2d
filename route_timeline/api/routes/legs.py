"""Leg endpoints - skeleton rebuild, routing metrics and time bounds."""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from route_timeline.api.deps import get_store, not_found
from route_timeline.models.itinerary import LegMetricsUpdate, LegScheduleUpdate
from route_timeline.service.store import (
    InMemoryRouteStore,
    LegNotFoundError,
    PlaceNotFoundError,
    RouteNotFoundError,
)

router = APIRouter(prefix="/routes")

Store = Annotated[InMemoryRouteStore, Depends(get_store)]


@router.post("/{route_id}/legs/rebuild", status_code=status.HTTP_204_NO_CONTENT)
async def rebuild_legs(route_id: int, store: Store) -> Response:
    """Recreate one leg per consecutive stop pair."""
    try:
        store.rebuild_legs(route_id)
    except RouteNotFoundError as e:
        raise not_found(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{route_id}/legs/recalculate")
async def recalculate_legs(route_id: int, store: Store) -> dict[str, int]:
    """Re-estimate distance and duration of every leg."""
    try:
        return store.recalculate_legs(route_id)
    except (RouteNotFoundError, PlaceNotFoundError) as e:
        raise not_found(e) from e


@router.put("/{route_id}/legs/{leg_id}", status_code=status.HTTP_204_NO_CONTENT)
async def update_leg_metrics(
    route_id: int, leg_id: int, update: LegMetricsUpdate, store: Store
) -> Response:
    try:
        store.update_leg_metrics(route_id, leg_id, update)
    except (RouteNotFoundError, LegNotFoundError) as e:
        raise not_found(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{route_id}/legs/{leg_id}/schedule", status_code=status.HTTP_204_NO_CONTENT)
async def update_leg_schedule(
    route_id: int, leg_id: int, update: LegScheduleUpdate, store: Store
) -> Response:
    try:
        store.update_leg_schedule(route_id, leg_id, update)
    except (RouteNotFoundError, LegNotFoundError) as e:
        raise not_found(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
