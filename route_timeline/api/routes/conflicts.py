"""Route-order conflict endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from route_timeline.api.deps import get_store, not_found
from route_timeline.models.common import ApiModel
from route_timeline.models.conflicts import ConflictInfo
from route_timeline.service.store import InMemoryRouteStore, RouteNotFoundError

router = APIRouter(prefix="/routes")

Store = Annotated[InMemoryRouteStore, Depends(get_store)]


class ResolveByReorderRequest(ApiModel):
    recalculate_schedule_after: bool = False


@router.get("/{route_id}/conflicts")
async def get_conflicts(route_id: int, store: Store) -> ConflictInfo:
    try:
        return store.detect_conflicts(route_id)
    except RouteNotFoundError as e:
        raise not_found(e) from e


@router.post("/{route_id}/conflicts/resolve-by-reorder")
async def resolve_by_reorder(
    route_id: int, store: Store, request: ResolveByReorderRequest | None = None
) -> ConflictInfo:
    """Rewrite route order to match the timeline.

    Returns:
        Conflict info after the reorder (normally clear)

    Raises:
        HTTPException: 404 if the route does not exist
    """
    recalculate = request.recalculate_schedule_after if request else False
    try:
        return store.resolve_by_reorder(route_id, recalculate_schedule=recalculate)
    except RouteNotFoundError as e:
        raise not_found(e) from e
