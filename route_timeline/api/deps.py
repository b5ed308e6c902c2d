"""Shared API dependencies."""

from functools import lru_cache

from fastapi import HTTPException, status

from route_timeline.service.store import InMemoryRouteStore


@lru_cache
def get_store() -> InMemoryRouteStore:
    """Get the process-wide route store."""
    return InMemoryRouteStore()


def not_found(error: LookupError) -> HTTPException:
    """404 for a missing route, stop or leg."""
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
