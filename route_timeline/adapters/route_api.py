"""Route planner API client - itinerary, schedule and conflict endpoints."""

import logging
from typing import Any

import httpx

from route_timeline.config import get_settings
from route_timeline.models.conflicts import ConflictInfo
from route_timeline.models.itinerary import (
    Itinerary,
    ItineraryWithConflicts,
    LegMetricsUpdate,
    LegScheduleUpdate,
    ScheduleSettingsUpdate,
    StopScheduleUpdate,
)

logger = logging.getLogger(__name__)


class RouteApiError(Exception):
    """A route planner API request failed (transport error or non-2xx status)."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RouteApiClient:
    """Async client for the route planner API.

    Owns its httpx.AsyncClient unless one is injected (tests use
    httpx.MockTransport or an ASGI transport).
    """

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.api_timeout_s
        )
        self._headers = headers or {}

    async def aclose(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RouteApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        failure: str,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(
                method, url, json=json, params=params, headers=self._headers
            )
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, type(e).__name__)
            raise RouteApiError(f"{failure}: {type(e).__name__}") from e

        if response.is_error:
            body = response.text
            logger.warning("%s %s returned %d", method, url, response.status_code)
            raise RouteApiError(
                body or f"{failure}: {response.status_code}",
                status_code=response.status_code,
                body=body,
            )
        return response

    # Itinerary

    async def get_itinerary(self, route_id: int) -> Itinerary:
        """Get route itinerary with schedule settings, stops and legs."""
        response = await self._request(
            "GET", f"/routes/{route_id}/itinerary", failure="Failed to load itinerary"
        )
        return Itinerary.model_validate(response.json())

    async def get_itinerary_with_conflicts(self, route_id: int) -> ItineraryWithConflicts:
        """Get route itinerary including route-order conflict information."""
        response = await self._request(
            "GET",
            f"/routes/{route_id}/itinerary",
            params={"includeConflicts": "true"},
            failure="Failed to load itinerary",
        )
        return ItineraryWithConflicts.model_validate(response.json())

    async def update_route_schedule_settings(
        self, route_id: int, update: ScheduleSettingsUpdate
    ) -> None:
        await self._request(
            "PUT",
            f"/routes/{route_id}/schedule-settings",
            json=update.model_dump(mode="json", by_alias=True),
            failure="Failed to update route schedule settings",
        )

    # Schedules

    async def update_stop_schedule(
        self, route_id: int, route_place_id: int, update: StopScheduleUpdate
    ) -> ConflictInfo | None:
        """Update a stop's schedule.

        Returns:
            ConflictInfo when the server reports one, None for an empty response
        """
        response = await self._request(
            "PUT",
            f"/routes/{route_id}/places/{route_place_id}/schedule",
            json=update.model_dump(mode="json", by_alias=True),
            failure="Failed to update stop schedule",
        )
        if not response.content:
            return None
        return ConflictInfo.model_validate(response.json())

    async def update_leg_schedule(self, route_id: int, leg_id: int, update: LegScheduleUpdate) -> None:
        await self._request(
            "PUT",
            f"/routes/{route_id}/legs/{leg_id}/schedule",
            json=update.model_dump(mode="json", by_alias=True),
            failure="Failed to update leg schedule",
        )

    # Legs

    async def rebuild_legs(self, route_id: int) -> None:
        """Recreate the leg skeleton for consecutive stop pairs."""
        await self._request(
            "POST", f"/routes/{route_id}/legs/rebuild", failure="Failed to rebuild legs"
        )

    async def update_leg_metrics(self, route_id: int, leg_id: int, update: LegMetricsUpdate) -> None:
        await self._request(
            "PUT",
            f"/routes/{route_id}/legs/{leg_id}",
            json=update.model_dump(mode="json", by_alias=True),
            failure="Failed to update leg metrics",
        )

    async def recalculate_legs_from_osrm(self, route_id: int) -> dict[str, Any]:
        """Ask the routing collaborator to recompute leg distance and duration."""
        response = await self._request(
            "POST",
            f"/routes/{route_id}/legs/recalculate",
            failure="Failed to recalculate route legs",
        )
        result: dict[str, Any] = response.json() if response.content else {}
        return result

    # Conflicts

    async def resolve_conflict_by_reorder(
        self, route_id: int, recalculate_schedule: bool = False
    ) -> None:
        """Reorder the route's canonical sequence to match current times."""
        await self._request(
            "POST",
            f"/routes/{route_id}/conflicts/resolve-by-reorder",
            json={"recalculateScheduleAfter": recalculate_schedule},
            failure="Failed to resolve conflicts",
        )
