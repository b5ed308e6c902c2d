"""Persistence bridge - save edited intervals back as absolute times.

Both bounds of a stop are locked once the user edits it, so the server's own
schedule derivation cannot silently revert the edit. Leg saves carry only the
time bounds; distance and duration stay with the routing collaborator.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Protocol

from route_timeline.adapters.route_api import RouteApiError
from route_timeline.models.common import ElementKind
from route_timeline.models.conflicts import ConflictInfo
from route_timeline.models.itinerary import LegScheduleUpdate, StopScheduleUpdate
from route_timeline.models.schedule import Leg, Stop, TimelineSession
from route_timeline.timeline.interaction import GestureCommit
from route_timeline.timeline.mapper import coords_to_utc
from route_timeline.utils.logging import StructuredTimelineLogger
from route_timeline.utils.metrics import PrometheusTimelineMetrics

logger = logging.getLogger(__name__)


class ScheduleApi(Protocol):
    """Schedule endpoints the bridge needs."""

    async def update_stop_schedule(
        self, route_id: int, route_place_id: int, update: StopScheduleUpdate
    ) -> ConflictInfo | None: ...

    async def update_leg_schedule(
        self, route_id: int, leg_id: int, update: LegScheduleUpdate
    ) -> None: ...


@dataclass
class SaveOutcome:
    """Result of persisting one gesture."""

    saved: list[str] = field(default_factory=list)
    conflict: ConflictInfo | None = None
    failed_key: str | None = None
    error: RouteApiError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _merge_conflict(current: ConflictInfo | None, new: ConflictInfo | None) -> ConflictInfo | None:
    # A reported conflict wins over a clean response
    if new is None:
        return current
    if current is not None and current.has_conflict and not new.has_conflict:
        return current
    return new


class PersistenceBridge:
    """Converts edited records to absolute time and issues update requests."""

    def __init__(
        self,
        api: ScheduleApi,
        session: TimelineSession,
        *,
        metrics: PrometheusTimelineMetrics | None = None,
        structured_logger: StructuredTimelineLogger | None = None,
    ) -> None:
        if session.route_id is None or session.route_start_utc is None:
            raise ValueError("session needs a route id and start time to persist")
        self.api = api
        self.session = session
        self.route_id: int = session.route_id
        self.metrics = metrics or PrometheusTimelineMetrics()
        self.structured_logger = structured_logger or StructuredTimelineLogger()

    async def save_stop_schedule(self, stop: Stop) -> ConflictInfo | None:
        """Persist a stop's interval with both bounds locked.

        Raises:
            RouteApiError: If the request fails
        """
        assert self.session.route_start_utc is not None
        start_utc, end_utc = coords_to_utc(stop.start_t, stop.end_t, self.session.route_start_utc)
        update = StopScheduleUpdate(
            stop_type=stop.stop_type,
            time_zone_id=None,  # Route default
            planned_start=start_utc,
            planned_end=end_utc,
            stay_nights=None,  # Server re-derives from the bounds
            stay_duration_minutes=None,
            is_start_locked=True,
            is_end_locked=True,
        )

        started = time.perf_counter()
        try:
            conflict = await self.api.update_stop_schedule(self.route_id, stop.route_place_id, update)
        except RouteApiError as e:
            self._record(ElementKind.stop, stop.route_place_id, "error", started, str(e))
            raise

        outcome = "conflict" if conflict is not None and conflict.has_conflict else "success"
        self._record(ElementKind.stop, stop.route_place_id, outcome, started)

        stop.is_start_locked = True
        stop.is_end_locked = True
        stop.original_start = start_utc
        stop.original_end = end_utc
        return conflict

    async def save_leg_schedule(self, leg: Leg) -> None:
        """Persist a leg's time bounds only.

        Raises:
            RouteApiError: If the request fails
        """
        assert self.session.route_start_utc is not None
        start_utc, end_utc = coords_to_utc(leg.start_t, leg.end_t, self.session.route_start_utc)
        update = LegScheduleUpdate(planned_start=start_utc, planned_end=end_utc)

        started = time.perf_counter()
        try:
            await self.api.update_leg_schedule(self.route_id, leg.leg_id, update)
        except RouteApiError as e:
            self._record(ElementKind.leg, leg.leg_id, "error", started, str(e))
            raise

        self._record(ElementKind.leg, leg.leg_id, "success", started)
        leg.original_start = start_utc
        leg.original_end = end_utc

    async def save_leg_and_connected_stops(self, leg: Leg) -> ConflictInfo | None:
        """Persist both neighbouring stops, then the leg.

        Neighbour saves are issued before the leg save, so stored stop
        boundaries stay consistent even if the leg save fails.

        Raises:
            RouteApiError: On the first failing request; later saves are not issued
        """
        conflict: ConflictInfo | None = None
        for stop in self.session.neighbours(leg):
            if stop is not None:
                conflict = _merge_conflict(conflict, await self.save_stop_schedule(stop))
        await self.save_leg_schedule(leg)
        return conflict

    async def commit(self, commit: GestureCommit) -> SaveOutcome:
        """Persist every record a gesture changed, stopping at the first failure."""
        outcome = SaveOutcome()
        for record in self._save_order(commit):
            try:
                if isinstance(record, Stop):
                    conflict = await self.save_stop_schedule(record)
                    outcome.conflict = _merge_conflict(outcome.conflict, conflict)
                else:
                    await self.save_leg_schedule(record)
            except RouteApiError as e:
                logger.error("Failed to save schedule for %s: %s", record.key, e)
                outcome.failed_key = record.key
                outcome.error = e
                return outcome
            outcome.saved.append(record.key)
        return outcome

    def _save_order(self, commit: GestureCommit) -> list[Stop | Leg]:
        """Records to save: stops before legs, the dragged stop first."""
        records = [self.session.element(key) for key in commit.changed]
        stops = [r for r in records if isinstance(r, Stop)]
        legs = [r for r in records if isinstance(r, Leg)]
        stops.sort(key=lambda s: s.key != commit.key)
        return [*stops, *legs]

    def _record(
        self,
        kind: ElementKind,
        element_id: int,
        outcome: str,
        started: float,
        error_reason: str | None = None,
    ) -> None:
        latency_ms = (time.perf_counter() - started) * 1000
        self.metrics.record_save(kind.value, outcome, latency_ms)
        self.structured_logger.log_save(
            self.route_id, kind.value, element_id, outcome, latency_ms, error_reason
        )
