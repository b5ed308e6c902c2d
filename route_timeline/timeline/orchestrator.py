"""Timeline orchestrator - owns the session and wires the engine to a view.

Public API consumed by the application shell: render, render_with_conflicts,
set_active_stop, zoom_in / zoom_out, plus pointer, wheel and scrub input.
Zoom changes only the pixel width of one day, never the stored coordinates.
"""

import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime

from route_timeline.adapters.route_api import RouteApiClient, RouteApiError
from route_timeline.config import Settings, get_settings
from route_timeline.models.common import ElementKind
from route_timeline.models.conflicts import ConflictInfo
from route_timeline.models.itinerary import Itinerary, ItineraryWithConflicts
from route_timeline.models.schedule import Leg, Stop, TimelineSession
from route_timeline.timeline.conflicts import ConflictManager
from route_timeline.timeline.initializer import initialize_schedule_if_needed
from route_timeline.timeline.interaction import (
    GestureCommit,
    GestureMode,
    GestureResult,
    InteractionController,
    PointerEvent,
)
from route_timeline.timeline.layout import LayoutResult, day_range, layout_timeline
from route_timeline.timeline.mapper import (
    calculate_total_days,
    format_day_label,
    format_day_time,
    map_itinerary,
    route_start_of,
)
from route_timeline.timeline.persistence import PersistenceBridge
from route_timeline.timeline.view import BarState, TimelineView

logger = logging.getLogger(__name__)

StopSelectedCallback = Callable[[int, Stop], None]
StopChangedCallback = Callable[[Stop], None]
SaveFailedCallback = Callable[[str, RouteApiError], None]
ReorderedCallback = Callable[[], Awaitable[None]]

LEG_COLOR = "leg"


def format_leg_label(leg: Leg) -> str:
    """Bar label for a leg: distance and drive time when known."""
    if leg.distance_meters <= 0:
        return ""
    km = leg.distance_meters / 1000
    hours, minutes = divmod(round(leg.duration_seconds / 60), 60)
    return f"{km:.0f} km · {hours}h {minutes:02d}m"


class TimelineOrchestrator:
    """Owns the timeline session, zoom, scroll and cursor."""

    def __init__(
        self,
        view: TimelineView,
        api: RouteApiClient | None = None,
        *,
        route_id: int | None = None,
        on_stop_selected: StopSelectedCallback | None = None,
        on_stop_schedule_changed: StopChangedCallback | None = None,
        on_save_failed: SaveFailedCallback | None = None,
        on_route_reordered: ReorderedCallback | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.view = view
        self.api = api
        self.route_id = route_id
        self.settings = settings or get_settings()
        self.on_stop_selected = on_stop_selected
        self.on_stop_schedule_changed = on_stop_schedule_changed
        self.on_save_failed = on_save_failed
        self.on_route_reordered = on_route_reordered

        self.zoom_level = 1.0
        self.current_t = 0.0
        self.active_index: int | None = None
        self.layout: LayoutResult | None = None

        self._session: TimelineSession | None = None
        self._generation = 0
        self._load_token: object | None = None
        self._controller: InteractionController | None = None
        self._bridge: PersistenceBridge | None = None

        self.conflicts = ConflictManager(
            view,
            self._reorder,
            on_resolved=self._after_reorder,
            has_bar=self._has_bar,
        )

    @property
    def session(self) -> TimelineSession | None:
        return self._session

    @property
    def total_days(self) -> int:
        return self._session.total_days if self._session else 1

    # Rendering

    def render(
        self,
        stops: Sequence[Stop],
        total_days: int,
        start_utc: datetime | None,
        legs: Sequence[Leg] | None = None,
        *,
        route_id: int | None = None,
    ) -> None:
        """Render a fresh session; any previous one is discarded."""
        if route_id is not None:
            self.route_id = route_id

        # Supersedes any open_route still loading
        self._load_token = None
        self._generation += 1
        session = TimelineSession(
            route_id=self.route_id,
            route_start_utc=start_utc,
            stops=list(stops),
            legs=list(legs or []),
            total_days=max(1, total_days),
            generation=self._generation,
        )
        self._session = session
        self._controller = InteractionController(
            session,
            self,
            min_duration=self.settings.min_stop_duration_days,
            threshold_px=self.settings.drag_threshold_px,
        )
        self._bridge = None
        if self.api is not None and session.route_id is not None and start_utc is not None:
            self._bridge = PersistenceBridge(self.api, session)

        logger.info(
            "Timeline render: %d stops, %d legs, %d days",
            len(session.stops),
            len(session.legs),
            session.total_days,
        )

        self.conflicts.clear()
        self.view.reset()
        self.active_index = None

        self.view.render_day_labels(
            [format_day_label(d, start_utc) for d in range(session.total_days)]
        )
        self.view.render_day_grid(session.total_days)
        self.view.set_track_width(self.track_width_px())

        for stop in session.stops:
            self.view.create_bar(
                stop.key, label=stop.name, kind=ElementKind.stop, color=stop.color, resizable=True
            )
            self.refresh_bar(stop.key)
        for leg in session.legs:
            self.view.create_bar(
                leg.key,
                label=format_leg_label(leg),
                kind=ElementKind.leg,
                color=LEG_COLOR,
                resizable=False,
            )
            self.refresh_bar(leg.key)

        self.relayout()
        self.update_cursor(0.0)

    def render_with_conflicts(
        self,
        stops: Sequence[Stop],
        total_days: int,
        start_utc: datetime | None,
        conflict_info: ConflictInfo | None,
        legs: Sequence[Leg] | None = None,
        *,
        route_id: int | None = None,
    ) -> None:
        """Render, then flag any route-order conflict."""
        self.render(stops, total_days, start_utc, legs, route_id=route_id)
        self.conflicts.flag(conflict_info, source="render")

    def show_itinerary(self, itinerary: Itinerary) -> None:
        """Map an itinerary to coordinate space and render it."""
        stops, legs = map_itinerary(itinerary, self.settings.min_stop_duration_days)
        total_days = calculate_total_days(stops)
        start_utc = route_start_of(itinerary)

        if isinstance(itinerary, ItineraryWithConflicts):
            self.render_with_conflicts(
                stops, total_days, start_utc, itinerary.conflict_info, legs, route_id=itinerary.id
            )
        else:
            self.render(stops, total_days, start_utc, legs, route_id=itinerary.id)

    async def open_route(self, route_id: int, *, initialize: bool = True) -> bool:
        """Load a route's itinerary and render it.

        Returns:
            False if a later open_route superseded this one before it finished
        """
        if self.api is None:
            raise RuntimeError("open_route needs an API client")

        token = object()
        self._load_token = token

        itinerary = await self.api.get_itinerary_with_conflicts(route_id)
        if initialize and await initialize_schedule_if_needed(self.api, itinerary):
            itinerary = await self.api.get_itinerary_with_conflicts(route_id)

        if token is not self._load_token:
            logger.info("Ignoring itinerary for route %s: another route was opened", route_id)
            return False

        self.show_itinerary(itinerary)
        return True

    def refresh_bar(self, key: str) -> None:
        """Position one bar from its record."""
        if self._session is None:
            return
        record = self._session.element(key)
        if record is None:
            return
        total = self._session.total_days
        self.view.position_bar(
            key,
            record.start_t / total * 100,
            max(0.0, record.end_t - record.start_t) / total * 100,
        )

    def relayout(self) -> LayoutResult | None:
        """Recompute rows from the current intervals and apply them."""
        session = self._session
        if session is None:
            return None

        result = layout_timeline(
            session.stops,
            session.legs,
            keys=[s.key for s in session.stops],
            leg_keys=[leg.key for leg in session.legs],
            row_height_px=self.settings.row_height_px,
            leg_row_height_px=self.settings.leg_row_height_px,
            padding_px=self.settings.container_padding_px,
        )
        for key, row in result.rows_by_key.items():
            self.view.set_bar_top(key, result.top_px(row))
        self.view.set_container_height(result.height_px)
        self.layout = result
        return result

    # Selection and cursor

    def set_active_stop(self, index: int) -> None:
        """Highlight a stop, centre it in the viewport and move the cursor to it."""
        session = self._session
        if session is None or not 0 <= index < len(session.stops):
            logger.warning("set_active_stop: no stop at index %s", index)
            return

        for i, stop in enumerate(session.stops):
            self.view.set_bar_active(stop.key, i == index)
        self.active_index = index

        stop = session.stops[index]
        mid_t = (stop.start_t + stop.end_t) / 2
        self._set_scroll(mid_t * self.day_width_px() - self.view.viewport_width() / 2)
        self.update_cursor(mid_t)

    def update_cursor(self, t: float) -> None:
        """Move the scrub cursor to a float-day position."""
        session = self._session
        total = self.total_days
        t = max(0.0, min(t, float(total)))
        self.current_t = t

        route_start = session.route_start_utc if session else None
        self.view.set_cursor(t / total * 100, format_day_time(t, total, route_start))

        day = min(math.floor(t) + 1, total)
        self.view.set_current_places([s.name for s in self.stops_on_day(day)])

    def scrub(self, viewport_x: float) -> float:
        """Map a pointer x (relative to the viewport) to float days and move the cursor."""
        t = (self.view.scroll_left() + viewport_x) / self.day_width_px()
        self.update_cursor(t)
        return self.current_t

    def stops_on_day(self, day: int) -> list[Stop]:
        """Stops occupying a one-based day bucket."""
        if self._session is None:
            return []
        return [s for s in self._session.stops if day in day_range(s.start_t, s.end_t)]

    # Zoom and scroll

    def day_width_px(self) -> float:
        return self.settings.base_day_width_px * self.zoom_level

    def track_width_px(self) -> float:
        return self.total_days * self.day_width_px()

    def zoom_in(self) -> float:
        return self.set_zoom(self.zoom_level + self.settings.zoom_step)

    def zoom_out(self) -> float:
        return self.set_zoom(self.zoom_level - self.settings.zoom_step)

    def set_zoom(self, level: float) -> float:
        """Set the zoom level, keeping the viewport centre on the same day position."""
        level = max(self.settings.zoom_min, min(level, self.settings.zoom_max))
        if level == self.zoom_level:
            return level

        viewport = self.view.viewport_width()
        centre_t = (self.view.scroll_left() + viewport / 2) / self.day_width_px()

        self.zoom_level = level
        self.view.set_track_width(self.track_width_px())
        self._set_scroll(centre_t * self.day_width_px() - viewport / 2)
        return level

    def wheel(self, delta_x: float, delta_y: float) -> bool:
        """Turn vertical wheel movement into horizontal scrolling.

        Returns:
            True if the event was consumed
        """
        if abs(delta_y) <= abs(delta_x):
            return False
        self._set_scroll(self.view.scroll_left() + delta_y)
        return True

    def _set_scroll(self, px: float) -> None:
        max_scroll = max(0.0, self.track_width_px() - self.view.viewport_width())
        self.view.set_scroll_left(max(0.0, min(px, max_scroll)))

    # Pointer input

    def pointer_down(self, key: str, event: PointerEvent) -> GestureMode:
        if self._controller is None:
            return GestureMode.IDLE
        return self._controller.pointer_down(key, event)

    def pointer_move(self, key: str, event: PointerEvent) -> None:
        if self._controller is not None:
            self._controller.pointer_move(key, event)

    async def pointer_up(self, key: str, event: PointerEvent) -> GestureResult | None:
        if self._controller is None:
            return None
        return await self._controller.pointer_up(key, event)

    def pointer_cancel(self, key: str) -> GestureResult | None:
        if self._controller is None:
            return None
        return self._controller.cancel(key)

    # GestureHost

    def set_bar_mode(self, key: str, mode: GestureMode) -> None:
        state: BarState | None = None
        if mode == GestureMode.MOVING:
            state = "moving"
        elif mode in (GestureMode.RESIZING_START, GestureMode.RESIZING_END):
            state = "resizing"
        self.view.set_bar_state(key, state)

    def select(self, key: str) -> None:
        session = self._session
        if session is None:
            return
        record = session.element(key)
        if isinstance(record, Stop) and self.on_stop_selected is not None:
            self.on_stop_selected(session.stop_index(record.route_place_id), record)

    async def commit(self, commit: GestureCommit) -> None:
        """Persist a finished gesture, re-run layout, and react to conflicts."""
        session = self._session
        bridge = self._bridge
        if session is None:
            return
        if bridge is None:
            logger.info("No route to persist %s to; keeping local edit", commit.key)
            self.relayout()
            return

        outcome = await bridge.commit(commit)

        if session is not self._session:
            logger.info("Ignoring save response for stale route %s", session.route_id)
            return

        if not outcome.ok:
            assert outcome.error is not None
            self._handle_failed_save(session, commit, outcome.failed_key or commit.key, outcome.error)
            self.relayout()
            return

        self.relayout()

        saved_stops = [r for k in outcome.saved if isinstance(r := session.element(k), Stop)]
        if self.on_stop_schedule_changed is not None:
            for stop in saved_stops:
                self.on_stop_schedule_changed(stop)

        try:
            await self.conflicts.handle_save_response(
                outcome.conflict, [s.route_place_id for s in saved_stops]
            )
        except RouteApiError:
            # Already surfaced by the conflict manager; the conflict stays flagged
            logger.warning("Reorder after save failed for route %s", session.route_id)

    def _handle_failed_save(
        self, session: TimelineSession, commit: GestureCommit, failed_key: str, error: RouteApiError
    ) -> None:
        if self.settings.rollback_on_failed_save:
            for key in session.rollback(commit.snapshot, commit.written):
                self.refresh_bar(key)
            logger.warning("Rolled back %s after failed save of %s", commit.key, failed_key)

        self.view.show_toast(f"Failed to save schedule: {error}", "error")
        if self.on_save_failed is not None:
            self.on_save_failed(failed_key, error)

    # Conflicts

    async def resolve_conflicts(self) -> None:
        await self.conflicts.resolve()

    def dismiss_conflicts(self) -> None:
        self.conflicts.dismiss()

    async def _reorder(self) -> None:
        if self.api is None or self.route_id is None:
            raise RuntimeError("No route to reorder")
        await self.api.resolve_conflict_by_reorder(self.route_id)

    async def _after_reorder(self) -> None:
        if self._session is not None:
            self._session.apply_time_order()
        if self.on_route_reordered is not None:
            await self.on_route_reordered()

    def _has_bar(self, key: str) -> bool:
        return self._session is not None and self._session.element(key) is not None

