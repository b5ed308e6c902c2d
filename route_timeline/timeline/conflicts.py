"""Conflict manager - markers, banner and prompts for route-order conflicts.

States: clear -> flagged -> {resolved | dismissed} -> clear.

Dismissing only hides the banner; markers stay until the next successful edit
or reorder. Declining the single-stop prompt keeps the new time and leaves
the route order as-is.
"""

import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from route_timeline.models.conflicts import ConflictInfo, ConflictingStop
from route_timeline.models.schedule import stop_key
from route_timeline.timeline.view import TimelineView
from route_timeline.utils.metrics import PrometheusTimelineMetrics

logger = logging.getLogger(__name__)

RESOLVE_TEXT = "Reorder Route"
KEEP_TIME_TEXT = "Keep Time Only"
PROMPT_TITLE = "Timeline Order Conflict"
RESOLVED_MESSAGE = "Route order updated to match timeline"


class ConflictState(str, Enum):
    """Conflict manager state."""

    CLEAR = "clear"
    FLAGGED = "flagged"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


def banner_message(count: int) -> str:
    """Banner text for a number of conflicting stops."""
    if count == 1:
        return "1 stop has timeline times that don't match the route order"
    return f"{count} stops have timeline times that don't match the route order"


def tooltip_text(stop: ConflictingStop) -> str:
    """Marker tooltip for one conflicting stop."""
    return (
        "Time order conflicts with route position "
        f"(route #{stop.current_order_index + 1}, timeline #{stop.new_time_position + 1})"
    )


def prompt_message(stop: ConflictingStop) -> str:
    """Question asked after a single-stop save creates a conflict."""
    name = stop.place_name or f"Stop {stop.route_place_id}"
    return (
        f'Changing this time would move "{name}" from position '
        f"{stop.current_order_index + 1} to position {stop.new_time_position + 1} "
        "in the route order.\n\n"
        "Would you like to reorder the route to match the new timeline?"
    )


class ConflictManager:
    """Drives conflict markers, the banner, and the reorder prompt."""

    def __init__(
        self,
        view: TimelineView,
        reorder: Callable[[], Awaitable[None]],
        *,
        on_resolved: Callable[[], Awaitable[None]] | None = None,
        has_bar: Callable[[str], bool] | None = None,
        metrics: PrometheusTimelineMetrics | None = None,
    ) -> None:
        self.view = view
        self.reorder = reorder
        self.on_resolved = on_resolved
        self.has_bar = has_bar or (lambda key: True)
        self.metrics = metrics or PrometheusTimelineMetrics()
        self.state = ConflictState.CLEAR
        self.conflict_info: ConflictInfo | None = None
        self._marked: set[str] = set()

    @property
    def marked_keys(self) -> set[str]:
        return set(self._marked)

    def flag(self, info: ConflictInfo | None, source: str = "render") -> None:
        """Show markers and banner for a conflict, or clear when there is none."""
        if info is None or not info.has_conflict:
            self.clear()
            return

        self._mark(info)
        self.view.show_banner(
            banner_message(len(info.conflicting_stops)), self.resolve, self.dismiss
        )
        self.state = ConflictState.FLAGGED
        self.metrics.inc_conflict(source)
        logger.info("Flagged %d conflicting stops (%s)", len(info.conflicting_stops), source)

    def clear(self) -> None:
        """Remove markers and banner."""
        for key in self._marked:
            self.view.clear_conflict(key)
        self._marked.clear()
        self.view.hide_banner()
        self.conflict_info = None
        self.state = ConflictState.CLEAR

    def dismiss(self) -> None:
        """Hide the banner; markers and the disagreement itself remain."""
        if self.state != ConflictState.FLAGGED:
            return
        self.view.hide_banner()
        self.state = ConflictState.DISMISSED

    async def resolve(self) -> None:
        """Reorder the route to match the timeline.

        Raises:
            Exception: Whatever the reorder operation raised; the conflict stays flagged
        """
        if self.state == ConflictState.CLEAR:
            return
        try:
            await self.reorder()
        except Exception as e:
            logger.error("Failed to resolve conflict by reorder: %s", e)
            self.view.show_toast(f"Failed to reorder route: {e}", "error")
            raise

        self.state = ConflictState.RESOLVED
        self.view.show_toast(RESOLVED_MESSAGE, "success")
        self.clear()
        if self.on_resolved is not None:
            await self.on_resolved()

    async def handle_save_response(
        self, info: ConflictInfo | None, route_place_ids: list[int]
    ) -> bool:
        """React to a schedule save response.

        A clean response clears earlier markers. A conflict marks the bars and
        asks whether to reorder now.

        Args:
            info: Conflict info returned by the save, if any
            route_place_ids: Stops the save touched (used to pick the prompt subject)

        Returns:
            True if the route was reordered
        """
        if info is None or not info.has_conflict:
            if self.state != ConflictState.CLEAR:
                self.clear()
            return False

        subject = next(
            (s for rp_id in route_place_ids if (s := info.stop_for(rp_id)) is not None),
            info.conflicting_stops[0] if info.conflicting_stops else None,
        )

        self.view.hide_banner()
        self._mark(info)
        self.metrics.inc_conflict("save")

        if subject is None:
            self.state = ConflictState.DISMISSED
            return False

        wants_reorder = await self.view.confirm(
            PROMPT_TITLE,
            prompt_message(subject),
            confirm_text=RESOLVE_TEXT,
            cancel_text=KEEP_TIME_TEXT,
        )
        if not wants_reorder:
            # Time and order may diverge until explicitly reconciled
            self.state = ConflictState.DISMISSED
            return False

        self.state = ConflictState.FLAGGED
        try:
            await self.resolve()
        except Exception:
            # Still flagged; give the user the banner actions back
            self.view.show_banner(
                banner_message(len(info.conflicting_stops)), self.resolve, self.dismiss
            )
            raise
        return True

    def _mark(self, info: ConflictInfo) -> None:
        for key in self._marked:
            self.view.clear_conflict(key)
        self._marked.clear()

        for stop in info.conflicting_stops:
            key = stop_key(stop.route_place_id)
            if not self.has_bar(key):
                logger.warning("Conflicting stop %s is not on the timeline", stop.route_place_id)
                continue
            self.view.mark_conflict(key, tooltip_text(stop))
            self._marked.add(key)
        self.conflict_info = info
