"""Gesture state machine for timeline bars.

Each bar owns one gesture: idle -> {moving | resizing-start | resizing-end} -> idle,
entered on pointer-down and left on pointer-up. Pointer movement is converted
to float days with totalDays / trackWidthPx and applied to the records in
place; clamps are enforced on every frame so no network call ever sees an
invalid interval.

Stops: resizing-start clamps to [lo, endT - MIN], resizing-end to
[startT + MIN, hi], moving keeps the duration inside [lo, hi]. lo/hi are the
timeline bounds [0, totalDays], tightened by adjacent legs so that every leg
keeps at least MIN.

Legs: move only, duration fixed, bounded by [fromStop.startT + MIN,
toStop.endT - MIN]. The neighbours' adjacent bounds follow the leg edge live,
so stop and leg intervals never open a gap.
"""

import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from route_timeline.config import get_settings
from route_timeline.models.common import ElementKind
from route_timeline.models.schedule import IntervalSnapshot, Leg, Stop, TimelineSession

logger = logging.getLogger(__name__)

# Net movement below this (in days) counts as no change
NO_CHANGE_EPSILON = 1e-9


class GestureMode(str, Enum):
    """Gesture state."""

    IDLE = "idle"
    MOVING = "moving"
    RESIZING_START = "resizing-start"
    RESIZING_END = "resizing-end"


class PointerTarget(str, Enum):
    """Part of the bar under the pointer at pointer-down."""

    BODY = "body"
    START_HANDLE = "start-handle"
    END_HANDLE = "end-handle"


class GestureOutcome(str, Enum):
    """How a gesture ended."""

    IGNORED = "ignored"  # Pointer-up without an active gesture
    CLICK = "click"  # Threshold never crossed
    NO_CHANGE = "no_change"  # Dragged, but net movement was zero
    CANCELLED = "cancelled"
    COMMITTED = "committed"


@dataclass(frozen=True)
class PointerEvent:
    """Raw pointer sample supplied by the UI toolkit."""

    x: float
    target: PointerTarget = PointerTarget.BODY
    pointer_id: int = 1
    timestamp: float = 0.0


@dataclass
class GestureCommit:
    """A completed drag ready to be persisted."""

    key: str
    kind: ElementKind
    mode: GestureMode
    snapshot: IntervalSnapshot  # Pre-gesture intervals of every touched record
    changed: list[str] = field(default_factory=list)
    # Intervals the gesture left behind, for changed records only
    written: IntervalSnapshot = field(default_factory=dict)


@dataclass(frozen=True)
class GestureResult:
    """Result of a pointer-up."""

    outcome: GestureOutcome
    key: str
    commit: GestureCommit | None = None


class GestureHost(Protocol):
    """What a gesture needs from its owner."""

    def track_width_px(self) -> float: ...

    def refresh_bar(self, key: str) -> None:
        """Redraw one bar from its record."""
        ...

    def set_bar_mode(self, key: str, mode: GestureMode) -> None: ...

    def select(self, key: str) -> None:
        """Handle a click on a bar."""
        ...

    def commit(self, commit: GestureCommit) -> Awaitable[None]: ...


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(value, hi))


class BarGesture:
    """Per-bar gesture state machine (base for stops and legs)."""

    kind: ElementKind

    def __init__(
        self,
        key: str,
        session: TimelineSession,
        host: GestureHost,
        *,
        min_duration: float,
        threshold_px: float,
    ) -> None:
        self.key = key
        self.session = session
        self.host = host
        self.min_duration = min_duration
        self.threshold_px = threshold_px
        self.mode = GestureMode.IDLE
        self.dragged = False
        self._start_x = 0.0
        self._pointer_id: int | None = None
        self._snapshot: IntervalSnapshot = {}

    @property
    def active(self) -> bool:
        return self.mode != GestureMode.IDLE

    # State machine

    def pointer_down(self, event: PointerEvent) -> GestureMode:
        """Enter a gesture mode from the pointer-down target."""
        if self.active:
            return self.mode

        mode = self._select_mode(event.target)
        if mode == GestureMode.IDLE:
            return mode

        self.mode = mode
        self.dragged = False
        self._start_x = event.x
        self._pointer_id = event.pointer_id
        self._snapshot = self.session.snapshot(self._touched_keys())
        self.host.set_bar_mode(self.key, mode)
        return mode

    def pointer_move(self, event: PointerEvent) -> None:
        """Apply pointer movement to the records while a gesture is active."""
        if not self.active or event.pointer_id != self._pointer_id:
            return

        dx = event.x - self._start_x
        if not self.dragged:
            if abs(dx) < self.threshold_px:
                return
            self.dragged = True

        width = self.host.track_width_px()
        if width <= 0:
            return
        dt = dx * self.session.total_days / width

        self._apply(dt)
        for key in self._touched_keys():
            self.host.refresh_bar(key)

    async def pointer_up(self, event: PointerEvent) -> GestureResult:
        """Finish the gesture: click, no-op, or commit."""
        if not self.active or event.pointer_id != self._pointer_id:
            return GestureResult(GestureOutcome.IGNORED, self.key)

        mode = self.mode
        self._end()

        if not self.dragged:
            self.host.select(self.key)
            return GestureResult(GestureOutcome.CLICK, self.key)

        changed = self._changed_keys()
        if not changed:
            return GestureResult(GestureOutcome.NO_CHANGE, self.key)

        commit = GestureCommit(
            key=self.key,
            kind=self.kind,
            mode=mode,
            snapshot=dict(self._snapshot),
            changed=changed,
            written=self.session.snapshot(changed),
        )
        await self.host.commit(commit)
        return GestureResult(GestureOutcome.COMMITTED, self.key, commit)

    def cancel(self) -> GestureResult:
        """Abort an active gesture and restore the pre-gesture intervals."""
        if not self.active:
            return GestureResult(GestureOutcome.IGNORED, self.key)
        self.session.restore(self._snapshot)
        for key in self._snapshot:
            self.host.refresh_bar(key)
        self._end()
        return GestureResult(GestureOutcome.CANCELLED, self.key)

    # Helpers

    def _end(self) -> None:
        self.mode = GestureMode.IDLE
        self._pointer_id = None
        self.host.set_bar_mode(self.key, GestureMode.IDLE)

    def _changed_keys(self) -> list[str]:
        changed = []
        for key, (start_t, end_t) in self._snapshot.items():
            record = self.session.element(key)
            if record is None:
                continue
            if (
                abs(record.start_t - start_t) > NO_CHANGE_EPSILON
                or abs(record.end_t - end_t) > NO_CHANGE_EPSILON
            ):
                changed.append(key)
        return changed

    def _select_mode(self, target: PointerTarget) -> GestureMode:
        raise NotImplementedError

    def _touched_keys(self) -> list[str]:
        raise NotImplementedError

    def _apply(self, dt: float) -> None:
        raise NotImplementedError


class StopGesture(BarGesture):
    """Move / resize gesture for a stop bar."""

    kind = ElementKind.stop

    def __init__(self, stop: Stop, session: TimelineSession, host: GestureHost, **kwargs: float):
        super().__init__(stop.key, session, host, **kwargs)
        self.stop = stop

    def _select_mode(self, target: PointerTarget) -> GestureMode:
        if target == PointerTarget.START_HANDLE:
            return GestureMode.RESIZING_START
        if target == PointerTarget.END_HANDLE:
            return GestureMode.RESIZING_END
        return GestureMode.MOVING

    def _touched_keys(self) -> list[str]:
        keys = [self.stop.key]
        incoming, outgoing = self.session.legs_touching(self.stop.route_place_id)
        for leg in (incoming, outgoing):
            if leg is not None:
                keys.append(leg.key)
        return keys

    def _bounds(self) -> tuple[float, float]:
        """Allowed [lo, hi] for this stop's interval."""
        orig_start, orig_end = self._snapshot[self.stop.key]
        lo = 0.0
        hi = float(self.session.total_days)

        incoming, outgoing = self.session.legs_touching(self.stop.route_place_id)
        if incoming is not None:
            lo = max(lo, self._snapshot[incoming.key][0] + self.min_duration)
        if outgoing is not None:
            hi = min(hi, self._snapshot[outgoing.key][1] - self.min_duration)

        # Never force a jump when the loaded data already sits outside the bounds
        return min(lo, orig_start), max(hi, orig_end)

    def _apply(self, dt: float) -> None:
        orig_start, orig_end = self._snapshot[self.stop.key]
        lo, hi = self._bounds()
        stop = self.stop

        if self.mode == GestureMode.RESIZING_START:
            stop.start_t = _clamp(orig_start + dt, lo, stop.end_t - self.min_duration)
        elif self.mode == GestureMode.RESIZING_END:
            stop.end_t = _clamp(orig_end + dt, stop.start_t + self.min_duration, hi)
        elif self.mode == GestureMode.MOVING:
            duration = orig_end - orig_start
            start = _clamp(orig_start + dt, lo, max(lo, hi - duration))
            stop.start_t = start
            stop.end_t = start + duration

        # Keep adjacent legs glued to the stop
        incoming, outgoing = self.session.legs_touching(stop.route_place_id)
        if incoming is not None:
            incoming.end_t = stop.start_t
        if outgoing is not None:
            outgoing.start_t = stop.end_t


class LegGesture(BarGesture):
    """Move-only gesture for a leg bar; drags its neighbours' adjacent bounds."""

    kind = ElementKind.leg

    def __init__(self, leg: Leg, session: TimelineSession, host: GestureHost, **kwargs: float):
        super().__init__(leg.key, session, host, **kwargs)
        self.leg = leg

    def _select_mode(self, target: PointerTarget) -> GestureMode:
        from_stop, to_stop = self.session.neighbours(self.leg)
        if from_stop is None or to_stop is None:
            logger.warning("Leg %s is missing a neighbour; not draggable", self.leg.leg_id)
            return GestureMode.IDLE
        if self.leg.duration < self.min_duration:
            logger.info(
                "Leg %s is degenerate (%.3f days); not draggable",
                self.leg.leg_id,
                self.leg.duration,
            )
            return GestureMode.IDLE
        return GestureMode.MOVING

    def _touched_keys(self) -> list[str]:
        from_stop, to_stop = self.session.neighbours(self.leg)
        keys = []
        if from_stop is not None:
            keys.append(from_stop.key)
        keys.append(self.leg.key)
        if to_stop is not None:
            keys.append(to_stop.key)
        return keys

    def _apply(self, dt: float) -> None:
        from_stop, to_stop = self.session.neighbours(self.leg)
        if from_stop is None or to_stop is None:
            return

        orig_start, orig_end = self._snapshot[self.leg.key]
        duration = orig_end - orig_start
        lo = self._snapshot[from_stop.key][0] + self.min_duration
        hi = self._snapshot[to_stop.key][1] - self.min_duration

        start = _clamp(orig_start + dt, min(lo, orig_start), max(hi - duration, orig_start))
        self.leg.start_t = start
        self.leg.end_t = start + duration

        from_stop.end_t = self.leg.start_t
        to_stop.start_t = self.leg.end_t


class InteractionController:
    """Creates and dispatches to the per-bar gestures of one session."""

    def __init__(
        self,
        session: TimelineSession,
        host: GestureHost,
        *,
        min_duration: float | None = None,
        threshold_px: float | None = None,
    ) -> None:
        settings = get_settings()
        self.session = session
        self.host = host
        self.min_duration = (
            min_duration if min_duration is not None else settings.min_stop_duration_days
        )
        self.threshold_px = threshold_px if threshold_px is not None else settings.drag_threshold_px
        self._gestures: dict[str, BarGesture] = {}

    def gesture(self, key: str) -> BarGesture | None:
        """Gesture for a bar, created on first use."""
        if key in self._gestures:
            return self._gestures[key]

        record = self.session.element(key)
        if record is None:
            return None

        options = {"min_duration": self.min_duration, "threshold_px": self.threshold_px}
        gesture: BarGesture
        if isinstance(record, Stop):
            gesture = StopGesture(record, self.session, self.host, **options)
        else:
            gesture = LegGesture(record, self.session, self.host, **options)
        self._gestures[key] = gesture
        return gesture

    def pointer_down(self, key: str, event: PointerEvent) -> GestureMode:
        gesture = self.gesture(key)
        if gesture is None:
            return GestureMode.IDLE
        return gesture.pointer_down(event)

    def pointer_move(self, key: str, event: PointerEvent) -> None:
        gesture = self._gestures.get(key)
        if gesture is not None:
            gesture.pointer_move(event)

    async def pointer_up(self, key: str, event: PointerEvent) -> GestureResult:
        gesture = self._gestures.get(key)
        if gesture is None:
            return GestureResult(GestureOutcome.IGNORED, key)
        return await gesture.pointer_up(event)

    def cancel(self, key: str) -> GestureResult:
        gesture = self._gestures.get(key)
        if gesture is None:
            return GestureResult(GestureOutcome.IGNORED, key)
        return gesture.cancel()

    def active_keys(self) -> list[str]:
        return [k for k, g in self._gestures.items() if g.active]


