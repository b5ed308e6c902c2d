"""Visual capability interface for the timeline.

Any UI toolkit can drive the engine by implementing TimelineView and feeding
pointer events to the orchestrator. RecordingTimelineView is a headless
implementation that keeps every visual effect in plain attributes.
"""

from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal, Protocol

from route_timeline.models.common import ElementKind

BarState = Literal["moving", "resizing"]
ToastLevel = Literal["success", "error", "info"]
BannerAction = Callable[[], Awaitable[None] | None]


class TimelineView(Protocol):
    """Protocol for timeline view implementations."""

    def reset(self) -> None:
        """Remove all bars, labels and overlays."""
        ...

    def render_day_labels(self, labels: list[str]) -> None: ...

    def render_day_grid(self, days: int) -> None: ...

    def set_track_width(self, width_px: float) -> None: ...

    def viewport_width(self) -> float: ...

    def create_bar(
        self, key: str, *, label: str, kind: ElementKind, color: str, resizable: bool
    ) -> None: ...

    def position_bar(self, key: str, left_pct: float, width_pct: float) -> None: ...

    def set_bar_top(self, key: str, top_px: int) -> None: ...

    def set_container_height(self, height_px: int) -> None: ...

    def set_bar_state(self, key: str, state: BarState | None) -> None: ...

    def set_bar_active(self, key: str, active: bool) -> None: ...

    def mark_conflict(self, key: str, tooltip: str) -> None: ...

    def clear_conflict(self, key: str) -> None: ...

    def show_banner(self, message: str, on_resolve: BannerAction, on_dismiss: BannerAction) -> None:
        """Show the conflict banner with "Reorder Route" / "Ignore" actions."""
        ...

    def hide_banner(self) -> None: ...

    def show_toast(self, message: str, level: ToastLevel = "info") -> None: ...

    async def confirm(
        self, title: str, message: str, *, confirm_text: str, cancel_text: str
    ) -> bool:
        """Ask the user a yes/no question."""
        ...

    def set_cursor(self, left_pct: float, label: str) -> None: ...

    def set_current_places(self, names: list[str]) -> None: ...

    def scroll_left(self) -> float: ...

    def set_scroll_left(self, px: float) -> None: ...


@dataclass
class BarView:
    """Recorded visual state of one bar."""

    label: str
    kind: ElementKind
    color: str
    resizable: bool
    left_pct: float = 0.0
    width_pct: float = 0.0
    top_px: int = 0
    state: BarState | None = None
    active: bool = False
    conflict_tooltip: str | None = None


@dataclass
class Banner:
    """Recorded conflict banner."""

    message: str
    on_resolve: BannerAction
    on_dismiss: BannerAction


@dataclass
class RecordingTimelineView:
    """Headless TimelineView that records what would be drawn."""

    viewport_px: float = 800.0
    bars: dict[str, BarView] = field(default_factory=dict)
    day_labels: list[str] = field(default_factory=list)
    grid_days: int = 0
    track_width_px: float = 0.0
    container_height_px: int = 0
    banner: Banner | None = None
    toasts: list[tuple[str, ToastLevel]] = field(default_factory=list)
    prompts: list[tuple[str, str]] = field(default_factory=list)
    confirm_answers: deque[bool] = field(default_factory=deque)
    cursor_pct: float = 0.0
    cursor_label: str = ""
    current_places: list[str] = field(default_factory=list)
    scroll_px: float = 0.0

    def reset(self) -> None:
        self.bars.clear()
        self.day_labels = []
        self.grid_days = 0
        self.banner = None

    def render_day_labels(self, labels: list[str]) -> None:
        self.day_labels = list(labels)

    def render_day_grid(self, days: int) -> None:
        self.grid_days = days

    def set_track_width(self, width_px: float) -> None:
        self.track_width_px = width_px

    def viewport_width(self) -> float:
        return self.viewport_px

    def create_bar(
        self, key: str, *, label: str, kind: ElementKind, color: str, resizable: bool
    ) -> None:
        self.bars[key] = BarView(label=label, kind=kind, color=color, resizable=resizable)

    def position_bar(self, key: str, left_pct: float, width_pct: float) -> None:
        bar = self.bars[key]
        bar.left_pct = left_pct
        bar.width_pct = width_pct

    def set_bar_top(self, key: str, top_px: int) -> None:
        self.bars[key].top_px = top_px

    def set_container_height(self, height_px: int) -> None:
        self.container_height_px = height_px

    def set_bar_state(self, key: str, state: BarState | None) -> None:
        self.bars[key].state = state

    def set_bar_active(self, key: str, active: bool) -> None:
        self.bars[key].active = active

    def mark_conflict(self, key: str, tooltip: str) -> None:
        self.bars[key].conflict_tooltip = tooltip

    def clear_conflict(self, key: str) -> None:
        if key in self.bars:
            self.bars[key].conflict_tooltip = None

    def show_banner(self, message: str, on_resolve: BannerAction, on_dismiss: BannerAction) -> None:
        self.banner = Banner(message=message, on_resolve=on_resolve, on_dismiss=on_dismiss)

    def hide_banner(self) -> None:
        self.banner = None

    def show_toast(self, message: str, level: ToastLevel = "info") -> None:
        self.toasts.append((message, level))

    async def confirm(
        self, title: str, message: str, *, confirm_text: str, cancel_text: str
    ) -> bool:
        self.prompts.append((title, message))
        # Unscripted prompts are declined
        return self.confirm_answers.popleft() if self.confirm_answers else False

    def set_cursor(self, left_pct: float, label: str) -> None:
        self.cursor_pct = left_pct
        self.cursor_label = label

    def set_current_places(self, names: list[str]) -> None:
        self.current_places = list(names)

    def scroll_left(self) -> float:
        return self.scroll_px

    def set_scroll_left(self, px: float) -> None:
        self.scroll_px = px

    @property
    def conflict_keys(self) -> set[str]:
        """Keys of bars currently carrying a conflict marker."""
        return {k for k, b in self.bars.items() if b.conflict_tooltip is not None}
