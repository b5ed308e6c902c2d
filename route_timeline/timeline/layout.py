"""Row layout - assign bars to visual rows so overlapping stops never share one.

Overlap is computed on day buckets (floor(startT)+1 .. ceil(endT)), not on
continuous time. Stops are placed greedily in their given order, which keeps
the assignment stable when an unrelated bar is dragged. Legs always sit in one
dedicated row below every stop row.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from route_timeline.config import get_settings


class Interval(Protocol):
    """Anything with float-day bounds."""

    start_t: float
    end_t: float


@dataclass(frozen=True)
class LayoutResult:
    """Row assignment for one layout pass."""

    stop_rows: list[int]  # Parallel to the stops passed in
    leg_row: int
    height_px: int
    row_height_px: int
    rows_by_key: dict[str, int] = field(default_factory=dict)

    @property
    def max_stop_row(self) -> int:
        return max(self.stop_rows, default=-1)

    def top_px(self, row: int) -> int:
        """Top offset of a row in pixels."""
        return row * self.row_height_px


def day_range(start_t: float, end_t: float) -> range:
    """One-based day buckets an interval occupies."""
    start_day = math.floor(start_t) + 1
    end_day = max(start_day, math.ceil(end_t))
    return range(start_day, end_day + 1)


def assign_rows(intervals: Sequence[Interval]) -> list[int]:
    """Greedy first-fit row assignment on day buckets.

    Not guaranteed minimal, but deterministic for a given input order.
    """
    occupied: dict[int, set[int]] = {}  # day -> rows taken
    rows: list[int] = []

    for interval in intervals:
        days = day_range(interval.start_t, interval.end_t)
        row = 0
        while any(row in occupied.get(d, ()) for d in days):
            row += 1
        for d in days:
            occupied.setdefault(d, set()).add(row)
        rows.append(row)

    return rows


def layout_timeline(
    stops: Sequence[Interval],
    legs: Sequence[Interval] = (),
    *,
    keys: Sequence[str] | None = None,
    leg_keys: Sequence[str] | None = None,
    row_height_px: int | None = None,
    leg_row_height_px: int | None = None,
    padding_px: int | None = None,
) -> LayoutResult:
    """Lay out stops and legs into rows and size the container.

    Height is (maxStopRow + 1) * row height + leg row height. Without legs the
    leg row collapses to the container padding.
    """
    settings = get_settings()
    row_height = row_height_px if row_height_px is not None else settings.row_height_px
    leg_height = leg_row_height_px if leg_row_height_px is not None else settings.leg_row_height_px
    padding = padding_px if padding_px is not None else settings.container_padding_px

    stop_rows = assign_rows(stops)
    leg_row = max(stop_rows, default=-1) + 1

    height = leg_row * row_height + (leg_height if legs else padding)

    rows_by_key: dict[str, int] = {}
    if keys is not None:
        rows_by_key.update(zip(keys, stop_rows))
    if leg_keys is not None:
        rows_by_key.update((k, leg_row) for k in leg_keys)

    return LayoutResult(
        stop_rows=stop_rows,
        leg_row=leg_row,
        height_px=height,
        row_height_px=row_height,
        rows_by_key=rows_by_key,
    )
