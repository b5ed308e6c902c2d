"""Conflict models - disagreement between timeline order and route order."""

from datetime import datetime

from pydantic import Field

from route_timeline.models.common import ApiModel


class ConflictingStop(ApiModel):
    """A stop whose time position differs from its route position."""

    route_place_id: int
    place_name: str = ""
    current_order_index: int  # Position in route order (0-based)
    new_time_position: int  # Position in time order (0-based)
    planned_start: datetime | None = None


class ConflictInfo(ApiModel):
    """Conflict status for a route.

    Produced whenever the time-sorted order of stops disagrees with their
    orderIndex-sorted (route) order.
    """

    has_conflict: bool = False
    conflicting_stops: list[ConflictingStop] = Field(default_factory=list)
    order_index_sequence: list[int] = Field(default_factory=list)
    time_sequence: list[int] = Field(default_factory=list)

    def stop_for(self, route_place_id: int) -> ConflictingStop | None:
        """Get the conflict entry for a stop, if it is listed."""
        for stop in self.conflicting_stops:
            if stop.route_place_id == route_place_id:
                return stop
        return None

    @property
    def conflicting_ids(self) -> set[int]:
        """Route place ids of all conflicting stops."""
        return {s.route_place_id for s in self.conflicting_stops}


class ScheduleChangeConflict(ApiModel):
    """Whether moving one stop to a new start would break route order."""

    would_create_conflict: bool = False
    route_place_id: int
    place_name: str = ""
    current_order_index: int
    new_time_position: int
    affected_stops: list[int] = Field(default_factory=list)
