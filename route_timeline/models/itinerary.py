"""Itinerary models - schedule data exchanged with the route planner API."""

from datetime import datetime

from pydantic import Field

from route_timeline.models.common import ApiModel, Geo, StopType
from route_timeline.models.conflicts import ConflictInfo


class ScheduleSettings(ApiModel):
    """Route-level schedule settings."""

    time_zone_id: str | None = None
    start_date_time: datetime | None = None
    end_date_time: datetime | None = None
    default_arrival_time: str | None = None
    default_departure_time: str | None = None


class PlaceSchedule(ApiModel):
    """A stop in a route with its schedule."""

    id: int
    place_id: int | None = None
    place_name: str = ""
    latitude: float | None = None
    longitude: float | None = None
    order_index: int
    stop_type: StopType = StopType.overnight
    planned_start: datetime | None = None
    planned_end: datetime | None = None
    stay_nights: int | None = None
    stay_duration_minutes: int | None = None
    is_start_locked: bool = False
    is_end_locked: bool = False

    @property
    def geo(self) -> Geo | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Geo(lat=self.latitude, lon=self.longitude)


class LegSchedule(ApiModel):
    """Travel segment between two consecutive stops."""

    id: int
    from_route_place_id: int
    to_route_place_id: int
    order_index: int
    distance_meters: int = 0
    duration_seconds: int = 0
    planned_start: datetime | None = None
    planned_end: datetime | None = None


class Itinerary(ApiModel):
    """Complete route itinerary: settings, stops and legs."""

    id: int
    name: str = ""
    description: str | None = None
    schedule_settings: ScheduleSettings | None = None
    places: list[PlaceSchedule] = Field(default_factory=list)
    legs: list[LegSchedule] = Field(default_factory=list)


class ItineraryWithConflicts(Itinerary):
    """Itinerary augmented with route-order conflict information."""

    conflict_info: ConflictInfo | None = None


class StopScheduleUpdate(ApiModel):
    """Request body for updating a stop's schedule."""

    stop_type: StopType
    time_zone_id: str | None = None
    planned_start: datetime
    planned_end: datetime
    stay_nights: int | None = None
    stay_duration_minutes: int | None = None
    is_start_locked: bool = False
    is_end_locked: bool = False


class LegScheduleUpdate(ApiModel):
    """Request body for updating a leg's time bounds."""

    planned_start: datetime
    planned_end: datetime


class LegMetricsUpdate(ApiModel):
    """Request body for updating a leg's routing metrics."""

    distance_meters: int = Field(..., ge=0)
    duration_seconds: int = Field(..., ge=0)


class ScheduleSettingsUpdate(ApiModel):
    """Request body for updating route-level schedule settings."""

    time_zone_id: str | None = None
    start_date_time: datetime
    end_date_time: datetime | None = None
    default_arrival_time: str | None = None
    default_departure_time: str | None = None
