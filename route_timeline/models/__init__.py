"""Models package - re-exports for convenience."""

from route_timeline.models.common import ApiModel, ElementKind, Geo, StopType
from route_timeline.models.conflicts import (
    ConflictInfo,
    ConflictingStop,
    ScheduleChangeConflict,
)
from route_timeline.models.itinerary import (
    Itinerary,
    ItineraryWithConflicts,
    LegMetricsUpdate,
    LegSchedule,
    LegScheduleUpdate,
    PlaceSchedule,
    ScheduleSettings,
    ScheduleSettingsUpdate,
    StopScheduleUpdate,
)
from route_timeline.models.schedule import Leg, Stop, TimelineSession, leg_key, stop_key

__all__ = [
    # Common
    "ApiModel",
    "ElementKind",
    "Geo",
    "StopType",
    # Conflicts
    "ConflictInfo",
    "ConflictingStop",
    "ScheduleChangeConflict",
    # Itinerary
    "Itinerary",
    "ItineraryWithConflicts",
    "PlaceSchedule",
    "LegSchedule",
    "ScheduleSettings",
    "ScheduleSettingsUpdate",
    "StopScheduleUpdate",
    "LegScheduleUpdate",
    "LegMetricsUpdate",
    # Timeline records
    "Stop",
    "Leg",
    "TimelineSession",
    "stop_key",
    "leg_key",
]
