"""Common types and enums shared across all models."""

from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for models exchanged with the route planner API (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Geo(BaseModel):
    """Geographic coordinates (WGS84)."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class StopType(IntEnum):
    """Kind of stay at a stop. Integer-valued to match the API."""

    overnight = 0
    day_stop = 1
    waypoint = 2


class ElementKind(str, Enum):
    """Kind of timeline bar."""

    stop = "stop"
    leg = "leg"
