"""Timeline records - stops and legs in float-day coordinate space.

The session is an arena addressed by stable identity (route_place_id / leg_id).
Gestures mutate individual records in place; only the orchestrator builds or
replaces a session.
"""

from dataclasses import dataclass, field
from datetime import datetime

from route_timeline.models.common import ElementKind, StopType

# Pre-gesture interval of each touched record, keyed by element key
IntervalSnapshot = dict[str, tuple[float, float]]


def stop_key(route_place_id: int) -> str:
    """Element key of a stop bar."""
    return f"{ElementKind.stop.value}:{route_place_id}"


def leg_key(leg_id: int) -> str:
    """Element key of a leg bar."""
    return f"{ElementKind.leg.value}:{leg_id}"


@dataclass
class Stop:
    """A scheduled stay at a place."""

    route_place_id: int
    name: str
    order_index: int
    start_t: float
    end_t: float
    place_id: int | None = None
    latitude: float | None = None
    longitude: float | None = None
    stop_type: StopType = StopType.overnight
    color: str = "color-1"
    is_start_locked: bool = False
    is_end_locked: bool = False
    # Absolute times as last loaded or saved
    original_start: datetime | None = None
    original_end: datetime | None = None

    @property
    def key(self) -> str:
        return stop_key(self.route_place_id)

    @property
    def duration(self) -> float:
        return self.end_t - self.start_t


@dataclass
class Leg:
    """Travel segment between two consecutive stops."""

    leg_id: int
    from_route_place_id: int
    to_route_place_id: int
    start_t: float
    end_t: float
    order_index: int = 0
    # Owned by the routing collaborator; never re-derived here
    distance_meters: int = 0
    duration_seconds: int = 0
    original_start: datetime | None = None
    original_end: datetime | None = None

    @property
    def key(self) -> str:
        return leg_key(self.leg_id)

    @property
    def duration(self) -> float:
        return self.end_t - self.start_t


@dataclass
class TimelineSession:
    """In-memory stops and legs of the route currently open."""

    route_id: int | None
    route_start_utc: datetime | None
    stops: list[Stop]
    legs: list[Leg] = field(default_factory=list)
    total_days: int = 1
    generation: int = 0
    _stops_by_id: dict[int, Stop] = field(default_factory=dict, init=False, repr=False)
    _legs_by_id: dict[int, Leg] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self._stops_by_id = {s.route_place_id: s for s in self.stops}
        self._legs_by_id = {leg.leg_id: leg for leg in self.legs}

    def stop(self, route_place_id: int) -> Stop | None:
        return self._stops_by_id.get(route_place_id)

    def leg(self, leg_id: int) -> Leg | None:
        return self._legs_by_id.get(leg_id)

    def stop_index(self, route_place_id: int) -> int:
        """Position of a stop in render order, -1 if unknown."""
        for i, stop in enumerate(self.stops):
            if stop.route_place_id == route_place_id:
                return i
        return -1

    def element(self, key: str) -> Stop | Leg | None:
        """Look up a record by element key ("stop:12", "leg:3")."""
        kind, _, raw_id = key.partition(":")
        try:
            ident = int(raw_id)
        except ValueError:
            return None
        if kind == ElementKind.stop.value:
            return self.stop(ident)
        if kind == ElementKind.leg.value:
            return self.leg(ident)
        return None

    def neighbours(self, leg: Leg) -> tuple[Stop | None, Stop | None]:
        """The stops a leg connects (from, to)."""
        return self.stop(leg.from_route_place_id), self.stop(leg.to_route_place_id)

    def legs_touching(self, route_place_id: int) -> tuple[Leg | None, Leg | None]:
        """Legs arriving at and departing from a stop (incoming, outgoing)."""
        incoming = None
        outgoing = None
        for leg in self.legs:
            if leg.to_route_place_id == route_place_id:
                incoming = leg
            if leg.from_route_place_id == route_place_id:
                outgoing = leg
        return incoming, outgoing

    def snapshot(self, keys: list[str]) -> IntervalSnapshot:
        """Capture current intervals of the given records."""
        snap: IntervalSnapshot = {}
        for key in keys:
            record = self.element(key)
            if record is not None:
                snap[key] = (record.start_t, record.end_t)
        return snap

    def restore(self, snapshot: IntervalSnapshot) -> None:
        """Write captured intervals back into the records."""
        for key, (start_t, end_t) in snapshot.items():
            record = self.element(key)
            if record is not None:
                record.start_t = start_t
                record.end_t = end_t

    def rollback(self, snapshot: IntervalSnapshot, written: IntervalSnapshot) -> list[str]:
        """Undo a gesture's writes, keeping bounds edited since by other gestures.

        A bound is restored only while it still holds the value the gesture
        wrote. Legs attached to any rolled-back stop are then re-glued to
        their neighbours.

        Returns:
            Keys of every record whose interval may have changed
        """
        touched: list[str] = []
        for key, (new_start, new_end) in written.items():
            record = self.element(key)
            if record is None or key not in snapshot:
                continue
            old_start, old_end = snapshot[key]
            if record.start_t == new_start:
                record.start_t = old_start
            if record.end_t == new_end:
                record.end_t = old_end
            touched.append(key)

        stop_ids = {r.route_place_id for k in touched if isinstance(r := self.element(k), Stop)}
        for leg in self.legs:
            if leg.from_route_place_id not in stop_ids and leg.to_route_place_id not in stop_ids:
                continue
            from_stop, to_stop = self.neighbours(leg)
            if from_stop is not None:
                leg.start_t = from_stop.end_t
            if to_stop is not None:
                leg.end_t = to_stop.start_t
            if leg.key not in touched:
                touched.append(leg.key)
        return touched

    def apply_time_order(self) -> None:
        """Renumber order_index by start time, mirroring a server-side reorder."""
        for i, stop in enumerate(sorted(self.stops, key=lambda s: s.start_t)):
            stop.order_index = i
