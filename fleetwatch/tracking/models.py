"""
FleetWatch Data Models
Canonical state records, flight patches and fetch results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .constants import TAKEOFF_ALTITUDE_M, TAKEOFF_SPEED_MS, LANDING_SPEED_MS
from .errors import FetchError
from .utils import normalize_icao24


class FlightEvent(Enum):
    """Flight state transitions detected by the tracker."""

    TAKEOFF = "takeoff"
    LANDING = "landing"
    AIRBORNE_FIRST_SEEN = "airborne_first_seen"


@dataclass(frozen=True)
class Thresholds:
    """
    Takeoff/landing thresholds.

    The takeoff values double as the ground heuristic used by the source
    adapters, so both sides always agree on what "on the ground" means.
    """

    takeoff_altitude_m: float = TAKEOFF_ALTITUDE_M
    takeoff_speed_ms: float = TAKEOFF_SPEED_MS
    landing_speed_ms: float = LANDING_SPEED_MS

    def clears_takeoff(self, altitude: Optional[float], velocity: Optional[float]) -> bool:
        """True if both values are known and above the takeoff thresholds."""
        if altitude is None or velocity is None:
            return False
        return altitude > self.takeoff_altitude_m and velocity > self.takeoff_speed_ms

    def looks_on_ground(self, altitude: Optional[float], velocity: Optional[float]) -> bool:
        """True if both values are known and below the ground heuristic."""
        if altitude is None or velocity is None:
            return False
        return altitude < self.takeoff_altitude_m and velocity < self.takeoff_speed_ms


@dataclass
class StateRecord:
    """
    One normalized telemetry observation for one aircraft.

    Altitudes are meters, speeds m/s, headings degrees. ``on_ground`` is
    ``None`` when the source gave no usable ground signal.
    """

    icao24: str
    timestamp: int
    callsign: Optional[str] = None
    origin_country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    on_ground: Optional[bool] = None
    velocity: Optional[float] = None
    heading: Optional[float] = None
    vertical_rate: Optional[float] = None
    geo_altitude: Optional[float] = None
    squawk: Optional[str] = None
    category: Optional[Any] = None
    source: Optional[str] = None

    def __post_init__(self):
        self.icao24 = normalize_icao24(self.icao24)

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class FlightPatch:
    """Partial update of a flight row. ``None`` leaves a column unchanged."""

    landing_time: Optional[int] = None
    landing_latitude: Optional[float] = None
    landing_longitude: Optional[float] = None
    max_altitude: Optional[float] = None
    distance_km: Optional[float] = None
    duration_seconds: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in self.as_dict().values())

    def as_dict(self) -> Dict[str, Any]:
        return {
            "landing_time": self.landing_time,
            "landing_latitude": self.landing_latitude,
            "landing_longitude": self.landing_longitude,
            "max_altitude": self.max_altitude,
            "distance_km": self.distance_km,
            "duration_seconds": self.duration_seconds,
        }


@dataclass
class FetchResult:
    """Result of one API call: state vectors (or another decoded body) or an error."""

    states: List[Any] = field(default_factory=list)
    time: Optional[int] = None
    error: Optional[FetchError] = None
    payload: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SourceResult:
    """Normalized records from one source, plus the error if it failed."""

    records: List[StateRecord] = field(default_factory=list)
    error: Optional[FetchError] = None


@dataclass
class FleetSnapshot:
    """
    Merged snapshot over all sources.

    Attributes:
        records: One record per resolved aircraft, highest priority source wins
        source_counts: Resolved aircraft per source (0 for skipped sources)
        error: Error of the fallback (last) source, if it failed
        source_errors: Errors of every source that failed
    """

    records: List[StateRecord] = field(default_factory=list)
    source_counts: Dict[str, int] = field(default_factory=dict)
    error: Optional[FetchError] = None
    source_errors: Dict[str, FetchError] = field(default_factory=dict)

    def get(self, icao24: str) -> Optional[StateRecord]:
        icao24 = normalize_icao24(icao24)
        for record in self.records:
            if record.icao24 == icao24:
                return record
        return None

    @property
    def icao24s(self) -> List[str]:
        return [record.icao24 for record in self.records]
