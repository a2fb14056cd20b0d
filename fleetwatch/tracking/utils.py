"""
FleetWatch Utility Functions
Distance calculations, unit conversions and raw data parsing.
"""

import re
from math import radians, sin, cos, sqrt, atan2
from typing import Any, Optional
from .constants import (
    EARTH_RADIUS_KM,
    FEET_TO_METERS,
    KNOTS_TO_MS,
    FPM_TO_MS,
    METERS_TO_FEET,
    MS_TO_KMH,
)

ICAO24_PATTERN = re.compile(r"^[0-9a-f]{6}$")


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great circle distance between two points on Earth.

    Uses a spherical Earth (mean radius 6371 km), which is good enough
    for flight statistics.

    Args:
        lat1: Latitude of first point in degrees
        lon1: Longitude of first point in degrees
        lat2: Latitude of second point in degrees
        lon2: Longitude of second point in degrees

    Returns:
        Distance in kilometers

    Example:
        >>> haversine_distance(49.3508, 8.1364, 49.4, 8.2)
        7.23
    """
    # Convert to radians
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    # Haversine formula
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def normalize_icao24(icao24: str) -> str:
    """
    Canonicalize an ICAO24 address (strip whitespace, lowercase).

    Example:
        >>> normalize_icao24(' A93270 ')
        'a93270'
    """
    return str(icao24).strip().lower()


def is_valid_icao24(icao24: Any) -> bool:
    """Check that a value is a 6-digit hexadecimal ICAO24 address."""
    if not isinstance(icao24, str):
        return False
    return bool(ICAO24_PATTERN.match(normalize_icao24(icao24)))


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def feet_to_meters(value: Any) -> Optional[float]:
    """Convert feet to meters. Non-numeric input (e.g. 'ground') gives None."""
    feet = _to_float(value)
    return feet * FEET_TO_METERS if feet is not None else None


def knots_to_ms(value: Any) -> Optional[float]:
    """Convert knots to meters per second."""
    knots = _to_float(value)
    return knots * KNOTS_TO_MS if knots is not None else None


def fpm_to_ms(value: Any) -> Optional[float]:
    """Convert feet per minute to meters per second."""
    fpm = _to_float(value)
    return fpm * FPM_TO_MS if fpm is not None else None


def format_altitude(altitude_m: float, include_feet: bool = True) -> str:
    """
    Format altitude with optional feet conversion.

    Args:
        altitude_m: Altitude in meters
        include_feet: Whether to include feet conversion

    Returns:
        Formatted altitude string

    Example:
        >>> format_altitude(10000)
        '10000 m (32808 ft)'
    """
    if altitude_m is None:
        return "N/A"

    if include_feet:
        feet = altitude_m * METERS_TO_FEET
        return f"{altitude_m:.0f} m ({feet:.0f} ft)"

    return f"{altitude_m:.0f} m"


def format_speed(velocity_ms: float, unit: str = "kmh") -> str:
    """
    Format speed in various units.

    Args:
        velocity_ms: Velocity in meters per second
        unit: Output unit ('kmh', 'ms', 'knots')

    Returns:
        Formatted speed string
    """
    if velocity_ms is None:
        return "N/A"

    if unit == "kmh":
        return f"{velocity_ms * MS_TO_KMH:.1f} km/h"
    elif unit == "knots":
        return f"{velocity_ms / KNOTS_TO_MS:.1f} knots"
    else:  # ms
        return f"{velocity_ms:.1f} m/s"


def format_duration(seconds: int) -> str:
    """
    Format duration in human-readable format.

    Example:
        >>> format_duration(3665)
        '1h 1m 5s'
    """
    if seconds is None or seconds < 0:
        return "N/A"

    seconds = int(seconds)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")

    return " ".join(parts)


def validate_coordinates(lat: float, lon: float) -> bool:
    """
    Validate latitude and longitude coordinates.

    Example:
        >>> validate_coordinates(49.3508, 8.1364)
        True
        >>> validate_coordinates(100, 200)
        False
    """
    return -90 <= lat <= 90 and -180 <= lon <= 180


def parse_state_vector(state: list) -> dict:
    """
    Parse OpenSky Network state vector into dictionary.

    Args:
        state: State vector from OpenSky API

    Returns:
        Dictionary with parsed flight data

    OpenSky state vector format:
        [0] icao24 - unique ICAO 24-bit address
        [1] callsign - callsign
        [2] origin_country - country name
        [3] time_position - Unix timestamp
        [4] last_contact - Unix timestamp
        [5] longitude
        [6] latitude
        [7] baro_altitude - barometric altitude in meters
        [8] on_ground - boolean
        [9] velocity - m/s
        [10] true_track - degrees
        [11] vertical_rate - m/s
        [12] sensors - sensor IDs
        [13] geo_altitude - geometric altitude in meters
        [14] squawk - transponder code
        [15] spi - special position indicator
        [16] position_source - position source (0=ADS-B, 1=ASTERIX, 2=MLAT)
        [17] category - aircraft category
    """
    return {
        "icao24": state[0],
        "callsign": state[1].strip() if state[1] else None,
        "origin_country": state[2],
        "time_position": state[3],
        "last_contact": state[4],
        "longitude": state[5],
        "latitude": state[6],
        "baro_altitude": state[7],
        "on_ground": state[8],
        "velocity": state[9],
        "true_track": state[10],
        "vertical_rate": state[11],
        "geo_altitude": state[13] if len(state) > 13 else None,
        "squawk": state[14] if len(state) > 14 else None,
        "category": state[17] if len(state) > 17 else None,
    }
