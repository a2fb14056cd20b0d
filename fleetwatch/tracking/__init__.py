"""
FleetWatch Tracking Component

Multi-source telemetry fetching and flight event detection for a fleet of
aircraft.

Main Classes:
    - Config: Configuration management
    - FlightDatabase: SQLite database operations
    - FleetDataFetcher: Prioritized multi-source fetching
    - FlightTracker: Takeoff/landing state machine
    - ActiveFlightIndex: Cache of open flights
    - FleetCollector: Polling loop
    - OpenSkyAuth: OAuth2 authentication

Example:
    >>> from fleetwatch.tracking import Config, FleetCollector
    >>> config = Config('config.yaml')
    >>> collector = FleetCollector(config)
    >>> collector.run()
"""

# Core tracking components
from .config import Config, Settings
from .database import FlightDatabase
from .fetcher import FleetDataFetcher
from .tracker import FlightTracker
from .active_flights import ActiveFlightIndex
from .collector import FleetCollector
from .client import OpenSkyClient
from .sources import (
    StateSource,
    Dump1090Source,
    AdsbLolSource,
    OpenSkySource,
    build_sources,
    infer_on_ground,
)
from .auth import OpenSkyAuth, OpenSkyBasicAuth, create_auth_from_config
from .models import (
    FleetSnapshot,
    FlightEvent,
    FlightPatch,
    StateRecord,
    Thresholds,
)
from .errors import (
    FleetWatchError,
    FetchError,
    TransportError,
    AuthError,
    RateLimited,
    UpstreamError,
    DataError,
)

# Utilities
from . import utils
from . import constants

__all__ = [
    # Main classes
    "Config",
    "Settings",
    "FlightDatabase",
    "FleetDataFetcher",
    "FlightTracker",
    "ActiveFlightIndex",
    "FleetCollector",
    "OpenSkyClient",
    # Sources
    "StateSource",
    "Dump1090Source",
    "AdsbLolSource",
    "OpenSkySource",
    "build_sources",
    "infer_on_ground",
    # Authentication
    "OpenSkyAuth",
    "OpenSkyBasicAuth",
    "create_auth_from_config",
    # Models
    "FleetSnapshot",
    "FlightEvent",
    "FlightPatch",
    "StateRecord",
    "Thresholds",
    # Errors
    "FleetWatchError",
    "FetchError",
    "TransportError",
    "AuthError",
    "RateLimited",
    "UpstreamError",
    "DataError",
    # Modules
    "utils",
    "constants",
]
