"""
FleetWatch Constants
Global constants used throughout the tracking engine.
"""

# Database constants
DEFAULT_DB_PATH = "data/fleetwatch.db"

# API constants
OPENSKY_API_URL = "https://opensky-network.org/api/states/all"
OPENSKY_FLIGHTS_URL = "https://opensky-network.org/api/flights/aircraft"
OPENSKY_TOKEN_URL = "https://auth.opensky-network.org/auth/realms/opensky-network/protocol/openid-connect/token"
ADSB_LOL_BASE_URL = "https://api.adsb.lol/v2"
DUMP1090_URL = "http://localhost/dump1090/data/aircraft.json"
USER_AGENT = "FleetWatch/1.0"

DEFAULT_API_TIMEOUT = 10  # seconds
LOCAL_RECEIVER_TIMEOUT = 5  # seconds, local source must not stall the fallback chain
ADSB_LOL_TIMEOUT = 5  # seconds
ADSB_LOL_MAX_WORKERS = 8

# OAuth2 token handling
DEFAULT_TOKEN_LIFETIME = 1800  # seconds
TOKEN_EXPIRY_BUFFER_SECONDS = 300

# Rate limit headers sent by OpenSky
RATE_LIMIT_REMAINING_HEADER = "X-Rate-Limit-Remaining"
RATE_LIMIT_RETRY_HEADER = "X-Rate-Limit-Retry-After-Seconds"

# Polling
DEFAULT_POLL_INTERVAL = 30  # seconds
MIN_POLL_INTERVAL = 10  # OpenSky rate limit

# Earth radius for distance calculations
EARTH_RADIUS_KM = 6371

# Conversion factors
FEET_TO_METERS = 0.3048
KNOTS_TO_MS = 0.514444
FPM_TO_MS = 0.00508
METERS_TO_FEET = 3.28084
MS_TO_KMH = 3.6

# Flight event thresholds
TAKEOFF_ALTITUDE_M = 50.0
TAKEOFF_SPEED_MS = 15.0
LANDING_SPEED_MS = 5.0

# Source names (provenance tags)
SOURCE_DUMP1090 = "dump1090"
SOURCE_ADSB_LOL = "adsb.lol"
SOURCE_OPENSKY = "opensky"

# Position history retention
DEFAULT_POSITION_RETENTION_DAYS = 30

