"""
FleetWatch - Fleet Flight Tracker

Tracks a fleet of aircraft by merging ADS-B telemetry from a local receiver,
adsb.lol and OpenSky Network, and records takeoffs, landings and flight
statistics.

Components:
    - tracking: Multi-source fetching, flight detection and storage

Example:
    >>> from fleetwatch import Config
    >>> from fleetwatch.tracking import FleetCollector
    >>> config = Config('config.yaml')
    >>> collector = FleetCollector(config)
    >>> collector.run()
"""

# Component imports for easy access
from . import tracking
from .tracking.config import Config

FLEETWATCH_VERSION = "v1.0.0"

__version__ = FLEETWATCH_VERSION
__author__ = "FleetWatch Project"
__license__ = "MIT"

__all__ = [
    "tracking",
    "Config",
]
