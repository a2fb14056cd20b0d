"""
FleetWatch Configuration Management

This module provides configuration management for the FleetWatch fleet
tracker. It includes the tracked fleet, data source settings, flight event
thresholds and runtime configuration loaded from YAML files.
"""

import os
from typing import Any, Dict, List, Optional

import yaml

from . import constants
from .models import Thresholds
from .utils import is_valid_icao24, normalize_icao24

# =============================================================================
# Tracking Settings
# =============================================================================


class Settings:
    """Default settings for polling, sources and flight detection."""

    # --- Polling ---
    POLL_INTERVAL_SECONDS: int = constants.DEFAULT_POLL_INTERVAL
    MIN_POLL_INTERVAL: int = constants.MIN_POLL_INTERVAL

    # --- Flight Detection ---
    TAKEOFF_ALTITUDE_M: float = constants.TAKEOFF_ALTITUDE_M  # Airborne above this
    TAKEOFF_SPEED_MS: float = constants.TAKEOFF_SPEED_MS  # Airborne above this
    LANDING_SPEED_MS: float = constants.LANDING_SPEED_MS  # Landed below this
    REJECT_OUT_OF_ORDER: bool = True  # Drop records older than the stored state

    # --- Sources ---
    LOCAL_RECEIVER_TIMEOUT: int = constants.LOCAL_RECEIVER_TIMEOUT
    ADSB_LOL_TIMEOUT: int = constants.ADSB_LOL_TIMEOUT
    ADSB_LOL_MAX_WORKERS: int = constants.ADSB_LOL_MAX_WORKERS
    OPENSKY_TIMEOUT: int = constants.DEFAULT_API_TIMEOUT

    # --- Housekeeping ---
    POSITION_RETENTION_DAYS: int = constants.DEFAULT_POSITION_RETENTION_DAYS


# =============================================================================
# Runtime Configuration
# =============================================================================


class Config:
    """
    Runtime configuration manager for FleetWatch.

    Loads settings from YAML files or uses sensible defaults.
    Provides property-based access to common settings.

    Example:
        >>> config = Config('config.yaml')
        >>> print(f"Tracking {len(config.fleet)} aircraft")
    """

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML configuration file. If None or missing,
                        uses default configuration.
        """
        self.config_path = config_path
        self._config: Dict[str, Any] = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """
        Load configuration from YAML file or return defaults.

        Returns:
            Configuration dictionary
        """
        if self.config_path is None or not os.path.exists(self.config_path):
            return self._get_default_config()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
                if self._validate_config(config):
                    return config
                else:
                    print("⚠️  Warning: Invalid config structure, using defaults")
                    return self._get_default_config()
        except Exception as e:
            print(f"⚠️  Warning: Could not load config file: {e}")
            return self._get_default_config()

    def _validate_config(self, config: Dict[str, Any]) -> bool:
        """
        Validate configuration structure and required fields.

        Args:
            config: Configuration dictionary to validate

        Returns:
            True if valid, False otherwise
        """
        try:
            # Required: fleet section
            assert "fleet" in config
            assert isinstance(config["fleet"], list)
            for aircraft in config["fleet"]:
                assert isinstance(aircraft, dict)
                assert is_valid_icao24(aircraft["icao24"])

            # Required: database section
            assert "database" in config
            assert "path" in config["database"]
            assert isinstance(config["database"]["path"], str)

            # Optional: polling interval must be positive
            interval = (config.get("tracking") or {}).get("poll_interval_seconds")
            if interval is not None:
                assert isinstance(interval, (float, int))
                assert interval > 0

            return True
        except (AssertionError, KeyError, TypeError, AttributeError):
            return False

    def _get_default_config(self) -> Dict[str, Any]:
        """
        Get default configuration.

        Returns:
            Default configuration dictionary
        """
        return {
            "fleet": [],
            "sources": {
                "dump1090": {
                    "enabled": False,
                    "url": constants.DUMP1090_URL,
                    "timeout_seconds": Settings.LOCAL_RECEIVER_TIMEOUT,
                },
                "adsb_lol": {
                    "enabled": True,
                    "base_url": constants.ADSB_LOL_BASE_URL,
                    "timeout_seconds": Settings.ADSB_LOL_TIMEOUT,
                    "max_workers": Settings.ADSB_LOL_MAX_WORKERS,
                },
                "opensky": {
                    "enabled": True,
                    "url": constants.OPENSKY_API_URL,
                    "timeout_seconds": Settings.OPENSKY_TIMEOUT,
                    "credentials_path": None,  # Path to OAuth2 credentials.json
                },
            },
            "tracking": {
                "poll_interval_seconds": Settings.POLL_INTERVAL_SECONDS,
                "reject_out_of_order": Settings.REJECT_OUT_OF_ORDER,
                "thresholds": {
                    "takeoff_altitude_m": Settings.TAKEOFF_ALTITUDE_M,
                    "takeoff_speed_ms": Settings.TAKEOFF_SPEED_MS,
                    "landing_speed_ms": Settings.LANDING_SPEED_MS,
                },
            },
            "database": {"path": constants.DEFAULT_DB_PATH},
            "cleanup": {
                "position_retention_days": Settings.POSITION_RETENTION_DAYS,
            },
        }

    def save_config(self) -> None:
        """
        Save current configuration to YAML file.

        Raises:
            ValueError: If config_path is not set
        """
        if self.config_path is None:
            raise ValueError("Cannot save config: no config_path specified")

        try:
            with open(self.config_path, "w", encoding="utf-8") as f:
                yaml.dump(self._config, f, default_flow_style=False)
        except Exception as e:
            print(f"❌ Error saving config: {e}")
            raise

    # --- Property Accessors ---

    @property
    def fleet(self) -> List[Dict[str, Any]]:
        """Get tracked aircraft with canonical (lowercase) ICAO24 addresses."""
        aircraft = []
        for entry in self._config.get("fleet") or []:
            aircraft.append(
                {
                    "icao24": normalize_icao24(entry["icao24"]),
                    "registration": entry.get("registration"),
                    "type": entry.get("type"),
                }
            )
        return aircraft

    @property
    def icao24_list(self) -> List[str]:
        """Get ICAO24 addresses of the tracked fleet."""
        return [aircraft["icao24"] for aircraft in self.fleet]

    @property
    def db_path(self) -> str:
        """Get database file path."""
        return self._config["database"]["path"]

    @property
    def poll_interval(self) -> int:
        """Get poll interval in seconds (never below the API minimum)."""
        interval = self.get("tracking.poll_interval_seconds", Settings.POLL_INTERVAL_SECONDS)
        return max(int(interval), Settings.MIN_POLL_INTERVAL)

    @property
    def reject_out_of_order(self) -> bool:
        """Whether records older than the stored state are dropped."""
        return bool(self.get("tracking.reject_out_of_order", Settings.REJECT_OUT_OF_ORDER))

    @property
    def thresholds(self) -> Thresholds:
        """Get takeoff/landing thresholds."""
        return Thresholds(
            takeoff_altitude_m=float(
                self.get("tracking.thresholds.takeoff_altitude_m", Settings.TAKEOFF_ALTITUDE_M)
            ),
            takeoff_speed_ms=float(
                self.get("tracking.thresholds.takeoff_speed_ms", Settings.TAKEOFF_SPEED_MS)
            ),
            landing_speed_ms=float(
                self.get("tracking.thresholds.landing_speed_ms", Settings.LANDING_SPEED_MS)
            ),
        )

    @property
    def position_retention_days(self) -> int:
        """Get number of days of position history to keep."""
        return int(
            self.get("cleanup.position_retention_days", Settings.POSITION_RETENTION_DAYS)
        )

    # --- Generic Accessors ---

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Dot-separated key path (e.g., 'sources.opensky.url')
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get('tracking.poll_interval_seconds', 30)
            30
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set configuration value using dot notation.

        Args:
            key: Dot-separated key path (e.g., 'database.path')
            value: Value to set

        Example:
            >>> config.set('tracking.poll_interval_seconds', 60)
        """
        keys = key.split(".")
        config = self._config

        # Navigate to parent of target key
        for k in keys[:-1]:
            if k not in config or not isinstance(config[k], dict):
                config[k] = {}
            config = config[k]

        # Set final value
        config[keys[-1]] = value
