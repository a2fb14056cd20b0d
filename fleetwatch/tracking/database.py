"""
FleetWatch Database Management
SQLite storage for the fleet registry, position history, current state and
flight records.
"""

import sqlite3
import time
from pathlib import Path
from typing import Optional, List, Dict, Any

from .models import FlightPatch


def _ground_flag(on_ground: Optional[bool]) -> Optional[int]:
    if on_ground is None:
        return None
    return 1 if on_ground else 0


def _row_to_state(row: sqlite3.Row) -> Dict[str, Any]:
    state = dict(row)
    if state.get('on_ground') is not None:
        state['on_ground'] = bool(state['on_ground'])
    return state


class FlightDatabase:
    """Manages SQLite database for fleet tracking data."""

    def __init__(self, db_path: str):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._ensure_data_directory()
        self.init_database()

    def _ensure_data_directory(self):
        """Ensure the data directory exists."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_database(self):
        """Initialize database with required tables and indexes."""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        # Tracked fleet
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS aircraft (
                icao24 TEXT PRIMARY KEY,
                registration TEXT,
                aircraft_type TEXT,
                created_at INTEGER DEFAULT (CAST(strftime('%s', 'now') AS INTEGER))
            )
        ''')

        # Position history (append only)
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS positions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                icao24 TEXT NOT NULL,
                timestamp INTEGER NOT NULL,
                latitude REAL,
                longitude REAL,
                altitude REAL,
                velocity REAL,
                heading REAL,
                vertical_rate REAL,
                on_ground INTEGER
            )
        ''')

        # One row per physical flight
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS flights (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                icao24 TEXT NOT NULL,
                takeoff_time INTEGER,
                landing_time INTEGER,
                takeoff_latitude REAL,
                takeoff_longitude REAL,
                landing_latitude REAL,
                landing_longitude REAL,
                max_altitude REAL,
                distance_km REAL DEFAULT 0,
                duration_seconds INTEGER
            )
        ''')

        # Latest known state per aircraft
        cursor.execute('''
            CREATE TABLE IF NOT EXISTS current_state (
                icao24 TEXT PRIMARY KEY,
                timestamp INTEGER NOT NULL,
                latitude REAL,
                longitude REAL,
                altitude REAL,
                velocity REAL,
                heading REAL,
                on_ground INTEGER,
                last_updated INTEGER
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_positions_icao24_time ON positions(icao24, timestamp)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_flights_icao24 ON flights(icao24)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_flights_open ON flights(icao24, landing_time)')

        conn.commit()
        conn.close()

    # --- Fleet registry ---

    def upsert_aircraft(self, icao24: str, registration: Optional[str] = None,
                        aircraft_type: Optional[str] = None):
        """Insert or update an aircraft of the tracked fleet."""
        conn = sqlite3.connect(self.db_path)
        conn.execute('''
            INSERT INTO aircraft (icao24, registration, aircraft_type)
            VALUES (?, ?, ?)
            ON CONFLICT(icao24) DO UPDATE SET
                registration = excluded.registration,
                aircraft_type = excluded.aircraft_type
        ''', (icao24, registration, aircraft_type))
        conn.commit()
        conn.close()

    def get_aircraft(self) -> List[Dict[str, Any]]:
        """Get all registered aircraft."""
        conn = self._connect()
        rows = conn.execute('SELECT * FROM aircraft ORDER BY icao24').fetchall()
        conn.close()
        return [dict(row) for row in rows]

    # --- Position history and current state ---

    def save_position(self, icao24: str, timestamp: int, latitude: Optional[float],
                      longitude: Optional[float], altitude: Optional[float],
                      velocity: Optional[float], heading: Optional[float],
                      vertical_rate: Optional[float], on_ground: Optional[bool]):
        """Append one position sample to the history."""
        conn = sqlite3.connect(self.db_path)
        conn.execute('''
            INSERT INTO positions (
                icao24, timestamp, latitude, longitude, altitude,
                velocity, heading, vertical_rate, on_ground
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (
            icao24, timestamp, latitude, longitude, altitude,
            velocity, heading, vertical_rate, _ground_flag(on_ground)
        ))
        conn.commit()
        conn.close()

    def update_current_state(self, icao24: str, timestamp: int, latitude: Optional[float],
                             longitude: Optional[float], altitude: Optional[float],
                             velocity: Optional[float], heading: Optional[float],
                             on_ground: Optional[bool]):
        """Insert or overwrite the latest known state of an aircraft."""
        conn = sqlite3.connect(self.db_path)
        conn.execute('''
            INSERT INTO current_state (
                icao24, timestamp, latitude, longitude, altitude,
                velocity, heading, on_ground, last_updated
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(icao24) DO UPDATE SET
                timestamp = excluded.timestamp,
                latitude = excluded.latitude,
                longitude = excluded.longitude,
                altitude = excluded.altitude,
                velocity = excluded.velocity,
                heading = excluded.heading,
                on_ground = excluded.on_ground,
                last_updated = excluded.last_updated
        ''', (
            icao24, timestamp, latitude, longitude, altitude,
            velocity, heading, _ground_flag(on_ground), int(time.time())
        ))
        conn.commit()
        conn.close()

    def get_current_state(self, icao24: str) -> Optional[Dict[str, Any]]:
        """
        Get the latest known state of an aircraft.

        Returns:
            State dictionary (on_ground as bool or None) or None
        """
        conn = self._connect()
        row = conn.execute(
            'SELECT * FROM current_state WHERE icao24 = ?', (icao24,)
        ).fetchone()
        conn.close()
        return _row_to_state(row) if row else None

    def get_all_current_states(self) -> List[Dict[str, Any]]:
        """Get registry entries joined with their latest state."""
        conn = self._connect()
        rows = conn.execute('''
            SELECT
                a.icao24, a.registration, a.aircraft_type,
                cs.timestamp, cs.latitude, cs.longitude, cs.altitude,
                cs.velocity, cs.heading, cs.on_ground, cs.last_updated
            FROM aircraft a
            LEFT JOIN current_state cs ON a.icao24 = cs.icao24
            ORDER BY a.icao24
        ''').fetchall()
        conn.close()
        return [_row_to_state(row) for row in rows]

    def get_positions(self, icao24: str, since: int = 0) -> List[Dict[str, Any]]:
        """Get position history of an aircraft, oldest first."""
        conn = self._connect()
        rows = conn.execute('''
            SELECT * FROM positions
            WHERE icao24 = ? AND timestamp >= ?
            ORDER BY timestamp, id
        ''', (icao24, since)).fetchall()
        conn.close()
        return [_row_to_state(row) for row in rows]

    def cleanup_old_positions(self, days_to_keep: int = 30) -> int:
        """
        Delete position history older than the retention window.

        Returns:
            Number of deleted rows
        """
        cutoff = int(time.time()) - days_to_keep * 86400

        conn = sqlite3.connect(self.db_path)
        cursor = conn.execute('DELETE FROM positions WHERE timestamp < ?', (cutoff,))
        deleted = cursor.rowcount
        conn.commit()
        conn.close()

        print(f"🧹 Cleaned up {deleted} old position records")
        return deleted

    # --- Flights ---

    def create_flight(self, icao24: str, takeoff_time: int, latitude: Optional[float],
                      longitude: Optional[float], altitude: Optional[float]) -> int:
        """
        Create an open flight record.

        Returns:
            Flight ID
        """
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()
        cursor.execute('''
            INSERT INTO flights (
                icao24, takeoff_time, takeoff_latitude, takeoff_longitude,
                max_altitude, distance_km
            ) VALUES (?, ?, ?, ?, ?, 0)
        ''', (icao24, takeoff_time, latitude, longitude, altitude))
        flight_id = cursor.lastrowid
        conn.commit()
        conn.close()
        return flight_id

    def update_flight(self, flight_id: int, patch: FlightPatch):
        """
        Apply a partial update to a flight. Unset patch fields keep their value.

        Args:
            flight_id: Flight ID
            patch: Fields to change
        """
        if patch.is_empty:
            return

        conn = sqlite3.connect(self.db_path)
        conn.execute('''
            UPDATE flights SET
                landing_time = COALESCE(?, landing_time),
                landing_latitude = COALESCE(?, landing_latitude),
                landing_longitude = COALESCE(?, landing_longitude),
                max_altitude = COALESCE(?, max_altitude),
                distance_km = COALESCE(?, distance_km),
                duration_seconds = COALESCE(?, duration_seconds)
            WHERE id = ?
        ''', (
            patch.landing_time,
            patch.landing_latitude,
            patch.landing_longitude,
            patch.max_altitude,
            patch.distance_km,
            patch.duration_seconds,
            flight_id,
        ))
        conn.commit()
        conn.close()

    def get_active_flight(self, icao24: str) -> Optional[Dict[str, Any]]:
        """
        Get the open (not yet landed) flight of an aircraft.

        Returns:
            Newest flight without landing time, or None
        """
        conn = self._connect()
        row = conn.execute('''
            SELECT * FROM flights
            WHERE icao24 = ? AND landing_time IS NULL
            ORDER BY takeoff_time DESC, id DESC
            LIMIT 1
        ''', (icao24,)).fetchone()
        conn.close()
        return dict(row) if row else None

    def get_flight_by_id(self, flight_id: int) -> Optional[Dict[str, Any]]:
        """
        Get flight details by ID.

        Returns:
            Flight data dictionary or None
        """
        conn = self._connect()
        row = conn.execute('SELECT * FROM flights WHERE id = ?', (flight_id,)).fetchone()
        conn.close()
        return dict(row) if row else None

    def get_flight_history(self, icao24: str, limit: int = 50) -> List[Dict[str, Any]]:
        """Get completed flights of an aircraft, newest first."""
        conn = self._connect()
        rows = conn.execute('''
            SELECT * FROM flights
            WHERE icao24 = ? AND landing_time IS NOT NULL
            ORDER BY takeoff_time DESC
            LIMIT ?
        ''', (icao24, limit)).fetchall()
        conn.close()
        return [dict(row) for row in rows]

    def get_statistics(self) -> List[Dict[str, Any]]:
        """
        Get per-aircraft totals over completed flights.

        Returns:
            One dictionary per registered aircraft
        """
        conn = self._connect()
        rows = conn.execute('''
            SELECT
                a.icao24,
                a.registration,
                a.aircraft_type,
                COUNT(f.id) AS total_flights,
                COALESCE(SUM(f.duration_seconds), 0) AS total_flight_seconds,
                COALESCE(SUM(f.distance_km), 0) AS total_distance_km,
                COALESCE(AVG(f.duration_seconds), 0) AS avg_flight_seconds,
                COALESCE(MAX(f.max_altitude), 0) AS max_altitude_ever
            FROM aircraft a
            LEFT JOIN flights f ON a.icao24 = f.icao24 AND f.landing_time IS NOT NULL
            GROUP BY a.icao24, a.registration, a.aircraft_type
            ORDER BY a.icao24
        ''').fetchall()
        conn.close()
        return [dict(row) for row in rows]

    def close(self):
        """Close database connection."""
        pass  # Using connect-per-operation, no persistent connection
