#!/usr/bin/env python3
"""
FleetWatch Database Reader Script

Usage:
    python scripts/read.py [--config CONFIG_FILE] [--db DATABASE_FILE]
                           [--history ICAO24] [--limit N]
"""

import sys
import argparse
from datetime import datetime
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleetwatch.tracking import Config, FlightDatabase
from fleetwatch.tracking.utils import (
    format_altitude,
    format_duration,
    format_speed,
    normalize_icao24,
)


def _format_time(timestamp) -> str:
    if timestamp is None:
        return "N/A"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")


def display_current_states(db: FlightDatabase):
    """Display the latest known state of every aircraft."""
    print("=" * 70)
    print("🛩️  FLEET STATUS")
    print("=" * 70)

    for state in db.get_all_current_states():
        if state["timestamp"] is None:
            status = "no data"
        elif state["on_ground"] is None:
            status = "unknown"
        else:
            status = "ground" if state["on_ground"] else "airborne"

        print(
            f"{state['icao24']} {state['registration'] or '':8s} | {status:8s} | "
            f"{format_altitude(state['altitude'], include_feet=False):>8s} | "
            f"{format_speed(state['velocity']):>11s} | {_format_time(state['timestamp'])}"
        )


def display_history(db: FlightDatabase, icao24: str, limit: int):
    """Display completed flights of one aircraft."""
    flights = db.get_flight_history(normalize_icao24(icao24), limit)

    print("=" * 70)
    print(f"📋 FLIGHT HISTORY - {icao24}")
    print("=" * 70)

    if not flights:
        print("No completed flights")
        return

    for flight in flights:
        print(
            f"#{flight['id']:<5} {_format_time(flight['takeoff_time'])} -> "
            f"{_format_time(flight['landing_time'])} | "
            f"{format_duration(flight['duration_seconds']):>10s} | "
            f"{flight['distance_km'] or 0:7.1f} km | "
            f"max {format_altitude(flight['max_altitude'], include_feet=False)}"
        )


def display_statistics(db: FlightDatabase):
    """Display per-aircraft totals."""
    print("=" * 70)
    print("📊 FLEET STATISTICS")
    print("=" * 70)

    for row in db.get_statistics():
        print(
            f"{row['icao24']} {row['registration'] or '':8s} | "
            f"{row['total_flights']:>4} flights | "
            f"{row['total_distance_km']:9.1f} km | "
            f"{format_duration(int(row['total_flight_seconds'])):>12s} | "
            f"max {format_altitude(row['max_altitude_ever'], include_feet=False)}"
        )


def main():
    """Main entry point for reader."""
    parser = argparse.ArgumentParser(
        description="FleetWatch Reader - Show fleet status and flight history"
    )
    parser.add_argument("--config", type=str, default="config.yaml",
                        help="Path to configuration file (default: config.yaml)")
    parser.add_argument("--db", type=str,
                        help="Path to database file (default: from config)")
    parser.add_argument("--history", type=str, metavar="ICAO24",
                        help="Show completed flights of one aircraft")
    parser.add_argument("--limit", type=int, default=50,
                        help="Maximum number of flights to show (default: 50)")

    args = parser.parse_args()

    db_path = args.db or Config(args.config).db_path

    try:
        db = FlightDatabase(db_path)
    except Exception as e:
        print(f"❌ Error opening database: {e}")
        sys.exit(1)

    if args.history:
        display_history(db, args.history, args.limit)
    else:
        display_current_states(db)
        print()
        display_statistics(db)


if __name__ == "__main__":
    main()
