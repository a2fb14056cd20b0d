"""
FleetWatch Fleet Collector
Polling loop that fetches fleet snapshots and feeds them to the flight tracker.
"""

import time
import traceback
from datetime import datetime
from typing import Optional

from .active_flights import ActiveFlightIndex
from .auth import create_auth_from_config
from .config import Config
from .database import FlightDatabase
from .fetcher import FleetDataFetcher
from .models import FleetSnapshot
from .sources import build_sources
from .tracker import FlightTracker
from .utils import format_altitude, format_speed


class FleetCollector:
    """Collects fleet telemetry and maintains flight records."""

    def __init__(self, config: Config, auth=None, sources=None):
        """
        Initialize fleet collector.

        Open flights are loaded from the database once, here, so that a
        restart resumes flights that were in progress.

        Args:
            config: FleetWatch configuration object
            auth: OpenSky auth instance (created from config when omitted)
            sources: Prioritized sources (built from config when omitted)
        """
        self.config = config
        self.db = FlightDatabase(config.db_path)
        self.poll_interval = config.poll_interval

        self.auth = auth if auth is not None else create_auth_from_config(config)
        self.sources = sources if sources is not None else build_sources(config, self.auth)
        self.fetcher = FleetDataFetcher(self.sources)

        for aircraft in config.fleet:
            self.db.upsert_aircraft(
                aircraft['icao24'], aircraft.get('registration'), aircraft.get('type')
            )

        self.active_flights = ActiveFlightIndex(self.db)
        self.active_flights.rehydrate(config.icao24_list)

        self.tracker = FlightTracker(
            self.db,
            self.active_flights,
            thresholds=config.thresholds,
            reject_out_of_order=config.reject_out_of_order,
        )

        self.iteration_count = 0
        self.last_date = None
        self.consecutive_empty_scans = 0
        self.total_empty_scans = 0
        self.last_snapshot: Optional[FleetSnapshot] = None

    def display_record(self, record):
        """Display one aircraft state to console."""
        status = {True: "ground", False: "airborne", None: "unknown"}[record.on_ground]
        print(f"  ✈️  {record.icao24} {record.callsign or '':8s} | {status:8s} | "
              f"{format_altitude(record.altitude, include_feet=False):>8s} | "
              f"{format_speed(record.velocity):>11s} | {record.source}")

    def print_header(self):
        """Print collector header information."""
        print("\n" + "=" * 70)
        print("🛩️  FleetWatch - Fleet Flight Tracker")
        print("=" * 70)
        print(f"Fleet:      {len(self.config.fleet)} aircraft")
        print(f"Sources:    {', '.join(source.name for source in self.sources) or 'none'}")
        print(f"Interval:   {self.poll_interval}s")
        print(f"Database:   {self.config.db_path}")

        if self.auth:
            print(f"Auth:       {self.auth.mode} (Client: {self.auth.client_id})")
        else:
            print("Auth:       Anonymous (for higher limits, set up OAuth2 credentials)")

        print(f"Active:     {len(self.active_flights)} flight(s) in progress")
        print("=" * 70)

    def print_statistics(self):
        """Print per-aircraft flight statistics."""
        try:
            stats = self.db.get_statistics()
            print("\n📊 Fleet Statistics:")
            for row in stats:
                print(f"   {row['icao24']} {row['registration'] or '':8s} | "
                      f"{row['total_flights']} flights | "
                      f"{row['total_distance_km']:.1f} km | "
                      f"{row['total_flight_seconds'] / 3600:.1f} h")
        except Exception as e:
            print(f"⚠️  Could not retrieve statistics: {e}")

    def run_single_iteration(self) -> int:
        """
        Run one poll cycle.

        Returns:
            Number of aircraft records processed
        """
        self.iteration_count += 1
        current_date = datetime.now().date()

        print(f"[{datetime.now().strftime('%H:%M:%S')}] Poll #{self.iteration_count}...")

        icao24s = self.config.icao24_list
        if not icao24s:
            print("No aircraft configured")
            return 0

        snapshot = self.fetcher.fetch_fleet_snapshot(icao24s)
        self.last_snapshot = snapshot

        if snapshot.error is not None:
            print(f"⚠️  Data fetch error: {snapshot.error}")

        if not snapshot.records:
            self.consecutive_empty_scans += 1
            self.total_empty_scans += 1
            print("No aircraft data received (aircraft may not be transmitting)")
            return 0

        self.consecutive_empty_scans = 0

        processed = 0
        for record in snapshot.records:
            self.display_record(record)
            try:
                self.tracker.process_state(record)
                processed += 1
            except Exception as e:
                print(f"⚠️  Error processing {record.icao24}: {e}")

        if self.last_date != current_date:
            if self.last_date:
                try:
                    self.db.cleanup_old_positions(self.config.position_retention_days)
                except Exception as e:
                    print(f"⚠️  Error cleaning up positions: {e}")
            self.last_date = current_date

        return processed

    def run(self):
        """Run continuous data collection."""
        self.print_header()
        self.print_statistics()

        print("\n🔄 Starting data collection... (Press Ctrl+C to stop)\n")

        try:
            while True:
                try:
                    self.run_single_iteration()
                except Exception as e:
                    print(f"\n⚠️  Error in iteration {self.iteration_count}: {e}")
                    print("   Continuing with next poll...")

                time.sleep(self.poll_interval)

        except KeyboardInterrupt:
            self._handle_shutdown()
        except Exception as e:
            print(f"\n❌ Fatal error: {e}")
            traceback.print_exc()
            self._handle_shutdown()

    def _handle_shutdown(self):
        """Handle graceful shutdown."""
        print("\n\n👋 Stopping data collection...")
        print(f"   Total polls: {self.iteration_count:,}")
        print(f"   Empty polls: {self.total_empty_scans:,}")
        print(f"   Flights in progress: {len(self.active_flights)}")
        self.print_statistics()
        print(f"\n💾 Data saved to: {self.config.db_path}")
