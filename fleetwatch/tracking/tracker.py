"""
FleetWatch Flight Tracker

Turns a stream of per-aircraft state records into flight records.
Each record is compared with the stored last known state to detect
takeoffs and landings; open flights accumulate maximum altitude and
great-circle distance until they land.
"""

from typing import Any, Dict, Optional

from .active_flights import ActiveFlightIndex
from .models import FlightEvent, FlightPatch, StateRecord, Thresholds
from .utils import format_duration, haversine_distance, validate_coordinates


def _segment_km(previous: Optional[Dict[str, Any]], record: StateRecord) -> Optional[float]:
    """Distance from the previous stored position to the new one, if both are known."""
    if not previous:
        return None
    if previous.get('latitude') is None or previous.get('longitude') is None:
        return None
    if not record.has_position:
        return None
    return haversine_distance(
        previous['latitude'], previous['longitude'],
        record.latitude, record.longitude,
    )


class FlightTracker:
    """Flight state machine for a tracked fleet."""

    def __init__(self, db, active_flights: ActiveFlightIndex,
                 thresholds: Optional[Thresholds] = None,
                 reject_out_of_order: bool = True):
        """
        Initialize tracker.

        Args:
            db: FlightDatabase (or any store with the same operations)
            active_flights: Open flight cache, already rehydrated
            thresholds: Takeoff/landing thresholds
            reject_out_of_order: Drop records older than the stored state
        """
        self.db = db
        self.active_flights = active_flights
        self.thresholds = thresholds or Thresholds()
        self.reject_out_of_order = reject_out_of_order

    def detect_state_change(self, record: StateRecord,
                            previous: Optional[Dict[str, Any]],
                            has_open_flight: bool = False) -> Optional[FlightEvent]:
        """
        Classify the transition from the previous state to a new record.

        Args:
            record: New observation
            previous: Stored last known state, or None for a first observation
            has_open_flight: Whether the aircraft has an unlanded flight.
                An unknown previous ground flag then counts as airborne.

        Returns:
            FlightEvent or None when no transition applies
        """
        if record.on_ground is None:
            return None

        airborne = (
            record.on_ground is False
            and self.thresholds.clears_takeoff(record.altitude, record.velocity)
        )

        was_on_ground = previous.get('on_ground') if previous else None
        if was_on_ground is None and has_open_flight:
            was_on_ground = False

        if was_on_ground is None:
            return FlightEvent.AIRBORNE_FIRST_SEEN if airborne else None

        if was_on_ground and airborne:
            return FlightEvent.TAKEOFF

        if (not was_on_ground and record.on_ground is True
                and record.velocity is not None
                and record.velocity < self.thresholds.landing_speed_ms):
            return FlightEvent.LANDING

        return None

    def process_state(self, record: StateRecord) -> Optional[FlightEvent]:
        """
        Process one observation of one aircraft.

        Position history and current state are written for every accepted
        record, whether or not a flight changes.

        Args:
            record: Normalized state record

        Returns:
            The flight event that was applied, or None
        """
        icao24 = record.icao24

        if not record.has_position:
            print(f"⚠️  Skipping {icao24}: missing position data")
            return None

        if not validate_coordinates(record.latitude, record.longitude):
            print(f"⚠️  Skipping {icao24}: invalid coordinates "
                  f"({record.latitude}, {record.longitude})")
            return None

        previous = self.db.get_current_state(icao24)

        if (self.reject_out_of_order and previous
                and previous.get('timestamp') is not None
                and record.timestamp < previous['timestamp']):
            print(f"⚠️  Skipping {icao24}: record at {record.timestamp} is older "
                  f"than stored state at {previous['timestamp']}")
            return None

        self.db.save_position(
            icao24,
            record.timestamp,
            record.latitude,
            record.longitude,
            record.altitude,
            record.velocity,
            record.heading,
            record.vertical_rate,
            record.on_ground,
        )

        self.db.update_current_state(
            icao24,
            record.timestamp,
            record.latitude,
            record.longitude,
            record.altitude,
            record.velocity,
            record.heading,
            record.on_ground,
        )

        if previous is None:
            print(f"ℹ️  First observation of {icao24}")

        has_open_flight = False
        if previous is None or previous.get('on_ground') is None:
            has_open_flight = self.active_flights.resolve(icao24) is not None

        event = self.detect_state_change(record, previous, has_open_flight)

        if event == FlightEvent.TAKEOFF:
            self._handle_takeoff(record)
            return event

        if event == FlightEvent.LANDING:
            self._handle_landing(record, previous)
            return event

        if event == FlightEvent.AIRBORNE_FIRST_SEEN:
            print(f"ℹ️  {icao24} is already airborne, creating in-progress flight")
            self._open_flight(record)
            return event

        if record.on_ground is not True:
            self._update_ongoing_flight(record, previous)

        return None

    def _open_flight(self, record: StateRecord) -> int:
        flight_id = self.db.create_flight(
            record.icao24,
            record.timestamp,
            record.latitude,
            record.longitude,
            record.altitude,
        )
        self.active_flights.set(record.icao24, flight_id)
        return flight_id

    def _handle_takeoff(self, record: StateRecord):
        print(f"✈️  TAKEOFF detected for {record.icao24}")
        stale = self.active_flights.resolve(record.icao24)
        if stale is not None:
            print(f"⚠️  Flight {stale['id']} of {record.icao24} is still open "
                  f"(landing missed), leaving it unclosed")
        flight_id = self._open_flight(record)
        print(f"   Flight {flight_id} started")

    def _handle_landing(self, record: StateRecord, previous: Dict[str, Any]):
        icao24 = record.icao24
        print(f"🛬 LANDING detected for {icao24}")

        flight = self.active_flights.resolve(icao24)
        if flight is None:
            print(f"⚠️  No active flight found for {icao24} landing")
            return

        duration = record.timestamp - flight['takeoff_time']

        total_distance = flight.get('distance_km') or 0.0
        segment = _segment_km(previous, record)
        if segment is not None:
            total_distance += segment

        self.db.update_flight(flight['id'], FlightPatch(
            landing_time=record.timestamp,
            landing_latitude=record.latitude,
            landing_longitude=record.longitude,
            distance_km=total_distance,
            duration_seconds=duration,
        ))

        self.active_flights.delete(icao24)

        print(f"   Flight {flight['id']} completed: {format_duration(duration)}, "
              f"{total_distance:.1f} km")

    def _update_ongoing_flight(self, record: StateRecord,
                               previous: Optional[Dict[str, Any]]):
        """Raise max altitude and extend distance of an open flight."""
        flight = self.active_flights.resolve(record.icao24)
        if flight is None:
            return

        patch = FlightPatch()

        max_altitude = flight.get('max_altitude')
        if record.altitude is not None and (max_altitude is None or record.altitude > max_altitude):
            patch.max_altitude = record.altitude

        segment = _segment_km(previous, record)
        if segment:
            patch.distance_km = (flight.get('distance_km') or 0.0) + segment

        if not patch.is_empty:
            self.db.update_flight(flight['id'], patch)
