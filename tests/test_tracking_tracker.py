"""
Tests for the flight state machine.
"""

import pytest
import sys
import os
import tempfile
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleetwatch.tracking.active_flights import ActiveFlightIndex
from fleetwatch.tracking.database import FlightDatabase
from fleetwatch.tracking.models import FlightEvent, StateRecord, Thresholds
from fleetwatch.tracking.tracker import FlightTracker

T0 = 1700000000


@pytest.fixture
def db_path():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    yield path

    try:
        os.unlink(path)
    except Exception:
        pass


@pytest.fixture
def temp_db(db_path):
    return FlightDatabase(db_path)


@pytest.fixture
def tracker(temp_db):
    return FlightTracker(temp_db, ActiveFlightIndex(temp_db))


def ground(timestamp, lat=61.0, lon=-150.0, velocity=2.0):
    return StateRecord(icao24="a93270", timestamp=timestamp, latitude=lat, longitude=lon,
                       altitude=5.0, velocity=velocity, on_ground=True)


def airborne(timestamp, lat=61.0, lon=-150.0, altitude=600.0, velocity=60.0):
    return StateRecord(icao24="a93270", timestamp=timestamp, latitude=lat, longitude=lon,
                       altitude=altitude, velocity=velocity, on_ground=False)


class TestDetectStateChange:
    """Tests for the pure transition rules."""

    def test_takeoff(self, tracker):
        previous = {"on_ground": True}
        assert tracker.detect_state_change(airborne(T0), previous) == FlightEvent.TAKEOFF

    def test_takeoff_needs_both_thresholds(self, tracker):
        previous = {"on_ground": True}
        slow = airborne(T0, velocity=10.0)
        low = airborne(T0, altitude=30.0)

        assert tracker.detect_state_change(slow, previous) is None
        assert tracker.detect_state_change(low, previous) is None

    def test_landing(self, tracker):
        previous = {"on_ground": False}
        assert tracker.detect_state_change(ground(T0), previous) == FlightEvent.LANDING

    def test_landing_needs_slow_ground_speed(self, tracker):
        previous = {"on_ground": False}
        rolling = ground(T0, velocity=25.0)
        unknown_speed = ground(T0, velocity=None)

        assert tracker.detect_state_change(rolling, previous) is None
        assert tracker.detect_state_change(unknown_speed, previous) is None

    def test_unknown_ground_state_never_transitions(self, tracker):
        record = airborne(T0)
        record.on_ground = None

        assert tracker.detect_state_change(record, {"on_ground": True}) is None
        assert tracker.detect_state_change(record, None) is None

    def test_unknown_previous_with_open_flight_counts_as_airborne(self, tracker):
        previous = {"on_ground": None}

        assert tracker.detect_state_change(ground(T0), previous, has_open_flight=True) \
            == FlightEvent.LANDING
        assert tracker.detect_state_change(airborne(T0), previous, has_open_flight=True) is None

    def test_first_seen(self, tracker):
        assert tracker.detect_state_change(airborne(T0), None) == FlightEvent.AIRBORNE_FIRST_SEEN
        assert tracker.detect_state_change(ground(T0), None) is None

    def test_custom_thresholds(self, temp_db):
        tracker = FlightTracker(temp_db, ActiveFlightIndex(temp_db),
                                thresholds=Thresholds(takeoff_altitude_m=1000.0))

        assert tracker.detect_state_change(airborne(T0), {"on_ground": True}) is None


class TestProcessState:
    """Tests for FlightTracker.process_state."""

    def test_takeoff_landing_roundtrip(self, tracker, temp_db, capsys):
        """A full flight: ground, climb, cruise, land."""
        assert tracker.process_state(ground(T0)) is None
        assert tracker.process_state(airborne(T0 + 60)) == FlightEvent.TAKEOFF
        assert tracker.process_state(airborne(T0 + 300, lat=61.2, altitude=1500.0)) is None
        assert tracker.process_state(ground(T0 + 660, lat=61.45)) == FlightEvent.LANDING

        history = temp_db.get_flight_history("a93270")
        assert len(history) == 1

        flight = history[0]
        assert flight["takeoff_time"] == T0 + 60
        assert flight["landing_time"] == T0 + 660
        assert flight["duration_seconds"] == 600
        assert flight["max_altitude"] == 1500.0
        assert flight["landing_latitude"] == 61.45
        assert flight["distance_km"] == pytest.approx(50.0, abs=0.2)

        assert len(tracker.active_flights) == 0

        output = capsys.readouterr().out
        assert "TAKEOFF detected for a93270" in output
        assert "LANDING detected for a93270" in output
        assert f"Flight {flight['id']} completed" in output

    def test_every_record_is_persisted(self, tracker, temp_db):
        tracker.process_state(ground(T0))
        tracker.process_state(ground(T0 + 30))

        assert len(temp_db.get_positions("a93270")) == 2
        assert temp_db.get_current_state("a93270")["timestamp"] == T0 + 30

    def test_duplicate_record_is_idempotent(self, tracker, temp_db):
        tracker.process_state(ground(T0))
        tracker.process_state(airborne(T0 + 60))
        tracker.process_state(airborne(T0 + 120, lat=61.1))

        flight_before = temp_db.get_active_flight("a93270")
        assert tracker.process_state(airborne(T0 + 120, lat=61.1)) is None
        flight_after = temp_db.get_active_flight("a93270")

        assert flight_after["id"] == flight_before["id"]
        assert flight_after["distance_km"] == pytest.approx(flight_before["distance_km"])
        assert flight_after["max_altitude"] == flight_before["max_altitude"]

    def test_unknown_ground_state_is_stored_without_event(self, tracker, temp_db):
        tracker.process_state(ground(T0))
        record = airborne(T0 + 60)
        record.on_ground = None

        assert tracker.process_state(record) is None
        assert temp_db.get_active_flight("a93270") is None
        assert temp_db.get_current_state("a93270")["on_ground"] is None

    def test_landing_after_unknown_ground_state(self, tracker, temp_db):
        """An unknown sample in flight does not hide the landing."""
        tracker.process_state(ground(T0))
        assert tracker.process_state(airborne(T0 + 60)) == FlightEvent.TAKEOFF
        unknown = airborne(T0 + 300, lat=61.1)
        unknown.on_ground = None
        assert tracker.process_state(unknown) is None

        assert tracker.process_state(ground(T0 + 600, lat=61.2)) == FlightEvent.LANDING

        history = temp_db.get_flight_history("a93270")
        assert len(history) == 1
        assert history[0]["duration_seconds"] == 540

        assert tracker.process_state(airborne(T0 + 900)) == FlightEvent.TAKEOFF
        open_flight = temp_db.get_active_flight("a93270")
        assert open_flight["id"] != history[0]["id"]
        assert len(temp_db.get_flight_history("a93270")) == 1

    def test_unknown_state_without_open_flight_can_open_one(self, tracker, temp_db):
        temp_db.update_current_state("a93270", T0, 61.0, -150.0, None, None, None, None)

        assert tracker.process_state(airborne(T0 + 60)) == FlightEvent.AIRBORNE_FIRST_SEEN
        assert temp_db.get_active_flight("a93270") is not None

    def test_takeoff_reports_unclosed_flight(self, tracker, temp_db, capsys):
        stale_id = temp_db.create_flight("a93270", T0 - 3600, 61.0, -150.0, 500.0)
        temp_db.update_current_state("a93270", T0, 61.0, -150.0, 5.0, 2.0, 0.0, True)

        assert tracker.process_state(airborne(T0 + 60)) == FlightEvent.TAKEOFF

        new_flight = temp_db.get_active_flight("a93270")
        assert new_flight["id"] != stale_id
        assert tracker.active_flights.get("a93270") == new_flight["id"]
        assert f"Flight {stale_id} of a93270 is still open" in capsys.readouterr().out

    def test_out_of_range_coordinates_are_skipped(self, tracker, temp_db, capsys):
        record = airborne(T0)
        record.latitude = 100.0

        assert tracker.process_state(record) is None
        assert temp_db.get_current_state("a93270") is None
        assert temp_db.get_positions("a93270") == []
        assert "invalid coordinates" in capsys.readouterr().out

    def test_first_seen_airborne_opens_flight(self, tracker, temp_db, capsys):
        assert tracker.process_state(airborne(T0)) == FlightEvent.AIRBORNE_FIRST_SEEN

        flight = temp_db.get_active_flight("a93270")
        assert flight["takeoff_time"] == T0
        assert tracker.active_flights.get("a93270") == flight["id"]
        assert "already airborne" in capsys.readouterr().out

    def test_first_seen_airborne_reuses_open_flight(self, tracker, temp_db):
        flight_id = temp_db.create_flight("a93270", T0 - 600, 61.0, -150.0, 500.0)

        assert tracker.process_state(airborne(T0)) is None

        assert temp_db.get_active_flight("a93270")["id"] == flight_id
        assert len(temp_db.get_flight_history("a93270")) == 0

    def test_landing_without_open_flight(self, tracker, temp_db, capsys):
        temp_db.update_current_state("a93270", T0, 61.0, -150.0, 600.0, 60.0, 0.0, False)

        assert tracker.process_state(ground(T0 + 60)) == FlightEvent.LANDING

        assert temp_db.get_flight_history("a93270") == []
        assert "No active flight found for a93270" in capsys.readouterr().out

    def test_missing_position_is_skipped(self, tracker, temp_db, capsys):
        record = airborne(T0)
        record.latitude = None

        assert tracker.process_state(record) is None
        assert temp_db.get_current_state("a93270") is None
        assert temp_db.get_positions("a93270") == []
        assert "missing position data" in capsys.readouterr().out

    def test_out_of_order_record_is_dropped(self, tracker, temp_db):
        tracker.process_state(ground(T0 + 60))

        assert tracker.process_state(airborne(T0)) is None

        assert temp_db.get_current_state("a93270")["timestamp"] == T0 + 60
        assert temp_db.get_active_flight("a93270") is None

    def test_out_of_order_accepted_when_disabled(self, temp_db):
        tracker = FlightTracker(temp_db, ActiveFlightIndex(temp_db), reject_out_of_order=False)
        tracker.process_state(ground(T0 + 60))

        assert tracker.process_state(airborne(T0)) == FlightEvent.TAKEOFF

    def test_ongoing_flight_tracks_max_altitude(self, tracker, temp_db):
        tracker.process_state(ground(T0))
        tracker.process_state(airborne(T0 + 60, altitude=600.0))
        tracker.process_state(airborne(T0 + 120, altitude=2000.0))
        tracker.process_state(airborne(T0 + 180, altitude=1200.0))

        assert temp_db.get_active_flight("a93270")["max_altitude"] == 2000.0

    def test_restart_resumes_open_flight(self, db_path):
        """After a restart the landing closes the flight opened before it."""
        db = FlightDatabase(db_path)
        first = FlightTracker(db, ActiveFlightIndex(db))
        first.process_state(ground(T0))
        first.process_state(airborne(T0 + 60))
        flight_id = db.get_active_flight("a93270")["id"]

        db = FlightDatabase(db_path)
        index = ActiveFlightIndex(db)
        assert index.rehydrate(["a93270"]) == 1
        second = FlightTracker(db, index)

        assert second.process_state(ground(T0 + 900, lat=61.1)) == FlightEvent.LANDING

        flight = db.get_flight_by_id(flight_id)
        assert flight["landing_time"] == T0 + 900
        assert flight["duration_seconds"] == 840
        assert db.get_active_flight("a93270") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
