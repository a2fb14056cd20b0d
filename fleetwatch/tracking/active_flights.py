"""
FleetWatch Active Flight Index

In-memory cache of ICAO24 -> open flight ID. The database stays the source
of truth: a cache miss always falls back to a database lookup.
"""

from typing import Dict, Iterable, Optional

from .utils import normalize_icao24


class ActiveFlightIndex:
    """Cache of open flights, owned by one FlightTracker."""

    def __init__(self, db):
        """
        Initialize index.

        Args:
            db: Store providing get_active_flight() and get_flight_by_id()
        """
        self.db = db
        self._flights: Dict[str, int] = {}

    def get(self, icao24: str) -> Optional[int]:
        return self._flights.get(normalize_icao24(icao24))

    def set(self, icao24: str, flight_id: int):
        self._flights[normalize_icao24(icao24)] = flight_id

    def delete(self, icao24: str):
        self._flights.pop(normalize_icao24(icao24), None)

    def __contains__(self, icao24: str) -> bool:
        return normalize_icao24(icao24) in self._flights

    def __len__(self) -> int:
        return len(self._flights)

    def items(self):
        return self._flights.items()

    def rehydrate(self, icao24s: Iterable[str]) -> int:
        """
        Load open flights from the database, typically once at startup.

        Args:
            icao24s: Tracked aircraft

        Returns:
            Number of open flights found
        """
        resumed = 0
        for icao24 in icao24s:
            icao24 = normalize_icao24(icao24)
            flight = self.db.get_active_flight(icao24)
            if flight:
                self._flights[icao24] = flight['id']
                resumed += 1
                print(f"🔄 Resumed tracking flight {flight['id']} for {icao24}")
        return resumed

    def resolve(self, icao24: str) -> Optional[Dict]:
        """
        Get the open flight row of an aircraft.

        Uses the cached ID first and falls back to the database when the
        cache has no entry or the cached flight was closed elsewhere.

        Returns:
            Flight dictionary or None
        """
        icao24 = normalize_icao24(icao24)
        flight_id = self._flights.get(icao24)

        if flight_id is not None:
            flight = self.db.get_flight_by_id(flight_id)
            if flight and flight.get('landing_time') is None:
                return flight
            # Closed by another process instance
            self._flights.pop(icao24, None)

        flight = self.db.get_active_flight(icao24)
        if flight:
            self._flights[icao24] = flight['id']
        return flight
