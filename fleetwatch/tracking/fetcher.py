"""
FleetWatch Fleet Data Fetcher

Queries the configured sources in priority order. Each source is only asked
for the aircraft that no higher priority source has resolved yet, and a
resolved aircraft is never overwritten by a later source.
"""

from typing import Dict, FrozenSet, Iterable, List, Optional

from .errors import FetchError, TransportError
from .models import FleetSnapshot, SourceResult, StateRecord
from .sources import StateSource
from .utils import normalize_icao24


class FleetDataFetcher:
    """Merges telemetry from prioritized sources into one snapshot."""

    def __init__(self, sources: List[StateSource]):
        """
        Initialize fetcher.

        Args:
            sources: Sources ordered from highest to lowest priority.
                The last one is the fallback source.
        """
        self.sources = list(sources)

    def _fetch_source(self, source: StateSource, missing: FrozenSet[str]) -> SourceResult:
        try:
            return source.fetch(missing)
        except Exception as e:
            # Adapter bugs degrade to zero results for this source
            print(f"❌ Unexpected error from {source.name}: {e}")
            return SourceResult(error=TransportError(str(e), source=source.name))

    def fetch_fleet_snapshot(self, icao24s: Iterable[str]) -> FleetSnapshot:
        """
        Fetch the current state of every requested aircraft.

        Args:
            icao24s: ICAO24 addresses of the tracked fleet

        Returns:
            FleetSnapshot with one record per resolved aircraft, the number
            of aircraft resolved per source and the fallback source error
        """
        requested: FrozenSet[str] = frozenset(normalize_icao24(icao) for icao in icao24s)
        missing = requested

        resolved: Dict[str, StateRecord] = {}
        source_counts: Dict[str, int] = {source.name: 0 for source in self.sources}
        source_errors: Dict[str, FetchError] = {}
        fallback_error: Optional[FetchError] = None

        for position, source in enumerate(self.sources):
            is_fallback = position == len(self.sources) - 1

            if not missing:
                break

            print(f"🔄 Fetching {len(missing)} aircraft from {source.name}...")
            result = self._fetch_source(source, missing)

            if result.error is not None:
                source_errors[source.name] = result.error
                if is_fallback:
                    fallback_error = result.error

            accepted = []
            for record in result.records:
                if record.icao24 in missing and record.icao24 not in resolved:
                    resolved[record.icao24] = record
                    accepted.append(record.icao24)

            source_counts[source.name] = len(accepted)
            if accepted:
                print(f"✅ Found {len(accepted)} aircraft on {source.name}")

            missing = missing - frozenset(accepted)

        summary = ", ".join(f"{count} {name}" for name, count in source_counts.items())
        print(f"📡 Sources: {summary or 'none configured'}"
              f" | resolved {len(resolved)}/{len(requested)}")

        return FleetSnapshot(
            records=list(resolved.values()),
            source_counts=source_counts,
            error=fallback_error,
            source_errors=source_errors,
        )
