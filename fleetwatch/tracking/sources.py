"""
FleetWatch Data Sources

Adapters that fetch aircraft telemetry from one source and normalize it into
StateRecord objects (meters, m/s, lowercase ICAO24). Priority order used by
the fetcher: local dump1090/readsb receiver, adsb.lol, OpenSky Network.
"""

import time
import requests
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from .client import OpenSkyClient
from .constants import (
    ADSB_LOL_BASE_URL,
    ADSB_LOL_MAX_WORKERS,
    ADSB_LOL_TIMEOUT,
    DEFAULT_API_TIMEOUT,
    DUMP1090_URL,
    LOCAL_RECEIVER_TIMEOUT,
    OPENSKY_API_URL,
    SOURCE_ADSB_LOL,
    SOURCE_DUMP1090,
    SOURCE_OPENSKY,
    USER_AGENT,
)
from .errors import DataError, RateLimited, TransportError, UpstreamError
from .models import SourceResult, StateRecord, Thresholds
from .utils import (
    feet_to_meters,
    fpm_to_ms,
    knots_to_ms,
    normalize_icao24,
    parse_state_vector,
)


def infer_on_ground(explicit: Optional[bool], altitude_m: Optional[float],
                    speed_ms: Optional[float], thresholds: Thresholds,
                    reported: Optional[bool] = None) -> Optional[bool]:
    """
    Derive the on-ground flag for a record.

    Args:
        explicit: Ground flag sent by the source, if any
        altitude_m: Altitude in meters
        speed_ms: Ground speed in m/s
        thresholds: Shared takeoff thresholds
        reported: Value to fall back to when the heuristic does not apply

    Returns:
        True/False, or None if the state cannot be determined
    """
    if explicit is not None:
        return bool(explicit)

    if thresholds.looks_on_ground(altitude_m, speed_ms):
        return True

    return reported


def _first_present(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _strip(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coordinate(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class StateSource:
    """Base class for telemetry sources."""

    name = "source"

    def __init__(self, thresholds: Optional[Thresholds] = None):
        self.thresholds = thresholds or Thresholds()

    def fetch(self, icao24s: Iterable[str]) -> SourceResult:
        """Fetch and normalize states for the given aircraft."""
        raise NotImplementedError

    def normalize(self, raw: Any, timestamp: Optional[float]) -> StateRecord:
        """Convert one raw source record into a StateRecord."""
        raise NotImplementedError


class ReadsbSource(StateSource):
    """
    Shared normalization for readsb/dump1090-style JSON.

    Altitudes are feet (``alt_baro`` may be the string "ground"), speeds
    knots, vertical rates feet per minute.
    """

    def normalize(self, raw: Dict[str, Any], timestamp: Optional[float]) -> StateRecord:
        icao24 = raw.get('hex')
        if not icao24:
            raise DataError("record without hex address")

        alt_baro = raw.get('alt_baro')
        altitude = feet_to_meters(_first_present(raw, 'alt_baro', 'altitude'))
        if alt_baro == 'ground':
            altitude = None

        velocity = knots_to_ms(_first_present(raw, 'gs', 'speed'))
        geo_altitude = feet_to_meters(raw.get('alt_geom'))

        # A numeric barometric altitude is the transponder reporting airborne
        if alt_baro == 'ground' or raw.get('ground') is True:
            explicit = True
        else:
            explicit = None
        reported = False if altitude is not None else None

        if timestamp is None:
            timestamp = time.time()
        seen = _first_present(raw, 'seen_pos', 'seen')
        try:
            observed = float(timestamp) - float(seen) if seen is not None else float(timestamp)
        except (TypeError, ValueError):
            observed = float(timestamp)

        return StateRecord(
            icao24=icao24,
            timestamp=int(observed),
            callsign=_strip(raw.get('flight')),
            origin_country=_strip(raw.get('flag')),
            latitude=_coordinate(raw.get('lat')),
            longitude=_coordinate(raw.get('lon')),
            altitude=altitude,
            on_ground=infer_on_ground(explicit, altitude, velocity, self.thresholds, reported),
            velocity=velocity,
            heading=_coordinate(_first_present(raw, 'track', 'true_heading')),
            vertical_rate=fpm_to_ms(_first_present(raw, 'baro_rate', 'vert_rate', 'geom_rate')),
            geo_altitude=geo_altitude,
            squawk=_strip(raw.get('squawk')),
            category=raw.get('category'),
            source=self.name,
        )


class Dump1090Source(ReadsbSource):
    """Local dump1090-fa / readsb receiver (all visible aircraft in one response)."""

    name = SOURCE_DUMP1090

    def __init__(self, url: str = DUMP1090_URL, timeout: float = LOCAL_RECEIVER_TIMEOUT,
                 thresholds: Optional[Thresholds] = None):
        super().__init__(thresholds)
        self.url = url
        self.timeout = timeout

    def fetch(self, icao24s: Iterable[str]) -> SourceResult:
        wanted = frozenset(normalize_icao24(icao) for icao in icao24s)
        if not wanted:
            return SourceResult()

        try:
            response = requests.get(self.url, timeout=self.timeout)
        except requests.exceptions.Timeout:
            print(f"⚠️  Local receiver timeout after {self.timeout}s")
            return SourceResult(error=TransportError(
                f"timeout after {self.timeout}s", source=self.name
            ))
        except requests.exceptions.RequestException as e:
            print(f"⚠️  Error fetching from local receiver: {e}")
            return SourceResult(error=TransportError(str(e), source=self.name))

        if response.status_code != 200:
            print(f"⚠️  Local receiver returned HTTP {response.status_code}")
            return SourceResult(error=UpstreamError(
                f"HTTP {response.status_code}", source=self.name,
                status_code=response.status_code,
            ))

        try:
            data = response.json()
            aircraft = data.get('aircraft') or []
        except (ValueError, AttributeError) as e:
            print(f"⚠️  Error parsing local receiver data: {e}")
            return SourceResult(error=UpstreamError(
                "malformed response body", source=self.name
            ))

        now = data.get('now')
        records = []
        for raw in aircraft:
            if not isinstance(raw, dict) or not raw.get('hex'):
                continue
            if normalize_icao24(raw['hex']) not in wanted:
                continue
            try:
                records.append(self.normalize(raw, now))
            except (DataError, TypeError, ValueError) as e:
                print(f"⚠️  Skipping malformed local record {raw.get('hex')}: {e}")

        return SourceResult(records=records)


class AdsbLolSource(ReadsbSource):
    """adsb.lol community API, one request per aircraft."""

    name = SOURCE_ADSB_LOL

    def __init__(self, base_url: str = ADSB_LOL_BASE_URL, timeout: float = ADSB_LOL_TIMEOUT,
                 max_workers: int = ADSB_LOL_MAX_WORKERS,
                 thresholds: Optional[Thresholds] = None):
        super().__init__(thresholds)
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_workers = max_workers

    def _unwrap(self, icao24: str, data: Any) -> Optional[Dict[str, Any]]:
        """Accept both a bare aircraft object and the v2 {"ac": [...]} envelope."""
        if not isinstance(data, dict):
            return None
        if 'ac' in data:
            for entry in data.get('ac') or []:
                if isinstance(entry, dict) and normalize_icao24(entry.get('hex', '')) == icao24:
                    return entry
            return None
        if data.get('hex'):
            return data
        return None

    def fetch_one(self, icao24: str) -> Optional[StateRecord]:
        """
        Fetch a single aircraft.

        Returns:
            StateRecord, or None when the aircraft has no current data

        Raises:
            requests.exceptions.RequestException: On transport failure
            UpstreamError / RateLimited: On a non-404 error status
        """
        url = f"{self.base_url}/hex/{icao24}"
        response = requests.get(
            url,
            headers={'User-Agent': USER_AGENT},
            timeout=self.timeout,
        )

        # 404 is normal - aircraft not currently tracked
        if response.status_code == 404:
            return None
        if response.status_code == 429:
            raise RateLimited(source=self.name)
        if response.status_code != 200:
            raise UpstreamError(f"HTTP {response.status_code}", source=self.name,
                                status_code=response.status_code)

        raw = self._unwrap(icao24, response.json())
        if raw is None:
            return None

        return self.normalize(raw, time.time())

    def fetch(self, icao24s: Iterable[str]) -> SourceResult:
        wanted = sorted({normalize_icao24(icao) for icao in icao24s})
        if not wanted:
            return SourceResult()

        records: List[StateRecord] = []
        rate_limited: List[str] = []
        workers = max(1, min(self.max_workers, len(wanted)))

        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_icao = {
                executor.submit(self.fetch_one, icao24): icao24
                for icao24 in wanted
            }

            for future in as_completed(future_to_icao):
                icao24 = future_to_icao[future]
                try:
                    record = future.result()
                except requests.exceptions.RequestException as e:
                    print(f"⚠️  Error fetching {icao24} from adsb.lol: {e}")
                    continue
                except RateLimited as e:
                    print(f"⚠️  adsb.lol failed for {icao24}: {e}")
                    rate_limited.append(icao24)
                    continue
                except UpstreamError as e:
                    print(f"⚠️  adsb.lol failed for {icao24}: {e}")
                    continue
                except (DataError, TypeError, ValueError) as e:
                    print(f"⚠️  Invalid adsb.lol data for {icao24}: {e}")
                    continue

                if record is not None:
                    records.append(record)

        # as_completed yields in completion order
        records.sort(key=lambda record: record.icao24)

        # Records from requests that got through are still delivered
        error = None
        if rate_limited:
            print(f"⚠️  Rate limited by adsb.lol for {len(rate_limited)}/{len(wanted)} aircraft")
            error = RateLimited(source=self.name)

        return SourceResult(records=records, error=error)


class OpenSkySource(StateSource):
    """OpenSky Network state vectors (global coverage, rate limited)."""

    name = SOURCE_OPENSKY

    def __init__(self, client: OpenSkyClient, thresholds: Optional[Thresholds] = None):
        super().__init__(thresholds)
        self.client = client

    def normalize(self, raw: list, timestamp: Optional[float]) -> StateRecord:
        state = parse_state_vector(raw)
        if not state.get('icao24'):
            raise DataError("state vector without icao24")

        observed = _first_present(state, 'last_contact', 'time_position')
        if observed is None:
            observed = timestamp if timestamp is not None else time.time()

        altitude = _coordinate(state.get('baro_altitude'))
        velocity = _coordinate(state.get('velocity'))
        on_ground = state.get('on_ground')

        return StateRecord(
            icao24=state['icao24'],
            timestamp=int(observed),
            callsign=state.get('callsign'),
            origin_country=state.get('origin_country'),
            latitude=_coordinate(state.get('latitude')),
            longitude=_coordinate(state.get('longitude')),
            altitude=altitude,
            on_ground=infer_on_ground(
                on_ground if isinstance(on_ground, bool) else None,
                altitude, velocity, self.thresholds,
            ),
            velocity=velocity,
            heading=_coordinate(state.get('true_track')),
            vertical_rate=_coordinate(state.get('vertical_rate')),
            geo_altitude=_coordinate(state.get('geo_altitude')),
            squawk=state.get('squawk'),
            category=state.get('category'),
            source=self.name,
        )

    def fetch(self, icao24s: Iterable[str]) -> SourceResult:
        wanted: FrozenSet[str] = frozenset(normalize_icao24(icao) for icao in icao24s)
        if not wanted:
            return SourceResult()

        result = self.client.fetch_states(wanted)
        if not result.ok:
            return SourceResult(error=result.error)

        records = []
        for raw in result.states:
            try:
                record = self.normalize(raw, result.time)
            except (DataError, IndexError, TypeError, ValueError) as e:
                print(f"⚠️  Skipping malformed OpenSky state vector: {e}")
                continue
            if record.icao24 in wanted:
                records.append(record)

        return SourceResult(records=records)


def build_sources(config, auth=None) -> List[StateSource]:
    """
    Build the enabled sources in priority order.

    Args:
        config: FleetWatch Config object
        auth: OpenSky auth instance or None

    Returns:
        Sources ordered dump1090 -> adsb.lol -> OpenSky
    """
    thresholds = config.thresholds
    sources: List[StateSource] = []

    if config.get('sources.dump1090.enabled', False):
        sources.append(Dump1090Source(
            url=config.get('sources.dump1090.url', DUMP1090_URL),
            timeout=config.get('sources.dump1090.timeout_seconds', LOCAL_RECEIVER_TIMEOUT),
            thresholds=thresholds,
        ))

    if config.get('sources.adsb_lol.enabled', False):
        sources.append(AdsbLolSource(
            base_url=config.get('sources.adsb_lol.base_url', ADSB_LOL_BASE_URL),
            timeout=config.get('sources.adsb_lol.timeout_seconds', ADSB_LOL_TIMEOUT),
            max_workers=config.get('sources.adsb_lol.max_workers', ADSB_LOL_MAX_WORKERS),
            thresholds=thresholds,
        ))

    if config.get('sources.opensky.enabled', False):
        client = OpenSkyClient(
            auth=auth,
            api_url=config.get('sources.opensky.url', OPENSKY_API_URL),
            timeout=config.get('sources.opensky.timeout_seconds', DEFAULT_API_TIMEOUT),
        )
        sources.append(OpenSkySource(client, thresholds=thresholds))

    return sources
