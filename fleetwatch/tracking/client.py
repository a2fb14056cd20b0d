"""
OpenSky Network API Client

Batch state-vector lookups for a list of ICAO24 addresses. Failures are
returned as error values inside a FetchResult, never raised, and a 429 is
never retried within the same poll cycle.
"""

import requests
from typing import Any, Dict, Iterable, Optional

from .constants import (
    OPENSKY_API_URL,
    OPENSKY_FLIGHTS_URL,
    DEFAULT_API_TIMEOUT,
    RATE_LIMIT_REMAINING_HEADER,
    RATE_LIMIT_RETRY_HEADER,
    SOURCE_OPENSKY,
)
from .errors import AuthError, RateLimited, TransportError, UpstreamError
from .models import FetchResult
from .utils import normalize_icao24


def _parse_retry_after(response: requests.Response) -> Optional[int]:
    """Read the retry hint from OpenSky's header or the standard Retry-After."""
    for header in (RATE_LIMIT_RETRY_HEADER, 'Retry-After'):
        value = response.headers.get(header)
        if value is None:
            continue
        try:
            return int(float(value))
        except (TypeError, ValueError):
            continue
    return None


class OpenSkyClient:
    """Client for the OpenSky Network REST API."""

    def __init__(self, auth=None, api_url: str = OPENSKY_API_URL,
                 timeout: int = DEFAULT_API_TIMEOUT,
                 flights_url: str = OPENSKY_FLIGHTS_URL):
        """
        Initialize OpenSky client.

        Args:
            auth: OpenSkyAuth / OpenSkyBasicAuth instance, or None for anonymous
            api_url: State vector endpoint
            timeout: Request timeout in seconds
            flights_url: Flight history endpoint
        """
        self.auth = auth
        self.api_url = api_url
        self.timeout = timeout
        self.flights_url = flights_url
        self.rate_limit_count = 0
        self.last_rate_limit_remaining = None

    @property
    def auth_mode(self) -> str:
        if self.auth is None:
            return "Anonymous"
        return getattr(self.auth, 'mode', 'OAuth2')

    def _get(self, url: str, params: Any) -> requests.Response:
        """
        Send a GET, authenticated when credentials are configured.

        A failed token request degrades to an anonymous request.
        """
        if self.auth is not None:
            try:
                return self.auth.make_authenticated_request(
                    url, params=params, timeout=self.timeout
                )
            except AuthError as e:
                print(f"⚠️  OpenSky authentication failed, using anonymous access: {e}")

        return requests.get(url, params=params, timeout=self.timeout)

    def _request(self, url: str, params: Any) -> FetchResult:
        """Run one request and convert every failure into a FetchResult error."""
        try:
            response = self._get(url, params)
        except requests.exceptions.Timeout:
            print(f"⚠️  OpenSky API request timeout after {self.timeout}s")
            return FetchResult(error=TransportError(
                f"timeout after {self.timeout}s", source=SOURCE_OPENSKY
            ))
        except requests.exceptions.RequestException as e:
            print(f"❌ Error fetching OpenSky data: {e}")
            return FetchResult(error=TransportError(str(e), source=SOURCE_OPENSKY))

        remaining = response.headers.get(RATE_LIMIT_REMAINING_HEADER)
        if remaining is not None:
            self.last_rate_limit_remaining = remaining
            print(f"ℹ️  OpenSky API rate limit remaining: {remaining}")

        if response.status_code == 429:
            self.rate_limit_count += 1
            retry_after = _parse_retry_after(response)
            print(f"⚠️  Rate limited by OpenSky Network (429), retry after {retry_after}s")
            if self.auth is None:
                print("   💡 Tip: Set up OAuth2 authentication for better limits")
            return FetchResult(error=RateLimited(retry_after, source=SOURCE_OPENSKY))

        if response.status_code < 200 or response.status_code >= 300:
            print(f"❌ OpenSky API error: HTTP {response.status_code}")
            return FetchResult(error=UpstreamError(
                f"HTTP {response.status_code}",
                source=SOURCE_OPENSKY,
                status_code=response.status_code,
            ))

        try:
            data = response.json()
        except ValueError as e:
            print(f"❌ Error parsing OpenSky response: {e}")
            return FetchResult(error=UpstreamError(
                "malformed response body", source=SOURCE_OPENSKY,
                status_code=response.status_code,
            ))

        self.rate_limit_count = 0
        return FetchResult(payload=data)

    def fetch_states(self, icao24s: Iterable[str]) -> FetchResult:
        """
        Fetch current state vectors for the given aircraft.

        Args:
            icao24s: ICAO24 addresses (any case)

        Returns:
            FetchResult with raw state vectors (lists) and the server time
        """
        icao24_list = sorted({normalize_icao24(icao) for icao in icao24s})
        if not icao24_list:
            return FetchResult()

        result = self._request(self.api_url, {'icao24': icao24_list})
        if not result.ok:
            return result

        data = result.payload
        if not isinstance(data, dict):
            print("❌ Error parsing OpenSky response: unexpected payload")
            return FetchResult(error=UpstreamError(
                "malformed response body", source=SOURCE_OPENSKY
            ))

        states = data.get('states')
        if not states:
            print("ℹ️  No aircraft states received from OpenSky")
            return FetchResult(states=[], time=data.get('time'))

        if not isinstance(states, list):
            return FetchResult(error=UpstreamError(
                "malformed response body", source=SOURCE_OPENSKY
            ))

        return FetchResult(states=states, time=data.get('time'))

    def fetch_aircraft_flights(self, icao24: str, begin: int, end: int) -> FetchResult:
        """
        Fetch flight history of one aircraft between two Unix timestamps.

        Returns:
            FetchResult whose payload is the list of flight dictionaries from OpenSky
        """
        params: Dict[str, Any] = {
            'icao24': normalize_icao24(icao24),
            'begin': int(begin),
            'end': int(end),
        }
        result = self._request(self.flights_url, params)
        if not result.ok:
            return result

        # OpenSky answers 404 for "no flights", handled above as UpstreamError
        flights = result.payload if isinstance(result.payload, list) else []
        return FetchResult(payload=flights)
