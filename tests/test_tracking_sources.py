"""
Tests for FleetWatch data source adapters.
"""

import pytest
import sys
import requests
from pathlib import Path
from unittest.mock import Mock, patch

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleetwatch.tracking.config import Config
from fleetwatch.tracking.errors import RateLimited, TransportError, UpstreamError
from fleetwatch.tracking.models import FetchResult, Thresholds
from fleetwatch.tracking.sources import (
    AdsbLolSource,
    Dump1090Source,
    OpenSkySource,
    build_sources,
    infer_on_ground,
)


def make_response(status_code=200, payload=None):
    response = Mock()
    response.status_code = status_code
    response.headers = {}
    response.json.return_value = payload
    return response


@pytest.fixture
def receiver_payload():
    """dump1090-fa aircraft.json with one airborne, one taxiing, one foreign aircraft."""
    return {
        "now": 1700000000.5,
        "aircraft": [
            {
                "hex": "A93270",
                "flight": "N692DA  ",
                "alt_baro": 3000,
                "alt_geom": 3100,
                "gs": 120,
                "track": 270.0,
                "baro_rate": 640,
                "lat": 61.2181,
                "lon": -149.9003,
                "squawk": "1200",
                "category": "A1",
                "seen_pos": 2.5,
            },
            {
                "hex": "a939de",
                "alt_baro": "ground",
                "gs": 8,
                "lat": 61.17,
                "lon": -150.0,
            },
            {"hex": "ffffff", "alt_baro": 35000, "gs": 450, "lat": 60.0, "lon": -151.0},
        ],
    }


class TestInferOnGround:
    """Tests for the shared ground heuristic."""

    def test_explicit_flag_wins(self):
        assert infer_on_ground(False, 10.0, 3.0, Thresholds()) is False
        assert infer_on_ground(True, 3000.0, 100.0, Thresholds()) is True

    def test_low_and_slow_is_ground(self):
        assert infer_on_ground(None, 10.0, 3.0, Thresholds()) is True

    def test_falls_back_to_reported(self):
        assert infer_on_ground(None, 3000.0, 100.0, Thresholds(), reported=False) is False
        assert infer_on_ground(None, None, None, Thresholds()) is None

    def test_uses_configured_thresholds(self):
        thresholds = Thresholds(takeoff_altitude_m=200.0, takeoff_speed_ms=30.0)
        assert infer_on_ground(None, 150.0, 25.0, thresholds) is True


class TestDump1090Source:
    """Tests for the local receiver adapter."""

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_fetch_filters_and_normalizes(self, mock_get, receiver_payload):
        mock_get.return_value = make_response(200, receiver_payload)

        source = Dump1090Source(url="http://receiver/aircraft.json")
        result = source.fetch(["a93270", "a939de"])

        assert result.error is None
        assert [record.icao24 for record in result.records] == ["a93270", "a939de"]

        airborne = result.records[0]
        assert airborne.source == "dump1090"
        assert airborne.callsign == "N692DA"
        assert airborne.altitude == pytest.approx(914.4)
        assert airborne.geo_altitude == pytest.approx(944.88)
        assert airborne.velocity == pytest.approx(61.73328)
        assert airborne.vertical_rate == pytest.approx(3.2512)
        assert airborne.heading == 270.0
        assert airborne.on_ground is False
        assert airborne.timestamp == 1699999998
        assert airborne.squawk == "1200"

        taxiing = result.records[1]
        assert taxiing.on_ground is True
        assert taxiing.altitude is None

        assert mock_get.call_args[1]["timeout"] == 5

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_ground_flag(self, mock_get):
        mock_get.return_value = make_response(200, {"now": 1700000000, "aircraft": [
            {"hex": "a93270", "ground": True, "gs": 40, "lat": 61.2, "lon": -149.9},
        ]})

        result = Dump1090Source().fetch(["a93270"])

        assert result.records[0].on_ground is True

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_no_altitude_means_unknown(self, mock_get):
        mock_get.return_value = make_response(200, {"now": 1700000000, "aircraft": [
            {"hex": "a93270", "gs": 40, "lat": 61.2, "lon": -149.9},
        ]})

        result = Dump1090Source().fetch(["a93270"])

        assert result.records[0].on_ground is None

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_timeout(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout()

        result = Dump1090Source().fetch(["a93270"])

        assert result.records == []
        assert isinstance(result.error, TransportError)

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_http_error(self, mock_get):
        mock_get.return_value = make_response(500)

        result = Dump1090Source().fetch(["a93270"])

        assert isinstance(result.error, UpstreamError)
        assert result.error.status_code == 500

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_malformed_body(self, mock_get):
        response = make_response(200)
        response.json.side_effect = ValueError("bad json")
        mock_get.return_value = response

        result = Dump1090Source().fetch(["a93270"])

        assert isinstance(result.error, UpstreamError)

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_empty_request_makes_no_call(self, mock_get):
        result = Dump1090Source().fetch([])

        assert result.records == []
        mock_get.assert_not_called()


class TestAdsbLolSource:
    """Tests for the adsb.lol adapter."""

    def _route(self, responses):
        def side_effect(url, headers=None, timeout=None):
            icao24 = url.rsplit("/", 1)[-1]
            response = responses[icao24]
            if isinstance(response, Exception):
                raise response
            return response
        return side_effect

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_fetch_envelope_and_bare_object(self, mock_get):
        responses = {
            "a93270": make_response(200, {"ac": [
                {"hex": "a93270", "alt_baro": 5000, "gs": 150, "lat": 61.3, "lon": -149.8},
            ]}),
            "a939de": make_response(200, {
                "hex": "a939de", "alt_baro": 2000, "gs": 100, "lat": 61.4, "lon": -149.7,
            }),
        }
        mock_get.side_effect = self._route(responses)

        result = AdsbLolSource().fetch(["a939de", "a93270"])

        assert result.error is None
        assert [record.icao24 for record in result.records] == ["a93270", "a939de"]
        assert all(record.source == "adsb.lol" for record in result.records)
        assert result.records[0].altitude == pytest.approx(1524.0)

        urls = sorted(call[0][0] for call in mock_get.call_args_list)
        assert urls == [
            "https://api.adsb.lol/v2/hex/a93270",
            "https://api.adsb.lol/v2/hex/a939de",
        ]
        assert mock_get.call_args[1]["headers"]["User-Agent"] == "FleetWatch/1.0"

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_404_is_not_an_error(self, mock_get):
        mock_get.return_value = make_response(404)

        result = AdsbLolSource().fetch(["a93270"])

        assert result.records == []
        assert result.error is None

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_empty_envelope(self, mock_get):
        mock_get.return_value = make_response(200, {"ac": [], "total": 0})

        result = AdsbLolSource().fetch(["a93270"])

        assert result.records == []

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_one_failure_does_not_drop_others(self, mock_get, capsys):
        responses = {
            "a93270": requests.exceptions.ConnectionError("reset"),
            "a939de": make_response(200, {
                "hex": "a939de", "alt_baro": 2000, "gs": 100, "lat": 61.4, "lon": -149.7,
            }),
            "abc123": make_response(429),
        }
        mock_get.side_effect = self._route(responses)

        result = AdsbLolSource(max_workers=2).fetch(["a93270", "a939de", "abc123"])

        assert [record.icao24 for record in result.records] == ["a939de"]
        output = capsys.readouterr().out
        assert "Error fetching a93270 from adsb.lol" in output
        assert "abc123" in output

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_fetch_one_rate_limited(self, mock_get):
        mock_get.return_value = make_response(429)

        with pytest.raises(RateLimited):
            AdsbLolSource().fetch_one("a93270")

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_rate_limited_requests_are_reported(self, mock_get, capsys):
        responses = {
            "a93270": make_response(429),
            "a939de": make_response(200, {
                "hex": "a939de", "alt_baro": 2000, "gs": 100, "lat": 61.4, "lon": -149.7,
            }),
        }
        mock_get.side_effect = self._route(responses)

        result = AdsbLolSource(max_workers=2).fetch(["a93270", "a939de"])

        assert [record.icao24 for record in result.records] == ["a939de"]
        assert isinstance(result.error, RateLimited)
        assert result.error.source == "adsb.lol"
        assert "Rate limited by adsb.lol for 1/2 aircraft" in capsys.readouterr().out

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_all_rate_limited(self, mock_get):
        mock_get.return_value = make_response(429)

        result = AdsbLolSource().fetch(["a93270", "a939de"])

        assert result.records == []
        assert isinstance(result.error, RateLimited)

    @patch("fleetwatch.tracking.sources.requests.get")
    def test_upstream_failure_is_not_rate_limiting(self, mock_get):
        mock_get.return_value = make_response(500)

        result = AdsbLolSource().fetch(["a93270"])

        assert result.records == []
        assert result.error is None


class TestOpenSkySource:
    """Tests for the OpenSky adapter."""

    def test_normalize_and_filter(self):
        client = Mock()
        client.fetch_states.return_value = FetchResult(
            states=[
                ["a93270", "N692DA  ", "United States", 1699999998, 1699999999,
                 -149.9003, 61.2181, 1200.0, False, 70.5, 270.0, 2.5, None, 1250.0, "1200"],
                ["ffffff", "OTHER", "Canada", 1699999998, 1699999999,
                 -150.0, 61.0, 9000.0, False, 200.0, 0.0, 0.0, None, None, None],
            ],
            time=1700000000,
        )

        result = OpenSkySource(client).fetch(["a93270"])

        assert len(result.records) == 1
        record = result.records[0]
        assert record.icao24 == "a93270"
        assert record.timestamp == 1699999999
        assert record.altitude == 1200.0
        assert record.on_ground is False
        assert record.heading == 270.0
        assert record.source == "opensky"

    def test_ground_heuristic_when_flag_missing(self):
        client = Mock()
        client.fetch_states.return_value = FetchResult(
            states=[["a93270", None, "United States", None, None,
                     -149.9, 61.2, 10.0, None, 3.0, 0.0, 0.0]],
            time=1700000000,
        )

        result = OpenSkySource(client).fetch(["a93270"])

        assert result.records[0].on_ground is True
        assert result.records[0].timestamp == 1700000000

    def test_client_error_is_passed_on(self):
        client = Mock()
        client.fetch_states.return_value = FetchResult(error=RateLimited(60, source="opensky"))

        result = OpenSkySource(client).fetch(["a93270"])

        assert result.records == []
        assert isinstance(result.error, RateLimited)

    def test_malformed_vector_is_skipped(self, capsys):
        client = Mock()
        client.fetch_states.return_value = FetchResult(states=[["a93270"]], time=1700000000)

        result = OpenSkySource(client).fetch(["a93270"])

        assert result.records == []
        assert result.error is None
        assert "malformed" in capsys.readouterr().out


class TestBuildSources:
    """Tests for building sources from the configuration."""

    def test_default_order(self):
        config = Config()
        config.set("sources.dump1090.enabled", True)

        sources = build_sources(config)

        assert [source.name for source in sources] == ["dump1090", "adsb.lol", "opensky"]

    def test_disabled_sources_are_skipped(self):
        config = Config()
        config.set("sources.adsb_lol.enabled", False)

        sources = build_sources(config)

        assert [source.name for source in sources] == ["opensky"]

    def test_thresholds_shared(self):
        config = Config()
        config.set("tracking.thresholds.takeoff_altitude_m", 120)

        sources = build_sources(config)

        assert all(source.thresholds.takeoff_altitude_m == 120.0 for source in sources)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
