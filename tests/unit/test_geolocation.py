"""Unit tests for the ipgeolocation.io client (mocked HTTP)."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
import requests

from geo_insights.providers.errors import GeolocationError
from geo_insights.providers.geolocation import IPGeolocationClient, is_valid_ip


def _response(payload: object, status_code: int = 200) -> Mock:
    resp = Mock(spec=requests.Response)
    resp.status_code = status_code
    resp.content = b"{}"
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


def _client(session: Mock) -> IPGeolocationClient:
    return IPGeolocationClient(api_key="key", base_url="https://geo.test/", session=session)


def test_locate_maps_api_fields() -> None:
    session = Mock(spec=requests.Session)
    session.headers = {}
    session.get.return_value = _response(
        {
            "country_name": "United States",
            "state_prov": "California",
            "city": "Mountain View",
            "latitude": "37.38605",
            "longitude": "-122.08385",
            "timezone_name": "America/Los_Angeles",
            "isp": "Google LLC",
        }
    )

    location = _client(session).locate("8.8.8.8")

    assert location.ip == "8.8.8.8"
    assert location.city == "Mountain View"
    assert location.region == "California"
    assert location.latitude == pytest.approx(37.38605)
    assert location.longitude == pytest.approx(-122.08385)
    assert location.timezone == "America/Los_Angeles"
    assert location.isp == "Google LLC"

    url = session.get.call_args.args[0]
    params = session.get.call_args.kwargs["params"]
    assert url == "https://geo.test/ipgeo"
    assert params["apiKey"] == "key"
    assert params["ip"] == "8.8.8.8"
    assert session.get.call_args.kwargs["timeout"] == 10.0


def test_locate_fills_defaults_for_missing_fields() -> None:
    session = Mock(spec=requests.Session)
    session.headers = {}
    session.get.return_value = _response({"latitude": "n/a"})

    location = _client(session).locate("1.1.1.1")

    assert location.city == "Unknown"
    assert location.country == "Unknown"
    assert location.latitude == 0.0
    assert location.timezone == "UTC"
    assert location.isp is None


def test_api_error_message_raises() -> None:
    session = Mock(spec=requests.Session)
    session.headers = {}
    session.get.return_value = _response({"message": "Invalid API key"}, status_code=401)

    with pytest.raises(GeolocationError, match="Geolocation API error: Invalid API key"):
        _client(session).locate("8.8.8.8")


def test_network_error_is_wrapped() -> None:
    session = Mock(spec=requests.Session)
    session.headers = {}
    session.get.side_effect = requests.ConnectionError("unreachable")

    with pytest.raises(GeolocationError, match="Failed to get location for IP 8.8.8.8"):
        _client(session).locate("8.8.8.8")


def test_invalid_ip_is_rejected_without_a_request() -> None:
    session = Mock(spec=requests.Session)
    session.headers = {}

    with pytest.raises(GeolocationError, match="Invalid IP address"):
        _client(session).locate("300.1.1.1")
    session.get.assert_not_called()


def test_api_key_is_required() -> None:
    with pytest.raises(ValueError):
        IPGeolocationClient(api_key=" ")


def test_is_valid_ip() -> None:
    assert is_valid_ip("8.8.8.8")
    assert is_valid_ip("2001:db8::1")
    assert not is_valid_ip("8.8.8")
    assert not is_valid_ip("example.com")
