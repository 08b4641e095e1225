import pytest
import requests

from routewise.tools.directions import DirectionsOptions, GoogleDirectionsClient
from routewise.tools.geocoding import GoogleGeocodingClient
from routewise.utils.config import settings
from routewise.utils.exceptions import (
    ConfigurationError,
    LocationNotFoundError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    RequestDeniedError,
)


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        return self.payload


class FakeSession:
    """Returns (or raises) the queued outcomes in order and records every GET."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append({"url": url, "params": params, "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def directions_payload(*legs):
    return {
        "status": "OK",
        "routes": [{
            "legs": [
                {
                    "distance": {"value": meters, "text": f"{meters // 1000} km"},
                    "duration": {"value": seconds, "text": "some time"},
                    "start_address": start,
                    "end_address": end,
                }
                for start, end, meters, seconds in legs
            ]
        }],
    }


def status(name, message=None):
    payload = {"status": name, "routes": [], "results": []}
    if message:
        payload["error_message"] = message
    return FakeResponse(payload)


@pytest.fixture
def delays():
    return []


def directions_client(session, delays):
    return GoogleDirectionsClient(api_key="test-key", session=session, timeout=5, sleep=delays.append)


def geocoding_client(session, delays):
    return GoogleGeocodingClient(api_key="test-key", session=session, timeout=5, sleep=delays.append)


def test_compute_leg_parses_distance_and_duration(delays):
    session = FakeSession(FakeResponse(directions_payload(("Lyon, France", "Marseille, France", 315000, 11700))))

    leg = directions_client(session, delays).compute_leg("Lyon", "Marseille")

    assert leg.origin == "Lyon, France"
    assert leg.destination == "Marseille, France"
    assert leg.distance_km == 315
    assert leg.duration_hours == pytest.approx(3.25)
    assert leg.distance_text == "315 km"
    assert leg.route_id

    params = session.requests[0]["params"]
    assert params["origin"] == "Lyon"
    assert params["destination"] == "Marseille"
    assert params["mode"] == "driving"
    assert params["key"] == "test-key"
    assert session.requests[0]["timeout"] == 5


def test_waypoint_legs_are_summed(delays):
    session = FakeSession(FakeResponse(directions_payload(
        ("Lyon, France", "Avignon, France", 230000, 8000),
        ("Avignon, France", "Marseille, France", 100000, 4000),
    )))

    leg = directions_client(session, delays).compute_leg(
        "Lyon", "Marseille", DirectionsOptions(waypoints=["Avignon"], avoid=["tolls", "unpaved"])
    )

    assert leg.distance_km == 330
    assert leg.duration_hours == pytest.approx(12000 / 3600)
    assert leg.destination == "Marseille, France"
    params = session.requests[0]["params"]
    assert params["waypoints"] == "Avignon"
    assert params["avoid"] == "tolls"


def test_identical_responses_give_identical_route_ids(delays):
    body = directions_payload(("Lyon, France", "Nice, France", 470000, 16000))
    client = directions_client(FakeSession(FakeResponse(body), FakeResponse(body)), delays)

    assert client.compute_leg("Lyon", "Nice").route_id == client.compute_leg("Lyon", "Nice").route_id


@pytest.mark.parametrize("name, error", [
    ("ZERO_RESULTS", LocationNotFoundError),
    ("NOT_FOUND", LocationNotFoundError),
    ("REQUEST_DENIED", RequestDeniedError),
    ("INVALID_REQUEST", ProviderError),
])
def test_statuses_map_to_errors(delays, name, error):
    session = FakeSession(status(name, "details"))

    with pytest.raises(error):
        directions_client(session, delays).compute_leg("Lyon", "Atlantis")
    assert len(session.requests) == 1


def test_denied_message_mentions_the_api_key(delays):
    with pytest.raises(RequestDeniedError) as excinfo:
        directions_client(FakeSession(status("REQUEST_DENIED")), delays).compute_leg("Lyon", "Nice")
    assert "API key" in excinfo.value.message


def test_quota_errors_are_retried(delays):
    session = FakeSession(
        status("OVER_QUERY_LIMIT"),
        status("OVER_QUERY_LIMIT"),
        FakeResponse(directions_payload(("Lyon, France", "Nice, France", 470000, 16000))),
    )

    leg = directions_client(session, delays).compute_leg("Lyon", "Nice")

    assert leg.distance_km == 470
    assert delays == [0.5, 1.0]


def test_quota_exhaustion_raises_rate_limit_error(delays):
    session = FakeSession(*[status("OVER_QUERY_LIMIT")] * 3)

    with pytest.raises(ProviderRateLimitError):
        directions_client(session, delays).compute_leg("Lyon", "Nice")
    assert len(session.requests) == 3


def test_timeouts_become_provider_timeouts(delays):
    session = FakeSession(*[requests.exceptions.Timeout("read timed out")] * 3)

    with pytest.raises(ProviderTimeoutError):
        directions_client(session, delays).compute_leg("Lyon", "Nice")


def test_http_errors_are_not_retried(delays):
    session = FakeSession(FakeResponse({}, status_code=500))

    with pytest.raises(ProviderError):
        directions_client(session, delays).compute_leg("Lyon", "Nice")
    assert delays == []


def test_missing_api_key_is_a_configuration_error(monkeypatch):
    monkeypatch.setattr(settings, "google_maps_api_key", None)

    with pytest.raises(ConfigurationError):
        GoogleDirectionsClient()


def test_geocode_returns_first_result_with_coordinates(delays):
    session = FakeSession(FakeResponse({
        "status": "OK",
        "results": [
            {"formatted_address": "No geometry"},
            {
                "formatted_address": "Mount Fitz Roy, Santa Cruz, Argentina",
                "geometry": {"location": {"lat": -49.2714, "lng": -73.0431}},
                "types": ["natural_feature"],
                "place_id": "abc",
            },
        ],
    }))

    result = geocoding_client(session, delays).geocode("Mount Fitz Roy")

    assert result.coordinates == (-49.2714, -73.0431)
    assert result.types == ["natural_feature"]
    assert session.requests[0]["params"]["address"] == "Mount Fitz Roy"


def test_geocode_without_coordinates_is_not_found(delays):
    session = FakeSession(FakeResponse({"status": "OK", "results": [{"formatted_address": "Nowhere"}]}))

    with pytest.raises(LocationNotFoundError):
        geocoding_client(session, delays).geocode("Nowhere")


def test_reverse_geocode_restricts_result_types(delays):
    session = FakeSession(FakeResponse({
        "status": "OK",
        "results": [{
            "formatted_address": "El Chaltén, Santa Cruz Province, Argentina",
            "geometry": {"location": {"lat": -49.3315, "lng": -72.8863}},
            "types": ["locality", "political"],
        }],
    }))

    results = geocoding_client(session, delays).reverse_geocode((-49.27, -73.04), ("locality",))

    assert [r.formatted_address for r in results] == ["El Chaltén, Santa Cruz Province, Argentina"]
    params = session.requests[0]["params"]
    assert params["latlng"] == "-49.27,-73.04"
    assert params["result_type"] == "locality"
