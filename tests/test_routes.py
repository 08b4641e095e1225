import pytest
from fastapi.testclient import TestClient

from routewise.main import app
from routewise.memory import get_trip_store
from routewise.routes.trips import get_optimizer

from conftest import TableDirections


@pytest.fixture
def client(make_optimizer, store):
    directions = TableDirections({"Lyon": 0, "Marseille": 330, "Nice": 530, "New York": 0, "Los Angeles": 4000})
    app.dependency_overrides[get_optimizer] = lambda: make_optimizer(directions)
    app.dependency_overrides[get_trip_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def chat(client, trip_id, message):
    response = client.post(f"/api/trips/{trip_id}/chat", json={"message": message})
    assert response.status_code == 200
    return response.json()


def test_health(client):
    assert client.get("/").json()["status"] == "running"
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert "maps_configured" in body


def test_chat_turn_plans_and_stores_route(client, store):
    body = chat(client, "trip-1", "Plan a route from Lyon to Nice via Marseille")

    assert body["status"] == "planned"
    assert not body["needs_clarification"]
    assert body["plan"]["success"]
    assert "Route calculated." in body["reply"]

    route = client.get("/api/trips/trip-1/route")
    assert route.status_code == 200
    assert route.json()["id"] == body["plan"]["id"]
    assert store.get("trip-1").origin == "Lyon"


def test_long_drive_is_split_into_days(client):
    body = chat(client, "trip-2", "Road trip from New York to Los Angeles, max 8 hours a day")

    assert body["status"] == "planned"
    assert body["plan"]["breakdown_applied"]
    assert len(body["plan"]["segments"]) == 5
    assert "Day-by-day route:" in body["reply"]


def test_breakdown_turn_reuses_previous_places(client):
    chat(client, "trip-3", "Drive from New York to Los Angeles")

    body = chat(client, "trip-3", "Please break it down into days of at most 500 km")

    assert body["status"] == "planned"
    assert body["plan"]["segments"][0]["origin"] == "New York"
    assert body["plan"]["segments"][-1]["destination"] == "Los Angeles"
    assert all(s["distance_km"] <= 500 for s in body["plan"]["segments"])


def test_unclear_request_asks_for_clarification(client, store):
    body = chat(client, "trip-4", "Plan a road trip for me, no more than 6 hours a day")

    assert body["status"] == "clarification_needed"
    assert body["needs_clarification"]
    assert body["plan"] is None
    assert store.get("trip-4").preferences.max_daily_drive_hours == 6


def test_small_talk_is_not_a_route_request(client, store):
    body = chat(client, "trip-5", "What's the weather like?")

    assert body["status"] == "not_a_route_request"
    assert not store.exists("trip-5")


def test_route_of_unknown_trip_is_404(client):
    assert client.get("/api/trips/nope/route").status_code == 404


def test_delete_trip(client):
    chat(client, "trip-6", "Plan a route from Lyon to Nice")

    assert client.delete("/api/trips/trip-6").status_code == 200
    assert client.delete("/api/trips/trip-6").status_code == 404


def test_tools_listing_and_call(client, store):
    names = [tool["function"]["name"] for tool in client.get("/api/tools").json()["tools"]]
    assert names == ["plan_route", "optimize_route", "calculate_route"]

    response = client.post(
        "/api/tools/plan_route",
        params={"trip_id": "trip-7"},
        json={"arguments": {"origin": "Lyon", "destinations": ["Nice"]}},
    )

    assert response.status_code == 200
    assert response.json()["success"]
    assert store.get("trip-7").current_plan is not None


def test_invalid_tool_arguments(client):
    response = client.post("/api/tools/optimize_route", json={"arguments": {"segments": []}})

    assert response.status_code == 200
    assert not response.json()["success"]
