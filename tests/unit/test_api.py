"""Unit tests for the REST API (providers stubbed)."""

from __future__ import annotations

import asyncio
import contextlib
import json
import time

import pytest
from fastapi.testclient import TestClient

from geo_insights.config import ServiceSettings
from geo_insights.engine.models import WorkflowExecution, WorkflowStatus
from geo_insights.engine.watcher import UpdateWatcher
from geo_insights.server.app import create_app
from geo_insights.server.workflow_router import stream_updates


@pytest.fixture
def client(settings: ServiceSettings, fake_geolocation, fake_insights) -> TestClient:
    app = create_app(settings, geolocation=fake_geolocation, insights=fake_insights)
    return TestClient(app)


def _sse_events(body: str) -> list[dict]:
    events = []
    for chunk in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in chunk.splitlines())
        assert lines["event"] == "workflowUpdates"
        events.append(json.loads(lines["data"]))
    return events


def test_health_reports_configured_keys(client: TestClient) -> None:
    health = client.get("/api/v1/health").json()

    assert health["status"] == "healthy"
    assert health["environment"] == "test"
    assert health["apiKeys"] == {"ipGeolocation": "configured", "openAI": "configured"}
    assert health["services"]["aiLocationAgent"] == "operational"


def test_location_workflow_roundtrip(client: TestClient) -> None:
    created = client.post("/api/v1/workflows/location", json={"ip": "8.8.8.8"})
    assert created.status_code == 200
    body = created.json()

    assert body["status"] == "completed"
    assert body["workflow"] == "location"
    assert [s["name"] for s in body["steps"]] == ["geolocate"]
    assert body["startedAt"]
    assert body["completedAt"]
    assert json.loads(body["result"])["city"] == "Mountain View"

    fetched = client.get(f"/api/v1/workflows/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json() == body


def test_location_analysis_workflow_without_ip(client: TestClient, fake_geolocation) -> None:
    resp = client.post(
        "/api/v1/workflows/location-analysis",
        json={"city": "Paris", "country": "France", "purpose": "travel"},
    )

    body = resp.json()
    assert body["status"] == "completed"
    assert [s["name"] for s in body["steps"]] == ["generate-insights"]
    assert fake_geolocation.calls == []


def test_failed_workflow_is_still_a_complete_record(client: TestClient, failing_geolocation) -> None:
    body = client.post("/api/v1/workflows/location-analysis", json={"ip": "8.8.8.8"}).json()

    assert body["status"] == "failed"
    assert body["error"]
    assert body["result"] is None
    assert body["completedAt"]
    assert [(s["name"], s["status"]) for s in body["steps"]] == [("geolocate", "failed")]


def test_invalid_workflow_input_is_422(client: TestClient) -> None:
    resp = client.post("/api/v1/workflows/location-analysis", json={"purpose": "travel"})
    assert resp.status_code == 422
    assert "City and country" in resp.json()["detail"]

    assert client.get("/api/v1/workflows").json() == []


def test_unknown_execution_is_404(client: TestClient) -> None:
    assert client.get("/api/v1/workflows/nope").status_code == 404
    assert client.get("/api/v1/workflows/nope/updates").status_code == 404


def test_list_workflow_executions(client: TestClient) -> None:
    client.post("/api/v1/workflows/location", json={"ip": "8.8.8.8"})
    client.post("/api/v1/workflows/location", json={"ip": "1.1.1.1"})

    listed = client.get("/api/v1/workflows", params={"limit": 1}).json()
    assert len(listed) == 1


def test_updates_stream_for_terminal_execution(client: TestClient) -> None:
    execution_id = client.post("/api/v1/workflows/location", json={"ip": "8.8.8.8"}).json()["id"]

    resp = client.get(f"/api/v1/workflows/{execution_id}/updates")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    events = _sse_events(resp.text)
    assert len(events) == 1
    assert events[0]["id"] == execution_id
    assert events[0]["status"] == "completed"


class _NeverFinishingReader:
    def __init__(self) -> None:
        self.samples = 0

    def get_execution(self, execution_id: str) -> WorkflowExecution:
        self.samples += 1
        return WorkflowExecution(
            id=execution_id, workflow="location", status=WorkflowStatus.RUNNING
        )


def _assert_polling_stopped(reader: _NeverFinishingReader) -> None:
    time.sleep(0.05)
    settled = reader.samples
    time.sleep(0.1)
    assert settled > 0
    assert reader.samples == settled


def test_updates_stream_stops_polling_when_client_disconnects() -> None:
    reader = _NeverFinishingReader()
    watcher = UpdateWatcher(reader, interval_seconds=0.01)

    async def disconnected() -> bool:
        return True

    async def consume() -> list[str]:
        frames = stream_updates(watcher, "x", disconnected, disconnect_check_seconds=0.05)
        return [frame async for frame in frames]

    assert asyncio.run(consume()) == []
    _assert_polling_stopped(reader)


def test_cancelled_updates_stream_stops_polling() -> None:
    reader = _NeverFinishingReader()
    watcher = UpdateWatcher(reader, interval_seconds=0.01)

    async def connected() -> bool:
        return False

    async def consume() -> None:
        frames = stream_updates(watcher, "x", connected, disconnect_check_seconds=60)
        pending = asyncio.ensure_future(frames.__anext__())
        await asyncio.sleep(0.05)
        pending.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pending

    asyncio.run(consume())
    _assert_polling_stopped(reader)


def test_missing_credentials_are_409(fake_geolocation, fake_insights) -> None:
    settings = ServiceSettings(
        _env_file=None, ipgeolocation_api_key="", openai_api_key="", environment="test"
    )
    client = TestClient(create_app(settings, geolocation=fake_geolocation, insights=fake_insights))

    resp = client.post("/api/v1/workflows/location", json={"ip": "8.8.8.8"})
    assert resp.status_code == 409
    assert "IPGEOLOCATION_API_KEY" in resp.json()["detail"]

    resp = client.get("/api/v1/risk-analysis", params={"city": "Paris", "country": "France"})
    assert resp.status_code == 409
    assert "OPENAI_API_KEY" in resp.json()["detail"]

    health = client.get("/api/v1/health").json()
    assert health["apiKeys"] == {"ipGeolocation": "missing", "openAI": "missing"}


def test_location_lookup(client: TestClient) -> None:
    resp = client.get("/api/v1/location/8.8.8.8")
    assert resp.status_code == 200
    assert resp.json()["city"] == "Mountain View"

    assert client.get("/api/v1/location/not-an-ip").status_code == 422


def test_current_location_uses_forwarded_header(client: TestClient, fake_geolocation) -> None:
    resp = client.get(
        "/api/v1/location/current", headers={"X-Forwarded-For": "9.9.9.9, 10.0.0.1"}
    )

    assert resp.status_code == 200
    assert fake_geolocation.calls == ["9.9.9.9"]


def test_provider_failure_is_502(client: TestClient, failing_geolocation) -> None:
    resp = client.get("/api/v1/location/8.8.8.8")
    assert resp.status_code == 502


def test_insights_endpoint_merges_explicit_city(client: TestClient, fake_insights) -> None:
    resp = client.get("/api/v1/insights", params={"ip": "8.8.8.8", "city": "Lyon"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["location"]["city"] == "Lyon"
    assert body["location"]["country"] == "United States"
    assert "riskAssessment" in body
    assert "nearbyPlaces" in body


def test_nearby_places_and_compare(client: TestClient) -> None:
    places = client.get(
        "/api/v1/nearby-places",
        params={"city": "Paris", "country": "France", "categories": ["park"]},
    ).json()
    assert places[0]["name"] == "Paris Park"

    comparison = client.post(
        "/api/v1/compare-locations",
        json={
            "locations": [
                {"city": "Paris", "country": "France"},
                {"city": "Lisbon", "country": "Portugal"},
            ]
        },
    ).json()
    assert comparison["recommendations"]["budget"] == "Lisbon"
    assert "costOfLiving" in comparison["locations"][0]["scores"]

    too_few = client.post(
        "/api/v1/compare-locations", json={"locations": [{"city": "Paris", "country": "France"}]}
    )
    assert too_few.status_code == 422
