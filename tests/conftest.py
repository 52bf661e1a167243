"""Test configuration and fixtures."""

from __future__ import annotations

import threading
from collections.abc import Sequence

import pytest

from geo_insights.config import ServiceSettings
from geo_insights.engine.engine import WorkflowEngine
from geo_insights.engine.executor import StepExecutor
from geo_insights.engine.store import InMemoryExecutionStore
from geo_insights.providers.errors import GeolocationError
from geo_insights.providers.geolocation import GeolocationProvider
from geo_insights.providers.insights import InsightProvider
from geo_insights.providers.models import (
    ComparisonRecommendations,
    Location,
    LocationAnalysis,
    LocationComparison,
    LocationComparisonItem,
    LocationInsights,
    LocationScores,
    NearbyPlace,
    PlaceRef,
    RiskAssessment,
)


class FakeGeolocation(GeolocationProvider):
    """Resolves every IP to Mountain View unless told to fail or block."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.error: Exception | None = None
        self.gate: threading.Event | None = None

    def locate(self, ip: str) -> Location:
        self.calls.append(ip)
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return Location(
            ip=ip,
            country="United States",
            region="California",
            city="Mountain View",
            latitude=37.386,
            longitude=-122.0838,
            timezone="America/Los_Angeles",
            isp="Google LLC",
        )


def sample_risk() -> RiskAssessment:
    return RiskAssessment(
        overall="Low",
        natural_disasters="Occasional flooding",
        crime_safety="Petty theft in tourist areas",
        health_risks="None notable",
        travel_advisory="Exercise normal precautions",
    )


class FakeInsights(InsightProvider):
    def __init__(self) -> None:
        self.calls: list[tuple[Location, str]] = []
        self.error: Exception | None = None

    def get_location_insights(self, location: Location, purpose: str = "general") -> LocationAnalysis:
        self.calls.append((location, purpose))
        if self.error is not None:
            raise self.error
        return LocationAnalysis(
            location=location,
            insights=LocationInsights(
                demographics="Dense and diverse",
                economy="Services and tourism",
                culture="Museums and cafes",
                attractions=["Louvre"],
                climate="Temperate",
                living_costs="High",
                safety_info="Generally safe",
                local_tips=["Validate metro tickets"],
                best_time_to_visit="Spring",
                transportation=["Metro"],
            ),
            nearby_places=[
                NearbyPlace(name="Versailles", type="palace", distance="20 km", description="Royal palace")
            ],
            recommendations=[f"Plan for {purpose}"],
            risk_assessment=sample_risk(),
        )

    def get_risk_analysis(self, city: str, country: str) -> RiskAssessment:
        if self.error is not None:
            raise self.error
        return sample_risk()

    def get_nearby_places(
        self,
        city: str,
        country: str,
        radius: str | None = None,
        categories: Sequence[str] | None = None,
    ) -> list[NearbyPlace]:
        if self.error is not None:
            raise self.error
        return [NearbyPlace(name=f"{city} Park", type="park", distance="1 km", description="Green")]

    def compare_locations(
        self, locations: Sequence[PlaceRef], criteria: Sequence[str] | None = None
    ) -> LocationComparison:
        scores = LocationScores(
            cost_of_living="7", safety="8", culture="9", climate="6", attractions="9"
        )
        return LocationComparison(
            summary="Both are great",
            locations=[
                LocationComparisonItem(name=loc.city, scores=scores, pros=["food"], cons=["crowds"])
                for loc in locations
            ],
            recommendations=ComparisonRecommendations(
                budget=locations[-1].city,
                luxury=locations[0].city,
                culture=locations[0].city,
                safety=locations[-1].city,
                overall=locations[0].city,
            ),
        )


@pytest.fixture
def fake_geolocation() -> FakeGeolocation:
    return FakeGeolocation()


@pytest.fixture
def fake_insights() -> FakeInsights:
    return FakeInsights()


@pytest.fixture
def failing_geolocation(fake_geolocation: FakeGeolocation) -> FakeGeolocation:
    fake_geolocation.error = GeolocationError("Failed to get location for IP 8.8.8.8: boom")
    return fake_geolocation


@pytest.fixture
def store() -> InMemoryExecutionStore:
    return InMemoryExecutionStore()


@pytest.fixture
def engine(
    store: InMemoryExecutionStore,
    fake_geolocation: FakeGeolocation,
    fake_insights: FakeInsights,
) -> WorkflowEngine:
    return WorkflowEngine(
        store=store,
        geolocation=fake_geolocation,
        insights=fake_insights,
        executor=StepExecutor(timeout_seconds=5.0),
    )


@pytest.fixture
def settings() -> ServiceSettings:
    """Settings with both provider keys present and fast polling."""
    return ServiceSettings(
        _env_file=None,
        ipgeolocation_api_key="test-geo-key",
        openai_api_key="test-openai-key",
        poll_interval_seconds=0.01,
        environment="test",
    )
