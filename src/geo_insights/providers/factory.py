"""Build provider clients from service settings."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from geo_insights.config import ServiceSettings
from geo_insights.llm.openai_provider import OpenAIProvider
from geo_insights.providers.errors import GeolocationError, InsightError
from geo_insights.providers.geolocation import GeolocationProvider, IPGeolocationClient
from geo_insights.providers.insights import InsightProvider, OpenAIInsightProvider
from geo_insights.providers.models import (
    Location,
    LocationAnalysis,
    LocationComparison,
    NearbyPlace,
    PlaceRef,
    RiskAssessment,
)

logger = logging.getLogger(__name__)


class UnconfiguredGeolocation(GeolocationProvider):
    """Stand-in used when no API key is set; every lookup fails."""

    def locate(self, ip: str) -> Location:
        raise GeolocationError("IP geolocation API key not configured")


class UnconfiguredInsights(InsightProvider):
    """Stand-in used when no OpenAI key is set; every request fails."""

    def _fail(self) -> InsightError:
        return InsightError("OpenAI API key not configured")

    def get_location_insights(
        self, location: Location, purpose: str = "general"
    ) -> LocationAnalysis:
        raise self._fail()

    def get_risk_analysis(self, city: str, country: str) -> RiskAssessment:
        raise self._fail()

    def get_nearby_places(
        self,
        city: str,
        country: str,
        radius: str | None = None,
        categories: Sequence[str] | None = None,
    ) -> list[NearbyPlace]:
        raise self._fail()

    def compare_locations(
        self, locations: Sequence[PlaceRef], criteria: Sequence[str] | None = None
    ) -> LocationComparison:
        raise self._fail()


class ProviderFactory:
    """Factory for creating provider instances from settings."""

    @staticmethod
    def geolocation(settings: ServiceSettings) -> GeolocationProvider:
        if not settings.geolocation_configured:
            logger.warning("IPGEOLOCATION_API_KEY is not set; geolocation is disabled")
            return UnconfiguredGeolocation()
        return IPGeolocationClient(
            api_key=settings.ipgeolocation_api_key,
            base_url=settings.ipgeolocation_base_url,
        )

    @staticmethod
    def insights(settings: ServiceSettings) -> InsightProvider:
        if not settings.insights_configured:
            logger.warning("OPENAI_API_KEY is not set; location insights are disabled")
            return UnconfiguredInsights()
        llm = OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            temperature=settings.openai_temperature,
            timeout_seconds=settings.step_timeout_seconds,
        )
        return OpenAIInsightProvider(llm)
