"""External collaborators consumed by workflow steps."""

from geo_insights.providers.errors import GeolocationError, InsightError, ProviderError
from geo_insights.providers.geolocation import GeolocationProvider, IPGeolocationClient
from geo_insights.providers.insights import InsightProvider, OpenAIInsightProvider
from geo_insights.providers.models import Location, LocationAnalysis

__all__ = [
    "GeolocationError",
    "GeolocationProvider",
    "IPGeolocationClient",
    "InsightError",
    "InsightProvider",
    "Location",
    "LocationAnalysis",
    "OpenAIInsightProvider",
    "ProviderError",
]
