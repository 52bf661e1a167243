"""Response models returned by the geolocation and insight providers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Location(_CamelModel):
    # None when the location was supplied by name rather than resolved from an IP.
    ip: str | None = None
    country: str
    region: str = "Unknown"
    city: str
    latitude: float = 0.0
    longitude: float = 0.0
    timezone: str = "UTC"
    isp: str | None = None


class Coordinates(_CamelModel):
    latitude: float
    longitude: float


class NearbyPlace(_CamelModel):
    name: str
    type: str
    distance: str
    description: str
    coordinates: Coordinates | None = None


class LocationInsights(_CamelModel):
    demographics: str
    economy: str
    culture: str
    attractions: list[str] = Field(default_factory=list)
    climate: str
    living_costs: str = Field(alias="livingCosts")
    safety_info: str = Field(alias="safetyInfo")
    local_tips: list[str] = Field(default_factory=list, alias="localTips")
    best_time_to_visit: str = Field(alias="bestTimeToVisit")
    transportation: list[str] = Field(default_factory=list)


class RiskAssessment(_CamelModel):
    overall: str
    natural_disasters: str = Field(alias="naturalDisasters")
    crime_safety: str = Field(alias="crimeSafety")
    health_risks: str = Field(alias="healthRisks")
    travel_advisory: str = Field(alias="travelAdvisory")


class LocationAnalysis(_CamelModel):
    location: Location
    insights: LocationInsights
    nearby_places: list[NearbyPlace] = Field(default_factory=list, alias="nearbyPlaces")
    recommendations: list[str] = Field(default_factory=list)
    risk_assessment: RiskAssessment = Field(alias="riskAssessment")


class PlaceRef(_CamelModel):
    city: str
    country: str


class LocationScores(_CamelModel):
    cost_of_living: str = Field(alias="costOfLiving")
    safety: str
    culture: str
    climate: str
    attractions: str


class LocationComparisonItem(_CamelModel):
    name: str
    scores: LocationScores
    pros: list[str] = Field(default_factory=list)
    cons: list[str] = Field(default_factory=list)
    best_for: list[str] = Field(default_factory=list, alias="bestFor")


class ComparisonRecommendations(_CamelModel):
    budget: str
    luxury: str
    culture: str
    safety: str
    overall: str


class LocationComparison(_CamelModel):
    summary: str
    locations: list[LocationComparisonItem]
    recommendations: ComparisonRecommendations
