"""AI-generated location insights.

`OpenAIInsightProvider` asks an `LLMProvider` for a single JSON object per
request and validates it against the response models, so callers only ever see
typed data or an `InsightError`.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError

from geo_insights.llm.provider import LLMProvider
from geo_insights.providers.errors import InsightError
from geo_insights.providers.models import (
    Location,
    LocationAnalysis,
    LocationComparison,
    LocationInsights,
    NearbyPlace,
    PlaceRef,
    RiskAssessment,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_CRITERIA: tuple[str, ...] = (
    "costOfLiving",
    "safety",
    "culture",
    "climate",
    "attractions",
)

_SYSTEM_PROMPT = (
    "You are a location intelligence assistant. You give accurate, practical, "
    "balanced information about cities and regions. Always answer with a single "
    "JSON object that matches the requested shape exactly, using camelCase keys."
)


class InsightProvider(ABC):
    @abstractmethod
    def get_location_insights(
        self, location: Location, purpose: str = "general"
    ) -> LocationAnalysis:
        pass

    @abstractmethod
    def get_risk_analysis(self, city: str, country: str) -> RiskAssessment:
        pass

    @abstractmethod
    def get_nearby_places(
        self,
        city: str,
        country: str,
        radius: str | None = None,
        categories: Sequence[str] | None = None,
    ) -> list[NearbyPlace]:
        pass

    @abstractmethod
    def compare_locations(
        self, locations: Sequence[PlaceRef], criteria: Sequence[str] | None = None
    ) -> LocationComparison:
        pass


class _AnalysisPayload(BaseModel):
    insights: LocationInsights
    nearby_places: list[NearbyPlace] = Field(default_factory=list, alias="nearbyPlaces")
    recommendations: list[str] = Field(default_factory=list)
    risk_assessment: RiskAssessment = Field(alias="riskAssessment")


class _NearbyPayload(BaseModel):
    places: list[NearbyPlace] = Field(default_factory=list)


def _describe(location: Location) -> str:
    parts = [location.city]
    if location.region and location.region != "Unknown":
        parts.append(location.region)
    parts.append(location.country)
    label = ", ".join(parts)
    if location.latitude or location.longitude:
        label += f" (lat {location.latitude:.4f}, lon {location.longitude:.4f})"
    return label


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


class OpenAIInsightProvider(InsightProvider):
    def __init__(self, llm: LLMProvider, *, max_tokens: int = 1500) -> None:
        self._llm = llm
        self._max_tokens = max_tokens

    def _ask(self, prompt: str, model: type[ModelT], *, what: str) -> ModelT:
        messages = [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]
        try:
            raw = self._llm.chat(messages, max_tokens=self._max_tokens, json_mode=True)
        except Exception as e:
            logger.exception("LLM request failed", extra={"request": what})
            raise InsightError(f"Failed to get {what}: {e}") from e

        try:
            data: Any = json.loads(_strip_code_fence(raw))
            return model.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("LLM returned an unusable payload", extra={"request": what})
            raise InsightError(f"Failed to get {what}: malformed model response") from e

    def get_location_insights(
        self, location: Location, purpose: str = "general"
    ) -> LocationAnalysis:
        prompt = (
            f"Provide location insights for {_describe(location)}. "
            f"The user's purpose is: {purpose}.\n"
            "Return JSON with keys:\n"
            '- "insights": {demographics, economy, culture, attractions: [string], climate, '
            "livingCosts, safetyInfo, localTips: [string], bestTimeToVisit, "
            "transportation: [string]}\n"
            '- "nearbyPlaces": [{name, type, distance, description, '
            "coordinates: {latitude, longitude}}] (up to 5)\n"
            '- "recommendations": [string] tailored to the purpose\n'
            '- "riskAssessment": {overall, naturalDisasters, crimeSafety, healthRisks, '
            "travelAdvisory}"
        )
        payload = self._ask(prompt, _AnalysisPayload, what="location insights")
        return LocationAnalysis(
            location=location,
            insights=payload.insights,
            nearby_places=payload.nearby_places,
            recommendations=payload.recommendations,
            risk_assessment=payload.risk_assessment,
        )

    def get_risk_analysis(self, city: str, country: str) -> RiskAssessment:
        prompt = (
            f"Assess travel and living risks for {city}, {country}. "
            "Return JSON with keys: overall, naturalDisasters, crimeSafety, healthRisks, "
            "travelAdvisory. Each value is a short paragraph."
        )
        return self._ask(prompt, RiskAssessment, what="risk analysis")

    def get_nearby_places(
        self,
        city: str,
        country: str,
        radius: str | None = None,
        categories: Sequence[str] | None = None,
    ) -> list[NearbyPlace]:
        prompt = f"List notable places near {city}, {country}"
        if radius:
            prompt += f" within {radius}"
        if categories:
            prompt += f" in these categories: {', '.join(categories)}"
        prompt += (
            '. Return JSON with a single key "places": [{name, type, distance, description, '
            "coordinates: {latitude, longitude}}] (up to 10)."
        )
        return self._ask(prompt, _NearbyPayload, what="nearby places").places

    def compare_locations(
        self, locations: Sequence[PlaceRef], criteria: Sequence[str] | None = None
    ) -> LocationComparison:
        if len(locations) < 2:
            raise InsightError("At least two locations are required for a comparison")
        names = "; ".join(f"{loc.city}, {loc.country}" for loc in locations)
        wanted = ", ".join(criteria or DEFAULT_CRITERIA)
        prompt = (
            f"Compare these locations: {names}. Focus on: {wanted}.\n"
            "Return JSON with keys:\n"
            '- "summary": string\n'
            '- "locations": [{name, scores: {costOfLiving, safety, culture, climate, '
            "attractions}, pros: [string], cons: [string], bestFor: [string]}]\n"
            '- "recommendations": {budget, luxury, culture, safety, overall}'
        )
        return self._ask(prompt, LocationComparison, what="location comparison")
