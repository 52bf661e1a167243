"""Pydantic request/response models for the REST server."""

from __future__ import annotations

from pydantic import BaseModel, Field

from geo_insights.providers.models import PlaceRef


class LocationWorkflowRequest(BaseModel):
    ip: str
    background: bool = False


class LocationAnalysisWorkflowRequest(BaseModel):
    ip: str | None = None
    city: str | None = None
    country: str | None = None
    purpose: str = "general"
    background: bool = False


class CompareLocationsRequest(BaseModel):
    locations: list[PlaceRef] = Field(min_length=2)
    criteria: list[str] | None = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    environment: str
    services: dict[str, str]
    api_keys: dict[str, str] = Field(serialization_alias="apiKeys")
