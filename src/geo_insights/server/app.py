"""FastAPI app factory.

Endpoints are intentionally thin wrappers over the providers and the workflow
engine. Provider keys are optional at startup; endpoints that need one check
for it at request time.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from geo_insights import __version__
from geo_insights.config import ServiceSettings
from geo_insights.engine.definitions import DEFAULT_PURPOSE
from geo_insights.engine.engine import WorkflowEngine
from geo_insights.engine.executor import StepExecutor
from geo_insights.engine.store import (
    ExecutionStore,
    InMemoryExecutionStore,
    JsonFileExecutionStore,
)
from geo_insights.providers.errors import GeolocationError, ProviderError
from geo_insights.providers.factory import ProviderFactory
from geo_insights.providers.geolocation import GeolocationProvider, is_valid_ip
from geo_insights.providers.insights import InsightProvider
from geo_insights.providers.models import (
    Location,
    LocationAnalysis,
    LocationComparison,
    NearbyPlace,
    RiskAssessment,
)
from geo_insights.server.models import CompareLocationsRequest, HealthResponse
from geo_insights.server.workflow_router import (
    require_geolocation,
    require_insights,
)
from geo_insights.server.workflow_router import router as workflow_router

logger = logging.getLogger(__name__)

_CLIENT_IP_HEADERS = ("cf-connecting-ip", "x-forwarded-for", "x-real-ip", "x-client-ip")


def client_ip(request: Request) -> str:
    """Best-effort client address, preferring proxy headers over the socket peer."""
    for header in _CLIENT_IP_HEADERS:
        value = request.headers.get(header, "")
        # X-Forwarded-For may carry a chain; the first hop is the client.
        candidate = value.split(",")[0].strip()
        if candidate:
            return candidate
    if request.client is not None and request.client.host:
        return request.client.host
    return "127.0.0.1"


def build_store(settings: ServiceSettings) -> ExecutionStore:
    if settings.executions_file is not None:
        logger.info(
            "Persisting workflow executions", extra={"path": str(settings.executions_file)}
        )
        return JsonFileExecutionStore(settings.executions_file)
    return InMemoryExecutionStore()


def build_engine(
    settings: ServiceSettings,
    *,
    store: ExecutionStore | None = None,
    geolocation: GeolocationProvider | None = None,
    insights: InsightProvider | None = None,
) -> WorkflowEngine:
    return WorkflowEngine(
        store=store or build_store(settings),
        geolocation=geolocation or ProviderFactory.geolocation(settings),
        insights=insights or ProviderFactory.insights(settings),
        executor=StepExecutor(timeout_seconds=settings.step_timeout_seconds),
    )


def create_app(
    settings: ServiceSettings | None = None,
    *,
    store: ExecutionStore | None = None,
    geolocation: GeolocationProvider | None = None,
    insights: InsightProvider | None = None,
) -> FastAPI:
    settings = settings or ServiceSettings()
    geolocation = geolocation or ProviderFactory.geolocation(settings)
    insights = insights or ProviderFactory.insights(settings)

    app = FastAPI(
        title="geo-insights",
        version=__version__,
        description="IP geolocation with AI-powered location insights and tracked workflows.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = settings
    app.state.engine = build_engine(
        settings, store=store, geolocation=geolocation, insights=insights
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(workflow_router, prefix="/api/v1/workflows")

    @app.get("/api/v1/health", response_model=HealthResponse, response_model_by_alias=True)
    def health() -> HealthResponse:
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(tz=UTC).isoformat(),
            version=__version__,
            environment=settings.environment,
            services={
                "locationAgent": (
                    "operational" if settings.geolocation_configured else "disabled (no API key)"
                ),
                "aiLocationAgent": (
                    "operational" if settings.insights_configured else "disabled (no API key)"
                ),
            },
            api_keys={
                "ipGeolocation": "configured" if settings.geolocation_configured else "missing",
                "openAI": "configured" if settings.insights_configured else "missing",
            },
        )

    def _locate(ip: str) -> Location:
        require_geolocation(settings)
        if not is_valid_ip(ip):
            raise HTTPException(status_code=422, detail=f"Invalid IP address: {ip}")
        try:
            return geolocation.locate(ip)
        except GeolocationError as e:
            raise HTTPException(status_code=502, detail=f"Failed to get location: {e}") from e

    @app.get("/api/v1/location/current", response_model=Location)
    def get_current_location(request: Request) -> Location:
        return _locate(client_ip(request))

    @app.get("/api/v1/location/{ip}", response_model=Location)
    def get_location_from_ip(ip: str) -> Location:
        return _locate(ip)

    @app.get("/api/v1/insights", response_model=LocationAnalysis)
    def get_location_insights(
        ip: str | None = None,
        city: str | None = None,
        country: str | None = None,
        purpose: str = DEFAULT_PURPOSE,
    ) -> LocationAnalysis:
        require_insights(settings)
        if ip and (not city or not country):
            resolved = _locate(ip)
            location = resolved.model_copy(
                update={"city": city or resolved.city, "country": country or resolved.country}
            )
        elif city and country:
            location = Location(ip=ip, city=city, country=country)
        else:
            raise HTTPException(
                status_code=422,
                detail="City and country must be provided or determinable from IP",
            )
        try:
            return insights.get_location_insights(location, purpose=purpose)
        except ProviderError as e:
            raise HTTPException(
                status_code=502, detail=f"Failed to get location insights: {e}"
            ) from e

    @app.get("/api/v1/risk-analysis", response_model=RiskAssessment)
    def get_risk_analysis(city: str, country: str) -> RiskAssessment:
        require_insights(settings)
        try:
            return insights.get_risk_analysis(city, country)
        except ProviderError as e:
            raise HTTPException(status_code=502, detail=f"Failed to get risk analysis: {e}") from e

    @app.get("/api/v1/nearby-places", response_model=list[NearbyPlace])
    def get_nearby_places(
        city: str,
        country: str,
        radius: str | None = None,
        categories: list[str] | None = Query(default=None),
    ) -> list[NearbyPlace]:
        require_insights(settings)
        try:
            return insights.get_nearby_places(city, country, radius=radius, categories=categories)
        except ProviderError as e:
            raise HTTPException(status_code=502, detail=f"Failed to get nearby places: {e}") from e

    @app.post("/api/v1/compare-locations", response_model=LocationComparison)
    def compare_locations(req: CompareLocationsRequest) -> LocationComparison:
        require_insights(settings)
        try:
            return insights.compare_locations(req.locations, criteria=req.criteria)
        except ProviderError as e:
            raise HTTPException(status_code=502, detail=f"Failed to compare locations: {e}") from e

    return app
