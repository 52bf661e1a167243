"""Workflow definitions.

A definition is an ordered list of `StepSpec`s. Each spec names a `StepKind`
from a closed set; the engine resolves the kind to a provider call through
`bind_actions`, so definitions never carry ad hoc callables for the work
itself. Specs only decide *whether* a step runs and *what* it receives.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from geo_insights.engine.errors import InvalidInput
from geo_insights.engine.executor import StepAction
from geo_insights.providers.geolocation import GeolocationProvider, is_valid_ip
from geo_insights.providers.insights import InsightProvider
from geo_insights.providers.models import Location

DEFAULT_PURPOSE = "general"

LOCATION_WORKFLOW = "location"
LOCATION_ANALYSIS_WORKFLOW = "location-analysis"


class StepKind(str, Enum):
    GEOLOCATE = "geolocate"
    GENERATE_INSIGHTS = "generate-insights"


@dataclass
class ExecutionContext:
    """Validated workflow input plus the raw outputs of completed steps."""

    input: dict[str, Any]
    outputs: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class StepSpec:
    kind: StepKind
    build_input: Callable[[ExecutionContext], dict[str, Any]]
    condition: Callable[[ExecutionContext], bool] | None = None

    @property
    def name(self) -> str:
        return self.kind.value

    def applies(self, context: ExecutionContext) -> bool:
        return self.condition is None or self.condition(context)


@dataclass(frozen=True, slots=True)
class WorkflowDefinition:
    name: str
    steps: tuple[StepSpec, ...]
    # Normalizes raw input; raises InvalidInput before any record exists.
    validate: Callable[[Mapping[str, Any]], dict[str, Any]]
    # Value stored as the execution result once every applicable step succeeded.
    build_result: Callable[[ExecutionContext], Any]


def _clean(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require_valid_ip(ip: str) -> str:
    if not is_valid_ip(ip):
        raise InvalidInput(f"Invalid IP address: {ip}")
    return ip


# Location workflow


def _validate_location_input(raw: Mapping[str, Any]) -> dict[str, Any]:
    ip = _clean(raw.get("ip"))
    if ip is None:
        raise InvalidInput("An IP address is required")
    return {"ip": _require_valid_ip(ip)}


def location_workflow() -> WorkflowDefinition:
    return WorkflowDefinition(
        name=LOCATION_WORKFLOW,
        steps=(
            StepSpec(
                kind=StepKind.GEOLOCATE,
                build_input=lambda ctx: {"ip": ctx.input["ip"]},
            ),
        ),
        validate=_validate_location_input,
        build_result=lambda ctx: ctx.outputs[StepKind.GEOLOCATE.value],
    )


# Location analysis workflow


def _validate_analysis_input(raw: Mapping[str, Any]) -> dict[str, Any]:
    ip = _clean(raw.get("ip"))
    city = _clean(raw.get("city"))
    country = _clean(raw.get("country"))
    purpose = _clean(raw.get("purpose")) or DEFAULT_PURPOSE

    if ip is None and (city is None or country is None):
        raise InvalidInput("City and country must be provided or determinable from IP")
    if ip is not None:
        _require_valid_ip(ip)

    return {"ip": ip, "city": city, "country": country, "purpose": purpose}


def _needs_geolocation(ctx: ExecutionContext) -> bool:
    data = ctx.input
    return data["ip"] is not None and (data["city"] is None or data["country"] is None)


def _insights_input(ctx: ExecutionContext) -> dict[str, Any]:
    data = ctx.input
    resolved: Location | None = ctx.outputs.get(StepKind.GEOLOCATE.value)

    payload: dict[str, Any] = {
        "ip": data["ip"],
        "city": data["city"],
        "country": data["country"],
        "region": None,
        "latitude": 0.0,
        "longitude": 0.0,
        "purpose": data["purpose"],
    }
    if resolved is not None:
        # Explicit city/country win over the geolocated values.
        payload["city"] = data["city"] or resolved.city
        payload["country"] = data["country"] or resolved.country
        payload["region"] = resolved.region
        payload["latitude"] = resolved.latitude
        payload["longitude"] = resolved.longitude
        payload["timezone"] = resolved.timezone
        payload["isp"] = resolved.isp
    return payload


def location_analysis_workflow() -> WorkflowDefinition:
    return WorkflowDefinition(
        name=LOCATION_ANALYSIS_WORKFLOW,
        steps=(
            StepSpec(
                kind=StepKind.GEOLOCATE,
                build_input=lambda ctx: {"ip": ctx.input["ip"]},
                condition=_needs_geolocation,
            ),
            StepSpec(kind=StepKind.GENERATE_INSIGHTS, build_input=_insights_input),
        ),
        validate=_validate_analysis_input,
        build_result=lambda ctx: ctx.outputs[StepKind.GENERATE_INSIGHTS.value],
    )


def bind_actions(
    *, geolocation: GeolocationProvider, insights: InsightProvider
) -> dict[StepKind, StepAction]:
    """Map every step kind to the provider call that implements it."""

    def geolocate(payload: Mapping[str, Any]) -> Location:
        return geolocation.locate(payload["ip"])

    def generate_insights(payload: Mapping[str, Any]) -> Any:
        if not payload.get("city") or not payload.get("country"):
            raise ValueError("City and country must be provided or determinable from IP")
        location = Location(
            ip=payload.get("ip"),
            city=payload["city"],
            country=payload["country"],
            region=payload.get("region") or "Unknown",
            latitude=payload.get("latitude") or 0.0,
            longitude=payload.get("longitude") or 0.0,
            timezone=payload.get("timezone") or "UTC",
            isp=payload.get("isp"),
        )
        return insights.get_location_insights(
            location, purpose=payload.get("purpose") or DEFAULT_PURPOSE
        )

    return {
        StepKind.GEOLOCATE: geolocate,
        StepKind.GENERATE_INSIGHTS: generate_insights,
    }


WORKFLOWS: dict[str, Callable[[], WorkflowDefinition]] = {
    LOCATION_WORKFLOW: location_workflow,
    LOCATION_ANALYSIS_WORKFLOW: location_analysis_workflow,
}
