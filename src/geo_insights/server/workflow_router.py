"""Workflow REST API.

Thin translation over `WorkflowEngine`: start executions, read them back by id,
and stream updates as Server-Sent Events. All routes are mounted under
`/api/v1/workflows`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from geo_insights.config import ServiceSettings
from geo_insights.engine.engine import WorkflowEngine
from geo_insights.engine.errors import InvalidInput, NotFound, StoreUnavailable
from geo_insights.engine.models import WorkflowExecution
from geo_insights.engine.watcher import UpdateWatcher
from geo_insights.server.models import (
    LocationAnalysisWorkflowRequest,
    LocationWorkflowRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _engine(request: Request) -> WorkflowEngine:
    engine = getattr(request.app.state, "engine", None)
    if not isinstance(engine, WorkflowEngine):
        raise HTTPException(status_code=500, detail="Workflow engine not configured")
    return engine


def _settings(request: Request) -> ServiceSettings:
    return request.app.state.settings


def require_geolocation(settings: ServiceSettings) -> None:
    if not settings.geolocation_configured:
        raise HTTPException(
            status_code=409, detail="IPGEOLOCATION_API_KEY is required for this endpoint"
        )


def require_insights(settings: ServiceSettings) -> None:
    if not settings.insights_configured:
        raise HTTPException(status_code=409, detail="OPENAI_API_KEY is required for this endpoint")


@router.post("/location", response_model=WorkflowExecution)
def execute_location_workflow(req: LocationWorkflowRequest, request: Request) -> WorkflowExecution:
    require_geolocation(_settings(request))
    try:
        return _engine(request).start_location_workflow(req.ip, background=req.background)
    except InvalidInput as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e)) from e


@router.post("/location-analysis", response_model=WorkflowExecution)
def execute_location_analysis_workflow(
    req: LocationAnalysisWorkflowRequest, request: Request
) -> WorkflowExecution:
    settings = _settings(request)
    require_insights(settings)
    if req.ip and not (req.city and req.country):
        require_geolocation(settings)
    try:
        return _engine(request).start_location_analysis_workflow(
            ip=req.ip,
            city=req.city,
            country=req.country,
            purpose=req.purpose,
            background=req.background,
        )
    except InvalidInput as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e)) from e


@router.get("", response_model=list[WorkflowExecution])
def list_workflow_executions(
    request: Request, limit: int = Query(default=20, ge=1, le=200)
) -> list[WorkflowExecution]:
    try:
        return _engine(request).list_executions(limit)
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e)) from e


@router.get("/{execution_id}", response_model=WorkflowExecution)
def get_workflow_execution(execution_id: str, request: Request) -> WorkflowExecution:
    try:
        return _engine(request).get_execution(execution_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail="Workflow execution not found") from e
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e)) from e


def _sse(snapshot: WorkflowExecution) -> str:
    data = json.dumps(snapshot.model_dump(mode="json", by_alias=True), ensure_ascii=False)
    return f"event: workflowUpdates\ndata: {data}\n\n"


async def stream_updates(
    watcher: UpdateWatcher,
    execution_id: str,
    is_disconnected: Callable[[], Awaitable[bool]],
    *,
    disconnect_check_seconds: float = 1.0,
) -> AsyncIterator[str]:
    """Relay watcher snapshots as SSE frames until terminal or disconnected.

    Polling runs on the subscription's own thread, so leaving this generator
    (client gone, task cancelled, terminal snapshot sent) cancels it at once.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[WorkflowExecution] = asyncio.Queue()

    def deliver(snapshot: WorkflowExecution) -> None:
        if loop.is_closed():
            return
        loop.call_soon_threadsafe(queue.put_nowait, snapshot)

    subscription = watcher.subscribe(execution_id, deliver)
    try:
        while True:
            try:
                snapshot = await asyncio.wait_for(queue.get(), timeout=disconnect_check_seconds)
            except TimeoutError:
                if await is_disconnected():
                    logger.info(
                        "Workflow updates client disconnected",
                        extra={"execution_id": execution_id},
                    )
                    return
                continue
            yield _sse(snapshot)
            if snapshot.is_terminal:
                return
    finally:
        subscription.cancel()


@router.get("/{execution_id}/updates")
def subscribe_workflow_updates(execution_id: str, request: Request) -> StreamingResponse:
    engine = _engine(request)
    try:
        engine.get_execution(execution_id)
    except NotFound as e:
        raise HTTPException(status_code=404, detail="Workflow execution not found") from e
    except StoreUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e)) from e

    watcher = UpdateWatcher(engine, interval_seconds=_settings(request).poll_interval_seconds)
    return StreamingResponse(
        stream_updates(watcher, execution_id, request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
