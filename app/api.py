"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from app.schemas import EndDeviceMetrics, EventAccepted, ExtenderMetrics
from services.metrics import MetricsService, build_default_metrics_service
from storage.topology_source import TopologyUnavailableError

router = APIRouter()


def get_metrics_service() -> MetricsService:
    return build_default_metrics_service()


@router.post(
    "/events",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=EventAccepted,
    summary="Ingest one raw device or network event.",
)
async def ingest_event(
    document: Dict[str, Any] = Body(..., description="Event with payloadType and payload."),
    service: MetricsService = Depends(get_metrics_service),
) -> EventAccepted:
    try:
        event, stored = service.ingest(document)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return EventAccepted(id=event.id, stored=stored)


@router.get(
    "/metrics/end-devices",
    response_model=List[EndDeviceMetrics],
    summary="Health and compliance records for configured end devices.",
)
def end_device_metrics(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    service: MetricsService = Depends(get_metrics_service),
) -> List[EndDeviceMetrics]:
    try:
        return service.end_device_metrics(start_date, end_date)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except TopologyUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc


@router.get(
    "/metrics/extenders",
    response_model=List[ExtenderMetrics],
    summary="Health and compliance records for extenders and directors.",
)
def extender_metrics(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    service: MetricsService = Depends(get_metrics_service),
) -> List[ExtenderMetrics]:
    try:
        return service.extender_metrics(start_date, end_date)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except TopologyUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
