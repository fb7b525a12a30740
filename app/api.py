"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    CatalogSensor,
    FreshDataResponse,
    HealthResponse,
    RegisteredSensor,
    RegisteredSensors,
)
from catalog.sensor_catalog import UnknownSensorError
from models.records import ProviderType, TimeRange
from services.orchestrator import FreshData, FreshDataOrchestrator, build_default_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def get_orchestrator() -> FreshDataOrchestrator:
    return build_default_orchestrator()


def _to_response(result: FreshData) -> FreshDataResponse:
    return FreshDataResponse(
        live=result.live,
        historical=result.historical,
        timestamp=result.timestamp,
        sensor_index=result.sensor_index,
    )


def _run_pipeline(run: Callable[[], FreshData]) -> FreshDataResponse:
    try:
        result = run()
    except UnknownSensorError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unrecovered pipeline failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc) or type(exc).__name__,
        ) from exc
    return _to_response(result)


def _catalog_sensor(
    orchestrator: FreshDataOrchestrator, sensor_index: int, provider: ProviderType
) -> CatalogSensor:
    try:
        entry = orchestrator.catalog.require(sensor_index, provider)
    except UnknownSensorError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CatalogSensor.from_entry(entry)


def _registered(
    orchestrator: FreshDataOrchestrator, provider: ProviderType
) -> List[RegisteredSensor]:
    try:
        sensors = orchestrator.registry.list_by_provider(provider)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Listing stored sensors failed", extra={"provider": provider.value})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return [RegisteredSensor.from_persisted(sensor) for sensor in sensors]


@router.get(
    "/sensors",
    response_model=List[CatalogSensor],
    summary="List every sensor in the catalog.",
)
def list_catalog(
    orchestrator: FreshDataOrchestrator = Depends(get_orchestrator),
) -> List[CatalogSensor]:
    return [CatalogSensor.from_entry(entry) for entry in orchestrator.catalog.entries()]


@router.get(
    "/sensors/registered",
    response_model=RegisteredSensors,
    summary="List stored sensors of both providers.",
)
def list_registered(
    orchestrator: FreshDataOrchestrator = Depends(get_orchestrator),
) -> RegisteredSensors:
    try:
        listings = orchestrator.list_sensors()
    except Exception as exc:  # noqa: BLE001
        logger.exception("Listing stored sensors failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return RegisteredSensors(
        purpleair=[RegisteredSensor.from_persisted(s) for s in listings[ProviderType.purpleair]],
        acurite=[RegisteredSensor.from_persisted(s) for s in listings[ProviderType.acurite]],
    )


@router.get(
    "/sensors/{provider}",
    response_model=List[CatalogSensor],
    summary="List catalog sensors of one provider.",
)
def list_catalog_by_provider(
    provider: ProviderType,
    orchestrator: FreshDataOrchestrator = Depends(get_orchestrator),
) -> List[CatalogSensor]:
    return [CatalogSensor.from_entry(entry) for entry in orchestrator.catalog.by_provider(provider)]


@router.get(
    "/purpleair/sensors",
    response_model=List[RegisteredSensor],
    summary="List stored PurpleAir sensors.",
)
def list_purpleair_sensors(
    orchestrator: FreshDataOrchestrator = Depends(get_orchestrator),
) -> List[RegisteredSensor]:
    return _registered(orchestrator, ProviderType.purpleair)


@router.get(
    "/purpleair/sensors/{sensor_index}",
    response_model=CatalogSensor,
    summary="Fetch one PurpleAir sensor from the catalog.",
)
def get_purpleair_sensor(
    sensor_index: int,
    orchestrator: FreshDataOrchestrator = Depends(get_orchestrator),
) -> CatalogSensor:
    return _catalog_sensor(orchestrator, sensor_index, ProviderType.purpleair)


@router.get(
    "/purpleair/sensors/{sensor_index}/history",
    response_model=FreshDataResponse,
    summary="Fetch live PurpleAir history, store it, and return it with stored readings.",
)
def purpleair_history(
    sensor_index: int,
    start_timestamp: Optional[int] = Query(None, description="Epoch seconds."),
    average: Optional[int] = Query(None, gt=0, description="Averaging interval in minutes."),
    fields: Optional[str] = Query(None, description="Comma separated PurpleAir field names."),
    time_range: Optional[TimeRange] = Query(None, alias="range"),
    orchestrator: FreshDataOrchestrator = Depends(get_orchestrator),
) -> FreshDataResponse:
    return _run_pipeline(
        lambda: orchestrator.purpleair_history(
            sensor_index,
            start_timestamp=start_timestamp,
            average=average,
            fields=fields,
            time_range=time_range,
        )
    )


@router.get(
    "/acurite/sensors",
    response_model=List[RegisteredSensor],
    summary="List stored AcuRite sensors.",
)
def list_acurite_sensors(
    orchestrator: FreshDataOrchestrator = Depends(get_orchestrator),
) -> List[RegisteredSensor]:
    return _registered(orchestrator, ProviderType.acurite)


@router.get(
    "/acurite/sensors/{sensor_index}",
    response_model=CatalogSensor,
    summary="Fetch one AcuRite sensor from the catalog.",
)
def get_acurite_sensor(
    sensor_index: int,
    orchestrator: FreshDataOrchestrator = Depends(get_orchestrator),
) -> CatalogSensor:
    return _catalog_sensor(orchestrator, sensor_index, ProviderType.acurite)


@router.get(
    "/acurite/sensors/{sensor_index}/live",
    response_model=FreshDataResponse,
    summary="Fetch today's AcuRite readings, store them, and return them with stored readings.",
)
@router.get(
    "/acurite/sensors/{sensor_index}/live/{date}",
    response_model=FreshDataResponse,
    summary="Fetch one day of AcuRite readings, store them, and return them with stored readings.",
)
def acurite_live(
    sensor_index: int,
    date: Optional[str] = None,
    time_range: Optional[TimeRange] = Query(None, alias="range"),
    orchestrator: FreshDataOrchestrator = Depends(get_orchestrator),
) -> FreshDataResponse:
    return _run_pipeline(
        lambda: orchestrator.acurite_live(sensor_index, date=date, time_range=time_range)
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> HealthResponse:
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc))


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, object]:
    return {
        "status": "ok",
        "detail": "See /health for service status.",
        "endpoints": [
            "GET /sensors",
            "GET /sensors/registered",
            "GET /purpleair/sensors",
            "GET /acurite/sensors",
            "GET /purpleair/sensors/{sensor_index}/history",
            "GET /acurite/sensors/{sensor_index}/live/{date}",
        ],
    }
