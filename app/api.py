"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.schemas import (
    DeviceOut,
    DeviceSpecIn,
    EnvironmentalDeploymentRequest,
    EventOut,
    FirmwareUpdateRequest,
    HealthCheckOut,
    MaintenancePredictionOut,
    PollSummaryOut,
    ReadingOut,
    SecurityReportOut,
    SiteDeploymentRequest,
)
from datastore.device_registry import DeviceNotFoundError
from models.records import DeviceFilters, DeviceStatus, DeviceType, GeoLocation
from services.deployments import (
    deploy_environmental_sensors,
    deploy_parking_sensors,
    deploy_traffic_sensors,
)
from services.maintenance import MaintenanceService, build_default_maintenance
from services.telemetry import TelemetryService, build_default_service

router = APIRouter()


def get_service() -> TelemetryService:
    return build_default_service()


def get_maintenance() -> MaintenanceService:
    return build_default_maintenance()


def _not_found(exc: DeviceNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _devices_out(devices) -> List[DeviceOut]:
    return [DeviceOut.model_validate(device) for device in devices]


@router.post(
    "/devices",
    status_code=status.HTTP_201_CREATED,
    response_model=DeviceOut,
    summary="Register a device and start its health checks.",
)
async def register_device(
    payload: DeviceSpecIn,
    service: TelemetryService = Depends(get_service),
) -> DeviceOut:
    device = service.register(payload.to_domain())
    return DeviceOut.model_validate(device)


@router.get(
    "/devices",
    response_model=List[DeviceOut],
    summary="List devices, optionally filtered by type, status and distance.",
)
async def list_devices(
    device_type: Optional[DeviceType] = Query(None, alias="type"),
    device_status: Optional[DeviceStatus] = Query(None, alias="status"),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: Optional[float] = Query(None, ge=0, description="Radius in kilometres."),
    service: TelemetryService = Depends(get_service),
) -> List[DeviceOut]:
    location_params = (lat, lng, radius)
    if any(param is not None for param in location_params) and any(
        param is None for param in location_params
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="lat, lng and radius must be provided together.",
        )

    filters = DeviceFilters(type=device_type, status=device_status)
    if lat is not None and lng is not None and radius is not None:
        filters.near = GeoLocation(lat=lat, lng=lng)
        filters.radius_km = radius
    return _devices_out(service.list_devices(filters))


@router.get(
    "/devices/{device_id}",
    response_model=DeviceOut,
    summary="Fetch a single device.",
)
async def get_device(
    device_id: str,
    service: TelemetryService = Depends(get_service),
) -> DeviceOut:
    try:
        device = service.get_device(device_id)
    except DeviceNotFoundError as exc:
        raise _not_found(exc) from exc
    return DeviceOut.model_validate(device)


@router.delete(
    "/devices/{device_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deregister a device and stop its health checks.",
)
async def deregister_device(
    device_id: str,
    service: TelemetryService = Depends(get_service),
) -> Response:
    try:
        service.deregister(device_id)
    except DeviceNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/devices/{device_id}/readings",
    response_model=List[ReadingOut],
    summary="Reading history for a device, oldest first.",
)
async def get_readings(
    device_id: str,
    sensor_id: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: TelemetryService = Depends(get_service),
) -> List[ReadingOut]:
    try:
        readings = service.get_readings(device_id, sensor_id=sensor_id, limit=limit)
    except DeviceNotFoundError as exc:
        raise _not_found(exc) from exc
    return [ReadingOut.model_validate(reading) for reading in readings]


@router.post(
    "/devices/{device_id}/health-check",
    response_model=HealthCheckOut,
    summary="Run a simulated health check immediately.",
)
async def run_health_check(
    device_id: str,
    service: TelemetryService = Depends(get_service),
) -> HealthCheckOut:
    try:
        device_status = service.check_device_health(device_id)
    except DeviceNotFoundError as exc:
        raise _not_found(exc) from exc
    return HealthCheckOut(device_id=device_id, status=device_status)


@router.post(
    "/devices/{device_id}/security-scan",
    response_model=SecurityReportOut,
    summary="Run a simulated security scan.",
)
async def run_security_scan(
    device_id: str,
    maintenance: MaintenanceService = Depends(get_maintenance),
) -> SecurityReportOut:
    try:
        report = maintenance.security_scan(device_id)
    except DeviceNotFoundError as exc:
        raise _not_found(exc) from exc
    return SecurityReportOut.model_validate(report)


@router.post(
    "/devices/{device_id}/firmware",
    response_model=DeviceOut,
    summary="Update device firmware (simulated, blocking).",
)
def update_firmware(
    device_id: str,
    payload: Optional[FirmwareUpdateRequest] = None,
    maintenance: MaintenanceService = Depends(get_maintenance),
) -> DeviceOut:
    version = payload.version if payload is not None else None
    try:
        device = maintenance.update_firmware(device_id, version=version)
    except DeviceNotFoundError as exc:
        raise _not_found(exc) from exc
    return DeviceOut.model_validate(device)


@router.post(
    "/poll",
    response_model=PollSummaryOut,
    summary="Run one poll cycle immediately.",
)
async def poll_now(service: TelemetryService = Depends(get_service)) -> PollSummaryOut:
    return PollSummaryOut.model_validate(service.poll_cycle())


@router.get(
    "/events",
    response_model=List[EventOut],
    summary="Most recent anomaly, threshold and health-change events.",
)
async def list_events(
    limit: Optional[int] = Query(None, ge=1),
    service: TelemetryService = Depends(get_service),
) -> List[EventOut]:
    return [EventOut.from_event(event) for event in service.recent_events(limit)]


@router.get(
    "/maintenance/predictions",
    response_model=List[MaintenancePredictionOut],
    summary="Devices whose health score calls for maintenance.",
)
async def maintenance_predictions(
    maintenance: MaintenanceService = Depends(get_maintenance),
) -> List[MaintenancePredictionOut]:
    return [MaintenancePredictionOut.model_validate(item) for item in maintenance.predict()]


@router.post(
    "/deployments/traffic",
    status_code=status.HTTP_201_CREATED,
    response_model=List[DeviceOut],
    summary="Deploy traffic sensor packs at intersections.",
)
async def deploy_traffic(
    payload: SiteDeploymentRequest,
    service: TelemetryService = Depends(get_service),
) -> List[DeviceOut]:
    sites = [site.to_domain() for site in payload.sites]
    return _devices_out(deploy_traffic_sensors(service, sites))


@router.post(
    "/deployments/parking",
    status_code=status.HTTP_201_CREATED,
    response_model=List[DeviceOut],
    summary="Deploy parking occupancy sensors at spots.",
)
async def deploy_parking(
    payload: SiteDeploymentRequest,
    service: TelemetryService = Depends(get_service),
) -> List[DeviceOut]:
    spots = [site.to_domain() for site in payload.sites]
    return _devices_out(deploy_parking_sensors(service, spots))


@router.post(
    "/deployments/environmental",
    status_code=status.HTTP_201_CREATED,
    response_model=List[DeviceOut],
    summary="Deploy air-quality, noise or weather sensor packs.",
)
async def deploy_environmental(
    payload: EnvironmentalDeploymentRequest,
    service: TelemetryService = Depends(get_service),
) -> List[DeviceOut]:
    sites = [(site.to_domain(), site.profile) for site in payload.sites]
    return _devices_out(deploy_environmental_sensors(service, sites))


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(service: TelemetryService = Depends(get_service)) -> dict[str, str]:
    return {"status": "ok", "polling": "running" if service.running else "stopped"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
