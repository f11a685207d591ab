"""
Admin / observability endpoints
===============================

GET   /api/v1/admin/health               -- health check (public)
GET   /api/v1/admin/drivers              -- driver registry      [view_drivers]
PATCH /api/v1/admin/drivers/{driver_id}  -- take a driver on / off duty [manage_drivers]
GET   /api/v1/admin/missions             -- every mission        [view_missions]
GET   /api/v1/admin/dashboard?days=30    -- analytics            [view_dashboard]
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from smart_taxis.api.dependencies import get_analytics, get_dispatch, require
from smart_taxis.api.schemas import (
    DashboardResponse,
    DriverResponse,
    DriverStatusUpdate,
    HealthResponse,
    MissionResponse,
)
from smart_taxis.domain.enums import Capability, DriverStatus
from smart_taxis.services.analytics import AnalyticsService
from smart_taxis.services.dispatch import DispatchService, DriverBusy

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(request: Request):
    return HealthResponse(storage=request.app.state.store.kind)


@router.get(
    "/drivers",
    response_model=list[DriverResponse],
    summary="List all drivers",
    dependencies=[Depends(require(Capability.VIEW_DRIVERS))],
)
async def list_drivers(dispatch: DispatchService = Depends(get_dispatch)):
    return [DriverResponse.model_validate(d) for d in await dispatch.list_drivers()]


@router.patch(
    "/drivers/{driver_id}",
    response_model=DriverResponse,
    summary="Put a driver on or off duty",
    description=(
        "Only ``available`` and ``offline`` may be set by hand; a driver on a "
        "mission is released by the mission itself."
    ),
    dependencies=[Depends(require(Capability.MANAGE_DRIVERS))],
)
async def update_driver_status(
    driver_id: int,
    body: DriverStatusUpdate,
    dispatch: DispatchService = Depends(get_dispatch),
):
    if body.status == DriverStatus.BUSY:
        raise HTTPException(
            status_code=422, detail="Drivers become busy only through a booking"
        )
    try:
        driver = await dispatch.set_driver_duty(driver_id, body.status)
    except DriverBusy as exc:
        raise HTTPException(status_code=409, detail="Driver is on a mission") from exc
    if driver is None:
        raise HTTPException(status_code=404, detail="Driver not found")
    return DriverResponse.model_validate(driver)


@router.get(
    "/missions",
    response_model=list[MissionResponse],
    summary="List all missions",
    dependencies=[Depends(require(Capability.VIEW_MISSIONS))],
)
async def list_missions(dispatch: DispatchService = Depends(get_dispatch)):
    return [MissionResponse.model_validate(m) for m in await dispatch.list_missions()]


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Booking and driver analytics",
    dependencies=[Depends(require(Capability.VIEW_DASHBOARD))],
)
async def dashboard(
    days: Optional[int] = Query(None, ge=1, le=365),
    analytics: AnalyticsService = Depends(get_analytics),
):
    return await analytics.dashboard(days=days)
