"""
Booking endpoints
=================

POST /api/v1/bookings               -- book a taxi (201, or 409 / 422 / 503)
GET  /api/v1/bookings/{booking_id}  -- booking details
GET  /api/v1/status                 -- aggregate counters
GET  /api/v1/missions/{mission_id}  -- single mission lookup
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from smart_taxis.api.dependencies import get_dispatch
from smart_taxis.api.middleware import limiter
from smart_taxis.api.schemas import (
    BookingConfirmationResponse,
    BookingCreateRequest,
    BookingRejectionResponse,
    BookingResponse,
    DriverResponse,
    MissionResponse,
    StatusResponse,
)
from smart_taxis.config import settings
from smart_taxis.services.dispatch import (
    BookingConfirmed,
    BookingRequest,
    DispatchService,
    RejectionReason,
)

router = APIRouter(tags=["bookings"])

REJECTION_STATUS = {
    RejectionReason.VALIDATION: 422,
    RejectionReason.NO_DRIVERS_AVAILABLE: 409,
    RejectionReason.STORAGE_FAILURE: 503,
}


@router.post(
    "/bookings",
    status_code=201,
    response_model=BookingConfirmationResponse,
    summary="Book a taxi",
    responses={
        409: {"model": BookingRejectionResponse, "description": "No drivers available"},
        422: {"model": BookingRejectionResponse, "description": "Missing fields"},
        503: {"model": BookingRejectionResponse, "description": "Storage failure"},
    },
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    dispatch: DispatchService = Depends(get_dispatch),
):
    outcome = await dispatch.request_booking(BookingRequest(**body.model_dump()))

    if not isinstance(outcome, BookingConfirmed):
        rejection = BookingRejectionResponse(
            detail=outcome.message,
            reason=outcome.reason.value,
            request=BookingCreateRequest(**outcome.request.as_dict()),
        )
        return JSONResponse(
            status_code=REJECTION_STATUS[outcome.reason],
            content=rejection.model_dump(mode="json"),
        )

    return BookingConfirmationResponse(
        booking=BookingResponse.model_validate(outcome.booking),
        driver=DriverResponse.model_validate(outcome.driver),
        mission_id=outcome.mission.id,
    )


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    summary="Get a booking",
)
async def get_booking(
    booking_id: str,
    dispatch: DispatchService = Depends(get_dispatch),
):
    booking = await dispatch.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return BookingResponse.model_validate(booking)


@router.get("/status", response_model=StatusResponse, summary="Dispatch counters")
@limiter.limit(settings.rate_limit)
async def get_status(
    request: Request,
    dispatch: DispatchService = Depends(get_dispatch),
):
    summary = await dispatch.status_summary()
    return StatusResponse(
        available_drivers=summary.available_drivers,
        active_missions=summary.active_missions,
        total_bookings=summary.total_bookings,
        completed_missions=summary.completed_missions,
    )


@router.get(
    "/missions/{mission_id}",
    response_model=MissionResponse,
    summary="Get mission status",
)
async def get_mission(
    mission_id: str,
    dispatch: DispatchService = Depends(get_dispatch),
):
    mission = await dispatch.get_mission(mission_id)
    if not mission:
        raise HTTPException(status_code=404, detail="Mission not found")
    return MissionResponse.model_validate(mission)
