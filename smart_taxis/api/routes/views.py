"""
Server-rendered pages
=====================

GET  /           -- landing page: free drivers, latest bookings
GET  /book       -- booking form
POST /book       -- submit the form; re-rendered with the inputs on rejection
GET  /missions   -- active + recently completed missions   [view_missions]
GET  /drivers    -- driver registry                         [view_drivers]
GET  /dashboard  -- analytics                               [view_dashboard]
GET  /login, POST /login, GET /logout

Pages that show live mission state refresh themselves; there is no push
channel.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from smart_taxis.api.dependencies import (
    TOKEN_COOKIE,
    get_analytics,
    get_auth,
    get_dispatch,
    require_view,
)
from smart_taxis.domain.enums import Capability, MissionStatus
from smart_taxis.services.analytics import AnalyticsService
from smart_taxis.services.auth import AuthService, InvalidCredentials
from smart_taxis.services.dispatch import (
    BookingConfirmed,
    BookingRequest,
    DispatchService,
    RejectionReason,
)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[2] / "templates"))

router = APIRouter(include_in_schema=False)


def _is_local_path(target: str) -> bool:
    """Same-site absolute path; browsers read ``/\\host`` like ``//host``."""
    parts = urlsplit(target)
    return (
        not parts.scheme
        and not parts.netloc
        and target.startswith("/")
        and not target.startswith(("//", "/\\"))
    )


@router.get("/")
async def index(request: Request, dispatch: DispatchService = Depends(get_dispatch)):
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "title": "Smart Taxis",
            "drivers": await dispatch.available_drivers(),
            "recent_bookings": await dispatch.recent_bookings(5),
        },
    )


@router.get("/book")
async def booking_form(request: Request):
    return templates.TemplateResponse(
        request, "booking.html", {"title": "Book a Taxi", "form": BookingRequest()}
    )


@router.post("/book")
async def submit_booking(
    request: Request,
    pickup: Optional[str] = Form(None),
    destination: Optional[str] = Form(None),
    customer_name: Optional[str] = Form(None),
    customer_phone: Optional[str] = Form(None),
    dispatch: DispatchService = Depends(get_dispatch),
):
    outcome = await dispatch.request_booking(
        BookingRequest(pickup, destination, customer_name, customer_phone)
    )
    if isinstance(outcome, BookingConfirmed):
        return templates.TemplateResponse(
            request,
            "booking_success.html",
            {
                "title": "Booking Confirmed",
                "booking": outcome.booking,
                "driver": outcome.driver,
                "mission": outcome.mission,
            },
        )

    return templates.TemplateResponse(
        request,
        "booking.html",
        {"title": "Book a Taxi", "form": outcome.request, "error": outcome.message},
        status_code=503 if outcome.reason == RejectionReason.STORAGE_FAILURE else 200,
    )


@router.get("/missions")
async def missions(
    request: Request,
    dispatch: DispatchService = Depends(get_dispatch),
    principal=Depends(require_view(Capability.VIEW_MISSIONS)),
):
    all_missions = await dispatch.list_missions()
    completed = [m for m in all_missions if m.status == MissionStatus.COMPLETED]
    return templates.TemplateResponse(
        request,
        "missions.html",
        {
            "title": "Active Missions",
            "principal": principal,
            "missions": [m for m in all_missions if not m.is_terminal],
            "completed_missions": completed[-10:],
        },
    )


@router.get("/drivers")
async def drivers(
    request: Request,
    dispatch: DispatchService = Depends(get_dispatch),
    principal=Depends(require_view(Capability.VIEW_DRIVERS)),
):
    return templates.TemplateResponse(
        request,
        "drivers.html",
        {
            "title": "Driver Status",
            "principal": principal,
            "drivers": await dispatch.list_drivers(),
        },
    )


@router.get("/dashboard")
async def dashboard(
    request: Request,
    analytics: AnalyticsService = Depends(get_analytics),
    principal=Depends(require_view(Capability.VIEW_DASHBOARD)),
):
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "title": "Dashboard",
            "principal": principal,
            "data": await analytics.dashboard(),
        },
    )


@router.get("/login")
async def login_form(request: Request, next: str = "/dashboard"):
    return templates.TemplateResponse(
        request, "login.html", {"title": "Log in", "next": next}
    )


@router.post("/login")
async def login(
    request: Request,
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    next: str = Form("/dashboard"),
    auth: AuthService = Depends(get_auth),
):
    try:
        if not username or not password:
            raise InvalidCredentials("Username and password are required")
        _, token = await auth.login(username, password)
    except InvalidCredentials as exc:
        return templates.TemplateResponse(
            request,
            "login.html",
            {"title": "Log in", "next": next, "error": str(exc), "username": username},
            status_code=401,
        )

    target = next if _is_local_path(next) else "/dashboard"
    response = RedirectResponse(target, status_code=303)
    response.set_cookie(
        TOKEN_COOKIE,
        token.token,
        httponly=True,
        samesite="lax",
        max_age=int(auth.token_ttl.total_seconds()),
    )
    return response


@router.get("/logout")
async def logout():
    response = RedirectResponse("/", status_code=303)
    response.delete_cookie(TOKEN_COOKIE)
    return response
