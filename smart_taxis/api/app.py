"""
FastAPI application factory.

* Opens the store on startup (database, or in-memory fallback) and seeds
  demo drivers / the bootstrap admin.
* Builds the dispatch, auth and analytics services and the mission
  simulator, all held on ``app.state``.
* Cancels outstanding mission timers and closes the store on shutdown.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from smart_taxis.api.dependencies import LoginRequired
from smart_taxis.api.middleware import limiter
from smart_taxis.api.routes import admin, auth, bookings, views
from smart_taxis.config import Settings, settings as default_settings
from smart_taxis.domain.fare import FareEstimator
from smart_taxis.infrastructure.fixtures import seed_drivers
from smart_taxis.infrastructure.store import DispatchStore, StorageError, open_store
from smart_taxis.services.analytics import AnalyticsService
from smart_taxis.services.auth import AuthService
from smart_taxis.services.dispatch import DispatchService
from smart_taxis.workers.progress import MissionSimulator

logger = logging.getLogger(__name__)

API_PREFIXES = ("/api/", "/auth/", "/docs", "/openapi.json")


def build_lifespan(settings: Settings, store: Optional[DispatchStore]):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Wire services on startup; stop timers and close the store on shutdown."""
        app.state.store = store or await open_store(settings)
        logger.info("Using %s storage", app.state.store.kind)

        if settings.seed_demo_data:
            await seed_drivers(app.state.store)

        dispatch = DispatchService(
            app.state.store,
            FareEstimator(
                base_fare=settings.base_fare,
                rate_per_km=settings.rate_per_km,
                min_distance_km=settings.min_distance_km,
                max_distance_km=settings.max_distance_km,
            ),
        )
        simulator = MissionSimulator(
            dispatch.advance_mission,
            initial_delay=settings.mission_initial_delay_seconds,
            min_delay=settings.mission_step_min_seconds,
            max_delay=settings.mission_step_max_seconds,
        )
        if settings.simulate_missions:
            dispatch.scheduler = simulator
            # timers do not survive a restart; pick up missions left mid-trip
            resumed = await dispatch.resume_unfinished()
            if resumed:
                logger.info("Resumed %d unfinished missions", resumed)

        auth_service = AuthService(
            app.state.store,
            token_ttl_minutes=settings.token_ttl_minutes,
            hash_rounds=settings.password_hash_rounds,
        )
        if settings.bootstrap_admin_password:
            await auth_service.ensure_admin(
                settings.bootstrap_admin_username,
                settings.bootstrap_admin_email,
                settings.bootstrap_admin_password,
            )
        else:
            logger.warning("No bootstrap admin password set; admin pages need a seeded user")

        app.state.dispatch = dispatch
        app.state.simulator = simulator
        app.state.auth = auth_service
        app.state.analytics = AnalyticsService(
            app.state.store, window_days=settings.analytics_window_days
        )
        logger.info(
            "%s ready (%d drivers available)",
            settings.app_name,
            (await dispatch.status_summary()).available_drivers,
        )
        yield
        await simulator.stop()
        await app.state.store.close()

    return lifespan


async def _storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage failure on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})


async def _login_required_handler(request: Request, exc: LoginRequired):
    return RedirectResponse(f"/login?next={exc.next_path}", status_code=303)


async def _not_found_page_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code != 404 or request.url.path.startswith(API_PREFIXES):
        return await http_exception_handler(request, exc)
    return views.templates.TemplateResponse(
        request,
        "error.html",
        {
            "title": "Page Not Found",
            "message": "The page you are looking for does not exist.",
        },
        status_code=404,
    )


def create_app(
    settings: Optional[Settings] = None, store: Optional[DispatchStore] = None
) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title=f"{settings.app_name} API",
        description=(
            "Books taxis, assigns the first available driver and simulates "
            "each mission through pickup and drop-off.  Includes token auth "
            "and an analytics dashboard."
        ),
        version="1.0.0",
        lifespan=build_lifespan(settings, store),
    )

    # Rate limiter
    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(StorageError, _storage_error_handler)
    app.add_exception_handler(LoginRequired, _login_required_handler)
    app.add_exception_handler(StarletteHTTPException, _not_found_page_handler)

    # Routers
    app.include_router(bookings.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")
    app.include_router(auth.router)
    app.include_router(views.router)

    return app
