import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from spotwise.api.v1.router import realtime_router, v1_router
from spotwise.core.config import Settings, get_settings
from spotwise.core.logging import configure_logging
from spotwise.core.middleware import RequestIdMiddleware
from spotwise.core.throttle import LocationThrottle
from spotwise.db.session import build_engine, build_session_factory
from spotwise.db.types import utcnow
from spotwise.geo.geo_index import GeoIndex
from spotwise.jobs.expiry_job import expiry_loop
from spotwise.realtime.bus import EventBus
from spotwise.realtime.notifier import RealtimeNotifier
from spotwise.services.accounts_service import AccountService
from spotwise.services.expiry_sweeper import ExpirySweeper
from spotwise.services.lifecycle_service import LifecycleService
from spotwise.services.location_service import LocationService
from spotwise.services.matching_service import MatchingEngine
from spotwise.services.request_store import RequestStore

logger = logging.getLogger(__name__)


def wire_services(app: FastAPI, settings: Settings, clock: Callable[[], datetime] = utcnow) -> None:
    """
    One instance of each service per app, shared across requests via app.state.
    """
    engine = build_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    store = RequestStore()
    accounts = AccountService(store)
    geo = GeoIndex()
    bus = EventBus(queue_size=settings.notifier_queue_size)
    throttle = LocationThrottle(settings.location_min_move_m, settings.location_max_stale_seconds)
    notifier = RealtimeNotifier(bus, store, throttle)
    sweeper = ExpirySweeper(store, accounts, notifier=notifier, clock=clock)
    matching = MatchingEngine(geo, accounts, sweeper, radius_m=settings.match_radius_m, clock=clock)
    notifier.matching = matching

    app.state.store = store
    app.state.accounts = accounts
    app.state.geo = geo
    app.state.bus = bus
    app.state.notifier = notifier
    app.state.sweeper = sweeper
    app.state.matching = matching
    app.state.lifecycle = LifecycleService(
        store,
        accounts,
        sweeper,
        notifier=notifier,
        pin_max_attempts=settings.pin_max_attempts,
        clock=clock,
    )
    app.state.locations = LocationService(geo, accounts, matching, notifier=notifier)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    stop_event = asyncio.Event()
    task = None
    if settings.sweep_interval_seconds > 0:
        task = asyncio.create_task(
            expiry_loop(
                app.state.sweeper,
                app.state.session_factory,
                settings.sweep_interval_seconds,
                stop_event,
            )
        )
        logger.info("expiry job started", extra={"interval_seconds": settings.sweep_interval_seconds})
    try:
        yield
    finally:
        stop_event.set()
        if task is not None:
            await task
        app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None, clock: Callable[[], datetime] = utcnow) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        lifespan=lifespan,
    )
    wire_services(app, settings, clock)

    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)
    app.include_router(realtime_router)

    return app


app = create_app()
