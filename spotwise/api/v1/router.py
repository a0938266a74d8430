from fastapi import APIRouter

from spotwise.api.v1.health import router as health_router
from spotwise.api.v1.auth import router as auth_router
from spotwise.api.v1.requests import router as requests_router
from spotwise.api.v1.users import router as users_router
from spotwise.api.v1.events import router as events_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(auth_router, tags=["auth"])

# ------------------------------------------------------------------
# LIFECYCLE
# ------------------------------------------------------------------
v1_router.include_router(requests_router, tags=["requests"])
v1_router.include_router(users_router, tags=["users"])

# realtime transports live at the root: /ws and /events
realtime_router = APIRouter()
realtime_router.include_router(events_router, tags=["realtime"])
