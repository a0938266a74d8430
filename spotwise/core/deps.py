# spotwise/core/deps.py
from fastapi import HTTPException, Request

from spotwise.core.errors import SpotwiseError
from spotwise.realtime.notifier import RealtimeNotifier
from spotwise.services.accounts_service import AccountService
from spotwise.services.lifecycle_service import LifecycleService
from spotwise.services.location_service import LocationService
from spotwise.services.matching_service import MatchingEngine


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def get_lifecycle(request: Request) -> LifecycleService:
    return request.app.state.lifecycle


def get_matching(request: Request) -> MatchingEngine:
    return request.app.state.matching


def get_locations(request: Request) -> LocationService:
    return request.app.state.locations


def get_notifier(request: Request) -> RealtimeNotifier:
    return request.app.state.notifier


def http_error(e: SpotwiseError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_detail())
