# spotwise/api/v1/requests.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from spotwise.core.auth_deps import get_current_principal
from spotwise.core.deps import get_lifecycle, get_matching, http_error
from spotwise.core.errors import SpotwiseError
from spotwise.db.session import get_db
from spotwise.policies.rbac import Principal
from spotwise.schemas.requests import (
    ActiveRequestOut,
    CompleteRequestBody,
    CreateServiceRequest,
    HistoryResponse,
    PinResponse,
    ServiceRequestOut,
    TransitionResponse,
)
from spotwise.services.lifecycle_service import LifecycleService
from spotwise.services.matching_service import MatchingEngine
from spotwise.services.presenters import actor_summary, request_dict

router = APIRouter(prefix="/requests")


@router.post("", response_model=ServiceRequestOut, status_code=status.HTTP_201_CREATED)
def create_request(
    body: CreateServiceRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    try:
        req = lifecycle.create(db, principal, body)
    except SpotwiseError as e:
        raise http_error(e)
    return request_dict(req, include_pin=True)


@router.get("/active", response_model=List[ActiveRequestOut])
def active_requests(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    matching: MatchingEngine = Depends(get_matching),
):
    try:
        matches = matching.find_eligible(db, principal)
    except SpotwiseError as e:
        raise http_error(e)

    return [
        {
            **request_dict(m.request),
            "distanceM": round(m.distance_m, 1),
            "seeker": actor_summary(m.seeker),
        }
        for m in matches
    ]


@router.patch("/accept/{request_id}", response_model=TransitionResponse)
def accept_request(
    request_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    try:
        req = lifecycle.accept(db, principal, request_id)
    except SpotwiseError as e:
        raise http_error(e)
    # the provider learns the PIN only from the seeker, in person
    return {"message": "Request accepted.", "request": request_dict(req)}


@router.patch("/complete/{request_id}", response_model=TransitionResponse)
def complete_request(
    request_id: str,
    body: CompleteRequestBody,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    try:
        req = lifecycle.complete(db, principal, request_id, body.pin)
    except SpotwiseError as e:
        raise http_error(e)
    return {"message": "Request completed.", "request": request_dict(req)}


@router.patch("/cancel/{request_id}", response_model=TransitionResponse)
def cancel_request(
    request_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    try:
        req = lifecycle.cancel(db, principal, request_id)
    except SpotwiseError as e:
        raise http_error(e)
    return {"message": "Request cancelled.", "request": request_dict(req)}


@router.get("/history", response_model=HistoryResponse)
def request_history(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    try:
        items = lifecycle.list_history(db, principal)
    except SpotwiseError as e:
        raise http_error(e)
    return {"role": principal.role.value, "history": items}


@router.get("/pin/{request_id}", response_model=PinResponse)
def request_pin(
    request_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    lifecycle: LifecycleService = Depends(get_lifecycle),
):
    try:
        pin = lifecycle.get_pin(db, principal, request_id)
    except SpotwiseError as e:
        raise http_error(e)
    return {"requestId": request_id, "generatedPin": pin}
