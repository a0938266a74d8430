# spotwise/api/v1/users.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from spotwise.core.auth_deps import get_current_principal
from spotwise.core.deps import get_accounts, get_locations, http_error
from spotwise.core.errors import SpotwiseError
from spotwise.db.session import get_db
from spotwise.policies.rbac import Principal
from spotwise.schemas.users import LocationUpdate, ProfileOut, ProfileUpdate, StatusOut, StatusUpdate
from spotwise.services.accounts_service import AccountService
from spotwise.services.location_service import LocationService
from spotwise.services.presenters import user_dict

router = APIRouter(prefix="/users")


@router.get("/status", response_model=StatusOut)
def get_status(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_accounts),
):
    try:
        current = accounts.get_status(db, principal)
    except SpotwiseError as e:
        raise http_error(e)
    return {"status": current}


@router.patch("/status", response_model=StatusOut)
def set_status(
    body: StatusUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_accounts),
):
    try:
        current = accounts.set_status(db, principal, body.status)
    except SpotwiseError as e:
        raise http_error(e)
    return {"status": current}


@router.get("/profile", response_model=ProfileOut)
def get_profile(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_accounts),
):
    try:
        user = accounts.get_user(db, uuid.UUID(principal.actor_id))
    except SpotwiseError as e:
        raise http_error(e)
    return user_dict(user)


@router.patch("/profile", response_model=ProfileOut)
def update_profile(
    body: ProfileUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_accounts),
):
    try:
        user = accounts.update_profile(db, principal, body)
    except SpotwiseError as e:
        raise http_error(e)
    return user_dict(user)


@router.patch("/location")
def update_location(
    body: LocationUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    locations: LocationService = Depends(get_locations),
):
    try:
        broadcast = locations.update_location(
            db, principal, body.location.longitude, body.location.latitude
        )
    except SpotwiseError as e:
        raise http_error(e)
    return {"location": body.location.model_dump(), "broadcast": broadcast}
