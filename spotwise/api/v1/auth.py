# spotwise/api/v1/auth.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from spotwise.core.auth_deps import get_current_principal
from spotwise.core.deps import get_accounts, get_notifier, http_error
from spotwise.core.errors import SpotwiseError
from spotwise.db.session import get_db
from spotwise.policies.rbac import Principal
from spotwise.realtime.notifier import RealtimeNotifier
from spotwise.schemas.auth import LoginRequest, RegisterRequest, TokenResponse
from spotwise.schemas.users import ProfileOut
from spotwise.services.accounts_service import AccountService
from spotwise.services.presenters import user_dict

router = APIRouter(prefix="/auth")


def _token_response(user, token: str) -> TokenResponse:
    return TokenResponse(
        access_token=token,
        userId=str(user.id),
        userName=user.user_name,
        role=user.role,
        status=user.status,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Session = Depends(get_db),
    accounts: AccountService = Depends(get_accounts),
):
    try:
        user, token = accounts.register(db, body)
    except SpotwiseError as e:
        raise http_error(e)
    return _token_response(user, token)


@router.post("/login", response_model=TokenResponse)
def login(
    req: LoginRequest,
    db: Session = Depends(get_db),
    accounts: AccountService = Depends(get_accounts),
):
    try:
        user, token = accounts.login(db, req.email, req.password)
    except SpotwiseError as e:
        raise http_error(e)
    return _token_response(user, token)


@router.post("/logout")
def logout(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_accounts),
    notifier: RealtimeNotifier = Depends(get_notifier),
):
    try:
        accounts.logout(db, principal)
    except SpotwiseError as e:
        raise http_error(e)
    if principal.is_provider:
        notifier.provider_left(principal.actor_id)
    return {"message": "Logged out."}


@router.get("/me", response_model=ProfileOut)
def get_me(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    accounts: AccountService = Depends(get_accounts),
):
    try:
        user = accounts.get_user(db, uuid.UUID(principal.actor_id))
    except SpotwiseError as e:
        raise http_error(e)
    return user_dict(user)
