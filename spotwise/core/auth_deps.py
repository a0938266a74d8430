# spotwise/core/auth_deps.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from spotwise.core.enums import ActorRole
from spotwise.core.errors import AuthenticationError
from spotwise.core.security import decode_token
from spotwise.policies.rbac import Principal

bearer = HTTPBearer(auto_error=True)


def principal_from_token(token: str) -> Principal:
    """
    Shared by the bearer dependency and the realtime transports,
    which carry the token in the query string.
    """
    if not token:
        raise AuthenticationError("Missing token.")
    try:
        payload: Dict[str, Any] = decode_token(token)
    except JWTError:
        raise AuthenticationError("Invalid or expired token.")

    actor_id = payload.get("actor_id") or payload.get("sub")
    role = payload.get("role")
    if not actor_id or not role:
        raise AuthenticationError("Token missing required claims.")

    try:
        role_enum = ActorRole(role)
    except ValueError:
        raise AuthenticationError("Invalid role in token.")

    return Principal(actor_id=str(actor_id), role=role_enum)


def get_current_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> Principal:
    try:
        principal = principal_from_token(creds.credentials)
    except AuthenticationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    # Make principal available to downstream middleware / handlers
    request.state.principal = principal
    return principal
