# spotwise/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, FrozenSet

from spotwise.core.enums import ActorRole
from spotwise.core.errors import AuthorizationError


@dataclass(frozen=True)
class Principal:
    actor_id: str
    role: ActorRole

    @property
    def is_seeker(self) -> bool:
        return self.role is ActorRole.SEEKER

    @property
    def is_provider(self) -> bool:
        return self.role is ActorRole.PROVIDER


# --- Core action constants ---
ACTION_CREATE_REQUEST = "CREATE_REQUEST"
ACTION_CANCEL_REQUEST = "CANCEL_REQUEST"
ACTION_READ_PIN = "READ_PIN"
ACTION_BROWSE_REQUESTS = "BROWSE_REQUESTS"
ACTION_ACCEPT_REQUEST = "ACCEPT_REQUEST"
ACTION_COMPLETE_REQUEST = "COMPLETE_REQUEST"
ACTION_SET_STATUS = "SET_STATUS"
ACTION_SHARE_LOCATION = "SHARE_LOCATION"
ACTION_FIND_PROVIDERS = "FIND_PROVIDERS"


_ROLE_ACTIONS: Dict[ActorRole, FrozenSet[str]] = {
    ActorRole.SEEKER: frozenset(
        {
            ACTION_CREATE_REQUEST,
            ACTION_CANCEL_REQUEST,
            ACTION_READ_PIN,
            ACTION_FIND_PROVIDERS,
        }
    ),
    ActorRole.PROVIDER: frozenset(
        {
            ACTION_BROWSE_REQUESTS,
            ACTION_ACCEPT_REQUEST,
            ACTION_COMPLETE_REQUEST,
            ACTION_SET_STATUS,
            ACTION_SHARE_LOCATION,
        }
    ),
}

_DENIED_MESSAGES = {
    ACTION_CREATE_REQUEST: "Only seekers can create service requests.",
    ACTION_CANCEL_REQUEST: "Only seekers can cancel requests.",
    ACTION_READ_PIN: "Only seekers can read a request PIN.",
    ACTION_FIND_PROVIDERS: "Only seekers can search for nearby providers.",
    ACTION_BROWSE_REQUESTS: "Only providers can view service requests.",
    ACTION_ACCEPT_REQUEST: "Only providers can accept requests.",
    ACTION_COMPLETE_REQUEST: "Only providers can complete requests.",
    ACTION_SET_STATUS: "Only providers can update their status.",
    ACTION_SHARE_LOCATION: "Only providers share a live location.",
}


def allowed_actions(role: ActorRole) -> FrozenSet[str]:
    """
    Pure RBAC: which actions a role may attempt.
    """
    return _ROLE_ACTIONS.get(role, frozenset())


def require_action(principal: Principal, action: str) -> None:
    if action not in allowed_actions(principal.role):
        raise AuthorizationError(
            _DENIED_MESSAGES.get(action, f"Role {principal.role.value} not permitted for action {action}.")
        )
