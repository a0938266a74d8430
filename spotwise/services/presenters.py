# spotwise/services/presenters.py
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from spotwise.core.enums import RequestStatus
from spotwise.models.request_history import RequestHistoryEntry
from spotwise.models.service_request import ServiceRequest
from spotwise.models.user import User


def _iso(dt):
    return dt.isoformat() if dt else None


def point_dict(longitude: float, latitude: float) -> Dict[str, Any]:
    return {"type": "Point", "coordinates": [longitude, latitude]}


def actor_summary(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": str(user.id),
        "name": user.user_name,
        "contactNumber": user.contact_number,
    }


def history_dicts(entries: Iterable[RequestHistoryEntry]) -> list:
    return [
        {
            "kind": e.kind,
            "actorId": str(e.actor_id),
            "timestamp": _iso(e.timestamp),
        }
        for e in entries
    ]


def request_dict(
    req: ServiceRequest,
    *,
    include_pin: bool = False,
    history: Optional[Iterable[RequestHistoryEntry]] = None,
) -> Dict[str, Any]:
    """
    Wire shape of a request. The PIN is only ever emitted while the request is
    in progress and only when the caller asked for it.
    """
    show_pin = include_pin and req.status == RequestStatus.IN_PROGRESS.value
    return {
        "id": str(req.id),
        "seekerId": str(req.seeker_id),
        "category": req.category,
        "description": req.description,
        "contactNumber": req.contact_number,
        "location": point_dict(req.longitude, req.latitude),
        "duration": req.duration_minutes,
        "additionalDetails": req.additional_details,
        "providerId": str(req.provider_id) if req.provider_id else None,
        "status": req.status,
        "generatedPin": req.pin if show_pin else None,
        "pinGeneratedAt": _iso(req.pin_generated_at),
        "createdAt": _iso(req.created_at),
        "expirationTime": _iso(req.expiration_time),
        "history": history_dicts(req.history if history is None else history),
    }


def user_dict(user: User) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "userName": user.user_name,
        "email": user.email,
        "contactNumber": user.contact_number,
        "role": user.role,
        "address": dict(user.address_json or {}),
        "skills": list(user.skills or []),
        "location": point_dict(user.longitude, user.latitude) if user.has_location else None,
        "status": user.status,
    }
