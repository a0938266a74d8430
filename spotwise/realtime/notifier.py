# spotwise/realtime/notifier.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy.orm import Session

from spotwise.core.enums import EventKind
from spotwise.core.throttle import LocationThrottle
from spotwise.db.types import utcnow
from spotwise.geo.spherical import GeoPoint
from spotwise.models.service_request import ServiceRequest
from spotwise.realtime.bus import EventBus
from spotwise.realtime.events import DomainEvent
from spotwise.services.presenters import actor_summary, point_dict, request_dict
from spotwise.services.request_store import RequestStore

if TYPE_CHECKING:
    from spotwise.services.matching_service import MatchingEngine, ProviderMatch

logger = logging.getLogger(__name__)


def provider_match_dict(match: "ProviderMatch") -> Dict[str, Any]:
    user = match.provider
    return {
        **actor_summary(user),
        "skills": list(user.skills or []),
        "status": user.status,
        "location": point_dict(match.point.longitude, match.point.latitude),
        "distanceM": round(match.distance_m, 1),
        "live": match.live,
    }


class RealtimeNotifier:
    """
    Turns committed domain outcomes into bus events.

    Every entry point is fire-and-forget: failures are logged and never reach
    the caller, whose transition has already committed.
    """

    def __init__(
        self,
        bus: EventBus,
        store: RequestStore,
        throttle: LocationThrottle,
        matching: Optional["MatchingEngine"] = None,
    ):
        self.bus = bus
        self.store = store
        self.throttle = throttle
        self.matching = matching

    # ---------------------------
    # REQUESTS
    # ---------------------------

    def request_created(self, db: Session, req: ServiceRequest) -> None:
        if self.matching is None:
            return
        try:
            matches = self.matching.providers_near(
                db, GeoPoint(req.longitude, req.latitude), category=req.category
            )
            recipients = [str(m.provider.id) for m in matches]
            if recipients:
                self.bus.publish(recipients, DomainEvent(EventKind.NEW_REQUEST, request_dict(req)))
            logger.info(
                "new request broadcast",
                extra={"request_id": str(req.id), "recipients": len(recipients)},
            )
        except Exception:
            logger.exception("new request broadcast failed", extra={"request_id": str(req.id)})

    def request_changed(self, req: ServiceRequest) -> None:
        """
        Seeker gets the full request (PIN included while in progress);
        the assigned provider gets it without the PIN.
        """
        try:
            self.bus.publish(
                [str(req.seeker_id)],
                DomainEvent(EventKind.REQUEST_UPDATED, request_dict(req, include_pin=True)),
            )
            if req.provider_id is not None:
                self.bus.publish(
                    [str(req.provider_id)],
                    DomainEvent(EventKind.REQUEST_UPDATED, request_dict(req)),
                )
        except Exception:
            logger.exception("request update broadcast failed", extra={"request_id": str(req.id)})

    # ---------------------------
    # PROVIDER LOCATION
    # ---------------------------

    def provider_moved(self, db: Session, provider_id: uuid.UUID, point: GeoPoint) -> bool:
        """
        Returns True when the position was broadcast, False when throttled.
        """
        key = str(provider_id)
        if not self.throttle.allow(key, point):
            return False
        try:
            payload = {
                "providerId": key,
                "location": point_dict(point.longitude, point.latitude),
                "updatedAt": utcnow().isoformat(),
            }
            event = DomainEvent(EventKind.PROVIDER_LOCATION, payload)
            seekers: List[str] = [str(s) for s in self.store.seekers_served_by(db, provider_id)]
            self.bus.publish(seekers, event)
            self.bus.publish_to_watchers(key, event, exclude=seekers)
        except Exception:
            logger.exception("location broadcast failed", extra={"provider_id": key})
        return True

    def provider_left(self, provider_id: str) -> None:
        """Drop throttle state so the next position is broadcast immediately."""
        self.throttle.forget(str(provider_id))

    def nearby_providers_event(self, matches: List["ProviderMatch"]) -> DomainEvent:
        return DomainEvent(
            EventKind.NEARBY_PROVIDERS,
            {"providers": [provider_match_dict(m) for m in matches]},
        )
