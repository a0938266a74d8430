# spotwise/services/matching_service.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from spotwise.core.enums import ActorRole, ProviderStatus, RequestStatus
from spotwise.core.errors import InvalidLocation, ProviderBusy
from spotwise.db.guard import store_call
from spotwise.db.types import utcnow
from spotwise.geo.geo_index import GeoIndex
from spotwise.geo.spherical import GeoPoint
from spotwise.models.provider_location import ProviderLocation
from spotwise.models.service_request import ServiceRequest
from spotwise.models.user import User
from spotwise.policies.rbac import ACTION_BROWSE_REQUESTS, Principal, require_action
from spotwise.services.accounts_service import AccountService
from spotwise.services.expiry_sweeper import ExpirySweeper


@dataclass
class RequestMatch:
    request: ServiceRequest
    distance_m: float
    seeker: Optional[User]


@dataclass
class ProviderMatch:
    provider: User
    point: GeoPoint
    distance_m: float
    live: bool


class MatchingEngine:
    """
    Radius matching in both directions:
      provider -> pending requests it may take (find_eligible)
      point    -> online providers around it (providers_near)
    """

    def __init__(
        self,
        geo: GeoIndex,
        accounts: AccountService,
        sweeper: ExpirySweeper,
        radius_m: float,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.geo = geo
        self.accounts = accounts
        self.sweeper = sweeper
        self.radius_m = float(radius_m)
        self.clock = clock

    def find_eligible(self, db: Session, principal: Principal) -> List[RequestMatch]:
        require_action(principal, ACTION_BROWSE_REQUESTS)
        self.sweeper.sweep_expired(db)

        with store_call(db, "find_eligible"):
            provider = self.accounts.get_user(db, uuid.UUID(principal.actor_id))
            if provider.status == ProviderStatus.IN_PROGRESS.value:
                raise ProviderBusy("Finish the request in progress before taking another.")
            if not provider.has_location:
                raise InvalidLocation("Set a profile location to see nearby requests.")

            skills = list(provider.skills or [])
            if not skills:
                return []

            now = self.clock()
            hits = self.geo.query_within_radius(
                db,
                ServiceRequest,
                GeoPoint(provider.longitude, provider.latitude),
                self.radius_m,
                filters=[
                    ServiceRequest.status == RequestStatus.PENDING.value,
                    ServiceRequest.expiration_time >= now,
                    ServiceRequest.category.in_(skills),
                ],
            )
            seekers = self.accounts.get_users(db, {req.seeker_id for req, _ in hits})

        hits.sort(key=lambda h: (h[1], -h[0].created_at.timestamp(), str(h[0].id)))
        return [
            RequestMatch(request=req, distance_m=distance, seeker=seekers.get(req.seeker_id))
            for req, distance in hits
        ]

    def providers_near(
        self,
        db: Session,
        center: GeoPoint,
        category: Optional[str] = None,
        radius_m: Optional[float] = None,
    ) -> List[ProviderMatch]:
        """
        Online providers within the radius, measured at their live location,
        or at their profile location when they have never shared a live one.
        Nearest first.
        """
        radius = self.radius_m if radius_m is None else float(radius_m)
        online = [
            User.role == ActorRole.PROVIDER.value,
            User.status == ProviderStatus.ONLINE.value,
        ]

        found: Dict[uuid.UUID, ProviderMatch] = {}

        live_hits = {
            row.provider_id: (row, distance)
            for row, distance in self.geo.query_within_radius(db, ProviderLocation, center, radius)
        }
        if live_hits:
            users = db.execute(select(User).where(User.id.in_(live_hits), *online)).scalars().all()
            for user in users:
                row, distance = live_hits[user.id]
                found[user.id] = ProviderMatch(
                    provider=user,
                    point=GeoPoint(row.longitude, row.latitude),
                    distance_m=distance,
                    live=True,
                )

        resting_hits = self.geo.query_within_radius(db, User, center, radius, filters=online)
        resting_ids = [user.id for user, _ in resting_hits if user.id not in found]
        has_live = set()
        if resting_ids:
            # a live fix outside the radius overrides a profile location inside it
            has_live = set(
                db.execute(
                    select(ProviderLocation.provider_id).where(ProviderLocation.provider_id.in_(resting_ids))
                ).scalars().all()
            )
        for user, distance in resting_hits:
            if user.id in found or user.id in has_live:
                continue
            found[user.id] = ProviderMatch(
                provider=user,
                point=GeoPoint(user.longitude, user.latitude),
                distance_m=distance,
                live=False,
            )

        matches = list(found.values())
        if category:
            wanted = category.strip().lower()
            matches = [m for m in matches if wanted in (m.provider.skills or [])]
        matches.sort(key=lambda m: (m.distance_m, str(m.provider.id)))
        return matches
