# spotwise/services/location_service.py
from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from sqlalchemy.orm import Session

from spotwise.core.errors import InvalidLocation
from spotwise.db.guard import store_call
from spotwise.geo.geo_index import GeoIndex
from spotwise.geo.spherical import GeoPoint, validate_point
from spotwise.policies.rbac import ACTION_FIND_PROVIDERS, ACTION_SHARE_LOCATION, Principal, require_action
from spotwise.realtime.notifier import RealtimeNotifier
from spotwise.services.accounts_service import AccountService
from spotwise.services.matching_service import MatchingEngine, ProviderMatch

logger = logging.getLogger(__name__)


class LocationService:
    def __init__(
        self,
        geo: GeoIndex,
        accounts: AccountService,
        matching: MatchingEngine,
        notifier: Optional[RealtimeNotifier] = None,
    ):
        self.geo = geo
        self.accounts = accounts
        self.matching = matching
        self.notifier = notifier

    def update_location(self, db: Session, principal: Principal, longitude, latitude) -> bool:
        """
        Stores the provider's live point on every call; the broadcast to
        seekers is throttled. Returns whether it was broadcast.
        """
        require_action(principal, ACTION_SHARE_LOCATION)
        provider_id = uuid.UUID(principal.actor_id)
        point = validate_point(longitude, latitude)

        with store_call(db, "update_location"):
            self.geo.set_location(db, provider_id, point.longitude, point.latitude)
            db.commit()

        if self.notifier is None:
            return False
        return self.notifier.provider_moved(db, provider_id, point)

    def nearby_providers(
        self,
        db: Session,
        principal: Principal,
        longitude=None,
        latitude=None,
        category: Optional[str] = None,
    ) -> List[ProviderMatch]:
        """
        Online providers around the given point, or around the seeker's
        profile location when no point is given.
        """
        require_action(principal, ACTION_FIND_PROVIDERS)
        with store_call(db, "nearby_providers"):
            if longitude is None and latitude is None:
                seeker = self.accounts.get_user(db, uuid.UUID(principal.actor_id))
                if not seeker.has_location:
                    raise InvalidLocation("Send a location or set one on your profile.")
                center = GeoPoint(seeker.longitude, seeker.latitude)
            else:
                center = validate_point(longitude, latitude)
            return self.matching.providers_near(db, center, category=category)
