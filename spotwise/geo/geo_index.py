# spotwise/geo/geo_index.py
from __future__ import annotations

import logging
import uuid
from typing import Any, List, Optional, Sequence, Tuple, Type

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from spotwise.db.types import utcnow
from spotwise.geo.spherical import GeoPoint, bounding_box, haversine_m, validate_point
from spotwise.models.provider_location import ProviderLocation

logger = logging.getLogger(__name__)

# degrees of slack on the pre-filter box so float rounding never drops an edge point
_BOX_SLACK_DEG = 1e-9


class GeoIndex:
    """
    Point store + radius queries.

    Radius queries never scan a table: the lat/lon columns are indexed and a
    bounding box narrows candidates before the exact spherical check.
    """

    # ---------------------------
    # WRITES
    # ---------------------------

    def set_location(
        self,
        db: Session,
        actor_id: uuid.UUID,
        longitude: float,
        latitude: float,
    ) -> ProviderLocation:
        """
        Upsert the actor's live point. The caller owns the commit.
        """
        point = validate_point(longitude, latitude)
        row = db.get(ProviderLocation, actor_id)
        if row is None:
            row = ProviderLocation(provider_id=actor_id)
            db.add(row)
        row.longitude = point.longitude
        row.latitude = point.latitude
        row.updated_at = utcnow()
        db.flush()
        return row

    def get_location(self, db: Session, actor_id: uuid.UUID) -> Optional[GeoPoint]:
        row = db.get(ProviderLocation, actor_id)
        if row is None:
            return None
        return GeoPoint(longitude=row.longitude, latitude=row.latitude)

    # ---------------------------
    # QUERIES
    # ---------------------------

    def query_within_radius(
        self,
        db: Session,
        model: Type[Any],
        center: GeoPoint,
        radius_m: float,
        filters: Sequence[Any] = (),
    ) -> List[Tuple[Any, float]]:
        """
        Rows of `model` (any mapped class with longitude/latitude columns)
        matching `filters` whose great-circle distance to `center` is <= radius_m.

        Returns (row, distance_m) pairs in storage order; callers sort.
        """
        if radius_m < 0:
            return []

        box = bounding_box(center, radius_m)
        lon_clauses = [
            and_(
                model.longitude >= lo - _BOX_SLACK_DEG,
                model.longitude <= hi + _BOX_SLACK_DEG,
            )
            for lo, hi in box.lon_ranges
        ]
        stmt = select(model).where(
            model.longitude.is_not(None),
            model.latitude.is_not(None),
            model.latitude >= box.min_lat - _BOX_SLACK_DEG,
            model.latitude <= box.max_lat + _BOX_SLACK_DEG,
            or_(*lon_clauses),
            *filters,
        )

        hits: List[Tuple[Any, float]] = []
        for row in db.execute(stmt).scalars().all():
            distance = haversine_m(center, GeoPoint(row.longitude, row.latitude))
            if distance <= radius_m:
                hits.append((row, distance))
        return hits
