# spotwise/models/provider_location.py
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Float, ForeignKey, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from spotwise.db.base import Base
from spotwise.db.types import UTCDateTime, utcnow


class ProviderLocation(Base):
    """
    Live point per provider. Kept apart from `users` so the high-frequency
    device writes never contend with profile reads/writes.
    """
    __tablename__ = "provider_locations"

    provider_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_provider_locations_lat_lon", "latitude", "longitude"),
    )
