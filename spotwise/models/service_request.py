# spotwise/models/service_request.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import CheckConstraint, Float, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spotwise.core.enums import RequestStatus
from spotwise.db.base import Base
from spotwise.db.types import UTCDateTime, utcnow


class ServiceRequest(Base):
    __tablename__ = "service_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    seeker_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    category: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    contact_number: Mapped[str] = mapped_column(String(32), nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    additional_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    provider_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=RequestStatus.PENDING.value,
        server_default=text(f"'{RequestStatus.PENDING.value}'"),
    )

    pin: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)
    pin_generated_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    pin_failed_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    # fixed at creation: created_at + duration_minutes
    expiration_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    history: Mapped[List["RequestHistoryEntry"]] = relationship(
        "RequestHistoryEntry",
        order_by="RequestHistoryEntry.seq",
        lazy="selectin",
        viewonly=True,
    )

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_service_requests_duration_positive"),
        CheckConstraint(
            "status IN ('pending','in-progress','completed','cancelled','expired')",
            name="ck_service_requests_status_valid",
        ),
        Index("ix_service_requests_status_expiration", "status", "expiration_time"),
        Index("ix_service_requests_lat_lon", "latitude", "longitude"),
        Index("ix_service_requests_seeker", "seeker_id", "created_at"),
        Index("ix_service_requests_provider", "provider_id", "status"),
    )
