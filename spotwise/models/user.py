# spotwise/models/user.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Float, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from spotwise.core.enums import ActorRole, ProviderStatus
from spotwise.db.base import Base
from spotwise.db.types import UTCDateTime, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)
    contact_number: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False)

    # 🔐 AUTH
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)

    address_json: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    skills: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # resting profile location; the live one lives in provider_locations
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ProviderStatus.OFFLINE.value,
        server_default=text(f"'{ProviderStatus.OFFLINE.value}'"),
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_users_role_status", "role", "status"),
        Index("ix_users_lat_lon", "latitude", "longitude"),
    )

    @property
    def actor_role(self) -> ActorRole:
        return ActorRole(self.role)

    @property
    def has_location(self) -> bool:
        return self.longitude is not None and self.latitude is not None
