# spotwise/models/request_history.py
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from spotwise.db.base import Base
from spotwise.db.types import UTCDateTime, utcnow


class RequestHistoryEntry(Base):
    """
    Append-only transition log. Rows are inserted by the lifecycle service and
    never updated or deleted.
    """
    __tablename__ = "request_history"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("service_requests.id", ondelete="RESTRICT"), nullable=False
    )
    actor_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_request_history_request", "request_id", "seq"),
        Index("ix_request_history_actor", "actor_id"),
    )
