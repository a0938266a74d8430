# spotwise/services/request_store.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, List, Optional, Sequence

from sqlalchemy import desc, or_, select, update
from sqlalchemy.orm import Session

from spotwise.core.enums import HistoryKind, RequestStatus
from spotwise.core.errors import InvalidState
from spotwise.core.request_graph import EXPIRABLE_STATUSES, can_transition
from spotwise.models.request_history import RequestHistoryEntry
from spotwise.models.service_request import ServiceRequest

_EXPIRABLE = [s.value for s in EXPIRABLE_STATUSES]


class RequestStore:
    """
    Durable request records. Every status write is a conditional UPDATE
    (compare-and-set on `status`); callers read `rowcount` to learn whether
    they won. Commits belong to the caller.
    """

    # ---------------------------
    # READS
    # ---------------------------

    def get(self, db: Session, request_id: uuid.UUID) -> Optional[ServiceRequest]:
        return db.execute(
            select(ServiceRequest)
            .where(ServiceRequest.id == request_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def exists(self, db: Session, request_id: uuid.UUID) -> bool:
        return db.execute(
            select(ServiceRequest.id).where(ServiceRequest.id == request_id)
        ).first() is not None

    def list_for_seeker(self, db: Session, seeker_id: uuid.UUID) -> List[ServiceRequest]:
        return list(
            db.execute(
                select(ServiceRequest)
                .where(ServiceRequest.seeker_id == seeker_id)
                .order_by(desc(ServiceRequest.created_at), ServiceRequest.id)
                .execution_options(populate_existing=True)
            ).scalars().all()
        )

    def list_for_provider(self, db: Session, provider_id: uuid.UUID) -> List[ServiceRequest]:
        touched = select(RequestHistoryEntry.request_id).where(
            RequestHistoryEntry.actor_id == provider_id
        )
        return list(
            db.execute(
                select(ServiceRequest)
                .where(
                    or_(
                        ServiceRequest.provider_id == provider_id,
                        ServiceRequest.id.in_(touched),
                    )
                )
                .order_by(desc(ServiceRequest.created_at), ServiceRequest.id)
                .execution_options(populate_existing=True)
            ).scalars().all()
        )

    def open_request_for_provider(self, db: Session, provider_id: uuid.UUID) -> Optional[ServiceRequest]:
        return db.execute(
            select(ServiceRequest).where(
                ServiceRequest.provider_id == provider_id,
                ServiceRequest.status == RequestStatus.IN_PROGRESS.value,
            )
        ).scalars().first()

    def seekers_served_by(self, db: Session, provider_id: uuid.UUID) -> List[uuid.UUID]:
        return list(
            db.execute(
                select(ServiceRequest.seeker_id).where(
                    ServiceRequest.provider_id == provider_id,
                    ServiceRequest.status == RequestStatus.IN_PROGRESS.value,
                )
            ).scalars().all()
        )

    # ---------------------------
    # WRITES
    # ---------------------------

    def insert(self, db: Session, req: ServiceRequest) -> ServiceRequest:
        db.add(req)
        db.flush()
        return req

    def compare_and_set_status(
        self,
        db: Session,
        request_id: uuid.UUID,
        *,
        expected: RequestStatus,
        target: RequestStatus,
        now: datetime,
        extra_where: Sequence[Any] = (),
        **values: Any,
    ) -> bool:
        """
        Single conditional write: only succeeds while status == expected.
        """
        if not can_transition(expected, target):
            raise InvalidState(f"Illegal transition {expected.value} -> {target.value}.")
        result = db.execute(
            update(ServiceRequest)
            .where(
                ServiceRequest.id == request_id,
                ServiceRequest.status == expected.value,
                *extra_where,
            )
            .values(status=target.value, updated_at=now, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def record_pin_failure(self, db: Session, request_id: uuid.UUID, max_attempts: int) -> Optional[int]:
        """
        Conditional increment, capped at max_attempts.
        Returns the new count, or None when the request is locked or no longer in progress.
        """
        result = db.execute(
            update(ServiceRequest)
            .where(
                ServiceRequest.id == request_id,
                ServiceRequest.status == RequestStatus.IN_PROGRESS.value,
                ServiceRequest.pin_failed_attempts < max_attempts,
            )
            .values(pin_failed_attempts=ServiceRequest.pin_failed_attempts + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return db.execute(
            select(ServiceRequest.pin_failed_attempts).where(ServiceRequest.id == request_id)
        ).scalar_one()

    def append_history(
        self,
        db: Session,
        *,
        request_id: uuid.UUID,
        actor_id: uuid.UUID,
        kind: HistoryKind,
        now: datetime,
    ) -> RequestHistoryEntry:
        entry = RequestHistoryEntry(
            request_id=request_id,
            actor_id=actor_id,
            kind=kind.value,
            timestamp=now,
        )
        db.add(entry)
        db.flush()
        return entry

    # ---------------------------
    # EXPIRY
    # ---------------------------

    def find_expirable(self, db: Session, now: datetime) -> List[ServiceRequest]:
        return list(
            db.execute(
                select(ServiceRequest).where(
                    ServiceRequest.status.in_(_EXPIRABLE),
                    ServiceRequest.expiration_time < now,
                )
            ).scalars().all()
        )

