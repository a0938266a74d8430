# spotwise/services/lifecycle_service.py
from __future__ import annotations

import hmac
import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, NoReturn, Optional, Union

import pydantic
from sqlalchemy.orm import Session

from spotwise.core.enums import HistoryKind, RequestStatus
from spotwise.core.errors import (
    AlreadyClaimed,
    AuthorizationError,
    InvalidPin,
    InvalidState,
    NotFound,
    PinAttemptsExceeded,
    ProviderBusy,
    ValidationError,
)
from spotwise.db.guard import store_call
from spotwise.db.types import utcnow
from spotwise.models.service_request import ServiceRequest
from spotwise.policies.rbac import (
    ACTION_ACCEPT_REQUEST,
    ACTION_CANCEL_REQUEST,
    ACTION_COMPLETE_REQUEST,
    ACTION_CREATE_REQUEST,
    ACTION_READ_PIN,
    Principal,
    require_action,
)
from spotwise.realtime.notifier import RealtimeNotifier
from spotwise.schemas.requests import CreateServiceRequest
from spotwise.services.accounts_service import AccountService
from spotwise.services.expiry_sweeper import ExpirySweeper
from spotwise.services.presenters import actor_summary, request_dict
from spotwise.services.request_store import RequestStore

logger = logging.getLogger(__name__)


def generate_pin() -> str:
    """Uniform 6-digit code in 100000..999999."""
    return str(secrets.randbelow(900000) + 100000)


def parse_request_id(raw: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise NotFound("Service request not found.")


def _pin_matches(given: str, expected: Optional[str]) -> bool:
    if expected is None:
        return False
    return hmac.compare_digest(str(given).strip().encode("utf-8"), expected.encode("utf-8"))


class LifecycleService:
    """
    Request state machine:
      pending -> in-progress -> completed
      pending -> cancelled
      pending | in-progress -> expired   (sweeper only)

    Every transition is a conditional write inside one transaction; the
    notifier runs after commit.
    """

    def __init__(
        self,
        store: RequestStore,
        accounts: AccountService,
        sweeper: ExpirySweeper,
        notifier: Optional[RealtimeNotifier] = None,
        pin_max_attempts: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.accounts = accounts
        self.sweeper = sweeper
        self.notifier = notifier
        self.pin_max_attempts = pin_max_attempts
        self.clock = clock

    # ---------------------------
    # CREATE
    # ---------------------------

    def create(
        self,
        db: Session,
        principal: Principal,
        payload: Union[CreateServiceRequest, Dict[str, Any]],
    ) -> ServiceRequest:
        require_action(principal, ACTION_CREATE_REQUEST)
        if not isinstance(payload, CreateServiceRequest):
            try:
                payload = CreateServiceRequest.model_validate(payload)
            except pydantic.ValidationError as e:
                raise ValidationError(
                    "Invalid service request.",
                    errors=[{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()],
                )

        seeker_id = uuid.UUID(principal.actor_id)
        now = self.clock()
        with store_call(db, "create_request"):
            self.accounts.get_user(db, seeker_id)
            req = ServiceRequest(
                seeker_id=seeker_id,
                category=payload.category,
                description=payload.description,
                contact_number=payload.contactNumber,
                longitude=payload.location.longitude,
                latitude=payload.location.latitude,
                duration_minutes=payload.duration,
                additional_details=payload.additionalDetails,
                status=RequestStatus.PENDING.value,
                pin_failed_attempts=0,
                created_at=now,
                updated_at=now,
                expiration_time=now + timedelta(minutes=payload.duration),
            )
            self.store.insert(db, req)
            db.commit()
            req = self.store.get(db, req.id)

        logger.info(
            "request created",
            extra={"request_id": str(req.id), "seeker_id": str(seeker_id), "category": req.category},
        )
        if self.notifier is not None:
            self.notifier.request_created(db, req)
        return req

    # ---------------------------
    # ACCEPT
    # ---------------------------

    def accept(self, db: Session, principal: Principal, request_id) -> ServiceRequest:
        require_action(principal, ACTION_ACCEPT_REQUEST)
        request_id = parse_request_id(request_id)
        provider_id = uuid.UUID(principal.actor_id)

        self.sweeper.sweep_expired(db)

        now = self.clock()
        with store_call(db, "accept_request"):
            # 1) claim the provider: at most one open job each
            if not self.accounts.claim_provider(db, provider_id):
                db.rollback()
                raise ProviderBusy("You already have a request in progress.")

            # 2) claim the request: exactly one provider wins
            won = self.store.compare_and_set_status(
                db,
                request_id,
                expected=RequestStatus.PENDING,
                target=RequestStatus.IN_PROGRESS,
                now=now,
                extra_where=[ServiceRequest.expiration_time >= now],
                provider_id=provider_id,
                pin=generate_pin(),
                pin_generated_at=now,
                pin_failed_attempts=0,
            )
            if not won:
                db.rollback()
                if not self.store.exists(db, request_id):
                    raise NotFound("Service request not found.")
                logger.warning(
                    "accept lost",
                    extra={"request_id": str(request_id), "provider_id": str(provider_id)},
                )
                raise AlreadyClaimed("Request is no longer available.")

            self.store.append_history(
                db,
                request_id=request_id,
                actor_id=provider_id,
                kind=HistoryKind.ACCEPTED,
                now=now,
            )
            db.commit()
            req = self.store.get(db, request_id)

        logger.info(
            "request accepted",
            extra={"request_id": str(request_id), "provider_id": str(provider_id)},
        )
        self._notify(req)
        return req

    # ---------------------------
    # COMPLETE
    # ---------------------------

    def complete(self, db: Session, principal: Principal, request_id, pin: str) -> ServiceRequest:
        require_action(principal, ACTION_COMPLETE_REQUEST)
        request_id = parse_request_id(request_id)
        provider_id = uuid.UUID(principal.actor_id)

        self.sweeper.sweep_expired(db)

        with store_call(db, "complete_request"):
            req = self.store.get(db, request_id)
            if req is None:
                raise NotFound("Service request not found.")
            if req.provider_id != provider_id:
                raise AuthorizationError("Only the assigned provider can complete this request.")
            if req.status != RequestStatus.IN_PROGRESS.value:
                raise InvalidState(f"Cannot complete a request that is {req.status}.")
            if req.pin_failed_attempts >= self.pin_max_attempts:
                raise PinAttemptsExceeded("Too many wrong PIN attempts for this request.")

            if not _pin_matches(pin, req.pin):
                failed = self.store.record_pin_failure(db, request_id, self.pin_max_attempts)
                if failed is None:
                    db.rollback()
                    self._raise_completion_blocked(db, request_id)
                db.commit()
                remaining = max(0, self.pin_max_attempts - failed)
                logger.warning(
                    "pin rejected",
                    extra={"request_id": str(request_id), "remaining_attempts": remaining},
                )
                raise InvalidPin("Invalid PIN.", remaining_attempts=remaining)

            now = self.clock()
            won = self.store.compare_and_set_status(
                db,
                request_id,
                expected=RequestStatus.IN_PROGRESS,
                target=RequestStatus.COMPLETED,
                now=now,
                extra_where=[ServiceRequest.pin_failed_attempts < self.pin_max_attempts],
            )
            if not won:
                db.rollback()
                logger.warning("complete lost", extra={"request_id": str(request_id)})
                self._raise_completion_blocked(db, request_id)

            self.store.append_history(
                db,
                request_id=request_id,
                actor_id=provider_id,
                kind=HistoryKind.COMPLETED,
                now=now,
            )
            self.accounts.release_provider(db, provider_id)
            db.commit()
            req = self.store.get(db, request_id)

        logger.info(
            "request completed",
            extra={"request_id": str(request_id), "provider_id": str(provider_id)},
        )
        self._notify(req)
        return req

    # ---------------------------
    # CANCEL
    # ---------------------------

    def cancel(self, db: Session, principal: Principal, request_id) -> ServiceRequest:
        require_action(principal, ACTION_CANCEL_REQUEST)
        request_id = parse_request_id(request_id)

        self.sweeper.sweep_expired(db)

        with store_call(db, "cancel_request"):
            req = self.store.get(db, request_id)
            if req is None:
                raise NotFound("Service request not found.")
            if str(req.seeker_id) != principal.actor_id:
                raise AuthorizationError("Only the seeker who created the request can cancel it.")

            won = self.store.compare_and_set_status(
                db,
                request_id,
                expected=RequestStatus.PENDING,
                target=RequestStatus.CANCELLED,
                now=self.clock(),
            )
            if not won:
                db.rollback()
                current = self.store.get(db, request_id)
                status = current.status if current is not None else req.status
                raise InvalidState(f"Cannot cancel a request that is {status}.")
            db.commit()
            req = self.store.get(db, request_id)

        logger.info("request cancelled", extra={"request_id": str(request_id)})
        self._notify(req)
        return req

    # ---------------------------
    # READS
    # ---------------------------

    def get_pin(self, db: Session, principal: Principal, request_id) -> str:
        require_action(principal, ACTION_READ_PIN)
        request_id = parse_request_id(request_id)

        self.sweeper.sweep_expired(db)

        with store_call(db, "get_pin"):
            req = self.store.get(db, request_id)
        if req is None:
            raise NotFound("Service request not found.")
        if str(req.seeker_id) != principal.actor_id:
            raise AuthorizationError("Only the seeker who created the request can read its PIN.")
        if req.status != RequestStatus.IN_PROGRESS.value or not req.pin:
            raise InvalidState("A PIN exists only while the request is in progress.")
        return req.pin

    def list_history(self, db: Session, principal: Principal) -> List[Dict[str, Any]]:
        """
        Seeker: own requests, PIN while in progress, provider summary.
        Provider: requests it took part in, only its own history entries, seeker summary.
        """
        self.sweeper.sweep_expired(db)

        actor_id = uuid.UUID(principal.actor_id)
        with store_call(db, "list_history"):
            if principal.is_seeker:
                rows = self.store.list_for_seeker(db, actor_id)
                users = self.accounts.get_users(db, {r.provider_id for r in rows})
            else:
                rows = self.store.list_for_provider(db, actor_id)
                users = self.accounts.get_users(db, {r.seeker_id for r in rows})

        items: List[Dict[str, Any]] = []
        for req in rows:
            if principal.is_seeker:
                item = request_dict(req, include_pin=True)
                item["provider"] = actor_summary(users.get(req.provider_id))
                item["seeker"] = None
            else:
                own = [e for e in req.history if e.actor_id == actor_id]
                item = request_dict(req, history=own)
                item["seeker"] = actor_summary(users.get(req.seeker_id))
                item["provider"] = None
            items.append(item)
        return items

    def _raise_completion_blocked(self, db: Session, request_id: uuid.UUID) -> NoReturn:
        current = self.store.get(db, request_id)
        if current is not None and current.status == RequestStatus.IN_PROGRESS.value:
            raise PinAttemptsExceeded("Too many wrong PIN attempts for this request.")
        raise InvalidState("Request is no longer in progress.")

    def _notify(self, req: ServiceRequest) -> None:
        if self.notifier is not None:
            self.notifier.request_changed(req)
