# spotwise/services/accounts_service.py
from __future__ import annotations

import logging
import uuid
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from spotwise.core.enums import ActorRole, ProviderStatus
from spotwise.core.errors import AuthenticationError, InvalidState, NotFound, ValidationError
from spotwise.core.security import create_access_token, hash_password, verify_password
from spotwise.db.guard import store_call
from spotwise.db.types import utcnow
from spotwise.models.user import User
from spotwise.policies.rbac import ACTION_SET_STATUS, Principal, require_action
from spotwise.schemas.auth import RegisterRequest
from spotwise.schemas.users import ProfileUpdate
from spotwise.services.request_store import RequestStore

logger = logging.getLogger(__name__)


def issue_token(user: User) -> str:
    return create_access_token(str(user.id), user.role)


class AccountService:
    def __init__(self, store: Optional[RequestStore] = None):
        self.store = store or RequestStore()

    # ---------------------------
    # READS
    # ---------------------------

    def get_user(self, db: Session, actor_id: uuid.UUID) -> User:
        user = db.get(User, actor_id, populate_existing=True)
        if user is None:
            raise NotFound("User not found.")
        return user

    def find_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.execute(
            select(User).where(User.email == email.strip().lower())
        ).scalar_one_or_none()

    # ---------------------------
    # AUTH
    # ---------------------------

    def register(self, db: Session, body: RegisterRequest) -> Tuple[User, str]:
        with store_call(db, "register"):
            if self.find_by_email(db, body.email):
                raise ValidationError("User already exists.")
            user = User(
                user_name=body.userName.strip(),
                email=body.email,
                contact_number=body.contactNumber,
                role=body.role.value,
                password_hash=hash_password(body.password),
                skills=list(body.skills or []),
                status=ProviderStatus.OFFLINE.value,
            )
            if body.location is not None:
                user.longitude = body.location.longitude
                user.latitude = body.location.latitude
            db.add(user)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise ValidationError("User already exists.")
        logger.info("user registered", extra={"actor_id": str(user.id), "role": user.role})
        return user, issue_token(user)

    def login(self, db: Session, email: str, password: str) -> Tuple[User, str]:
        with store_call(db, "login"):
            user = self.find_by_email(db, email)
            if user is None or not verify_password(password, user.password_hash):
                raise AuthenticationError("Invalid credentials.")
            if user.actor_role is ActorRole.PROVIDER and user.status == ProviderStatus.OFFLINE.value:
                user.status = ProviderStatus.ONLINE.value
                db.commit()
        return user, issue_token(user)

    def logout(self, db: Session, principal: Principal) -> None:
        if not principal.is_provider:
            return
        with store_call(db, "logout"):
            # a provider holding a job stays in-progress
            db.execute(
                update(User)
                .where(
                    User.id == uuid.UUID(principal.actor_id),
                    User.status != ProviderStatus.IN_PROGRESS.value,
                )
                .values(status=ProviderStatus.OFFLINE.value, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            db.commit()

    # ---------------------------
    # PROFILE
    # ---------------------------

    def update_profile(self, db: Session, principal: Principal, body: ProfileUpdate) -> User:
        with store_call(db, "update_profile"):
            user = self.get_user(db, uuid.UUID(principal.actor_id))
            if body.userName is not None:
                user.user_name = body.userName.strip()
            if body.contactNumber is not None:
                user.contact_number = body.contactNumber
            if body.address is not None:
                user.address_json = body.address.model_dump()
            if body.location is not None:
                user.longitude = body.location.longitude
                user.latitude = body.location.latitude
            if body.skills is not None:
                if not principal.is_provider:
                    raise ValidationError("Only providers have skills.")
                user.skills = list(body.skills)
            db.commit()
            return user

    # ---------------------------
    # PROVIDER STATUS
    # ---------------------------

    def get_status(self, db: Session, principal: Principal) -> str:
        require_action(principal, ACTION_SET_STATUS)
        with store_call(db, "get_status"):
            return self.get_user(db, uuid.UUID(principal.actor_id)).status

    def set_status(self, db: Session, principal: Principal, status: ProviderStatus) -> str:
        """
        Manual override. `in-progress` is owned by the lifecycle: it cannot be
        entered by hand, and cannot be left while a job is still open.
        """
        require_action(principal, ACTION_SET_STATUS)
        provider_id = uuid.UUID(principal.actor_id)
        with store_call(db, "set_status"):
            user = self.get_user(db, provider_id)
            if status is ProviderStatus.IN_PROGRESS:
                if user.status == ProviderStatus.IN_PROGRESS.value:
                    return user.status
                raise InvalidState("in-progress is set by accepting a request.")
            if self.store.open_request_for_provider(db, provider_id) is not None:
                raise InvalidState("Complete the request in progress before changing status.")
            # an accept may have claimed the provider since the check above
            result = db.execute(
                update(User)
                .where(
                    User.id == provider_id,
                    User.status != ProviderStatus.IN_PROGRESS.value,
                )
                .values(status=status.value, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                raise InvalidState("Complete the request in progress before changing status.")
            db.commit()
            return status.value

    def claim_provider(self, db: Session, provider_id: uuid.UUID) -> bool:
        """
        Conditional flip to in-progress; fails when the provider already holds a job.
        """
        result = db.execute(
            update(User)
            .where(
                User.id == provider_id,
                User.role == ActorRole.PROVIDER.value,
                User.status != ProviderStatus.IN_PROGRESS.value,
            )
            .values(status=ProviderStatus.IN_PROGRESS.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def release_provider(self, db: Session, provider_id: uuid.UUID) -> None:
        db.execute(
            update(User)
            .where(
                User.id == provider_id,
                User.status == ProviderStatus.IN_PROGRESS.value,
            )
            .values(status=ProviderStatus.ONLINE.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )

    def get_users(self, db: Session, actor_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, User]:
        ids = [i for i in set(actor_ids) if i is not None]
        if not ids:
            return {}
        rows = db.execute(select(User).where(User.id.in_(ids))).scalars().all()
        return {u.id: u for u in rows}
