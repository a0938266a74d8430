# spotwise/services/expiry_sweeper.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, TYPE_CHECKING

from sqlalchemy.orm import Session

from spotwise.core.enums import RequestStatus
from spotwise.db.guard import store_call
from spotwise.db.types import utcnow
from spotwise.models.service_request import ServiceRequest
from spotwise.services.accounts_service import AccountService
from spotwise.services.request_store import RequestStore

if TYPE_CHECKING:
    from spotwise.realtime.notifier import RealtimeNotifier

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """
    Forces every non-terminal request past its expiration_time to `expired`.

    Runs eagerly in front of every read/transition path and periodically from
    the background job. Store failures surface as StoreError so the guarded
    read fails closed instead of serving stale rows.
    """

    def __init__(
        self,
        store: RequestStore,
        accounts: AccountService,
        notifier: Optional["RealtimeNotifier"] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.accounts = accounts
        self.notifier = notifier
        self.clock = clock

    def sweep_expired(self, db: Session) -> List[ServiceRequest]:
        now = self.clock()
        expired: List[ServiceRequest] = []

        with store_call(db, "sweep_expired"):
            for req in self.store.find_expirable(db, now):
                previous = RequestStatus(req.status)
                won = self.store.compare_and_set_status(
                    db,
                    req.id,
                    expected=previous,
                    target=RequestStatus.EXPIRED,
                    now=now,
                    extra_where=[ServiceRequest.expiration_time < now],
                )
                if not won:
                    # another writer moved it first
                    continue
                if previous is RequestStatus.IN_PROGRESS and req.provider_id is not None:
                    self.accounts.release_provider(db, req.provider_id)
                expired.append(req)

            if not expired:
                # close the read-only transaction
                db.rollback()
                return []

            db.commit()
            expired = [self.store.get(db, req.id) for req in expired]

        logger.info("requests expired", extra={"count": len(expired), "request_ids": [str(r.id) for r in expired]})
        if self.notifier is not None:
            for req in expired:
                self.notifier.request_changed(req)
        return expired
