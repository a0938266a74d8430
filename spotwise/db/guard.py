# spotwise/db/guard.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from spotwise.core.errors import StoreError

logger = logging.getLogger(__name__)


@contextmanager
def store_call(db: Session, operation: str) -> Iterator[None]:
    """
    Rolls back and re-raises driver failures as StoreError.
    Domain errors raised inside the block pass through untouched.
    """
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("store failure", extra={"operation": operation, "cause": repr(e)})
        raise StoreError() from e
