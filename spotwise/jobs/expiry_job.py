from __future__ import annotations

import asyncio
import logging

from sqlalchemy.orm import sessionmaker

from spotwise.core.errors import StoreError
from spotwise.services.expiry_sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


def _sweep_once(sweeper: ExpirySweeper, session_factory: sessionmaker) -> int:
    db = session_factory()
    try:
        return len(sweeper.sweep_expired(db))
    finally:
        db.close()


async def expiry_loop(
    sweeper: ExpirySweeper,
    session_factory: sessionmaker,
    interval_seconds: float,
    stop_event: asyncio.Event,
) -> None:
    """
    Periodic sweep; the eager sweep on each read path covers the gaps between runs.
    """
    while not stop_event.is_set():
        try:
            await asyncio.to_thread(_sweep_once, sweeper, session_factory)
        except StoreError:
            # already logged by the store guard; try again next tick
            pass
        except Exception:
            logger.exception("expiry sweep failed")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            continue
