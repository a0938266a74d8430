# spotwise/realtime/bus.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, Iterable, List, Optional, Set

from spotwise.realtime.events import DomainEvent

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Subscription:
    actor_id: str
    loop: asyncio.AbstractEventLoop
    queue: "asyncio.Queue[DomainEvent]"
    # provider ids whose location this connection renders
    watching: Set[str] = field(default_factory=set)

    async def next_event(self, timeout: Optional[float] = None) -> Optional[DomainEvent]:
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None


class EventBus:
    """
    In-process publish/subscribe keyed by actor id.

    publish() is safe from any thread (request handlers run in the threadpool)
    and never raises: delivery is best-effort, at most once, with no replay.
    A full subscriber queue drops the event.
    """

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subs: Dict[str, List[Subscription]] = {}
        self._lock = Lock()

    # ---------------------------
    # SUBSCRIPTIONS
    # ---------------------------

    def subscribe(self, actor_id: str) -> Subscription:
        """
        Must be called from the event loop that will consume the queue.
        """
        sub = Subscription(
            actor_id=actor_id,
            loop=asyncio.get_running_loop(),
            queue=asyncio.Queue(maxsize=self.queue_size),
        )
        with self._lock:
            self._subs.setdefault(actor_id, []).append(sub)
        logger.info("subscriber attached", extra={"actor_id": actor_id})
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            subs = self._subs.get(sub.actor_id, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subs.pop(sub.actor_id, None)

    def watch(self, sub: Subscription, provider_ids: Iterable[str]) -> None:
        with self._lock:
            sub.watching = set(provider_ids)

    def is_connected(self, actor_id: str) -> bool:
        with self._lock:
            return bool(self._subs.get(actor_id))

    # ---------------------------
    # PUBLISH
    # ---------------------------

    def publish(self, actor_ids: Iterable[str], event: DomainEvent) -> int:
        with self._lock:
            targets = [s for a in set(actor_ids) for s in self._subs.get(a, [])]
        return self._fan_out(targets, event)

    def publish_to_watchers(self, provider_id: str, event: DomainEvent, exclude: Iterable[str] = ()) -> int:
        skip = set(exclude)
        with self._lock:
            targets = [
                s
                for subs in self._subs.values()
                for s in subs
                if provider_id in s.watching and s.actor_id not in skip
            ]
        return self._fan_out(targets, event)

    def _fan_out(self, targets: List[Subscription], event: DomainEvent) -> int:
        scheduled = 0
        for sub in targets:
            try:
                sub.loop.call_soon_threadsafe(self._deliver, sub, event)
                scheduled += 1
            except RuntimeError:
                # loop already closed: the connection is gone
                logger.warning("dropping dead subscriber", extra={"actor_id": sub.actor_id})
                self.unsubscribe(sub)
        return scheduled

    @staticmethod
    def _deliver(sub: Subscription, event: DomainEvent) -> None:
        try:
            sub.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "subscriber queue full, event dropped",
                extra={"actor_id": sub.actor_id, "event": event.kind.value},
            )

    def offer(self, sub: Subscription, event: DomainEvent) -> None:
        """Queue a reply for one connection. Call from the subscription's own loop."""
        self._deliver(sub, event)
