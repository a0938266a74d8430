from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict

from spotwise.geo.spherical import GeoPoint, haversine_m


@dataclass
class Fix:
    point: GeoPoint
    last_ts: float


class LocationThrottle:
    """
    Decides whether a provider position is worth broadcasting:
      moved more than min_move_m since the last broadcast, or
      the last broadcast is older than max_stale_seconds.

    Keyed by provider id. Only the broadcast is throttled; the location
    record itself is written on every update.
    """
    def __init__(
        self,
        min_move_m: float,
        max_stale_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_move_m = float(min_move_m)
        self.max_stale_seconds = float(max_stale_seconds)
        self.clock = clock
        self._fixes: Dict[str, Fix] = {}
        self._lock = Lock()

    def allow(self, provider_id: str, point: GeoPoint) -> bool:
        now = self.clock()
        with self._lock:
            last = self._fixes.get(provider_id)
            if last is not None:
                moved = haversine_m(last.point, point)
                stale = (now - last.last_ts) >= self.max_stale_seconds
                if moved <= self.min_move_m and not stale:
                    return False
            self._fixes[provider_id] = Fix(point=point, last_ts=now)
            return True

    def forget(self, provider_id: str) -> None:
        with self._lock:
            self._fixes.pop(provider_id, None)
