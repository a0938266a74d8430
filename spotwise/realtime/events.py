# spotwise/realtime/events.py
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from spotwise.core.enums import EventKind


@dataclass(frozen=True)
class DomainEvent:
    kind: EventKind
    data: Any
    ts: float = field(default_factory=time.time)

    def to_wire(self) -> Dict[str, Any]:
        return {"event": self.kind.value, "data": self.data}


def connected_event(actor_id: str, role: str) -> DomainEvent:
    return DomainEvent(EventKind.CONNECTED, {"connected": True, "actorId": actor_id, "role": role})


def heartbeat_event() -> DomainEvent:
    return DomainEvent(EventKind.HEARTBEAT, int(time.time() * 1000))


def pong_event() -> DomainEvent:
    return DomainEvent(EventKind.PONG, int(time.time() * 1000))


def auth_error_event(message: str) -> DomainEvent:
    return DomainEvent(EventKind.AUTH_ERROR, {"message": message})


def server_error_event(message: str, code: Optional[str] = None) -> DomainEvent:
    data: Dict[str, Any] = {"message": message}
    if code:
        data["error"] = code
    return DomainEvent(EventKind.SERVER_ERROR, data)
