# spotwise/core/request_graph.py
from spotwise.core.enums import RequestStatus

ALLOWED_TRANSITIONS = {
    None: {RequestStatus.PENDING},

    RequestStatus.PENDING: {
        RequestStatus.IN_PROGRESS,
        RequestStatus.CANCELLED,
        RequestStatus.EXPIRED,
    },

    RequestStatus.IN_PROGRESS: {
        RequestStatus.COMPLETED,
        RequestStatus.EXPIRED,
    },

    RequestStatus.COMPLETED: set(),
    RequestStatus.CANCELLED: set(),
    RequestStatus.EXPIRED: set(),
}

TERMINAL_STATUSES = frozenset(
    status for status, nxt in ALLOWED_TRANSITIONS.items() if status is not None and not nxt
)

# statuses the sweeper may force to expired
EXPIRABLE_STATUSES = frozenset(
    status
    for status, nxt in ALLOWED_TRANSITIONS.items()
    if status is not None and RequestStatus.EXPIRED in nxt
)


def can_transition(current, target) -> bool:
    if current is not None:
        current = RequestStatus(current)
    return RequestStatus(target) in ALLOWED_TRANSITIONS.get(current, set())
