# spotwise/core/enums.py
from __future__ import annotations
from enum import Enum


class ActorRole(str, Enum):
    SEEKER = "seeker"
    PROVIDER = "provider"


class RequestStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class ProviderStatus(str, Enum):
    OFFLINE = "offline"
    ONLINE = "online"
    ACTIVE = "active"
    IN_PROGRESS = "in-progress"


class HistoryKind(str, Enum):
    ACCEPTED = "accepted"
    COMPLETED = "completed"


class EventKind(str, Enum):
    CONNECTED = "connected"
    REQUEST_UPDATED = "requestUpdated"
    NEW_REQUEST = "newRequestNotification"
    NEARBY_PROVIDERS = "nearbyProvidersUpdate"
    PROVIDER_LOCATION = "providerLocationUpdated"
    SERVER_ERROR = "serverError"
    AUTH_ERROR = "authError"
    HEARTBEAT = "heartbeat"
    PONG = "pong"
