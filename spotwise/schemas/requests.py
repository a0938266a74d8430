from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, StrictInt, field_validator

from spotwise.schemas.common import ActorSummary, GeoJSONPoint


def _stripped(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class CreateServiceRequest(BaseModel):
    category: str = Field(..., max_length=64)
    description: str = Field(..., max_length=2000)
    contactNumber: str = Field(..., max_length=32)
    location: GeoJSONPoint
    duration: StrictInt = Field(..., gt=0, description="Validity window in minutes")
    additionalDetails: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("category", "description", "contactNumber")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return _stripped(value)

    @field_validator("category")
    @classmethod
    def _normalise_category(cls, value: str) -> str:
        return value.lower()


class CompleteRequestBody(BaseModel):
    pin: str = Field(..., min_length=1, max_length=16)


class HistoryEntryOut(BaseModel):
    kind: str
    actorId: str
    timestamp: str


class ServiceRequestOut(BaseModel):
    id: str
    seekerId: str
    category: str
    description: str
    contactNumber: str
    location: GeoJSONPoint
    duration: int
    additionalDetails: Optional[str] = None
    providerId: Optional[str] = None
    status: str
    generatedPin: Optional[str] = None
    pinGeneratedAt: Optional[str] = None
    createdAt: str
    expirationTime: str
    history: List[HistoryEntryOut] = Field(default_factory=list)


class ActiveRequestOut(ServiceRequestOut):
    distanceM: float
    seeker: Optional[ActorSummary] = None


class HistoryItemOut(ServiceRequestOut):
    seeker: Optional[ActorSummary] = None
    provider: Optional[ActorSummary] = None


class HistoryResponse(BaseModel):
    role: str
    history: List[HistoryItemOut]


class PinResponse(BaseModel):
    requestId: str
    generatedPin: str


class TransitionResponse(BaseModel):
    message: str
    request: ServiceRequestOut
