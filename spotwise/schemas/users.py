from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from spotwise.core.enums import ProviderStatus
from spotwise.schemas.auth import _CONTACT_RE, _normalise_skills
from spotwise.schemas.common import GeoJSONPoint


class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postalCode: Optional[str] = None
    country: Optional[str] = None


class ProfileOut(BaseModel):
    id: str
    userName: str
    email: str
    contactNumber: Optional[str] = None
    role: str
    address: Dict[str, Optional[str]] = Field(default_factory=dict)
    skills: List[str] = Field(default_factory=list)
    location: Optional[GeoJSONPoint] = None
    status: str


class ProfileUpdate(BaseModel):
    userName: Optional[str] = Field(default=None, min_length=1, max_length=120)
    contactNumber: Optional[str] = None
    address: Optional[Address] = None
    skills: Optional[List[str]] = None
    location: Optional[GeoJSONPoint] = None

    @field_validator("contactNumber")
    @classmethod
    def _contact(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _CONTACT_RE.match(value):
            raise ValueError("Please enter a valid 10-digit contact number")
        return value

    @field_validator("skills")
    @classmethod
    def _skills(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        value = _normalise_skills(value)
        if value is not None and not value:
            raise ValueError("providers must keep at least one skill")
        return value


class StatusUpdate(BaseModel):
    status: ProviderStatus


class StatusOut(BaseModel):
    status: str


class LocationUpdate(BaseModel):
    location: GeoJSONPoint
