from __future__ import annotations

import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from spotwise.core.enums import ActorRole
from spotwise.schemas.common import GeoJSONPoint

_EMAIL_RE = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.[A-Za-z]{2,}$")
_CONTACT_RE = re.compile(r"^[0-9]{10}$")


def _normalise_skills(skills: Optional[List[str]]) -> Optional[List[str]]:
    if skills is None:
        return None
    seen: List[str] = []
    for raw in skills:
        tag = raw.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class RegisterRequest(BaseModel):
    userName: str = Field(..., min_length=1, max_length=120)
    email: str
    password: str = Field(..., min_length=6, max_length=128)
    role: ActorRole
    contactNumber: Optional[str] = None
    skills: Optional[List[str]] = None
    location: Optional[GeoJSONPoint] = None

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        value = value.strip().lower()
        if not _EMAIL_RE.match(value):
            raise ValueError("Please enter a valid email address")
        return value

    @field_validator("contactNumber")
    @classmethod
    def _contact(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _CONTACT_RE.match(value):
            raise ValueError("Please enter a valid 10-digit contact number")
        return value

    @field_validator("skills")
    @classmethod
    def _skills(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return _normalise_skills(value)

    @model_validator(mode="after")
    def _provider_needs_skills(self) -> "RegisterRequest":
        if self.role is ActorRole.PROVIDER and not self.skills:
            raise ValueError("providers must declare at least one skill")
        if self.role is ActorRole.SEEKER and self.skills:
            raise ValueError("skills are only meaningful for providers")
        return self


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    userId: str
    userName: str
    role: str
    status: str
