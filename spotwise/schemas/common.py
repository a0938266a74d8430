from __future__ import annotations

import math
from typing import List, Literal

from pydantic import BaseModel, Field, field_validator


class GeoJSONPoint(BaseModel):
    """
    GeoJSON Point: coordinates are [longitude, latitude].
    """
    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(..., min_length=2, max_length=2)

    @field_validator("coordinates")
    @classmethod
    def _check_range(cls, value: List[float]) -> List[float]:
        lon, lat = value
        if not (math.isfinite(lon) and math.isfinite(lat)):
            raise ValueError("coordinates must be finite numbers")
        if not -180.0 <= lon <= 180.0:
            raise ValueError("longitude must be within [-180, 180]")
        if not -90.0 <= lat <= 90.0:
            raise ValueError("latitude must be within [-90, 90]")
        return value

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


class ActorSummary(BaseModel):
    id: str
    name: str
    contactNumber: str | None = None
