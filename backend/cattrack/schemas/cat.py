"""
CatTrack Backend: Cat Request/Response Schemas
===============================================

What:  Pydantic models for creating, updating and returning cats.
How:   CatCreate is assembled by the route from multipart form fields;
       CatUpdate is a JSON body. Neither declares an owner: ownership is
       always derived from the acting principal.
"""

import uuid
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from cattrack.schemas.user import UserPublic


def _not_in_future(value: Optional[date]) -> Optional[date]:
    if value is not None and value > date.today():
        raise ValueError("Birthdate cannot be in the future")
    return value


class GeoPoint(BaseModel):
    """A latitude/longitude pair with range checks."""
    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, allow_inf_nan=False)


class PointGeometry(BaseModel):
    """GeoJSON Point, coordinates ordered [lng, lat]."""
    type: str = "Point"
    coordinates: List[float] = Field(min_length=2, max_length=2)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class CatCreate(BaseModel):
    """
    Fields of a new cat, taken from the multipart form.

    `location` is optional here: when absent, CatService falls back to the
    GPS position embedded in the uploaded image.
    """
    cat_name: str = Field(min_length=2, max_length=100)
    weight: float = Field(gt=0, le=100, allow_inf_nan=False)
    birthdate: date
    location: Optional[GeoPoint] = None

    @field_validator("birthdate")
    @classmethod
    def validate_birthdate(cls, v):
        return _not_in_future(v)


class CatUpdate(BaseModel):
    """Partial update; only fields present in the body are written."""
    cat_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    weight: Optional[float] = Field(default=None, gt=0, le=100, allow_inf_nan=False)
    birthdate: Optional[date] = None
    location: Optional[GeoPoint] = None

    @field_validator("cat_name", "weight", "birthdate", "location", mode="before")
    @classmethod
    def reject_null(cls, v):
        # Only runs for fields present in the body
        if v is None:
            raise ValueError("Field may not be null")
        return v

    @field_validator("birthdate")
    @classmethod
    def validate_birthdate(cls, v):
        return _not_in_future(v)

    @model_validator(mode="after")
    def require_one_field(self) -> "CatUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one of cat_name, weight, birthdate or location is required")
        return self


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class CatResponse(BaseModel):
    """A cat with its owner populated (id, user_name, email)."""
    id: uuid.UUID
    cat_name: str
    weight: float
    birthdate: date
    filename: str
    location: PointGeometry
    owner: UserPublic


class CatMessageResponse(BaseModel):
    """Envelope returned by cat mutations."""
    message: str
    data: CatResponse
