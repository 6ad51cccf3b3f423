"""
CatTrack Backend: User Request/Response Schemas
================================================

What:  Pydantic models for registration, profile updates, login and the
       public user view.
How:   Response models never include `password` or `role`; the public view
       is what every non-owner (and every owner) sees.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class UserCreate(BaseModel):
    """
    Registration payload.

    A `role` key sent by the client is ignored: the model does not declare
    it and registration always stores role='user'.
    """
    user_name: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=5, max_length=128)


class UserUpdate(BaseModel):
    """Partial update of the current user's own account."""
    user_name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=5, max_length=128)

    @field_validator("user_name", "email", "password", mode="before")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field may not be null")
        return v

    @model_validator(mode="after")
    def require_one_field(self) -> "UserUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one of user_name, email or password is required")
        return self


class LoginRequest(BaseModel):
    """Local credentials; `username` carries the account email."""
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserPublic(BaseModel):
    """User with password and role stripped."""
    id: uuid.UUID
    user_name: str
    email: str

    model_config = {"from_attributes": True}


class UserMessageResponse(BaseModel):
    """Envelope returned by user mutations."""
    message: str
    data: UserPublic


class LoginResponse(BaseModel):
    """Successful login: bearer token plus the public user view."""
    message: str = "Login successful"
    token: str
    user: UserPublic
