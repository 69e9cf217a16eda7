"""Pydantic schemas for login and the authenticated user."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, computed_field, field_validator

from fulfillment.domain.models.user import UserRole


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserRead
