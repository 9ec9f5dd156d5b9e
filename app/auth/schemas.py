from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.core.enums import UserRole


class RegisterRequest(BaseModel):
    """Self-registration; always creates a STUDENT account."""

    username: str = Field(..., min_length=3, max_length=150)
    password: str = Field(..., min_length=8)
    confirm_password: str = Field(..., min_length=8)

    @model_validator(mode="after")
    def validate_passwords(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("password and confirm_password do not match")
        return self


class LoginRequest(BaseModel):
    username: str
    password: str


class UserInfo(BaseModel):
    id: UUID
    username: str
    role: UserRole


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserInfo
    issued_at: datetime


class MeResponse(BaseModel):
    """Principal as seen by the token; role may lag a recent role change."""

    user_id: UUID
    role: UserRole
