from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.api.v1.classes.schemas import EnrollmentResponse
from app.core.enums import UserRole
from app.core.schemas import StudentRecord, UserRecord


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=150)
    password: str = Field(..., min_length=8)
    role: UserRole


class RoleUpdate(BaseModel):
    role: UserRole


class PasswordUpdate(BaseModel):
    new_password: str = Field(..., min_length=8)


class UserResponse(BaseModel):
    """User without the credential hash."""

    id: UUID
    username: str
    role: UserRole
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: UserRecord) -> "UserResponse":
        return cls(
            id=record.id,
            username=record.username,
            role=record.role,
            created_at=record.created_at,
            last_login_at=record.last_login_at,
        )


class StudentRecordResponse(BaseModel):
    id: UUID
    username: str
    role: UserRole
    enrollments: List[EnrollmentResponse]

    @classmethod
    def from_record(cls, record: StudentRecord) -> "StudentRecordResponse":
        return cls(
            id=record.id,
            username=record.username,
            role=record.role,
            enrollments=[EnrollmentResponse.from_record(e) for e in record.enrollments],
        )
