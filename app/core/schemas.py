from datetime import datetime
from typing import Any, FrozenSet, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import ClassState, DenyReason, FailureCategory, FailureCode, UserRole
from app.core.exceptions import ServiceError


class UserRecord(BaseModel):
    """Identity store row, detached from any session."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    password_hash: str
    role: UserRole
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class Principal(BaseModel):
    """Resolved identity + role for one authorization decision. Never persisted."""

    model_config = ConfigDict(frozen=True)

    user_id: UUID
    role: UserRole


class TargetRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    class_id: Optional[UUID] = None
    student_id: Optional[UUID] = None


class Decision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(allowed=False, reason=reason)


class EnrollmentRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    class_id: UUID
    student_id: UUID
    enrolled_at: datetime


class ClassRecord(BaseModel):
    """Immutable snapshot of one class. Registry mutations replace it wholesale."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    owner_id: UUID
    capacity: int
    visible: bool = True
    created_at: datetime
    version: int = 1
    enrollments: Tuple[EnrollmentRecord, ...] = ()

    @property
    def enrolled_count(self) -> int:
        return len(self.enrollments)

    @property
    def student_ids(self) -> FrozenSet[UUID]:
        return frozenset(e.student_id for e in self.enrollments)

    @property
    def state(self) -> ClassState:
        return ClassState.FULL if self.enrolled_count >= self.capacity else ClassState.OPEN


class StudentRecord(BaseModel):
    id: UUID
    username: str
    role: UserRole
    enrollments: Tuple[EnrollmentRecord, ...] = ()


class Failure(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: FailureCategory
    code: FailureCode
    message: str
    retryable: bool = False

    @classmethod
    def from_error(cls, error: ServiceError) -> "Failure":
        code = error.code
        message = error.message
        # Unknown user and bad password look identical from outside
        if code in (FailureCode.UNKNOWN_USER, FailureCode.BAD_CREDENTIAL):
            code = FailureCode.AUTHENTICATION_FAILED
            message = "Invalid credentials"
        return cls(
            category=error.category,
            code=code,
            message=message,
            retryable=error.retryable,
        )


class Outcome(BaseModel):
    """Tagged result returned by every service call: a value or a failure."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    ok: bool
    value: Any = None
    failure: Optional[Failure] = Field(default=None)

    @classmethod
    def success(cls, value: Any = None) -> "Outcome":
        return cls(ok=True, value=value)

    @classmethod
    def failed(cls, error: ServiceError) -> "Outcome":
        return cls(ok=False, failure=Failure.from_error(error))
