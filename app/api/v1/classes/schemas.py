from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import ClassState
from app.core.schemas import ClassRecord, EnrollmentRecord


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    # Validated by the registry so a bad value reports InvalidCapacity
    capacity: int
    owner_id: Optional[UUID] = Field(None, description="Owning teacher; required for admins, ignored for teachers")
    visible: bool = True


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    capacity: Optional[int] = None
    visible: Optional[bool] = None


class EnrollRequest(BaseModel):
    student_id: Optional[UUID] = Field(None, description="Defaults to the caller (self-enrollment)")


class EnrollmentResponse(BaseModel):
    class_id: UUID
    student_id: UUID
    enrolled_at: datetime

    @classmethod
    def from_record(cls, record: EnrollmentRecord) -> "EnrollmentResponse":
        return cls(class_id=record.class_id, student_id=record.student_id, enrolled_at=record.enrolled_at)


class ClassResponse(BaseModel):
    id: UUID
    name: str
    owner_id: UUID
    capacity: int
    visible: bool
    state: ClassState
    enrolled_count: int
    enrollments: List[EnrollmentResponse]
    version: int
    created_at: datetime

    @classmethod
    def from_record(cls, record: ClassRecord) -> "ClassResponse":
        return cls(
            id=record.id,
            name=record.name,
            owner_id=record.owner_id,
            capacity=record.capacity,
            visible=record.visible,
            state=record.state,
            enrolled_count=record.enrolled_count,
            enrollments=[EnrollmentResponse.from_record(e) for e in record.enrollments],
            version=record.version,
            created_at=record.created_at,
        )


class ClassDeleteResponse(BaseModel):
    id: UUID
    enrollments_removed: int
