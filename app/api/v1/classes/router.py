from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.v1.outcomes import unwrap
from app.auth.dependencies import get_current_principal, get_school_service
from app.core.schemas import Principal
from app.core.services import SchoolService

from .schemas import (
    ClassCreate,
    ClassDeleteResponse,
    ClassResponse,
    ClassUpdate,
    EnrollmentResponse,
    EnrollRequest,
)

router = APIRouter(prefix="/api/v1/classes", tags=["classes"])


@router.post(
    "",
    response_model=ClassResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_class(
    payload: ClassCreate,
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> ClassResponse:
    record = unwrap(
        await school.create_class(
            principal,
            payload.name,
            payload.capacity,
            owner_id=payload.owner_id,
            visible=payload.visible,
        )
    )
    return ClassResponse.from_record(record)


@router.get("", response_model=List[ClassResponse])
async def list_classes(
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> List[ClassResponse]:
    """Classes visible to the caller: all for admins, owned or visible for teachers, enrolled for students."""
    return [ClassResponse.from_record(r) for r in unwrap(await school.list_classes(principal))]


@router.get("/{class_id}", response_model=ClassResponse)
async def get_class(
    class_id: UUID,
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> ClassResponse:
    return ClassResponse.from_record(unwrap(await school.view_class(principal, class_id)))


@router.put("/{class_id}", response_model=ClassResponse)
async def update_class(
    class_id: UUID,
    payload: ClassUpdate,
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> ClassResponse:
    record = unwrap(
        await school.update_class(
            principal,
            class_id,
            name=payload.name,
            visible=payload.visible,
            capacity=payload.capacity,
        )
    )
    return ClassResponse.from_record(record)


@router.delete("/{class_id}", response_model=ClassDeleteResponse)
async def delete_class(
    class_id: UUID,
    cascade: bool = Query(False, description="Admin only: remove all enrollments together with the class"),
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> ClassDeleteResponse:
    removed = unwrap(await school.delete_class(principal, class_id, cascade=cascade))
    return ClassDeleteResponse(id=class_id, enrollments_removed=removed)


@router.post(
    "/{class_id}/enrollments",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    class_id: UUID,
    payload: EnrollRequest,
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> EnrollmentResponse:
    record = unwrap(await school.enroll(principal, class_id, payload.student_id))
    return EnrollmentResponse.from_record(record)


@router.delete(
    "/{class_id}/enrollments/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def unenroll(
    class_id: UUID,
    student_id: UUID,
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> None:
    # Removing an absent enrollment is still a success
    unwrap(await school.unenroll(principal, class_id, student_id))
