from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.v1.outcomes import unwrap
from app.auth.dependencies import get_current_principal, get_school_service
from app.core.enums import UserRole
from app.core.schemas import Principal
from app.core.services import SchoolService

from .schemas import PasswordUpdate, RoleUpdate, StudentRecordResponse, UserCreate, UserResponse

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_user(
    payload: UserCreate,
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> UserResponse:
    user = unwrap(await school.create_user(principal, payload.username, payload.password, payload.role))
    return UserResponse.from_record(user)


@router.get("", response_model=List[UserResponse])
async def list_users(
    role: Optional[UserRole] = Query(None),
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> List[UserResponse]:
    return [UserResponse.from_record(u) for u in unwrap(await school.list_users(principal, role))]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> UserResponse:
    return UserResponse.from_record(unwrap(await school.get_user(principal, user_id)))


@router.put("/{user_id}/role", response_model=UserResponse)
async def change_role(
    user_id: UUID,
    payload: RoleUpdate,
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> UserResponse:
    return UserResponse.from_record(unwrap(await school.change_role(principal, user_id, payload.role)))


@router.put("/{user_id}/password", response_model=UserResponse)
async def change_password(
    user_id: UUID,
    payload: PasswordUpdate,
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> UserResponse:
    return UserResponse.from_record(unwrap(await school.change_password(principal, user_id, payload.new_password)))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> None:
    unwrap(await school.delete_user(principal, user_id))


@router.get("/{user_id}/record", response_model=StudentRecordResponse)
async def student_record(
    user_id: UUID,
    school: SchoolService = Depends(get_school_service),
    principal: Principal = Depends(get_current_principal),
) -> StudentRecordResponse:
    return StudentRecordResponse.from_record(unwrap(await school.view_student_record(principal, user_id)))
