from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi import status as http_status
from fastapi.security import OAuth2PasswordRequestForm

from app.api.v1.outcomes import unwrap
from app.auth.dependencies import get_current_principal, get_school_service
from app.auth.schemas import LoginRequest, LoginResponse, MeResponse, RegisterRequest, UserInfo
from app.auth.security import token_for_principal
from app.core.schemas import Principal
from app.core.services import SchoolService

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=UserInfo,
    status_code=http_status.HTTP_201_CREATED,
)
async def register(
    payload: RegisterRequest,
    school: SchoolService = Depends(get_school_service),
) -> UserInfo:
    user = unwrap(await school.register_student(payload.username, payload.password))
    return UserInfo(id=user.id, username=user.username, role=user.role)


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    school: SchoolService = Depends(get_school_service),
) -> LoginResponse:
    principal: Principal = unwrap(await school.authenticate(payload.username, payload.password))
    return LoginResponse(
        access_token=token_for_principal(principal),
        user=UserInfo(id=principal.user_id, username=payload.username.strip(), role=principal.role),
        issued_at=datetime.now(timezone.utc),
    )


@router.post("/login-oauth")
async def login_oauth(
    form_data: OAuth2PasswordRequestForm = Depends(),
    school: SchoolService = Depends(get_school_service),
):
    principal = unwrap(await school.authenticate(form_data.username, form_data.password))
    return {
        "access_token": token_for_principal(principal),
        "token_type": "bearer",
    }


@router.get("/me", response_model=MeResponse)
async def me(principal: Principal = Depends(get_current_principal)) -> MeResponse:
    return MeResponse(user_id=principal.user_id, role=principal.role)
