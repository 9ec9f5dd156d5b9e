from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from app.api.v1.outcomes import unwrap
from app.auth.security import principal_from_token
from app.core.enums import FailureCode
from app.core.schemas import Principal
from app.core.services import SchoolService


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth")


def get_school_service(request: Request) -> SchoolService:
    return request.app.state.school_service


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    token: str = Depends(oauth2_scheme),
    school: SchoolService = Depends(get_school_service),
) -> Principal:
    """Resolve the principal carried by the access token.

    The account must still exist; the role is the one the token was issued
    with.
    """
    principal = principal_from_token(token)
    if principal is None:
        raise _credentials_exception()

    outcome = await school.get_user(principal, principal.user_id)
    if not outcome.ok and outcome.failure.code is FailureCode.USER_NOT_FOUND:
        raise _credentials_exception()
    # Store outages surface as 503/504, not as a rejected token
    unwrap(outcome)
    return principal
