"""Maps service outcomes to HTTP responses."""
from typing import Any, Dict

from fastapi import HTTPException, status

from app.core.enums import FailureCategory, FailureCode
from app.core.schemas import Outcome

STATUS_BY_CODE: Dict[FailureCode, int] = {
    FailureCode.UNKNOWN_CLASS: status.HTTP_404_NOT_FOUND,
    FailureCode.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureCode.CLASS_FULL: status.HTTP_409_CONFLICT,
    FailureCode.ALREADY_ENROLLED: status.HTTP_409_CONFLICT,
    FailureCode.CLASS_NOT_EMPTY: status.HTTP_409_CONFLICT,
    FailureCode.CAPACITY_BELOW_ENROLLMENT: status.HTTP_409_CONFLICT,
    FailureCode.USERNAME_TAKEN: status.HTTP_409_CONFLICT,
    FailureCode.USER_REFERENCED: status.HTTP_409_CONFLICT,
    FailureCode.INVALID_CAPACITY: status.HTTP_400_BAD_REQUEST,
    FailureCode.INVALID_OWNER: status.HTTP_400_BAD_REQUEST,
    FailureCode.INVALID_STUDENT: status.HTTP_400_BAD_REQUEST,
    FailureCode.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    FailureCode.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
}

STATUS_BY_CATEGORY: Dict[FailureCategory, int] = {
    FailureCategory.AUTH: status.HTTP_401_UNAUTHORIZED,
    FailureCategory.AUTHZ: status.HTTP_403_FORBIDDEN,
}


def unwrap(outcome: Outcome) -> Any:
    """Return the outcome value or raise the matching ``HTTPException``."""
    if outcome.ok:
        return outcome.value
    failure = outcome.failure
    status_code = STATUS_BY_CODE.get(
        failure.code,
        STATUS_BY_CATEGORY.get(failure.category, status.HTTP_400_BAD_REQUEST),
    )
    headers = {"Retry-After": "1"} if failure.retryable else None
    raise HTTPException(
        status_code=status_code,
        detail={"code": failure.code.value, "message": failure.message},
        headers=headers,
    )
