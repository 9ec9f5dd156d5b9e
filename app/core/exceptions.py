from typing import Optional

from app.core.enums import DenyReason, FailureCategory, FailureCode


class ServiceError(Exception):
    """Base exception for service layer errors.

    Every failure raised inside the core carries a category and a code so the
    service boundary can turn it into an ``Outcome`` without guessing.
    """

    category: FailureCategory
    retryable: bool = False

    def __init__(self, code: FailureCode, message: Optional[str] = None) -> None:
        message = message or code.value
        super().__init__(message)
        self.code = code
        self.message = message


class AuthFailure(ServiceError):
    """Credentials did not resolve to a principal (unknown user or bad password)."""

    category = FailureCategory.AUTH


class AuthzFailure(ServiceError):
    """The principal's role does not permit the requested action on the target."""

    category = FailureCategory.AUTHZ

    @classmethod
    def from_reason(cls, reason: DenyReason, message: Optional[str] = None) -> "AuthzFailure":
        return cls(FailureCode(reason.value), message)


class RegistryFailure(ServiceError):
    """A class/enrollment mutation would break a structural invariant."""

    category = FailureCategory.REGISTRY


class AccountFailure(ServiceError):
    category = FailureCategory.ACCOUNT


class CollaboratorFailure(ServiceError):
    """Identity store or credential verifier did not answer in time or at all."""

    category = FailureCategory.COLLABORATOR
    retryable = True
