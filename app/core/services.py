"""
Service boundary for the transport layer.

``SchoolService`` composes authentication, authorization and registry
mutations. Every public coroutine returns an ``Outcome``; ``ServiceError``
raised anywhere below is converted here and never escapes.
"""
import functools
import logging
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional
from uuid import UUID

from app.auth.rbac import AuthorizationEngine
from app.auth.services import SessionCoordinator
from app.auth.store import CredentialVerifier, IdentityStore
from app.core.collaborators import call_collaborator
from app.core.config import settings
from app.core.enums import Action, DenyReason, FailureCode, UserRole
from app.core.exceptions import AccountFailure, AuthzFailure, RegistryFailure, ServiceError
from app.core.registry import ClassRegistry
from app.core.schemas import (
    ClassRecord,
    Decision,
    Outcome,
    Principal,
    StudentRecord,
    TargetRef,
    UserRecord,
)

logger = logging.getLogger(__name__)


def returns_outcome(func: Callable[..., Awaitable]) -> Callable[..., Awaitable[Outcome]]:
    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> Outcome:
        try:
            return Outcome.success(await func(*args, **kwargs))
        except ServiceError as e:
            logger.info("%s failed: %s/%s (%s)", func.__name__, e.category.value, e.code.value, e.message)
            return Outcome.failed(e)

    return wrapper


class SchoolService:
    def __init__(
        self,
        identity_store: IdentityStore,
        verifier: CredentialVerifier,
        collaborator_timeout: Optional[float] = None,
        record_last_login: Optional[bool] = None,
    ) -> None:
        if collaborator_timeout is None:
            collaborator_timeout = settings.collaborator_timeout_seconds
        if record_last_login is None:
            record_last_login = settings.record_last_login
        self.identity_store = identity_store
        self.verifier = verifier
        self.timeout = collaborator_timeout
        self.registry = ClassRegistry(identity_store, collaborator_timeout)
        self.engine = AuthorizationEngine(self.registry)
        self.sessions = SessionCoordinator(
            identity_store, verifier, collaborator_timeout, record_last_login
        )

    def _require(self, principal: Principal, action: Action, target: TargetRef = TargetRef()) -> None:
        decision = self.engine.authorize(principal, action, target)
        if not decision.allowed:
            logger.info(
                "Denied %s for user %s (%s): %s",
                action.value,
                principal.user_id,
                principal.role.value,
                decision.reason.value,
            )
            raise AuthzFailure.from_reason(decision.reason, f"{action.value} denied: {decision.reason.value}")

    async def _store(self, awaitable: Awaitable):
        return await call_collaborator("identity store", awaitable, self.timeout)

    async def _get_user(self, user_id: UUID) -> UserRecord:
        user = await self._store(self.identity_store.find_by_id(user_id))
        if user is None:
            raise AccountFailure(FailureCode.USER_NOT_FOUND, f"User {user_id} not found")
        return user

    async def _new_user(self, username: str, password: str, role: UserRole) -> UserRecord:
        username = username.strip()
        existing = await self._store(self.identity_store.find_by_username(username))
        if existing is not None:
            raise AccountFailure(FailureCode.USERNAME_TAKEN, f"Username '{username}' is already in use")
        password_hash = await call_collaborator(
            "credential verifier", self.verifier.hash(password), self.timeout
        )
        user = UserRecord(
            id=uuid.uuid4(),
            username=username,
            password_hash=password_hash,
            role=role,
            created_at=datetime.now(timezone.utc),
        )
        saved = await self._store(self.identity_store.save(user))
        logger.info("Created user %s (%s)", saved.id, role.value)
        return saved

    # Authentication / authorization

    @returns_outcome
    async def authenticate(self, username: str, password: str) -> Principal:
        return await self.sessions.authenticate(username, password)

    @returns_outcome
    async def authorize(self, principal: Principal, action: Action, target: TargetRef = TargetRef()) -> Decision:
        self._require(principal, action, target)
        return Decision.allow()

    # Users

    @returns_outcome
    async def register_student(self, username: str, password: str) -> UserRecord:
        return await self._new_user(username, password, UserRole.STUDENT)

    @returns_outcome
    async def create_user(self, principal: Principal, username: str, password: str, role: UserRole) -> UserRecord:
        self._require(principal, Action.MANAGE_USERS)
        return await self._new_user(username, password, role)

    @returns_outcome
    async def get_user(self, principal: Principal, user_id: UUID) -> UserRecord:
        if principal.user_id != user_id:
            self._require(principal, Action.MANAGE_USERS)
        return await self._get_user(user_id)

    @returns_outcome
    async def list_users(self, principal: Principal, role: Optional[UserRole] = None) -> List[UserRecord]:
        self._require(principal, Action.MANAGE_USERS)
        return await self._store(self.identity_store.list_users(role))

    @returns_outcome
    async def change_role(self, principal: Principal, user_id: UUID, role: UserRole) -> UserRecord:
        """Change a user's role. Existing classes and enrollments are left as they are."""
        self._require(principal, Action.MANAGE_USERS)
        user = await self._get_user(user_id)
        if user.role == role:
            return user
        saved = await self._store(self.identity_store.save(user.model_copy(update={"role": role})))
        logger.info("Changed role of user %s from %s to %s", user_id, user.role.value, role.value)
        return saved

    @returns_outcome
    async def change_password(self, principal: Principal, user_id: UUID, new_password: str) -> UserRecord:
        if principal.user_id != user_id:
            self._require(principal, Action.MANAGE_USERS)
        user = await self._get_user(user_id)
        password_hash = await call_collaborator(
            "credential verifier", self.verifier.hash(new_password), self.timeout
        )
        return await self._store(self.identity_store.save(user.model_copy(update={"password_hash": password_hash})))

    @returns_outcome
    async def delete_user(self, principal: Principal, user_id: UUID) -> None:
        self._require(principal, Action.MANAGE_USERS)
        # Blocks enrollments and class creation for this user until the delete lands
        async with self.registry.user_scope(user_id):
            await self._get_user(user_id)
            if self.registry.references_user(user_id):
                raise AccountFailure(
                    FailureCode.USER_REFERENCED,
                    f"User {user_id} still owns a class or holds an enrollment",
                )
            await self._store(self.identity_store.delete(user_id))
        logger.info("Deleted user %s", user_id)

    @returns_outcome
    async def view_student_record(self, principal: Principal, student_id: UUID) -> StudentRecord:
        self._require(principal, Action.VIEW_STUDENT_RECORD, TargetRef(student_id=student_id))
        user = await self._get_user(student_id)
        return StudentRecord(
            id=user.id,
            username=user.username,
            role=user.role,
            enrollments=tuple(self.registry.enrollments_for_student(student_id)),
        )

    # Classes

    @returns_outcome
    async def create_class(
        self,
        principal: Principal,
        name: str,
        capacity: int,
        owner_id: Optional[UUID] = None,
        visible: bool = True,
    ) -> ClassRecord:
        self._require(principal, Action.CREATE_CLASS)
        # A teacher always becomes the owner; an admin names one
        if principal.role is UserRole.TEACHER:
            owner_id = principal.user_id
        if owner_id is None:
            raise RegistryFailure(FailureCode.INVALID_OWNER, "An owning teacher is required")
        return await self.registry.create_class(owner_id, name, capacity, visible)

    @returns_outcome
    async def view_class(self, principal: Principal, class_id: UUID) -> ClassRecord:
        self._require(principal, Action.VIEW_CLASS, TargetRef(class_id=class_id))
        return self.registry.get_class(class_id)

    @returns_outcome
    async def list_classes(self, principal: Principal) -> List[ClassRecord]:
        """Classes the principal may view."""
        return [
            record
            for record in self.registry.list_classes()
            if self.engine.authorize(principal, Action.VIEW_CLASS, TargetRef(class_id=record.id)).allowed
        ]

    @returns_outcome
    async def update_class(
        self,
        principal: Principal,
        class_id: UUID,
        name: Optional[str] = None,
        visible: Optional[bool] = None,
        capacity: Optional[int] = None,
    ) -> ClassRecord:
        self._require(principal, Action.UPDATE_CLASS, TargetRef(class_id=class_id))
        return await self.registry.update_class(class_id, name=name, visible=visible, capacity=capacity)

    @returns_outcome
    async def update_capacity(self, principal: Principal, class_id: UUID, capacity: int) -> ClassRecord:
        self._require(principal, Action.UPDATE_CLASS, TargetRef(class_id=class_id))
        return await self.registry.update_capacity(class_id, capacity)

    @returns_outcome
    async def delete_class(self, principal: Principal, class_id: UUID, cascade: bool = False) -> int:
        self._require(principal, Action.DELETE_CLASS, TargetRef(class_id=class_id))
        if cascade and principal.role is not UserRole.ADMIN:
            raise AuthzFailure.from_reason(DenyReason.ROLE_NOT_PERMITTED, "Cascading delete is admin-only")
        return await self.registry.delete_class(class_id, cascade=cascade)

    @returns_outcome
    async def enroll(self, principal: Principal, class_id: UUID, student_id: Optional[UUID] = None):
        if student_id is None:
            student_id = principal.user_id
        action = Action.ENROLL_SELF if student_id == principal.user_id else Action.ENROLL_OTHER
        self._require(principal, action, TargetRef(class_id=class_id, student_id=student_id))
        return await self.registry.enroll(class_id, student_id)

    @returns_outcome
    async def unenroll(self, principal: Principal, class_id: UUID, student_id: Optional[UUID] = None) -> bool:
        if student_id is None:
            student_id = principal.user_id
        self._require(principal, Action.UNENROLL, TargetRef(class_id=class_id, student_id=student_id))
        return await self.registry.unenroll(class_id, student_id)
