"""
Class/enrollment registry.

Holds every class as an immutable ``ClassRecord``. Mutations run under a lock
keyed by class id and publish a new record with a single dict assignment, so
readers that skip the lock still never see a half-applied change. No
operation takes more than one class lock.

Operations that bind a user to a class (creating a class for an owner,
enrolling a student) hold that user's lock from the identity lookup until
the record is published; deleting a user holds the same lock, so a user can
never be deleted between the lookup and the insert. Locks are always taken
user first, then class. Identity lookups happen before the class lock is
taken; a collaborator failure therefore leaves the registry untouched.
"""
import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional, Tuple
from uuid import UUID

from app.auth.store import IdentityStore
from app.core.collaborators import call_collaborator
from app.core.enums import ClassState, FailureCode, UserRole
from app.core.exceptions import RegistryFailure
from app.core.schemas import ClassRecord, EnrollmentRecord

logger = logging.getLogger(__name__)


class KeyedLocks:
    """One ``asyncio.Lock`` per key, dropped once no task holds or awaits it."""

    def __init__(self) -> None:
        self._entries: Dict[UUID, Tuple[asyncio.Lock, int]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @asynccontextmanager
    async def hold(self, key: UUID) -> AsyncIterator[None]:
        lock, holders = self._entries.get(key, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._entries[key] = (lock, holders + 1)
        try:
            async with lock:
                yield
        finally:
            lock, holders = self._entries[key]
            if holders == 1:
                del self._entries[key]
            else:
                self._entries[key] = (lock, holders - 1)


class ClassRegistry:
    def __init__(self, identity_store: IdentityStore, collaborator_timeout: float = 5.0) -> None:
        self._identity_store = identity_store
        self._timeout = collaborator_timeout
        self._classes: Dict[UUID, ClassRecord] = {}
        self._class_locks = KeyedLocks()
        self._user_locks = KeyedLocks()

    def _class_scope(self, class_id: UUID):
        return self._class_locks.hold(class_id)

    def user_scope(self, user_id: UUID):
        """Hold ``user_id`` against concurrent binding to or removal from classes."""
        return self._user_locks.hold(user_id)

    async def _require_role(self, user_id: UUID, role: UserRole, code: FailureCode) -> None:
        user = await call_collaborator(
            "identity store", self._identity_store.find_by_id(user_id), self._timeout
        )
        if user is None or user.role != role:
            raise RegistryFailure(code, f"User {user_id} is not a {role.value.lower()}")

    def _require_class(self, class_id: UUID) -> ClassRecord:
        record = self._classes.get(class_id)
        if record is None:
            raise RegistryFailure(FailureCode.UNKNOWN_CLASS, f"Class {class_id} not found")
        return record

    def _publish(self, record: ClassRecord, **changes) -> ClassRecord:
        updated = record.model_copy(update={**changes, "version": record.version + 1})
        self._classes[record.id] = updated
        return updated

    # Reads

    def find_class(self, class_id: UUID) -> Optional[ClassRecord]:
        return self._classes.get(class_id)

    def get_class(self, class_id: UUID) -> ClassRecord:
        return self._require_class(class_id)

    def list_classes(self) -> List[ClassRecord]:
        return sorted(self._classes.values(), key=lambda c: (c.created_at, c.name))

    def classes_owned_by(self, teacher_id: UUID) -> List[ClassRecord]:
        return [c for c in self.list_classes() if c.owner_id == teacher_id]

    def classes_for_student(self, student_id: UUID) -> List[ClassRecord]:
        return [c for c in self.list_classes() if student_id in c.student_ids]

    def enrollments_for_student(self, student_id: UUID) -> List[EnrollmentRecord]:
        return [
            e
            for c in self.list_classes()
            for e in c.enrollments
            if e.student_id == student_id
        ]

    def is_enrolled(self, class_id: UUID, student_id: UUID) -> bool:
        return student_id in self._require_class(class_id).student_ids

    def teaches_student(self, teacher_id: UUID, student_id: UUID) -> bool:
        return any(student_id in c.student_ids for c in self.classes_owned_by(teacher_id))

    def references_user(self, user_id: UUID) -> bool:
        return any(
            c.owner_id == user_id or user_id in c.student_ids
            for c in self._classes.values()
        )

    # Mutations

    async def create_class(
        self, owner_id: UUID, name: str, capacity: int, visible: bool = True
    ) -> ClassRecord:
        if capacity <= 0:
            raise RegistryFailure(FailureCode.INVALID_CAPACITY, "Capacity must be a positive integer")

        async with self.user_scope(owner_id):
            await self._require_role(owner_id, UserRole.TEACHER, FailureCode.INVALID_OWNER)
            class_id = uuid.uuid4()
            async with self._class_scope(class_id):
                record = ClassRecord(
                    id=class_id,
                    name=name.strip(),
                    owner_id=owner_id,
                    capacity=capacity,
                    visible=visible,
                    created_at=datetime.now(timezone.utc),
                )
                self._classes[class_id] = record
        logger.info("Created class %s (%s) owner=%s capacity=%d", class_id, record.name, owner_id, capacity)
        return record

    async def update_class(
        self,
        class_id: UUID,
        name: Optional[str] = None,
        visible: Optional[bool] = None,
        capacity: Optional[int] = None,
    ) -> ClassRecord:
        """Apply every given change in one step; nothing is applied if one is rejected."""
        if capacity is not None and capacity <= 0:
            raise RegistryFailure(FailureCode.INVALID_CAPACITY, "Capacity must be a positive integer")
        self._require_class(class_id)

        async with self._class_scope(class_id):
            record = self._require_class(class_id)
            changes = {}
            if capacity is not None and capacity != record.capacity:
                if capacity < record.enrolled_count:
                    raise RegistryFailure(
                        FailureCode.CAPACITY_BELOW_ENROLLMENT,
                        f"Capacity {capacity} is below current enrollment of {record.enrolled_count}",
                    )
                changes["capacity"] = capacity
            if name is not None:
                changes["name"] = name.strip()
            if visible is not None:
                changes["visible"] = visible
            if not changes:
                return record
            return self._publish(record, **changes)

    async def enroll(self, class_id: UUID, student_id: UUID) -> EnrollmentRecord:
        self._require_class(class_id)

        async with self.user_scope(student_id):
            await self._require_role(student_id, UserRole.STUDENT, FailureCode.INVALID_STUDENT)
            async with self._class_scope(class_id):
                # Re-read under the lock: the class may have changed while the student was looked up
                record = self._require_class(class_id)
                if student_id in record.student_ids:
                    raise RegistryFailure(FailureCode.ALREADY_ENROLLED, "Student is already enrolled in this class")
                if record.state is ClassState.FULL:
                    raise RegistryFailure(FailureCode.CLASS_FULL, f"Class '{record.name}' is full")
                enrollment = EnrollmentRecord(
                    class_id=class_id,
                    student_id=student_id,
                    enrolled_at=datetime.now(timezone.utc),
                )
                self._publish(record, enrollments=record.enrollments + (enrollment,))
        logger.info("Enrolled student=%s class=%s", student_id, class_id)
        return enrollment

    async def unenroll(self, class_id: UUID, student_id: UUID) -> bool:
        """Remove the pair if present. Returns whether anything was removed."""
        self._require_class(class_id)

        async with self._class_scope(class_id):
            record = self._require_class(class_id)
            remaining = tuple(e for e in record.enrollments if e.student_id != student_id)
            if len(remaining) == len(record.enrollments):
                return False
            self._publish(record, enrollments=remaining)
        logger.info("Unenrolled student=%s class=%s", student_id, class_id)
        return True

    async def update_capacity(self, class_id: UUID, new_capacity: int) -> ClassRecord:
        return await self.update_class(class_id, capacity=new_capacity)

    async def delete_class(self, class_id: UUID, cascade: bool = False) -> int:
        """Delete a class; returns the number of enrollments removed with it."""
        self._require_class(class_id)

        async with self._class_scope(class_id):
            record = self._require_class(class_id)
            if record.enrollments and not cascade:
                raise RegistryFailure(
                    FailureCode.CLASS_NOT_EMPTY,
                    f"Class '{record.name}' still has {record.enrolled_count} enrolled student(s)",
                )
            # Enrollments live inside the record, so one delete removes both
            del self._classes[class_id]
        logger.info("Deleted class %s (cascade=%s, enrollments removed=%d)", class_id, cascade, record.enrolled_count)
        return record.enrolled_count
