"""Decision table and ownership/self predicates of the authorization engine."""

import uuid

import pytest

from app.auth.rbac import POLICY, AuthorizationEngine, Rule
from app.core.enums import Action, DenyReason, FailureCode, UserRole
from app.core.exceptions import RegistryFailure
from app.core.registry import ClassRegistry
from app.core.schemas import Decision, Principal, TargetRef


@pytest.fixture()
async def setup(identity_store, users, principals):
    registry = ClassRegistry(identity_store)
    owned = await registry.create_class(users["t1"].id, "Algebra", 3)
    hidden = await registry.create_class(users["t2"].id, "Private Tutoring", 3, visible=False)
    public = await registry.create_class(users["t2"].id, "Open Lecture", 3)
    await registry.enroll(owned.id, users["s1"].id)
    await registry.enroll(hidden.id, users["s2"].id)
    return {
        "engine": AuthorizationEngine(registry),
        "owned": owned,
        "hidden": hidden,
        "public": public,
        "p": principals,
        "u": users,
    }


def test_policy_table_is_total() -> None:
    for role in UserRole:
        for action in Action:
            assert (role, action) in POLICY


async def test_admin_is_allowed_everything(setup) -> None:
    engine, admin = setup["engine"], setup["p"]["admin"]
    target = TargetRef(class_id=setup["hidden"].id, student_id=setup["u"]["s2"].id)
    for action in Action:
        assert engine.authorize(admin, action, target) == Decision.allow()


@pytest.mark.parametrize(
    "action",
    [Action.ENROLL_OTHER, Action.CREATE_CLASS, Action.UPDATE_CLASS, Action.DELETE_CLASS, Action.MANAGE_USERS],
)
async def test_student_role_not_permitted(setup, action) -> None:
    student = setup["p"]["s1"]
    target = TargetRef(class_id=setup["owned"].id, student_id=setup["u"]["s2"].id)
    assert setup["engine"].authorize(student, action, target) == Decision.deny(DenyReason.ROLE_NOT_PERMITTED)


@pytest.mark.parametrize("action", [Action.ENROLL_SELF, Action.MANAGE_USERS])
async def test_teacher_role_not_permitted(setup, action) -> None:
    teacher = setup["p"]["t1"]
    target = TargetRef(class_id=setup["owned"].id, student_id=teacher.user_id)
    assert setup["engine"].authorize(teacher, action, target).reason is DenyReason.ROLE_NOT_PERMITTED


async def test_teacher_creates_classes(setup) -> None:
    assert setup["engine"].authorize(setup["p"]["t1"], Action.CREATE_CLASS).allowed


@pytest.mark.parametrize("action", [Action.UPDATE_CLASS, Action.DELETE_CLASS, Action.ENROLL_OTHER, Action.UNENROLL])
async def test_teacher_needs_ownership(setup, action) -> None:
    engine, t1 = setup["engine"], setup["p"]["t1"]
    student_id = setup["u"]["s2"].id
    assert engine.authorize(t1, action, TargetRef(class_id=setup["owned"].id, student_id=student_id)).allowed
    assert engine.authorize(
        t1, action, TargetRef(class_id=setup["hidden"].id, student_id=student_id)
    ) == Decision.deny(DenyReason.NOT_OWNER)


async def test_teacher_views_owned_or_visible_classes(setup) -> None:
    engine, t1 = setup["engine"], setup["p"]["t1"]
    assert engine.authorize(t1, Action.VIEW_CLASS, TargetRef(class_id=setup["owned"].id)).allowed
    assert engine.authorize(t1, Action.VIEW_CLASS, TargetRef(class_id=setup["public"].id)).allowed
    assert engine.authorize(
        t1, Action.VIEW_CLASS, TargetRef(class_id=setup["hidden"].id)
    ) == Decision.deny(DenyReason.NOT_OWNER)


async def test_teacher_sees_only_own_students_records(setup) -> None:
    engine, t1, t2 = setup["engine"], setup["p"]["t1"], setup["p"]["t2"]
    s1, s2 = setup["u"]["s1"].id, setup["u"]["s2"].id
    assert engine.authorize(t1, Action.VIEW_STUDENT_RECORD, TargetRef(student_id=s1)).allowed
    # s2 sits only in t2's class
    assert engine.authorize(
        t1, Action.VIEW_STUDENT_RECORD, TargetRef(student_id=s2)
    ) == Decision.deny(DenyReason.NOT_OWNER)
    assert engine.authorize(t2, Action.VIEW_STUDENT_RECORD, TargetRef(student_id=s2)).allowed


@pytest.mark.parametrize("action", [Action.ENROLL_SELF, Action.UNENROLL, Action.VIEW_STUDENT_RECORD])
async def test_student_acts_only_on_self(setup, action) -> None:
    engine, s1 = setup["engine"], setup["p"]["s1"]
    class_id = setup["owned"].id
    assert engine.authorize(s1, action, TargetRef(class_id=class_id, student_id=s1.user_id)).allowed
    assert engine.authorize(
        s1, action, TargetRef(class_id=class_id, student_id=setup["u"]["s2"].id)
    ) == Decision.deny(DenyReason.NOT_SELF)


async def test_student_views_only_enrolled_classes(setup) -> None:
    engine, s1 = setup["engine"], setup["p"]["s1"]
    assert engine.authorize(s1, Action.VIEW_CLASS, TargetRef(class_id=setup["owned"].id)).allowed
    assert engine.authorize(
        s1, Action.VIEW_CLASS, TargetRef(class_id=setup["public"].id)
    ) == Decision.deny(DenyReason.NOT_SELF)


async def test_unknown_class_is_reported_when_rule_needs_it(setup) -> None:
    engine = setup["engine"]
    missing = TargetRef(class_id=uuid.uuid4())
    with pytest.raises(RegistryFailure) as exc:
        engine.authorize(setup["p"]["t1"], Action.UPDATE_CLASS, missing)
    assert exc.value.code is FailureCode.UNKNOWN_CLASS
    # Table-level decisions need no lookup
    assert engine.authorize(setup["p"]["s1"], Action.UPDATE_CLASS, missing).reason is DenyReason.ROLE_NOT_PERMITTED
    assert engine.authorize(setup["p"]["admin"], Action.UPDATE_CLASS, missing).allowed


async def test_decision_depends_on_role_only(setup) -> None:
    """Two principals of the same role get the same table rule."""
    engine = setup["engine"]
    other = Principal(user_id=uuid.uuid4(), role=UserRole.STUDENT)
    for action in Action:
        assert engine.rule_for(other.role, action) is engine.rule_for(setup["p"]["s1"].role, action)
    assert engine.rule_for(UserRole.TEACHER, Action.VIEW_CLASS) is Rule.OWNER_OR_VISIBLE
