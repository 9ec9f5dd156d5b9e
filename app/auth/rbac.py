"""
Role-based authorization policy.

The whole policy is the ``POLICY`` table: one rule per (role, action). Rules
other than ALLOW/DENY name the ownership or self predicate that must hold;
each predicate maps to the deny reason reported when it fails. Predicates
only read registry snapshots.
"""
from enum import Enum
from typing import Dict, Tuple

from app.core.enums import Action, DenyReason, FailureCode, UserRole
from app.core.exceptions import RegistryFailure
from app.core.registry import ClassRegistry
from app.core.schemas import Decision, Principal, TargetRef


class Rule(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    OWNER = "owner"  # principal owns target class
    SELF = "self"  # principal is the target student
    ENROLLED = "enrolled"  # principal is enrolled in target class
    OWNER_OR_VISIBLE = "owner_or_visible"  # principal owns target class, or it is visible
    TEACHES_STUDENT = "teaches_student"  # target student sits in a class the principal owns


A = Action
R = UserRole

POLICY: Dict[Tuple[UserRole, Action], Rule] = {
    **{(R.ADMIN, action): Rule.ALLOW for action in Action},
    (R.TEACHER, A.CREATE_CLASS): Rule.ALLOW,
    (R.TEACHER, A.UPDATE_CLASS): Rule.OWNER,
    (R.TEACHER, A.DELETE_CLASS): Rule.OWNER,
    (R.TEACHER, A.ENROLL_SELF): Rule.DENY,
    (R.TEACHER, A.ENROLL_OTHER): Rule.OWNER,
    (R.TEACHER, A.UNENROLL): Rule.OWNER,
    (R.TEACHER, A.VIEW_CLASS): Rule.OWNER_OR_VISIBLE,
    (R.TEACHER, A.VIEW_STUDENT_RECORD): Rule.TEACHES_STUDENT,
    (R.TEACHER, A.MANAGE_USERS): Rule.DENY,
    (R.STUDENT, A.CREATE_CLASS): Rule.DENY,
    (R.STUDENT, A.UPDATE_CLASS): Rule.DENY,
    (R.STUDENT, A.DELETE_CLASS): Rule.DENY,
    (R.STUDENT, A.ENROLL_SELF): Rule.SELF,
    (R.STUDENT, A.ENROLL_OTHER): Rule.DENY,
    (R.STUDENT, A.UNENROLL): Rule.SELF,
    (R.STUDENT, A.VIEW_CLASS): Rule.ENROLLED,
    (R.STUDENT, A.VIEW_STUDENT_RECORD): Rule.SELF,
    (R.STUDENT, A.MANAGE_USERS): Rule.DENY,
}

DENY_REASONS: Dict[Rule, DenyReason] = {
    Rule.DENY: DenyReason.ROLE_NOT_PERMITTED,
    Rule.OWNER: DenyReason.NOT_OWNER,
    Rule.OWNER_OR_VISIBLE: DenyReason.NOT_OWNER,
    Rule.TEACHES_STUDENT: DenyReason.NOT_OWNER,
    Rule.SELF: DenyReason.NOT_SELF,
    Rule.ENROLLED: DenyReason.NOT_SELF,
}


class AuthorizationEngine:
    def __init__(self, registry: ClassRegistry) -> None:
        self._registry = registry

    def rule_for(self, role: UserRole, action: Action) -> Rule:
        # Missing entries deny; the table above is meant to be total
        return POLICY.get((role, action), Rule.DENY)

    def authorize(self, principal: Principal, action: Action, target: TargetRef = TargetRef()) -> Decision:
        """Decide whether ``principal`` may perform ``action`` on ``target``.

        Raises ``RegistryFailure(UnknownClass)`` when the rule needs the target
        class and it is missing or does not exist, and
        ``RegistryFailure(InvalidStudent)`` when it needs a target student and
        none is given.
        """
        rule = self.rule_for(principal.role, action)
        if rule is Rule.ALLOW:
            return Decision.allow()
        if rule is not Rule.DENY and self._holds(rule, principal, target):
            return Decision.allow()
        return Decision.deny(DENY_REASONS[rule])

    def _holds(self, rule: Rule, principal: Principal, target: TargetRef) -> bool:
        if rule is Rule.SELF:
            return _require(target.student_id, "student_id") == principal.user_id
        if rule is Rule.TEACHES_STUDENT:
            return self._registry.teaches_student(principal.user_id, _require(target.student_id, "student_id"))

        record = self._registry.get_class(_require(target.class_id, "class_id"))
        if rule is Rule.OWNER:
            return record.owner_id == principal.user_id
        if rule is Rule.OWNER_OR_VISIBLE:
            return record.owner_id == principal.user_id or record.visible
        if rule is Rule.ENROLLED:
            return principal.user_id in record.student_ids
        raise ValueError(f"Unhandled rule {rule}")


_MISSING_TARGET_CODES: Dict[str, FailureCode] = {
    "class_id": FailureCode.UNKNOWN_CLASS,
    "student_id": FailureCode.INVALID_STUDENT,
}


def _require(value, name: str):
    if value is None:
        raise RegistryFailure(_MISSING_TARGET_CODES[name], f"Target {name} is required for this action")
    return value
