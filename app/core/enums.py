from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


class Action(str, Enum):
    CREATE_CLASS = "CreateClass"
    UPDATE_CLASS = "UpdateClass"
    DELETE_CLASS = "DeleteClass"
    ENROLL_SELF = "EnrollSelf"
    ENROLL_OTHER = "EnrollOther"
    UNENROLL = "Unenroll"
    VIEW_CLASS = "ViewClass"
    VIEW_STUDENT_RECORD = "ViewStudentRecord"
    MANAGE_USERS = "ManageUsers"


class DenyReason(str, Enum):
    NOT_OWNER = "NotOwner"
    ROLE_NOT_PERMITTED = "RoleNotPermitted"
    NOT_SELF = "NotSelf"


class ClassState(str, Enum):
    OPEN = "Open"
    FULL = "Full"


class FailureCategory(str, Enum):
    AUTH = "AuthFailure"
    AUTHZ = "AuthzFailure"
    REGISTRY = "RegistryFailure"
    ACCOUNT = "AccountFailure"
    COLLABORATOR = "CollaboratorFailure"


class FailureCode(str, Enum):
    # AuthFailure; UNKNOWN_USER and BAD_CREDENTIAL never leave the core
    UNKNOWN_USER = "UnknownUser"
    BAD_CREDENTIAL = "BadCredential"
    AUTHENTICATION_FAILED = "AuthenticationFailed"

    # AuthzFailure
    NOT_OWNER = "NotOwner"
    ROLE_NOT_PERMITTED = "RoleNotPermitted"
    NOT_SELF = "NotSelf"

    # RegistryFailure
    INVALID_CAPACITY = "InvalidCapacity"
    INVALID_OWNER = "InvalidOwner"
    CLASS_FULL = "ClassFull"
    ALREADY_ENROLLED = "AlreadyEnrolled"
    UNKNOWN_CLASS = "UnknownClass"
    INVALID_STUDENT = "InvalidStudent"
    CLASS_NOT_EMPTY = "ClassNotEmpty"
    CAPACITY_BELOW_ENROLLMENT = "CapacityBelowEnrollment"

    # AccountFailure
    USERNAME_TAKEN = "UsernameTaken"
    USER_NOT_FOUND = "UserNotFound"
    USER_REFERENCED = "UserReferenced"

    # CollaboratorFailure
    UNAVAILABLE = "Unavailable"
    TIMEOUT = "Timeout"
