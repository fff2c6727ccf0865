"""Closed enumerations shared by models, schemas and services.

Values match the wire strings exactly. Parsing goes through the enum
constructor so unknown strings are rejected instead of defaulted.
"""

from enum import Enum


class ExamCategory(str, Enum):
    NEET_PG = "NEET_PG"
    NEET_UG = "NEET_UG"
    JEE = "JEE"
    UPSC = "UPSC"


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


ELEVATED_ROLES = (UserRole.ADMIN, UserRole.SUPER_ADMIN)


class QuestionChoiceType(str, Enum):
    SINGLE = "single"
    MULTI = "multi"


class PracticeMode(str, Enum):
    SMART = "smart"
    CUSTOM = "custom"
    REVISION = "revision"
    EXAM = "exam"


class PracticeSessionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class ExamConfigType(str, Enum):
    MOCK = "MOCK"
    SUBJECT_TEST = "SUBJECT_TEST"
    REWARD_EVENT = "REWARD_EVENT"
    DAILY_TEST = "DAILY_TEST"


class ExamStatus(str, Enum):
    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"


class WalletTxType(str, Enum):
    REWARD = "REWARD"
    EXAM_ENTRY = "EXAM_ENTRY"
    COUPON = "COUPON"
    ADJUSTMENT = "ADJUSTMENT"
    REFERRAL = "REFERRAL"
    SPIN = "SPIN"
    BONUS = "BONUS"


class ReferralStatus(str, Enum):
    INVITED = "INVITED"
    JOINED = "JOINED"
    ACTIVATED = "ACTIVATED"


class _CaseInsensitiveEnum(str, Enum):
    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class AdminUserStatus(_CaseInsensitiveEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    INVITED = "invited"
    SUSPENDED = "suspended"


class AdminUserRole(_CaseInsensitiveEnum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    MANAGER = "manager"
    CASHIER = "cashier"

    @classmethod
    def from_user_role(cls, role: str) -> "AdminUserRole":
        """Map a token role (`SUPER_ADMIN`, `ADMIN`) onto the console role."""
        if role.upper() == UserRole.SUPER_ADMIN.value:
            return cls.SUPERADMIN
        if role.upper() == UserRole.ADMIN.value:
            return cls.ADMIN
        return cls(role)
