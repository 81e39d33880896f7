import enum

from sqlalchemy import Enum as SAEnum


class CourseStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PUBLISHED = "published"
    REJECTED = "rejected"
    PENDING_REVIEW = "pending_review"


# Statuses in which learners can see and enroll in a course. A published course
# that was edited stays live while it waits for re-approval.
LIVE_COURSE_STATUSES = frozenset({CourseStatus.PUBLISHED, CourseStatus.PENDING_REVIEW})


class CourseCategory(str, enum.Enum):
    PROGRAMMING = "programming"
    DESIGN = "design"
    BUSINESS = "business"
    MARKETING = "marketing"
    DATA_SCIENCE = "data-science"
    OTHER = "other"


class CourseLevel(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class UserRole(str, enum.Enum):
    LEARNER = "learner"
    CREATOR = "creator"
    ADMIN = "admin"


class AccountStatus(str, enum.Enum):
    ACTIVE = "active"
    BLOCKED = "blocked"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class CertificateGrade(str, enum.Enum):
    A_PLUS = "A+"
    A = "A"
    B_PLUS = "B+"
    B = "B"
    C_PLUS = "C+"
    C = "C"
    PASS = "Pass"


def _values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


# Shared SQLAlchemy Enum instances (reuse across models to avoid duplicate type creation)
course_status_enum = SAEnum(CourseStatus, name="course_status", values_callable=_values)
course_category_enum = SAEnum(CourseCategory, name="course_category", values_callable=_values)
course_level_enum = SAEnum(CourseLevel, name="course_level", values_callable=_values)
user_role_enum = SAEnum(UserRole, name="user_role", values_callable=_values)
account_status_enum = SAEnum(AccountStatus, name="account_status", values_callable=_values)
certificate_grade_enum = SAEnum(
    CertificateGrade, name="certificate_grade", values_callable=_values
)
