# Import all models so Alembic can discover them via Base.metadata
from .certificate import Certificate
from .course import Course
from .enrollment import Enrollment
from .lesson import Lesson
from .lesson_completion import LessonCompletion
from .user import CourseRestriction, User

__all__ = [
    "Certificate",
    "Course",
    "CourseRestriction",
    "Enrollment",
    "Lesson",
    "LessonCompletion",
    "User",
]
