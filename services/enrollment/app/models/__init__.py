# Import all models so Alembic can discover them via Base.metadata
from .audit_log import EnrollmentAuditLog
from .course import Course, CoursePrerequisite
from .course_instructor import CourseInstructor
from .enrollment import Enrollment
from .waitlist import WaitlistEntry

__all__ = [
    "Course",
    "CourseInstructor",
    "CoursePrerequisite",
    "Enrollment",
    "EnrollmentAuditLog",
    "WaitlistEntry",
]
