import enum

from sqlalchemy import Enum as SAEnum

from shared.events.schemas import EnrollmentAction


class CourseStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class EnrollmentStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    DROPPED = "DROPPED"


class WaitlistExitReason(str, enum.Enum):
    PROMOTED = "PROMOTED"
    WITHDRAWN = "WITHDRAWN"


# Shared SQLAlchemy Enum instances (native ENUM types on PostgreSQL,
# VARCHAR elsewhere). Reused across models to avoid duplicate type creation.
course_status_enum = SAEnum(CourseStatus, name="course_status")
enrollment_status_enum = SAEnum(EnrollmentStatus, name="enrollment_status")
waitlist_exit_reason_enum = SAEnum(WaitlistExitReason, name="waitlist_exit_reason")
enrollment_action_enum = SAEnum(EnrollmentAction, name="enrollment_action")
