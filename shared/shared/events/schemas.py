from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class EnrollmentAction(str, Enum):
    ENROLLED = "ENROLLED"
    WAITLISTED = "WAITLISTED"
    DROPPED = "DROPPED"
    PROMOTED = "PROMOTED"
    WAITLIST_REMOVED = "WAITLIST_REMOVED"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EnrollmentTransition(BaseModel):
    """Lifecycle event: a student's claim on a course seat changed."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    event_type: str = "enrollment.transition"
    action: EnrollmentAction
    course_id: UUID
    student_id: UUID | None = None
    performed_by: UUID
    reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=_utcnow)
