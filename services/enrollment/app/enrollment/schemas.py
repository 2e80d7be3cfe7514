"""Enrollment domain Pydantic V2 schemas.

Covers enrollment, drop, eligibility and capacity payloads.
Follows RORO: separate request models from response models.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import EnrollmentStatus


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class DropRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str | None = Field(
        default=None,
        max_length=500,
        description="Optional free-text reason, stored in the audit log.",
    )


class UnenrollRequest(BaseModel):
    """Body for an instructor/admin removing a student from a course."""

    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str | None = Field(
        default=None,
        max_length=500,
        description="Why the student is being removed. Stored in the audit log.",
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    enrollment_id: UUID
    student_id: UUID
    course_id: UUID
    status: EnrollmentStatus
    progress_pct: Decimal
    enrolled_at: datetime
    dropped_at: datetime | None = None
    completed_at: datetime | None = None


class EnrollOutcomeResponse(BaseModel):
    """Result of an enroll request: either a seat or a place in line."""

    enrolled: bool
    waitlisted: bool
    course_id: UUID
    student_id: UUID
    enrollment: EnrollmentResponse | None = Field(
        default=None,
        description="The ACTIVE enrollment when a seat was granted.",
    )
    waitlist_position: int | None = Field(
        default=None,
        description="1-based position in the course waitlist when no seat was free.",
    )


class DropResponse(BaseModel):
    enrollment: EnrollmentResponse
    promoted_student_id: UUID | None = Field(
        default=None,
        description="Student moved off the waitlist into the freed seat, if any.",
    )


class EligibilityResponse(BaseModel):
    course_id: UUID
    eligible: bool
    reason: str | None = None
    missing_prerequisites: list[UUID] = Field(default_factory=list)


class CapacityResponse(BaseModel):
    course_id: UUID
    max_students: int
    active_enrollments: int
    available_seats: int
    waitlist_length: int
    is_full: bool
    fill_pct: Decimal
