"""Waitlist Pydantic V2 response schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.enums import WaitlistExitReason


class WaitlistEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    waitlist_id: UUID
    course_id: UUID
    student_id: UUID
    position: int
    is_active: bool
    joined_at: datetime
    deactivated_at: datetime | None = None
    deactivation_reason: WaitlistExitReason | None = None


class WaitlistListResponse(BaseModel):
    items: list[WaitlistEntryResponse]
    total: int


class StudentWaitlistEntryResponse(WaitlistEntryResponse):
    """A waitlist entry with the course's current seat usage."""

    course_title: str
    max_students: int
    active_enrollments: int
    available_seats: int


class StudentWaitlistListResponse(BaseModel):
    items: list[StudentWaitlistEntryResponse]
    total: int
