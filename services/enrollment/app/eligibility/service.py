"""Eligibility checker — decides whether a student may enroll in a course.

Pure read path: never writes, never locks. The lifecycle manager re-checks
the state-dependent parts under the course lock before claiming a seat.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    AlreadyEnrolledError,
    AlreadyWaitlistedError,
    CourseNotAvailableError,
    PrerequisitesNotMetError,
)
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import CourseStatus, EnrollmentStatus
from app.models.waitlist import WaitlistEntry
from app.registry import service as registry


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reason: str | None = None
    error: Exception | None = None


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored timestamp is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def check_course_open(course: Course, now: datetime) -> None:
    if course.status != CourseStatus.ACTIVE:
        raise CourseNotAvailableError("Course is not available for enrollment.")
    if course.enrollment_start_date is not None and now < as_utc(course.enrollment_start_date):
        raise CourseNotAvailableError("Enrollment has not started yet.")
    if course.enrollment_end_date is not None and now > as_utc(course.enrollment_end_date):
        raise CourseNotAvailableError("Enrollment period has ended.")


async def get_enrollment(db: AsyncSession, student_id: UUID, course_id: UUID) -> Enrollment | None:
    # populate_existing: a row already in the identity map may predate the course lock
    stmt = (
        select(Enrollment)
        .where(
            Enrollment.student_id == student_id,
            Enrollment.course_id == course_id,
        )
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_active_waitlist_entry(
    db: AsyncSession, student_id: UUID, course_id: UUID
) -> WaitlistEntry | None:
    stmt = (
        select(WaitlistEntry)
        .where(
            WaitlistEntry.student_id == student_id,
            WaitlistEntry.course_id == course_id,
            WaitlistEntry.is_active.is_(True),
        )
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def check_existing_claim(
    enrollment: Enrollment | None,
    waitlist_entry: WaitlistEntry | None,
) -> None:
    """Raise if the student already holds a seat or a place in line. DROPPED does not block."""
    if enrollment is not None:
        if enrollment.status == EnrollmentStatus.ACTIVE:
            raise AlreadyEnrolledError()
        if enrollment.status == EnrollmentStatus.COMPLETED:
            raise AlreadyEnrolledError("You have already completed this course.")
    if waitlist_entry is not None:
        raise AlreadyWaitlistedError(waitlist_entry.position)


async def check_prerequisites(db: AsyncSession, student_id: UUID, course: Course) -> None:
    required = course.prerequisite_ids
    if not required:
        return
    completed = await registry.completed_course_ids(db, student_id, required)
    missing = [str(cid) for cid in required if cid not in completed]
    if missing:
        raise PrerequisitesNotMetError(missing)


async def ensure_eligible(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
    *,
    now: datetime | None = None,
) -> Course:
    """Raise the first failing check; return the course when enrollment is permitted."""
    now = now or datetime.now(timezone.utc)
    course = await registry.get_course(db, course_id)
    check_course_open(course, now)
    check_existing_claim(
        await get_enrollment(db, student_id, course_id),
        await get_active_waitlist_entry(db, student_id, course_id),
    )
    await check_prerequisites(db, student_id, course)
    return course


async def check_eligibility(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
    *,
    now: datetime | None = None,
) -> EligibilityResult:
    try:
        await ensure_eligible(db, student_id, course_id, now=now)
    except (
        CourseNotAvailableError,
        AlreadyEnrolledError,
        AlreadyWaitlistedError,
        PrerequisitesNotMetError,
    ) as exc:
        return EligibilityResult(eligible=False, reason=str(exc), error=exc)
    return EligibilityResult(eligible=True)
