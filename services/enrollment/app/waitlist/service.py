"""Waitlist queue — ordered per-course line of students waiting for a seat.

Writers (``enqueue``, ``promote_next``, ``compact_positions``) expect the
caller to hold the course lock so position arithmetic is serialized per
course. ``promote_next`` only picks who is next; granting the seat is the
lifecycle manager's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotOnWaitlistError
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import EnrollmentStatus, WaitlistExitReason
from app.models.waitlist import WaitlistEntry


async def next_position(db: AsyncSession, course_id: UUID) -> int:
    stmt = select(func.max(WaitlistEntry.position)).where(
        WaitlistEntry.course_id == course_id,
        WaitlistEntry.is_active.is_(True),
    )
    current = await db.scalar(stmt)
    return (current or 0) + 1


async def _get_entry(db: AsyncSession, student_id: UUID, course_id: UUID) -> WaitlistEntry | None:
    stmt = (
        select(WaitlistEntry)
        .where(
            WaitlistEntry.student_id == student_id,
            WaitlistEntry.course_id == course_id,
        )
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def enqueue(db: AsyncSession, student_id: UUID, course_id: UUID) -> WaitlistEntry:
    """Put the student at the back of the line, reusing an inactive row for the pair."""
    position = await next_position(db, course_id)
    now = datetime.now(timezone.utc)
    entry = await _get_entry(db, student_id, course_id)
    if entry is None:
        entry = WaitlistEntry(
            student_id=student_id,
            course_id=course_id,
            position=position,
            is_active=True,
            joined_at=now,
        )
        db.add(entry)
    else:
        entry.position = position
        entry.is_active = True
        entry.joined_at = now
        entry.deactivated_at = None
        entry.deactivation_reason = None
    await db.flush()
    return entry


def _deactivate(entry: WaitlistEntry, reason: WaitlistExitReason) -> None:
    entry.is_active = False
    entry.deactivated_at = datetime.now(timezone.utc)
    entry.deactivation_reason = reason


async def promote_next(db: AsyncSession, course_id: UUID) -> WaitlistEntry | None:
    """Pop the head of the line (smallest active position); None when the line is empty."""
    stmt = (
        select(WaitlistEntry)
        .where(
            WaitlistEntry.course_id == course_id,
            WaitlistEntry.is_active.is_(True),
        )
        .order_by(WaitlistEntry.position, WaitlistEntry.joined_at)
        .limit(1)
        .execution_options(populate_existing=True)
    )
    entry = (await db.execute(stmt)).scalar_one_or_none()
    if entry is None:
        return None
    _deactivate(entry, WaitlistExitReason.PROMOTED)
    await db.flush()
    return entry


async def compact_positions(db: AsyncSession, course_id: UUID) -> None:
    """Renumber the course's active entries 1..n, keeping their order.

    Rows are moved one at a time in ascending order so each target position
    is already vacant when the row lands on it.
    """
    entries = await list_course_waitlist(db, course_id)
    for rank, entry in enumerate(entries, start=1):
        if entry.position != rank:
            entry.position = rank
            await db.flush()


async def remove(db: AsyncSession, student_id: UUID, course_id: UUID) -> WaitlistEntry:
    """Voluntary withdrawal. Positions of the remaining entries are left as they are."""
    entry = await _get_entry(db, student_id, course_id)
    if entry is None or not entry.is_active:
        raise NotOnWaitlistError()
    _deactivate(entry, WaitlistExitReason.WITHDRAWN)
    await db.flush()
    return entry


async def list_course_waitlist(db: AsyncSession, course_id: UUID) -> list[WaitlistEntry]:
    stmt = (
        select(WaitlistEntry)
        .where(
            WaitlistEntry.course_id == course_id,
            WaitlistEntry.is_active.is_(True),
        )
        .order_by(WaitlistEntry.position)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


@dataclass(frozen=True)
class StudentWaitlistItem:
    """A student's place in one course's line, with that course's seat usage."""

    entry: WaitlistEntry
    course_title: str
    max_students: int
    active_enrollments: int

    @property
    def available_seats(self) -> int:
        return max(0, self.max_students - self.active_enrollments)


async def list_student_waitlist(db: AsyncSession, student_id: UUID) -> list[StudentWaitlistItem]:
    active_enrollments = (
        select(func.count())
        .select_from(Enrollment)
        .where(
            Enrollment.course_id == WaitlistEntry.course_id,
            Enrollment.status == EnrollmentStatus.ACTIVE,
        )
        .correlate(WaitlistEntry)
        .scalar_subquery()
    )
    stmt = (
        select(WaitlistEntry, Course.title, Course.max_students, active_enrollments)
        .join(Course, Course.course_id == WaitlistEntry.course_id)
        .where(
            WaitlistEntry.student_id == student_id,
            WaitlistEntry.is_active.is_(True),
        )
        .order_by(WaitlistEntry.joined_at)
    )
    result = await db.execute(stmt)
    return [
        StudentWaitlistItem(
            entry=entry,
            course_title=title,
            max_students=max_students,
            active_enrollments=active or 0,
        )
        for entry, title, max_students, active in result.all()
    ]
