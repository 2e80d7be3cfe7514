"""Capacity ledger — the only authority on whether a course has a free seat.

Seat usage is always counted from live ACTIVE enrollment rows; there is no
stored counter to drift. Callers that act on the answer must hold the course
lock from ``lock_course`` for the rest of their transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import CourseNotFoundError
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import EnrollmentStatus
from app.models.waitlist import WaitlistEntry
from app.registry import service as registry


@dataclass(frozen=True)
class CapacitySummary:
    course_id: UUID
    max_students: int
    active_enrollments: int
    waitlist_length: int

    @property
    def available_seats(self) -> int:
        return max(0, self.max_students - self.active_enrollments)

    @property
    def is_full(self) -> bool:
        return self.active_enrollments >= self.max_students

    @property
    def fill_pct(self) -> Decimal:
        pct = Decimal(self.active_enrollments * 100) / Decimal(self.max_students)
        return pct.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


async def lock_course(db: AsyncSession, course_id: UUID) -> Course:
    """Take the per-course row lock (SELECT ... FOR UPDATE) and return a fresh course.

    Every seat claim and waitlist insert for the course serializes on this
    lock; other courses are unaffected.

    SQLite ignores FOR UPDATE, so there the lock is a no-op UPDATE of the
    course row. That takes the database write lock, which is held until the
    transaction ends; concurrent writers wait on the busy timeout.
    """
    if db.get_bind().dialect.name == "sqlite":
        await db.execute(
            update(Course)
            .where(Course.course_id == course_id)
            .values(updated_at=Course.updated_at)
            .execution_options(synchronize_session=False)
        )
    stmt = (
        select(Course)
        .where(Course.course_id == course_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    course = (await db.execute(stmt)).scalar_one_or_none()
    if course is None:
        raise CourseNotFoundError(str(course_id))
    return course


async def active_seat_count(db: AsyncSession, course_id: UUID) -> int:
    stmt = select(func.count()).select_from(Enrollment).where(
        Enrollment.course_id == course_id,
        Enrollment.status == EnrollmentStatus.ACTIVE,
    )
    return await db.scalar(stmt) or 0


async def has_free_seat(db: AsyncSession, course: Course) -> bool:
    return await active_seat_count(db, course.course_id) < course.max_students


async def capacity_summary(db: AsyncSession, course_id: UUID) -> CapacitySummary:
    course = await registry.get_course(db, course_id)
    waitlist_length = await db.scalar(
        select(func.count()).select_from(WaitlistEntry).where(
            WaitlistEntry.course_id == course_id,
            WaitlistEntry.is_active.is_(True),
        )
    ) or 0
    return CapacitySummary(
        course_id=course_id,
        max_students=course.max_students,
        active_enrollments=await active_seat_count(db, course_id),
        waitlist_length=waitlist_length,
    )
