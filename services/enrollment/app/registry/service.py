"""Course registry and authorization lookups consumed by the enrollment core.

The registry tables are owned by the course service; this module only reads
them.
"""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import CourseNotFoundError
from app.models.course import Course
from app.models.course_instructor import CourseInstructor
from app.models.enrollment import Enrollment
from app.models.enums import EnrollmentStatus
from shared.constants import Role
from shared.models.user import CurrentUser


async def get_course(db: AsyncSession, course_id: UUID) -> Course:
    course = await db.get(Course, course_id)
    if course is None:
        raise CourseNotFoundError(str(course_id))
    return course


async def completed_course_ids(
    db: AsyncSession,
    student_id: UUID,
    course_ids: Iterable[UUID],
) -> set[UUID]:
    """Return the subset of ``course_ids`` the student has COMPLETED."""
    wanted = list(course_ids)
    if not wanted:
        return set()
    stmt = select(Enrollment.course_id).where(
        Enrollment.student_id == student_id,
        Enrollment.course_id.in_(wanted),
        Enrollment.status == EnrollmentStatus.COMPLETED,
    )
    result = await db.execute(stmt)
    return set(result.scalars().all())


async def is_course_instructor(db: AsyncSession, instructor_id: UUID, course_id: UUID) -> bool:
    stmt = select(CourseInstructor.id).where(
        CourseInstructor.course_id == course_id,
        CourseInstructor.instructor_id == instructor_id,
    )
    return (await db.scalar(stmt)) is not None


async def can_manage_enrollments(db: AsyncSession, actor: CurrentUser, course_id: UUID) -> bool:
    """Admins manage every course; teachers only the courses they are assigned to."""
    if actor.is_admin:
        return True
    if Role.TEACHER not in actor.roles:
        return False
    return await is_course_instructor(db, actor.id, course_id)
