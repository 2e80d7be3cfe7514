from decimal import Decimal
from uuid import uuid4

import pytest

from app.capacity.service import (
    CapacitySummary,
    active_seat_count,
    capacity_summary,
    has_free_seat,
    lock_course,
)
from app.enrollment.service import drop, enroll
from app.exceptions import CourseNotFoundError


def test_summary_derived_fields() -> None:
    summary = CapacitySummary(course_id=uuid4(), max_students=3, active_enrollments=2, waitlist_length=0)
    assert summary.available_seats == 1
    assert not summary.is_full
    assert summary.fill_pct == Decimal("66.67")


def test_summary_full_course() -> None:
    summary = CapacitySummary(course_id=uuid4(), max_students=2, active_enrollments=2, waitlist_length=4)
    assert summary.available_seats == 0
    assert summary.is_full
    assert summary.fill_pct == Decimal("100.00")


@pytest.mark.asyncio
async def test_lock_unknown_course(db_session) -> None:
    with pytest.raises(CourseNotFoundError):
        await lock_course(db_session, uuid4())


@pytest.mark.asyncio
async def test_counts_only_active_enrollments(db_session, make_course, audit) -> None:
    course = await make_course(max_students=2)
    a, b = uuid4(), uuid4()
    await enroll(db_session, a, course.course_id, a, audit=audit)
    await enroll(db_session, b, course.course_id, b, audit=audit)
    assert await active_seat_count(db_session, course.course_id) == 2

    locked = await lock_course(db_session, course.course_id)
    assert not await has_free_seat(db_session, locked)
    await db_session.rollback()

    await drop(db_session, a, course.course_id, a, audit=audit)
    assert await active_seat_count(db_session, course.course_id) == 1


@pytest.mark.asyncio
async def test_capacity_summary_includes_waitlist(db_session, make_course, audit) -> None:
    course = await make_course(max_students=1)
    for _ in range(3):
        student = uuid4()
        await enroll(db_session, student, course.course_id, student, audit=audit)

    summary = await capacity_summary(db_session, course.course_id)
    assert summary.max_students == 1
    assert summary.active_enrollments == 1
    assert summary.waitlist_length == 2
    assert summary.is_full
