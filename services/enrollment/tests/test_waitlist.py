from uuid import uuid4

import pytest

from app.capacity.service import lock_course
from app.exceptions import NotOnWaitlistError
from app.models.enums import WaitlistExitReason
from app.waitlist import service as waitlist


async def _enqueue(db, course_id, student_id):
    await lock_course(db, course_id)
    entry = await waitlist.enqueue(db, student_id, course_id)
    await db.commit()
    return entry


@pytest.mark.asyncio
async def test_positions_follow_join_order(db_session, make_course) -> None:
    course = await make_course(max_students=1)
    students = [uuid4() for _ in range(3)]
    for student in students:
        await _enqueue(db_session, course.course_id, student)

    entries = await waitlist.list_course_waitlist(db_session, course.course_id)
    assert [e.student_id for e in entries] == students
    assert [e.position for e in entries] == [1, 2, 3]


@pytest.mark.asyncio
async def test_promote_pops_head_and_compacts(db_session, make_course) -> None:
    course = await make_course(max_students=1)
    students = [uuid4() for _ in range(3)]
    for student in students:
        await _enqueue(db_session, course.course_id, student)

    await lock_course(db_session, course.course_id)
    head = await waitlist.promote_next(db_session, course.course_id)
    await waitlist.compact_positions(db_session, course.course_id)
    await db_session.commit()

    assert head.student_id == students[0]
    assert not head.is_active
    assert head.deactivation_reason == WaitlistExitReason.PROMOTED

    remaining = await waitlist.list_course_waitlist(db_session, course.course_id)
    assert [(e.student_id, e.position) for e in remaining] == [(students[1], 1), (students[2], 2)]


@pytest.mark.asyncio
async def test_promote_empty_waitlist(db_session, make_course) -> None:
    course = await make_course()
    assert await waitlist.promote_next(db_session, course.course_id) is None


@pytest.mark.asyncio
async def test_withdrawal_leaves_positions_untouched(db_session, make_course) -> None:
    course = await make_course(max_students=1)
    students = [uuid4() for _ in range(3)]
    for student in students:
        await _enqueue(db_session, course.course_id, student)

    entry = await waitlist.remove(db_session, students[1], course.course_id)
    await db_session.commit()
    assert entry.deactivation_reason == WaitlistExitReason.WITHDRAWN

    remaining = await waitlist.list_course_waitlist(db_session, course.course_id)
    assert [(e.student_id, e.position) for e in remaining] == [(students[0], 1), (students[2], 3)]

    # New arrivals go after the current tail, never into the gap
    late = uuid4()
    entry = await _enqueue(db_session, course.course_id, late)
    assert entry.position == 4


@pytest.mark.asyncio
async def test_remove_when_not_waitlisted(db_session, make_course) -> None:
    course = await make_course()
    with pytest.raises(NotOnWaitlistError):
        await waitlist.remove(db_session, uuid4(), course.course_id)


@pytest.mark.asyncio
async def test_rejoin_reuses_row(db_session, make_course) -> None:
    course = await make_course(max_students=1)
    student, other = uuid4(), uuid4()
    first = await _enqueue(db_session, course.course_id, student)
    await _enqueue(db_session, course.course_id, other)
    await waitlist.remove(db_session, student, course.course_id)
    await db_session.commit()

    again = await _enqueue(db_session, course.course_id, student)
    assert again.waitlist_id == first.waitlist_id
    assert again.is_active
    assert again.position == 3
    assert again.deactivation_reason is None


@pytest.mark.asyncio
async def test_student_waitlist_lists_active_entries_only(db_session, make_course) -> None:
    student = uuid4()
    course_a = await make_course(max_students=1, title="A")
    course_b = await make_course(max_students=1, title="B")
    await _enqueue(db_session, course_a.course_id, student)
    await _enqueue(db_session, course_b.course_id, student)
    await waitlist.remove(db_session, student, course_a.course_id)
    await db_session.commit()

    items = await waitlist.list_student_waitlist(db_session, student)
    assert [item.entry.course_id for item in items] == [course_b.course_id]
    assert items[0].course_title == "B"
    assert items[0].max_students == 1
    assert items[0].active_enrollments == 0
    assert items[0].available_seats == 1
