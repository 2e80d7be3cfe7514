from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from app.waitlist import service as waitlist
from shared.constants import Role

BASE = "/api/v1/enrollment"


@pytest.mark.asyncio
async def test_health(async_client) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "enrollment"}


@pytest.mark.asyncio
async def test_enroll_requires_token(async_client, make_course) -> None:
    course = await make_course()
    response = await async_client.post(f"{BASE}/courses/{course.course_id}/enroll")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_enroll_requires_student_role(async_client, make_course, auth_headers) -> None:
    course = await make_course()
    response = await async_client.post(
        f"{BASE}/courses/{course.course_id}/enroll",
        headers=auth_headers(uuid4(), Role.PARENT),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_enroll_then_waitlist(async_client, make_course, auth_headers) -> None:
    course = await make_course(max_students=1)
    first, second = uuid4(), uuid4()

    response = await async_client.post(
        f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers(first),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["enrolled"] is True
    assert body["enrollment"]["status"] == "ACTIVE"
    assert body["waitlist_position"] is None

    response = await async_client.post(
        f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers(second),
    )
    assert response.status_code == 202
    body = response.json()
    assert body["waitlisted"] is True
    assert body["waitlist_position"] == 1
    assert body["enrollment"] is None

    response = await async_client.post(
        f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers(first),
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_enroll_unknown_course(async_client, auth_headers) -> None:
    response = await async_client.post(f"{BASE}/courses/{uuid4()}/enroll", headers=auth_headers())
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_enroll_contention_returns_409(async_client, make_course, auth_headers, monkeypatch) -> None:
    course = await make_course(max_students=1)
    await async_client.post(f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers())

    async def _position_taken(db, student_id, course_id):
        raise IntegrityError("INSERT INTO course_waitlist", {}, Exception("UNIQUE constraint failed"))

    monkeypatch.setattr(waitlist, "enqueue", _position_taken)

    response = await async_client.post(
        f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers(),
    )
    assert response.status_code == 409
    assert "retry" in response.json()["detail"]


@pytest.mark.asyncio
async def test_drop_promotes_waitlisted_student(async_client, make_course, auth_headers) -> None:
    course = await make_course(max_students=1)
    first, second = uuid4(), uuid4()
    await async_client.post(f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers(first))
    await async_client.post(f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers(second))

    response = await async_client.post(
        f"{BASE}/courses/{course.course_id}/drop",
        json={"reason": "moving away"},
        headers=auth_headers(first),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["enrollment"]["status"] == "DROPPED"
    assert body["promoted_student_id"] == str(second)

    response = await async_client.get(f"{BASE}/enrollments/me", headers=auth_headers(second))
    assert response.status_code == 200
    page = response.json()
    assert page["total"] == 1
    assert page["items"][0]["status"] == "ACTIVE"


@pytest.mark.asyncio
async def test_drop_when_not_enrolled(async_client, make_course, auth_headers) -> None:
    course = await make_course()
    response = await async_client.post(
        f"{BASE}/courses/{course.course_id}/drop", headers=auth_headers(),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_eligibility_preview_lists_missing_prerequisites(async_client, make_course, auth_headers) -> None:
    prereq = await make_course(title="Arithmetic")
    course = await make_course(prerequisites=[prereq.course_id])

    response = await async_client.get(
        f"{BASE}/courses/{course.course_id}/eligibility", headers=auth_headers(),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["eligible"] is False
    assert body["missing_prerequisites"] == [str(prereq.course_id)]


@pytest.mark.asyncio
async def test_capacity_summary(async_client, make_course, auth_headers) -> None:
    course = await make_course(max_students=2)
    await async_client.post(f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers())

    response = await async_client.get(f"{BASE}/courses/{course.course_id}/capacity", headers=auth_headers())
    assert response.status_code == 200
    body = response.json()
    assert body["active_enrollments"] == 1
    assert body["available_seats"] == 1
    assert body["is_full"] is False


@pytest.mark.asyncio
async def test_waitlist_withdraw_and_listing(async_client, make_course, auth_headers) -> None:
    course = await make_course(max_students=1)
    first, second = uuid4(), uuid4()
    await async_client.post(f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers(first))
    await async_client.post(f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers(second))

    response = await async_client.get(f"{BASE}/waitlist/me", headers=auth_headers(second))
    assert response.status_code == 200
    item = response.json()["items"][0]
    assert item["position"] == 1
    assert item["course_title"] == course.title
    assert item["max_students"] == 1
    assert item["active_enrollments"] == 1
    assert item["available_seats"] == 0

    response = await async_client.delete(f"{BASE}/waitlist/{course.course_id}", headers=auth_headers(second))
    assert response.status_code == 200
    assert response.json()["deactivation_reason"] == "WITHDRAWN"

    response = await async_client.delete(f"{BASE}/waitlist/{course.course_id}", headers=auth_headers(second))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_course_waitlist_staff_only(async_client, make_course, auth_headers) -> None:
    teacher = uuid4()
    course = await make_course(max_students=1, instructors=[teacher])
    await async_client.post(f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers())
    await async_client.post(f"{BASE}/courses/{course.course_id}/enroll", headers=auth_headers())

    response = await async_client.get(f"{BASE}/courses/{course.course_id}/waitlist", headers=auth_headers())
    assert response.status_code == 403

    response = await async_client.get(
        f"{BASE}/courses/{course.course_id}/waitlist",
        headers=auth_headers(uuid4(), Role.TEACHER),
    )
    assert response.status_code == 403

    response = await async_client.get(
        f"{BASE}/courses/{course.course_id}/waitlist",
        headers=auth_headers(teacher, Role.TEACHER),
    )
    assert response.status_code == 200
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_staff_enroll_and_unenroll(async_client, make_course, auth_headers, directory) -> None:
    course = await make_course()
    student = uuid4()
    admin = auth_headers(uuid4(), Role.ADMIN)

    response = await async_client.post(
        f"{BASE}/courses/{course.course_id}/students/{student}/enroll", headers=admin,
    )
    assert response.status_code == 404

    directory.students.add(student)
    response = await async_client.post(
        f"{BASE}/courses/{course.course_id}/students/{student}/enroll", headers=admin,
    )
    assert response.status_code == 201

    response = await async_client.request(
        "DELETE",
        f"{BASE}/courses/{course.course_id}/students/{student}",
        json={"reason": "duplicate account"},
        headers=admin,
    )
    assert response.status_code == 200
    assert response.json()["enrollment"]["status"] == "DROPPED"
