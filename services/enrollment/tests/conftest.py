import os

os.environ.setdefault("ENV_NAME", "development")
os.environ.setdefault("JWT_SECRET", "test-secret")

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.audit.recorder import AuditRecorder
from app.database import get_db, set_session_factory
from app.dependencies import get_audit_recorder, get_user_directory
from app.main import create_app
from app.models import Course, CourseInstructor, CoursePrerequisite, Enrollment
from app.models.enums import CourseStatus, EnrollmentStatus
from shared.auth.config import get_auth_settings
from shared.auth.dependencies import encode_token
from shared.constants import Role
from shared.database.postgres import Base


def _database_url(tmp_path: Path) -> str:
    # File-backed SQLite so concurrent sessions get their own connections
    return os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'enrollment.db'}"


@pytest_asyncio.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine(_database_url(tmp_path), echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def audit(session_factory) -> AuditRecorder:
    return AuditRecorder(session_factory)


@pytest.fixture
def make_course(session_factory) -> Callable[..., Awaitable[Course]]:
    """Insert a course in its own session and return it (detached)."""

    async def _make(
        *,
        max_students: int = 2,
        status: CourseStatus = CourseStatus.ACTIVE,
        start: datetime | None = None,
        end: datetime | None = None,
        prerequisites: list[UUID] | None = None,
        instructors: list[UUID] | None = None,
        title: str = "Intro to Algebra",
    ) -> Course:
        now = datetime.now(timezone.utc)
        async with session_factory() as session:
            course = Course(
                title=title,
                max_students=max_students,
                status=status,
                enrollment_start_date=start if start is not None else now - timedelta(days=1),
                enrollment_end_date=end if end is not None else now + timedelta(days=30),
            )
            session.add(course)
            await session.flush()
            for prereq_id in prerequisites or []:
                session.add(CoursePrerequisite(course_id=course.course_id, prerequisite_course_id=prereq_id))
            for instructor_id in instructors or []:
                session.add(CourseInstructor(course_id=course.course_id, instructor_id=instructor_id))
            await session.commit()
            return course

    return _make


@pytest.fixture
def complete_course(session_factory) -> Callable[[UUID, UUID], Awaitable[None]]:
    """Record a COMPLETED enrollment, as the course service does on completion."""

    async def _complete(student_id: UUID, course_id: UUID) -> None:
        now = datetime.now(timezone.utc)
        async with session_factory() as session:
            session.add(
                Enrollment(
                    student_id=student_id,
                    course_id=course_id,
                    status=EnrollmentStatus.COMPLETED,
                    enrolled_at=now - timedelta(days=60),
                    completed_at=now,
                )
            )
            await session.commit()

    return _complete


# ── HTTP ──────────────────────────────────────────────────────────────────────


class FakeDirectory:
    """Stands in for the identity service: ids in ``students`` are active students."""

    def __init__(self) -> None:
        self.students: set[UUID] = set()

    async def is_active_with_role(self, user_id: UUID, role: Role) -> bool:
        return role == Role.STUDENT and user_id in self.students


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    def _headers(user_id: UUID | None = None, *roles: Role) -> dict[str, str]:
        token = encode_token(
            user_id or uuid4(),
            list(roles) or [Role.STUDENT],
            get_auth_settings(),
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def async_client(session_factory, audit, directory) -> AsyncGenerator[AsyncClient, None]:
    set_session_factory(session_factory)
    app = create_app()

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_audit_recorder] = lambda: audit
    app.dependency_overrides[get_user_directory] = lambda: directory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
