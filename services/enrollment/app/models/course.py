import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.postgres import Base

from .enums import CourseStatus, course_status_enum


class Course(Base):
    """Read-only mirror of the course registry's capacity-relevant fields."""

    __tablename__ = "courses"

    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[CourseStatus] = mapped_column(
        course_status_enum, nullable=False, default=CourseStatus.DRAFT
    )
    # Both bounds inclusive; NULL means unbounded on that side
    enrollment_start_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    enrollment_end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    prerequisites = relationship(
        "CoursePrerequisite",
        foreign_keys="CoursePrerequisite.course_id",
        lazy="selectin",
    )
    instructors = relationship("CourseInstructor", back_populates="course", lazy="noload")

    __table_args__ = (
        CheckConstraint("max_students > 0", name="ck_courses_max_students_positive"),
        Index("ix_courses_status", "status"),
    )

    @property
    def prerequisite_ids(self) -> list[uuid.UUID]:
        return [p.prerequisite_course_id for p in self.prerequisites]


class CoursePrerequisite(Base):
    __tablename__ = "course_prerequisites"

    course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("courses.course_id", ondelete="CASCADE"), primary_key=True
    )
    prerequisite_course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("courses.course_id", ondelete="CASCADE"), primary_key=True
    )

    __table_args__ = (
        CheckConstraint(
            "course_id <> prerequisite_course_id", name="ck_course_prerequisites_not_self"
        ),
    )
