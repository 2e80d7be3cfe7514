import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.postgres import Base

from .enums import WaitlistExitReason, waitlist_exit_reason_enum


class WaitlistEntry(Base):
    __tablename__ = "course_waitlist"

    waitlist_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("courses.course_id", ondelete="CASCADE"),
        nullable=False,
    )
    # Soft reference — User lives in identity_db
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    # 1-based rank among the course's active entries
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    deactivated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deactivation_reason: Mapped[WaitlistExitReason | None] = mapped_column(
        waitlist_exit_reason_enum, nullable=True
    )

    course = relationship("Course", lazy="noload")

    __table_args__ = (
        # One row per pair; re-joining reactivates it
        UniqueConstraint("course_id", "student_id", name="uq_course_waitlist_course_student"),
        Index(
            "uq_course_waitlist_active_position",
            "course_id",
            "position",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
        Index("ix_course_waitlist_student_id", "student_id"),
    )
