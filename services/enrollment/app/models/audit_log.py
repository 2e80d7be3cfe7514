import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base
from shared.events.schemas import EnrollmentAction

from .enums import enrollment_action_enum


class EnrollmentAuditLog(Base):
    """Append-only history of enrollment lifecycle transitions."""

    __tablename__ = "enrollment_audit_log"

    audit_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Soft references — rows outlive courses and users
    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    student_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    action: Mapped[EnrollmentAction] = mapped_column(enrollment_action_enum, nullable=False)
    performed_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict
    )

    __table_args__ = (
        Index("ix_enrollment_audit_log_course_id", "course_id"),
        Index("ix_enrollment_audit_log_student_id", "student_id"),
        Index("ix_enrollment_audit_log_performed_at", "performed_at"),
    )
