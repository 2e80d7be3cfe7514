"""Audit recorder — append-only log of enrollment lifecycle transitions.

Each event is written in its own session after the primary transition has
committed, so a failed audit write can never roll back an enrollment, drop
or promotion. Failures are logged and swallowed.
"""
from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.audit_log import EnrollmentAuditLog
from shared.events.schemas import EnrollmentAction, EnrollmentTransition

logger = logging.getLogger(__name__)


class AuditRecorder:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(self, event: EnrollmentTransition) -> bool:
        """Persist one event. Returns False (after logging) when the write failed."""
        try:
            async with self._session_factory() as session:
                session.add(
                    EnrollmentAuditLog(
                        course_id=event.course_id,
                        student_id=event.student_id,
                        action=event.action,
                        performed_by=event.performed_by,
                        performed_at=event.occurred_at,
                        reason=event.reason,
                        details=event.metadata,
                    )
                )
                await session.commit()
        except Exception:
            logger.exception(
                "Audit write failed: action=%s course=%s student=%s",
                event.action.value, event.course_id, event.student_id,
            )
            return False
        return True

    async def log(
        self,
        action: EnrollmentAction,
        *,
        course_id: UUID,
        student_id: UUID | None,
        performed_by: UUID,
        reason: str | None = None,
        **metadata: Any,
    ) -> bool:
        return await self.record(
            EnrollmentTransition(
                action=action,
                course_id=course_id,
                student_id=student_id,
                performed_by=performed_by,
                reason=reason,
                metadata={k: _jsonable(v) for k, v in metadata.items()},
            )
        )


def _jsonable(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    return value
