"""Waitlist controller — student withdrawal and waitlist listings."""

from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.recorder import AuditRecorder
from app.enrollment import service as lifecycle
from app.exceptions import CourseNotFoundError, NotOnWaitlistError, UnauthorizedActorError
from app.waitlist import service
from app.waitlist.schemas import (
    StudentWaitlistEntryResponse,
    StudentWaitlistListResponse,
    WaitlistEntryResponse,
    WaitlistListResponse,
)
from shared.models.user import CurrentUser


def _handle_domain_error(exc: Exception) -> HTTPException:
    if isinstance(exc, CourseNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, NotOnWaitlistError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not on the waitlist for this course.")
    if isinstance(exc, UnauthorizedActorError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to manage enrollments for this course.",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error.")


async def withdraw(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    audit: AuditRecorder,
) -> WaitlistEntryResponse:
    try:
        entry = await lifecycle.remove_from_waitlist(db, user.id, course_id, user.id, audit=audit)
        return WaitlistEntryResponse.model_validate(entry)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def list_my_waitlist(db: AsyncSession, user: CurrentUser) -> StudentWaitlistListResponse:
    items = await service.list_student_waitlist(db, user.id)
    return StudentWaitlistListResponse(
        items=[
            StudentWaitlistEntryResponse(
                **WaitlistEntryResponse.model_validate(item.entry).model_dump(),
                course_title=item.course_title,
                max_students=item.max_students,
                active_enrollments=item.active_enrollments,
                available_seats=item.available_seats,
            )
            for item in items
        ],
        total=len(items),
    )


async def list_course_waitlist(
    db: AsyncSession,
    course_id: UUID,
    actor: CurrentUser,
) -> WaitlistListResponse:
    try:
        entries = await lifecycle.list_course_waitlist(db, course_id, actor)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
    return WaitlistListResponse(
        items=[WaitlistEntryResponse.model_validate(e) for e in entries],
        total=len(entries),
    )
