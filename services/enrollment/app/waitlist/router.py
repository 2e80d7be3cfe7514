"""Waitlist router — HTTP layer only."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.recorder import AuditRecorder
from app.database import get_db
from app.dependencies import get_audit_recorder, get_current_user, require_staff
from app.waitlist import controller
from app.waitlist.schemas import (
    StudentWaitlistListResponse,
    WaitlistEntryResponse,
    WaitlistListResponse,
)
from shared.models.user import CurrentUser

router = APIRouter(prefix="/enrollment", tags=["waitlist"])


@router.get(
    "/waitlist/me",
    response_model=StudentWaitlistListResponse,
    summary="List my active waitlist entries",
    description="Each entry carries the course title and its current seat usage.",
)
async def list_my_waitlist(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> StudentWaitlistListResponse:
    return await controller.list_my_waitlist(db, user)


@router.delete(
    "/waitlist/{course_id}",
    response_model=WaitlistEntryResponse,
    summary="Leave a course waitlist",
    description="Withdraws the caller from the course waitlist. Other students "
    "keep their current positions.",
)
async def withdraw(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> WaitlistEntryResponse:
    return await controller.withdraw(db, course_id, user, audit)


@router.get(
    "/courses/{course_id}/waitlist",
    response_model=WaitlistListResponse,
    summary="Course waitlist in order (instructor/admin)",
)
async def list_course_waitlist(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: CurrentUser = Depends(require_staff),
) -> WaitlistListResponse:
    return await controller.list_course_waitlist(db, course_id, actor)
