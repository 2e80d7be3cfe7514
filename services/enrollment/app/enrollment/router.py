"""Enrollment router — HTTP layer only.

Defines the enroll / drop / eligibility / capacity endpoints for students and
the instructor/admin roster endpoints. Delegates to controller for business
logic orchestration.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.recorder import AuditRecorder
from app.config import Settings
from app.database import get_db
from app.dependencies import (
    get_audit_recorder,
    get_current_user,
    get_user_directory,
    require_staff,
    require_student,
)
from app.enrollment import controller
from app.enrollment.schemas import (
    CapacityResponse,
    DropRequest,
    DropResponse,
    EligibilityResponse,
    EnrollmentResponse,
    EnrollOutcomeResponse,
    UnenrollRequest,
)
from app.models.enums import EnrollmentStatus
from app.pagination import OffsetPage
from app.rate_limit import limiter
from app.registry.directory import UserDirectory
from shared.models.user import CurrentUser

router = APIRouter(prefix="/enrollment", tags=["enrollment"])

_ENROLL_LIMIT = Settings().enroll_rate_limit

_OUTCOME_RESPONSES = {
    status.HTTP_202_ACCEPTED: {
        "model": EnrollOutcomeResponse,
        "description": "Course is full; the student was added to the waitlist.",
    },
}


# ======================================================================
# Student endpoints
# ======================================================================


@router.post(
    "/courses/{course_id}/enroll",
    response_model=EnrollOutcomeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_OUTCOME_RESPONSES,
    summary="Enroll in a course",
    description="Claims a seat when one is free (201). When the course is full "
    "the student joins the end of the waitlist instead (202).",
)
@limiter.limit(_ENROLL_LIMIT)
async def enroll(
    request: Request,
    response: Response,
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(require_student),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> EnrollOutcomeResponse:
    result = await controller.enroll(db, course_id, user, audit)
    if result.waitlisted:
        response.status_code = status.HTTP_202_ACCEPTED
    return result


@router.post(
    "/courses/{course_id}/drop",
    response_model=DropResponse,
    summary="Drop a course",
    description="Sets the caller's ACTIVE enrollment to DROPPED. The freed seat "
    "is offered to the head of the waitlist.",
)
@limiter.limit(_ENROLL_LIMIT)
async def drop(
    request: Request,
    course_id: UUID,
    body: DropRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> DropResponse:
    return await controller.drop(db, course_id, user, body or DropRequest(), audit)


@router.get(
    "/courses/{course_id}/eligibility",
    response_model=EligibilityResponse,
    summary="Preview enrollment eligibility",
    description="Runs every enrollment check for the caller without changing state.",
)
async def check_eligibility(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> EligibilityResponse:
    return await controller.check_eligibility(db, course_id, user)


@router.get(
    "/courses/{course_id}/capacity",
    response_model=CapacityResponse,
    summary="Seat usage and waitlist length",
)
async def get_capacity(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> CapacityResponse:
    return await controller.get_capacity(db, course_id)


@router.get(
    "/enrollments/me",
    response_model=OffsetPage[EnrollmentResponse],
    summary="List my enrollments",
)
async def list_my_enrollments(
    status_filter: EnrollmentStatus | None = Query(None, alias="status", description="Filter by enrollment status."),
    limit: int = Query(20, ge=1, le=100, description="Items per page."),
    offset: int = Query(0, ge=0, description="Number of items to skip."),
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> OffsetPage[EnrollmentResponse]:
    return await controller.list_my_enrollments(
        db, user, status=status_filter, limit=limit, offset=offset,
    )


# ======================================================================
# Instructor / admin endpoints
# ======================================================================


@router.post(
    "/courses/{course_id}/students/{student_id}/enroll",
    response_model=EnrollOutcomeResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_OUTCOME_RESPONSES,
    summary="Enroll a student (instructor/admin)",
    description="Same capacity rules as self-enrollment. The target must be an "
    "active user with the student role.",
)
async def enroll_student(
    response: Response,
    course_id: UUID,
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: CurrentUser = Depends(require_staff),
    audit: AuditRecorder = Depends(get_audit_recorder),
    directory: UserDirectory = Depends(get_user_directory),
) -> EnrollOutcomeResponse:
    result = await controller.enroll_student(db, course_id, student_id, actor, audit, directory)
    if result.waitlisted:
        response.status_code = status.HTTP_202_ACCEPTED
    return result


@router.delete(
    "/courses/{course_id}/students/{student_id}",
    response_model=DropResponse,
    summary="Remove a student from a course (instructor/admin)",
)
async def unenroll_student(
    course_id: UUID,
    student_id: UUID,
    body: UnenrollRequest | None = None,
    db: AsyncSession = Depends(get_db),
    actor: CurrentUser = Depends(require_staff),
    audit: AuditRecorder = Depends(get_audit_recorder),
) -> DropResponse:
    return await controller.unenroll_student(
        db, course_id, student_id, actor, body or UnenrollRequest(), audit,
    )
