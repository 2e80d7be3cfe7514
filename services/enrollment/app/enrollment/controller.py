"""Enrollment controller — maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.recorder import AuditRecorder
from app.capacity import service as capacity
from app.eligibility import service as eligibility
from app.enrollment import service
from app.enrollment.schemas import (
    CapacityResponse,
    DropRequest,
    DropResponse,
    EligibilityResponse,
    EnrollmentResponse,
    EnrollOutcomeResponse,
    UnenrollRequest,
)
from app.exceptions import (
    AlreadyEnrolledError,
    AlreadyWaitlistedError,
    CourseNotAvailableError,
    CourseNotFoundError,
    EnrollmentContentionError,
    NotEnrolledError,
    NotOnWaitlistError,
    PrerequisitesNotMetError,
    StudentNotFoundError,
    UnauthorizedActorError,
    UserDirectoryUnavailableError,
)
from app.models.enums import EnrollmentStatus
from app.pagination import OffsetPage
from app.registry.directory import UserDirectory
from shared.models.user import CurrentUser


def _handle_domain_error(exc: Exception) -> HTTPException:
    if isinstance(exc, HTTPException):
        return exc
    if isinstance(exc, (CourseNotFoundError, StudentNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, NotEnrolledError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not enrolled in this course.")
    if isinstance(exc, NotOnWaitlistError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not on the waitlist for this course.")
    if isinstance(exc, (CourseNotAvailableError, PrerequisitesNotMetError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, (AlreadyEnrolledError, AlreadyWaitlistedError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, EnrollmentContentionError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Course is under heavy contention, please retry.",
        )
    if isinstance(exc, UnauthorizedActorError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to manage enrollments for this course.",
        )
    if isinstance(exc, UserDirectoryUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User directory is unavailable.",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error.")


def _outcome_response(outcome: service.EnrollmentOutcome) -> EnrollOutcomeResponse:
    return EnrollOutcomeResponse(
        enrolled=outcome.enrolled,
        waitlisted=outcome.waitlisted,
        course_id=outcome.course_id,
        student_id=outcome.student_id,
        enrollment=(
            EnrollmentResponse.model_validate(outcome.enrollment) if outcome.enrolled else None
        ),
        waitlist_position=outcome.waitlist_position,
    )


def _drop_response(outcome: service.DropOutcome) -> DropResponse:
    return DropResponse(
        enrollment=EnrollmentResponse.model_validate(outcome.enrollment),
        promoted_student_id=outcome.promoted_student_id,
    )


# ---------------------------------------------------------------------------
# Self-service
# ---------------------------------------------------------------------------


async def enroll(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    audit: AuditRecorder,
) -> EnrollOutcomeResponse:
    try:
        outcome = await service.enroll(db, user.id, course_id, user.id, audit=audit)
        return _outcome_response(outcome)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def drop(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
    body: DropRequest,
    audit: AuditRecorder,
) -> DropResponse:
    try:
        outcome = await service.drop(db, user.id, course_id, user.id, body.reason, audit=audit)
        return _drop_response(outcome)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def check_eligibility(
    db: AsyncSession,
    course_id: UUID,
    user: CurrentUser,
) -> EligibilityResponse:
    try:
        result = await eligibility.check_eligibility(db, user.id, course_id)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
    missing = result.error.missing if isinstance(result.error, PrerequisitesNotMetError) else []
    return EligibilityResponse(
        course_id=course_id,
        eligible=result.eligible,
        reason=result.reason,
        missing_prerequisites=[UUID(m) for m in missing],
    )


async def get_capacity(db: AsyncSession, course_id: UUID) -> CapacityResponse:
    try:
        summary = await capacity.capacity_summary(db, course_id)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
    return CapacityResponse(
        course_id=summary.course_id,
        max_students=summary.max_students,
        active_enrollments=summary.active_enrollments,
        available_seats=summary.available_seats,
        waitlist_length=summary.waitlist_length,
        is_full=summary.is_full,
        fill_pct=summary.fill_pct,
    )


async def list_my_enrollments(
    db: AsyncSession,
    user: CurrentUser,
    *,
    status: EnrollmentStatus | None,
    limit: int,
    offset: int,
) -> OffsetPage[EnrollmentResponse]:
    enrollments, total = await service.list_my_enrollments(
        db, user.id, status=status, limit=limit, offset=offset,
    )
    return OffsetPage[EnrollmentResponse](
        items=[EnrollmentResponse.model_validate(e) for e in enrollments],
        total=total,
        limit=limit,
        offset=offset,
    )


# ---------------------------------------------------------------------------
# Instructor / admin
# ---------------------------------------------------------------------------


async def enroll_student(
    db: AsyncSession,
    course_id: UUID,
    student_id: UUID,
    actor: CurrentUser,
    audit: AuditRecorder,
    directory: UserDirectory,
) -> EnrollOutcomeResponse:
    try:
        outcome = await service.enroll_on_behalf(
            db, student_id, course_id, actor, audit=audit, directory=directory,
        )
        return _outcome_response(outcome)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def unenroll_student(
    db: AsyncSession,
    course_id: UUID,
    student_id: UUID,
    actor: CurrentUser,
    body: UnenrollRequest,
    audit: AuditRecorder,
) -> DropResponse:
    try:
        outcome = await service.unenroll(
            db, student_id, course_id, actor, body.reason, audit=audit,
        )
        return _drop_response(outcome)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
