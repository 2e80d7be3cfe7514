"""Enrollment lifecycle — pure business logic, no FastAPI imports.

Orchestrates the eligibility checker, capacity ledger and waitlist queue to
process enroll, drop, unenroll and waitlist withdrawal requests, and drives
waitlist promotion when a seat frees up.

Transaction boundaries live here: every state change commits as one unit
under the course row lock, and audit entries are written only after the
commit they describe.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.audit.recorder import AuditRecorder
from app.capacity import service as capacity
from app.eligibility import service as eligibility
from app.exceptions import (
    CapacityRaceLostError,
    CourseNotFoundError,
    EnrollmentContentionError,
    NotEnrolledError,
    StudentNotFoundError,
    UnauthorizedActorError,
)
from app.models.enrollment import Enrollment
from app.models.enums import EnrollmentStatus
from app.models.waitlist import WaitlistEntry
from app.registry import service as registry
from app.registry.directory import UserDirectory
from app.waitlist import service as waitlist
from shared.constants import Role
from shared.events.schemas import EnrollmentAction
from shared.models.user import CurrentUser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnrollmentOutcome:
    enrolled: bool
    waitlisted: bool
    course_id: UUID
    student_id: UUID
    enrollment: Enrollment | None = None
    waitlist_entry: WaitlistEntry | None = None
    reactivated: bool = False
    retried: bool = False

    @property
    def waitlist_position(self) -> int | None:
        return self.waitlist_entry.position if self.waitlist_entry is not None else None


@dataclass(frozen=True)
class DropOutcome:
    enrollment: Enrollment
    promoted: bool = False
    promoted_student_id: UUID | None = None
    promoted_enrollment: Enrollment | None = None


# ---------------------------------------------------------------------------
# Seat claiming
# ---------------------------------------------------------------------------


async def _activate_enrollment(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
    existing: Enrollment | None,
) -> Enrollment:
    """Flip an existing row back to ACTIVE or insert the pair's first row."""
    now = datetime.now(timezone.utc)
    if existing is None:
        enrollment = Enrollment(
            student_id=student_id,
            course_id=course_id,
            status=EnrollmentStatus.ACTIVE,
            progress_pct=Decimal("0.00"),
            enrolled_at=now,
        )
        db.add(enrollment)
    else:
        enrollment = existing
        enrollment.status = EnrollmentStatus.ACTIVE
        enrollment.progress_pct = Decimal("0.00")
        enrollment.enrolled_at = now
        enrollment.dropped_at = None
    await db.flush()
    return enrollment


async def _claim(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
    *,
    waitlist_only: bool,
) -> EnrollmentOutcome:
    course = await capacity.lock_course(db, course_id)

    # The unlocked eligibility pass may be stale by now
    existing = await eligibility.get_enrollment(db, student_id, course_id)
    eligibility.check_existing_claim(
        existing,
        await eligibility.get_active_waitlist_entry(db, student_id, course_id),
    )

    if not waitlist_only and await capacity.has_free_seat(db, course):
        reactivated = existing is not None
        enrollment = await _activate_enrollment(db, student_id, course_id, existing)
        if await capacity.active_seat_count(db, course_id) > course.max_students:
            raise CapacityRaceLostError()
        return EnrollmentOutcome(
            enrolled=True,
            waitlisted=False,
            course_id=course_id,
            student_id=student_id,
            enrollment=enrollment,
            reactivated=reactivated,
        )

    entry = await waitlist.enqueue(db, student_id, course_id)
    return EnrollmentOutcome(
        enrolled=False,
        waitlisted=True,
        course_id=course_id,
        student_id=student_id,
        enrollment=existing,
        waitlist_entry=entry,
        retried=waitlist_only,
    )


async def _claim_and_commit(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
    *,
    waitlist_only: bool = False,
) -> EnrollmentOutcome:
    try:
        outcome = await _claim(db, student_id, course_id, waitlist_only=waitlist_only)
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise CapacityRaceLostError(str(exc.orig)) from exc
    except Exception:
        await db.rollback()
        raise
    return outcome


# ---------------------------------------------------------------------------
# Enroll
# ---------------------------------------------------------------------------


async def enroll(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
    actor_id: UUID,
    *,
    audit: AuditRecorder,
    now: datetime | None = None,
) -> EnrollmentOutcome:
    """Enroll outright when a seat is free, otherwise join the waitlist."""
    await eligibility.ensure_eligible(db, student_id, course_id, now=now)

    try:
        outcome = await _claim_and_commit(db, student_id, course_id)
    except CapacityRaceLostError:
        logger.warning(
            "Seat race lost: student=%s course=%s, retrying as waitlist enqueue",
            student_id, course_id,
        )
        try:
            outcome = await _claim_and_commit(db, student_id, course_id, waitlist_only=True)
        except CapacityRaceLostError as exc:
            raise EnrollmentContentionError() from exc

    if outcome.enrolled:
        logger.info("Enrolled student=%s course=%s", student_id, course_id)
        await audit.log(
            EnrollmentAction.ENROLLED,
            course_id=course_id,
            student_id=student_id,
            performed_by=actor_id,
            reactivated=outcome.reactivated,
        )
    else:
        logger.info(
            "Waitlisted student=%s course=%s position=%s",
            student_id, course_id, outcome.waitlist_position,
        )
        await audit.log(
            EnrollmentAction.WAITLISTED,
            course_id=course_id,
            student_id=student_id,
            performed_by=actor_id,
            position=outcome.waitlist_position,
            after_lost_race=outcome.retried,
        )
    return outcome


async def enroll_on_behalf(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
    actor: CurrentUser,
    *,
    audit: AuditRecorder,
    directory: UserDirectory,
) -> EnrollmentOutcome:
    """Instructor/admin enrolls a student; same capacity rules as self-enrollment."""
    await registry.get_course(db, course_id)
    if not await registry.can_manage_enrollments(db, actor, course_id):
        raise UnauthorizedActorError()
    if not await directory.is_active_with_role(student_id, Role.STUDENT):
        raise StudentNotFoundError(str(student_id))
    return await enroll(db, student_id, course_id, actor.id, audit=audit)


# ---------------------------------------------------------------------------
# Drop / promotion
# ---------------------------------------------------------------------------


async def _promote_next(
    db: AsyncSession,
    course_id: UUID,
    actor_id: UUID,
    *,
    audit: AuditRecorder,
) -> tuple[UUID, Enrollment] | None:
    """Hand a free seat to the head of the waitlist in one transaction.

    Failures roll back the promotion only; the drop has already committed
    and the seat stays free for the next drop/enroll cycle.
    """
    try:
        course = await capacity.lock_course(db, course_id)
        if not await capacity.has_free_seat(db, course):
            await db.commit()
            return None

        promoted: tuple[WaitlistEntry, Enrollment] | None = None
        while promoted is None:
            entry = await waitlist.promote_next(db, course_id)
            if entry is None:
                break
            existing = await eligibility.get_enrollment(db, entry.student_id, course_id)
            if existing is not None and existing.status != EnrollmentStatus.DROPPED:
                logger.warning(
                    "Skipping waitlisted student=%s course=%s: enrollment already %s",
                    entry.student_id, course_id, existing.status.value,
                )
                continue
            enrollment = await _activate_enrollment(db, entry.student_id, course_id, existing)
            promoted = (entry, enrollment)

        await waitlist.compact_positions(db, course_id)
        await db.commit()
    except (SQLAlchemyError, CourseNotFoundError):
        await db.rollback()
        logger.exception("Waitlist promotion failed for course=%s; seat left open", course_id)
        return None

    if promoted is None:
        return None

    entry, enrollment = promoted
    logger.info("Promoted student=%s course=%s from waitlist", entry.student_id, course_id)
    await audit.log(
        EnrollmentAction.PROMOTED,
        course_id=course_id,
        student_id=entry.student_id,
        performed_by=actor_id,
        from_position=entry.position,
    )
    return entry.student_id, enrollment


async def drop(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
    actor_id: UUID,
    reason: str | None = None,
    *,
    audit: AuditRecorder,
) -> DropOutcome:
    """ACTIVE → DROPPED, then offer the freed seat to the waitlist."""
    try:
        await capacity.lock_course(db, course_id)
        enrollment = await eligibility.get_enrollment(db, student_id, course_id)
        if enrollment is None or enrollment.status != EnrollmentStatus.ACTIVE:
            raise NotEnrolledError()
        enrollment.status = EnrollmentStatus.DROPPED
        enrollment.dropped_at = datetime.now(timezone.utc)
        await db.flush()
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Dropped student=%s course=%s by=%s", student_id, course_id, actor_id)
    await audit.log(
        EnrollmentAction.DROPPED,
        course_id=course_id,
        student_id=student_id,
        performed_by=actor_id,
        reason=reason,
        old_status=EnrollmentStatus.ACTIVE.value,
        new_status=EnrollmentStatus.DROPPED.value,
        initiated_by="student" if actor_id == student_id else "staff",
    )

    promoted = await _promote_next(db, course_id, actor_id, audit=audit)
    if promoted is None:
        # A failed promotion rolls the session back, which expires loaded rows
        await db.refresh(enrollment)
        return DropOutcome(enrollment=enrollment)
    promoted_student_id, promoted_enrollment = promoted
    return DropOutcome(
        enrollment=enrollment,
        promoted=True,
        promoted_student_id=promoted_student_id,
        promoted_enrollment=promoted_enrollment,
    )


async def unenroll(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
    actor: CurrentUser,
    reason: str | None = None,
    *,
    audit: AuditRecorder,
) -> DropOutcome:
    """Instructor/admin-initiated drop; the actor must be allowed to manage the course."""
    await registry.get_course(db, course_id)
    if not await registry.can_manage_enrollments(db, actor, course_id):
        raise UnauthorizedActorError()
    return await drop(db, student_id, course_id, actor.id, reason, audit=audit)


# ---------------------------------------------------------------------------
# Waitlist withdrawal
# ---------------------------------------------------------------------------


async def remove_from_waitlist(
    db: AsyncSession,
    student_id: UUID,
    course_id: UUID,
    actor_id: UUID,
    *,
    audit: AuditRecorder,
) -> WaitlistEntry:
    try:
        await capacity.lock_course(db, course_id)
        entry = await waitlist.remove(db, student_id, course_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Withdrew student=%s course=%s from waitlist position=%s",
        student_id, course_id, entry.position,
    )
    await audit.log(
        EnrollmentAction.WAITLIST_REMOVED,
        course_id=course_id,
        student_id=student_id,
        performed_by=actor_id,
        position=entry.position,
    )
    return entry


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_my_enrollments(
    db: AsyncSession,
    student_id: UUID,
    *,
    status: EnrollmentStatus | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Enrollment], int]:
    base = select(Enrollment).where(Enrollment.student_id == student_id)
    count_base = select(func.count()).select_from(Enrollment).where(
        Enrollment.student_id == student_id
    )

    if status is not None:
        base = base.where(Enrollment.status == status)
        count_base = count_base.where(Enrollment.status == status)

    total = await db.scalar(count_base) or 0
    stmt = base.order_by(Enrollment.enrolled_at.desc()).limit(limit).offset(offset)
    result = await db.execute(stmt)
    enrollments = list(result.scalars().all())
    return enrollments, total


async def list_course_waitlist(
    db: AsyncSession,
    course_id: UUID,
    actor: CurrentUser,
) -> list[WaitlistEntry]:
    """The course's line in order; instructor/admin only."""
    await registry.get_course(db, course_id)
    if not await registry.can_manage_enrollments(db, actor, course_id):
        raise UnauthorizedActorError()
    return await waitlist.list_course_waitlist(db, course_id)
