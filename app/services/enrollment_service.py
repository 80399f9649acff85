"""
Enrollment Service

Owns the enrollment record per (student, course): creation, progress
recomputation, completion and removal.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyEnrolledError,
    EnrollmentNotFoundError,
    InvalidRoleError,
)
from app.core.scoring import rounded_percentage
from app.models.certificate import Certificate
from app.models.enrollment import Enrollment
from app.models.enums import NotificationType, UserRole
from app.models.lesson import Lesson
from app.models.lesson_progress import LessonProgress
from app.services import catalog_service, certificate_service, notification_service


logger = logging.getLogger(__name__)


@dataclass
class CompletionOutcome:
    """What a progress recompute or explicit completion changed."""

    enrollment: Enrollment
    just_completed: bool = False
    certificate: Optional[Certificate] = None


@dataclass
class EnrollmentRemoval:
    """Rows deleted when an enrollment is revoked."""

    enrollments: int = 0
    certificate_codes: list[str] = field(default_factory=list)

    def discard_certificate_files(self) -> None:
        """Delete PDFs of revoked certificates. Call only after commit."""
        for code in self.certificate_codes:
            certificate_service.discard_certificate_pdf(code)


def calculate_progress_percentage(completed_lessons: int, total_lessons: int) -> int:
    """
    Share of completed lessons as an integer percentage.

    Rounds half up, and a course without lessons is at 0%.
    """
    return rounded_percentage(completed_lessons, total_lessons)


async def find_enrollment(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
    for_update: bool = False,
) -> Optional[Enrollment]:
    """Get an enrollment, or None. ``for_update`` locks the row."""
    query = select(Enrollment).where(
        Enrollment.student_id == student_id,
        Enrollment.course_id == course_id,
    )
    if for_update:
        query = query.with_for_update()

    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_enrollment(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
    for_update: bool = False,
) -> Enrollment:
    """
    Get an enrollment.

    Raises:
        EnrollmentNotFoundError: If the student is not enrolled.
    """
    enrollment = await find_enrollment(student_id, course_id, db, for_update=for_update)

    if not enrollment:
        raise EnrollmentNotFoundError(
            f"No enrollment for student {student_id} in course {course_id}"
        )

    return enrollment


async def create_enrollment(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Enrollment:
    """
    Insert a fresh enrollment at 0% progress without committing.

    The insert runs in a savepoint so a duplicate, including one created
    by a concurrent request, is reported without poisoning the outer
    transaction.

    Raises:
        AlreadyEnrolledError: If the (student, course) pair already exists.
    """
    enrollment = Enrollment(
        student_id=student_id,
        course_id=course_id,
        progress_percentage=0,
        is_completed=False,
    )

    try:
        async with db.begin_nested():
            db.add(enrollment)
    except IntegrityError:
        raise AlreadyEnrolledError()

    return enrollment


async def enroll(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Enrollment:
    """
    Enroll a student in a course.

    Args:
        student_id: Student user ID.
        course_id: Course ID.
        db: Database session.

    Returns:
        The new Enrollment.

    Raises:
        StudentNotFoundError: Unknown user.
        InvalidRoleError: User is not a student.
        CourseNotFoundError: Unknown course.
        AlreadyEnrolledError: Duplicate enrollment.
    """
    student = await catalog_service.get_user(student_id, db)
    if student.role != UserRole.STUDENT:
        raise InvalidRoleError()

    await catalog_service.get_course(course_id, db)

    enrollment = await create_enrollment(student_id, course_id, db)

    await db.commit()
    await db.refresh(enrollment)

    logger.info("Student %s enrolled in course %s", student_id, course_id)
    return enrollment


async def count_completed_lessons(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> int:
    """Number of lessons of a course the student has completed."""
    result = await db.execute(
        select(func.count(LessonProgress.id))
        .join(Lesson, Lesson.id == LessonProgress.lesson_id)
        .where(
            LessonProgress.student_id == student_id,
            LessonProgress.is_completed.is_(True),
            Lesson.course_id == course_id,
        )
    )
    return result.scalar() or 0


async def recompute_progress(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> CompletionOutcome:
    """
    Recompute progress percentage and completion state of an enrollment.

    Runs inside the caller's transaction and never commits. The enrollment
    row is locked so concurrent recomputes for the same pair serialize.

    ``completion_date`` is written once, on the first transition to
    completed, and kept if progress later drops below 100. That transition
    also issues the certificate when none exists yet.

    Raises:
        EnrollmentNotFoundError: If the student is not enrolled.
    """
    enrollment = await get_enrollment(student_id, course_id, db, for_update=True)

    total = await catalog_service.count_lessons(course_id, db)
    completed = await count_completed_lessons(student_id, course_id, db)

    was_completed = enrollment.is_completed
    enrollment.progress_percentage = calculate_progress_percentage(completed, total)
    enrollment.is_completed = enrollment.progress_percentage == 100

    outcome = CompletionOutcome(enrollment=enrollment)

    if enrollment.is_completed and not was_completed:
        outcome.just_completed = True
        if enrollment.completion_date is None:
            enrollment.completion_date = datetime.now(timezone.utc)
        outcome.certificate = await certificate_service.issue_if_absent(
            student_id, course_id, db
        )

    await db.flush()
    return outcome


async def complete_course(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Enrollment:
    """
    Mark a course as completed regardless of lesson progress.

    Forces 100% progress, then issues the certificate if the student has
    none for this course. An existing completion_date is kept.

    Raises:
        EnrollmentNotFoundError: If the student is not enrolled.
    """
    enrollment = await get_enrollment(student_id, course_id, db, for_update=True)

    outcome = CompletionOutcome(
        enrollment=enrollment,
        just_completed=not enrollment.is_completed,
    )

    enrollment.progress_percentage = 100
    enrollment.is_completed = True
    if enrollment.completion_date is None:
        enrollment.completion_date = datetime.now(timezone.utc)

    outcome.certificate = await certificate_service.issue_if_absent(
        student_id, course_id, db
    )

    await db.commit()
    await db.refresh(enrollment)

    await announce_completion(outcome, db)
    return enrollment


async def announce_completion(outcome: CompletionOutcome, db: AsyncSession) -> None:
    """Notify the student about a completion. Call only after commit."""
    enrollment = outcome.enrollment

    if outcome.just_completed:
        logger.info(
            "Student %s completed course %s",
            enrollment.student_id, enrollment.course_id,
        )
        await notification_service.notify(
            enrollment.student_id,
            NotificationType.COURSE_UPDATE,
            "Course completed",
            "Congratulations, you have completed the course!",
        )

    if outcome.certificate is not None:
        await certificate_service.announce_certificate(outcome.certificate, db)


async def remove_enrollment(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> EnrollmentRemoval:
    """
    Delete an enrollment with the student's progress and certificate in that course.

    A certificate can only stand on a completed enrollment, so it goes
    together with it. Runs inside the caller's transaction and never
    commits; PDFs of revoked certificates are left for the caller to
    discard after commit.

    Returns:
        EnrollmentRemoval with the deleted enrollment count (0 or 1) and the
        codes of revoked certificates.
    """
    course_lessons = select(Lesson.id).where(Lesson.course_id == course_id)

    await db.execute(
        delete(LessonProgress).where(
            LessonProgress.student_id == student_id,
            LessonProgress.lesson_id.in_(course_lessons),
        )
    )
    revoked = await db.execute(
        delete(Certificate)
        .where(
            Certificate.student_id == student_id,
            Certificate.course_id == course_id,
        )
        .returning(Certificate.certificate_code)
    )
    certificate_codes = list(revoked.scalars().all())

    result = await db.execute(
        delete(Enrollment).where(
            Enrollment.student_id == student_id,
            Enrollment.course_id == course_id,
        )
    )
    return EnrollmentRemoval(
        enrollments=result.rowcount or 0,
        certificate_codes=certificate_codes,
    )


async def unenroll(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> None:
    """
    Remove a student from a course, together with their lesson progress
    and certificate.

    Raises:
        EnrollmentNotFoundError: If the student is not enrolled.
    """
    await get_enrollment(student_id, course_id, db, for_update=True)
    removal = await remove_enrollment(student_id, course_id, db)
    await db.commit()

    removal.discard_certificate_files()
    logger.info("Student %s unenrolled from course %s", student_id, course_id)


async def get_student_enrollments(
    student_id: uuid.UUID,
    db: AsyncSession,
) -> list[Enrollment]:
    """All enrollments of a student, newest first."""
    result = await db.execute(
        select(Enrollment)
        .where(Enrollment.student_id == student_id)
        .order_by(Enrollment.enrollment_date.desc())
    )
    return list(result.scalars().all())


async def get_course_enrollments(
    course_id: int,
    db: AsyncSession,
) -> list[Enrollment]:
    """
    All enrollments of a course.

    Raises:
        CourseNotFoundError: Unknown course.
    """
    await catalog_service.get_course(course_id, db)

    result = await db.execute(
        select(Enrollment)
        .where(Enrollment.course_id == course_id)
        .order_by(Enrollment.enrollment_date.asc())
    )
    return list(result.scalars().all())


async def get_student_progress(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> dict:
    """
    Progress overview of a student in a course.

    Returns:
        Dict with the enrollment, its lesson progress rows, and the
        completed/total lesson counts.

    Raises:
        EnrollmentNotFoundError: If the student is not enrolled.
    """
    enrollment = await get_enrollment(student_id, course_id, db)

    progress_result = await db.execute(
        select(LessonProgress)
        .join(Lesson, Lesson.id == LessonProgress.lesson_id)
        .where(
            LessonProgress.student_id == student_id,
            Lesson.course_id == course_id,
        )
        .order_by(Lesson.order_index.asc())
    )
    lesson_progress = list(progress_result.scalars().all())

    total_lessons = await catalog_service.count_lessons(course_id, db)

    return {
        "enrollment": enrollment,
        "lesson_progress": lesson_progress,
        "completed_lessons": sum(1 for p in lesson_progress if p.is_completed),
        "total_lessons": total_lessons,
    }
