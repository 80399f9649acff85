"""
Progress Service

Records per-lesson watch time and completion, and pushes the change up
to the enrollment in the same transaction.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotEnrolledError
from app.models.lesson_progress import LessonProgress
from app.services import catalog_service, enrollment_service


logger = logging.getLogger(__name__)


async def get_or_create_progress(
    student_id: uuid.UUID,
    lesson_id: int,
    db: AsyncSession,
) -> LessonProgress:
    """
    Get the locked progress row for a lesson, creating it if missing.

    A concurrent insert of the same row trips the unique constraint inside
    the savepoint, after which the winner's row is read back.

    Args:
        student_id: Student ID.
        lesson_id: Lesson ID.
        db: Database session.

    Returns:
        LessonProgress object.
    """
    query = (
        select(LessonProgress)
        .where(
            LessonProgress.student_id == student_id,
            LessonProgress.lesson_id == lesson_id,
        )
        .with_for_update()
    )

    result = await db.execute(query)
    progress = result.scalar_one_or_none()

    if progress:
        return progress

    progress = LessonProgress(
        student_id=student_id,
        lesson_id=lesson_id,
        watch_time_seconds=0,
        is_completed=False,
    )
    try:
        async with db.begin_nested():
            db.add(progress)
    except IntegrityError:
        result = await db.execute(query)
        progress = result.scalar_one()

    return progress


async def record_progress(
    student_id: uuid.UUID,
    lesson_id: int,
    watch_time_seconds: int,
    completed: Optional[bool],
    db: AsyncSession,
) -> LessonProgress:
    """
    Record watch progress for a lesson.

    The progress row and the recomputed enrollment commit together.
    ``completed_at`` is set the first time the lesson is completed and
    is never cleared afterwards.

    Args:
        student_id: Student ID.
        lesson_id: Lesson ID.
        watch_time_seconds: Seconds watched as reported by the player.
        completed: New completion flag, or None to leave it unchanged.
        db: Database session.

    Returns:
        Updated LessonProgress object.

    Raises:
        LessonNotFoundError: Unknown lesson.
        NotEnrolledError: Student not enrolled in the lesson's course.
    """
    lesson = await catalog_service.get_lesson(lesson_id, db)

    # Lock the enrollment first so recomputes for the same pair serialize
    enrollment = await enrollment_service.find_enrollment(
        student_id, lesson.course_id, db, for_update=True
    )
    if not enrollment:
        raise NotEnrolledError(
            f"Student {student_id} is not enrolled in course {lesson.course_id}"
        )

    progress = await get_or_create_progress(student_id, lesson_id, db)

    now = datetime.now(timezone.utc)
    progress.watch_time_seconds = watch_time_seconds
    progress.last_accessed_at = now

    if completed is not None:
        progress.is_completed = completed
        if completed and progress.completed_at is None:
            progress.completed_at = now

    await db.flush()

    outcome = await enrollment_service.recompute_progress(
        student_id, lesson.course_id, db
    )

    await db.commit()
    await db.refresh(progress)

    logger.debug(
        "Progress for student %s on lesson %s: %ss, completed=%s",
        student_id, lesson_id, watch_time_seconds, progress.is_completed,
    )

    await enrollment_service.announce_completion(outcome, db)
    return progress
