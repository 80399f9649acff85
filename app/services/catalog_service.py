"""
Catalog Service

Existence checks against the course catalog and identity tables.
Every other service goes through these so "not found" is reported the
same way everywhere.
"""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    CourseNotFoundError,
    LessonNotFoundError,
    StudentNotFoundError,
)
from app.models.course import Course
from app.models.lesson import Lesson
from app.models.user import User


async def get_user(user_id: uuid.UUID, db: AsyncSession) -> User:
    """
    Get a user by ID.

    Raises:
        StudentNotFoundError: If no such user exists.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise StudentNotFoundError(f"User with ID {user_id} not found")

    return user


async def get_course(course_id: int, db: AsyncSession) -> Course:
    """
    Get a course by ID.

    Raises:
        CourseNotFoundError: If no such course exists.
    """
    result = await db.execute(select(Course).where(Course.id == course_id))
    course = result.scalar_one_or_none()

    if not course:
        raise CourseNotFoundError(f"Course with ID {course_id} not found")

    return course


async def get_lesson(lesson_id: int, db: AsyncSession) -> Lesson:
    """
    Get a lesson by ID.

    Raises:
        LessonNotFoundError: If no such lesson exists.
    """
    result = await db.execute(select(Lesson).where(Lesson.id == lesson_id))
    lesson = result.scalar_one_or_none()

    if not lesson:
        raise LessonNotFoundError(f"Lesson with ID {lesson_id} not found")

    return lesson


async def count_lessons(course_id: int, db: AsyncSession) -> int:
    """Number of lessons in a course."""
    result = await db.execute(
        select(func.count(Lesson.id)).where(Lesson.course_id == course_id)
    )
    return result.scalar() or 0
