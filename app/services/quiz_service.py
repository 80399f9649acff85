"""
Quiz Service

Quiz authoring, question retrieval and synchronous grading of attempts.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AttemptNotFoundError,
    MaxAttemptsExceededError,
    QuizNotFoundError,
)
from app.core.scoring import rounded_percentage
from app.models.enums import QuestionType
from app.models.quiz import Quiz
from app.models.quiz_attempt import QuizAttempt
from app.models.quiz_question import QuizQuestion
from app.schemas.quiz import QuizQuestionResponse
from app.services import catalog_service


logger = logging.getLogger(__name__)

# Fields update_quiz is allowed to touch
UPDATABLE_QUIZ_FIELDS = (
    "lesson_id",
    "title",
    "description",
    "passing_score",
    "time_limit_minutes",
    "max_attempts",
    "is_active",
)


@dataclass
class GradeResult:
    """Outcome of grading one set of answers."""

    score: int
    total_points: int
    percentage: int
    is_passed: bool


def normalize_answer(answer: str) -> str:
    return answer.strip().lower()


def answer_matches(submitted: Optional[str], correct_answer: str) -> bool:
    """
    Compare a submitted answer to the correct one.

    Matching ignores case and surrounding whitespace. A missing or empty
    answer never matches.
    """
    if not submitted:
        return False
    return normalize_answer(submitted) == normalize_answer(correct_answer)


def calculate_percentage(score: int, total_points: int) -> int:
    """Score as an integer percentage, rounded half up. 0 when there are no points."""
    return rounded_percentage(score, total_points)


def grade_answers(
    questions: Iterable[QuizQuestion],
    answers: Dict[str, str],
    passing_score: int,
) -> GradeResult:
    """
    Grade answers against a question set.

    Args:
        questions: Questions of the quiz.
        answers: Submitted answers keyed by question id (as string).
        passing_score: Minimum percentage needed to pass.

    Returns:
        GradeResult with score, total, percentage and pass flag.
    """
    score = 0
    total_points = 0

    for question in questions:
        total_points += question.points
        if answer_matches(answers.get(str(question.id)), question.correct_answer):
            score += question.points

    percentage = calculate_percentage(score, total_points)

    return GradeResult(
        score=score,
        total_points=total_points,
        percentage=percentage,
        is_passed=percentage >= passing_score,
    )


async def get_quiz(
    quiz_id: int,
    db: AsyncSession,
    for_update: bool = False,
) -> Quiz:
    """
    Get a quiz by ID.

    Raises:
        QuizNotFoundError: If not found.
    """
    query = select(Quiz).where(Quiz.id == quiz_id)
    if for_update:
        query = query.with_for_update()

    result = await db.execute(query)
    quiz = result.scalar_one_or_none()

    if not quiz:
        raise QuizNotFoundError(f"Quiz with ID {quiz_id} not found")

    return quiz


async def create_quiz(
    lesson_id: int,
    title: str,
    passing_score: int,
    db: AsyncSession,
    description: Optional[str] = None,
    time_limit_minutes: Optional[int] = None,
    max_attempts: Optional[int] = None,
) -> Quiz:
    """
    Create a quiz on a lesson.

    Raises:
        LessonNotFoundError: Unknown lesson.
    """
    await catalog_service.get_lesson(lesson_id, db)

    quiz = Quiz(
        lesson_id=lesson_id,
        title=title,
        description=description,
        passing_score=passing_score,
        time_limit_minutes=time_limit_minutes,
        max_attempts=max_attempts,
        is_active=True,
    )
    db.add(quiz)

    await db.commit()
    await db.refresh(quiz)

    logger.info("Created quiz %s on lesson %s", quiz.id, lesson_id)
    return quiz


async def add_question(
    quiz_id: int,
    question_text: str,
    question_type: QuestionType,
    correct_answer: str,
    points: int,
    db: AsyncSession,
    options: Optional[List[str]] = None,
    order_index: int = 0,
) -> QuizQuestion:
    """
    Add a question to a quiz.

    Raises:
        QuizNotFoundError: Unknown quiz.
    """
    await get_quiz(quiz_id, db)

    question = QuizQuestion(
        quiz_id=quiz_id,
        question_text=question_text,
        question_type=question_type,
        options=options,
        correct_answer=correct_answer,
        points=points,
        order_index=order_index,
    )
    db.add(question)

    await db.commit()
    await db.refresh(question)
    return question


async def update_quiz(
    quiz_id: int,
    changes: Dict[str, Any],
    db: AsyncSession,
) -> Quiz:
    """
    Apply partial changes to a quiz.

    Raises:
        QuizNotFoundError: Unknown quiz.
        LessonNotFoundError: The quiz is moved to an unknown lesson.
    """
    quiz = await get_quiz(quiz_id, db, for_update=True)

    new_lesson_id = changes.get("lesson_id")
    if new_lesson_id is not None and new_lesson_id != quiz.lesson_id:
        await catalog_service.get_lesson(new_lesson_id, db)

    for field, value in changes.items():
        if field in UPDATABLE_QUIZ_FIELDS:
            setattr(quiz, field, value)

    await db.commit()
    await db.refresh(quiz)
    return quiz


async def delete_quiz(quiz_id: int, db: AsyncSession) -> None:
    """
    Delete a quiz with its questions and attempts.

    Raises:
        QuizNotFoundError: Unknown quiz.
    """
    quiz = await get_quiz(quiz_id, db)

    await db.delete(quiz)
    await db.commit()

    logger.info("Deleted quiz %s", quiz_id)


async def get_questions(
    quiz_id: int,
    db: AsyncSession,
    include_answers: bool = False,
) -> List[QuizQuestionResponse]:
    """
    Get the questions of a quiz ordered by ``order_index``.

    Returned objects are detached copies, so blanking the answers never
    touches the stored rows.

    Args:
        quiz_id: Quiz ID.
        db: Database session.
        include_answers: Keep ``correct_answer`` (staff only).

    Raises:
        QuizNotFoundError: Unknown quiz.
    """
    await get_quiz(quiz_id, db)

    result = await db.execute(
        select(QuizQuestion)
        .where(QuizQuestion.quiz_id == quiz_id)
        .order_by(QuizQuestion.order_index.asc(), QuizQuestion.id.asc())
    )

    questions = []
    for question in result.scalars().all():
        item = QuizQuestionResponse.model_validate(question)
        if not include_answers:
            item = item.model_copy(update={"correct_answer": ""})
        questions.append(item)

    return questions


async def count_attempts(
    quiz_id: int,
    student_id: uuid.UUID,
    db: AsyncSession,
) -> int:
    result = await db.execute(
        select(func.count(QuizAttempt.id)).where(
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.student_id == student_id,
        )
    )
    return result.scalar() or 0


async def submit_attempt(
    quiz_id: int,
    student_id: uuid.UUID,
    answers: Dict[str, str],
    db: AsyncSession,
) -> QuizAttempt:
    """
    Grade and store a quiz attempt.

    The quiz row is locked while prior attempts are counted, so two
    concurrent submissions by the same student cannot both pass the
    attempt limit check.

    Args:
        quiz_id: Quiz ID.
        student_id: Submitting student.
        answers: Answers keyed by question id (as string).
        db: Database session.

    Returns:
        The stored QuizAttempt.

    Raises:
        QuizNotFoundError: Unknown quiz.
        MaxAttemptsExceededError: The student used up all attempts.
    """
    quiz = await get_quiz(quiz_id, db, for_update=True)

    previous_attempts = await count_attempts(quiz_id, student_id, db)
    if quiz.max_attempts is not None and previous_attempts >= quiz.max_attempts:
        raise MaxAttemptsExceededError(
            f"Maximum of {quiz.max_attempts} attempts reached for this quiz"
        )

    result = await db.execute(
        select(QuizQuestion).where(QuizQuestion.quiz_id == quiz_id)
    )
    questions = result.scalars().all()

    grade = grade_answers(questions, answers, quiz.passing_score)

    now = datetime.now(timezone.utc)
    attempt = QuizAttempt(
        quiz_id=quiz_id,
        student_id=student_id,
        attempt_number=previous_attempts + 1,
        score=grade.score,
        total_points=grade.total_points,
        answers=answers,
        is_passed=grade.is_passed,
        started_at=now,
        completed_at=now,
    )
    db.add(attempt)

    await db.commit()
    await db.refresh(attempt)

    logger.info(
        "Student %s attempt %s on quiz %s: %s/%s, passed=%s",
        student_id, attempt.attempt_number, quiz_id,
        grade.score, grade.total_points, grade.is_passed,
    )
    return attempt


async def get_attempts(
    quiz_id: int,
    student_id: uuid.UUID,
    db: AsyncSession,
) -> List[QuizAttempt]:
    """A student's attempts on a quiz, oldest first."""
    result = await db.execute(
        select(QuizAttempt)
        .where(
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.student_id == student_id,
        )
        .order_by(QuizAttempt.started_at.asc())
    )
    return list(result.scalars().all())


async def get_attempt(
    attempt_id: int,
    student_id: uuid.UUID,
    db: AsyncSession,
) -> QuizAttempt:
    """
    Get one of a student's own attempts.

    Raises:
        AttemptNotFoundError: Unknown attempt, or it belongs to someone else.
    """
    result = await db.execute(
        select(QuizAttempt).where(
            QuizAttempt.id == attempt_id,
            QuizAttempt.student_id == student_id,
        )
    )
    attempt = result.scalar_one_or_none()

    if not attempt:
        raise AttemptNotFoundError(f"Quiz attempt with ID {attempt_id} not found")

    return attempt
