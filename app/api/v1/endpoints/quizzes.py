"""
Quiz Routes

Endpoints for quiz authoring, question retrieval and attempts.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, require_roles
from app.core.database import get_db
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.quiz import (
    QuizAttemptResponse,
    QuizCreate,
    QuizQuestionCreate,
    QuizQuestionResponse,
    QuizResponse,
    QuizSubmission,
    QuizUpdate,
)
from app.services import quiz_service


router = APIRouter(prefix="", tags=["Quizzes"])

STAFF_ROLES = (UserRole.INSTRUCTOR, UserRole.ADMIN)


@router.post(
    "/quizzes",
    response_model=QuizResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a quiz",
)
async def create_quiz(
    quiz_data: QuizCreate,
    current_user: Annotated[User, Depends(require_roles(*STAFF_ROLES))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> QuizResponse:
    """Create a quiz on a lesson. Instructors and admins only."""
    quiz = await quiz_service.create_quiz(
        lesson_id=quiz_data.lesson_id,
        title=quiz_data.title,
        passing_score=quiz_data.passing_score,
        db=db,
        description=quiz_data.description,
        time_limit_minutes=quiz_data.time_limit_minutes,
        max_attempts=quiz_data.max_attempts,
    )
    return QuizResponse.model_validate(quiz)


@router.post(
    "/quizzes/{quiz_id}/questions",
    response_model=QuizQuestionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a question",
)
async def add_question(
    quiz_id: int,
    question_data: QuizQuestionCreate,
    current_user: Annotated[User, Depends(require_roles(*STAFF_ROLES))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> QuizQuestionResponse:
    """Add a question to a quiz. Instructors and admins only."""
    question = await quiz_service.add_question(
        quiz_id=quiz_id,
        question_text=question_data.question_text,
        question_type=question_data.question_type,
        correct_answer=question_data.correct_answer,
        points=question_data.points,
        db=db,
        options=question_data.options,
        order_index=question_data.order_index,
    )
    return QuizQuestionResponse.model_validate(question)


@router.get(
    "/quizzes/{quiz_id}",
    response_model=QuizResponse,
    summary="Get a quiz",
)
async def get_quiz(
    quiz_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> QuizResponse:
    quiz = await quiz_service.get_quiz(quiz_id, db)
    return QuizResponse.model_validate(quiz)


@router.patch(
    "/quizzes/{quiz_id}",
    response_model=QuizResponse,
    summary="Update a quiz",
)
async def update_quiz(
    quiz_id: int,
    quiz_data: QuizUpdate,
    current_user: Annotated[User, Depends(require_roles(*STAFF_ROLES))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> QuizResponse:
    """Update the provided fields of a quiz. Instructors and admins only."""
    quiz = await quiz_service.update_quiz(
        quiz_id,
        quiz_data.model_dump(exclude_unset=True),
        db,
    )
    return QuizResponse.model_validate(quiz)


@router.delete(
    "/quizzes/{quiz_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a quiz",
)
async def delete_quiz(
    quiz_id: int,
    current_user: Annotated[User, Depends(require_roles(*STAFF_ROLES))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Delete a quiz together with its questions and attempts."""
    await quiz_service.delete_quiz(quiz_id, db)


@router.get(
    "/quizzes/{quiz_id}/questions",
    response_model=List[QuizQuestionResponse],
    summary="Get quiz questions",
)
async def get_questions(
    quiz_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[QuizQuestionResponse]:
    """
    Get the questions of a quiz in display order.

    Correct answers are only included for instructors and admins.
    """
    return await quiz_service.get_questions(
        quiz_id,
        db,
        include_answers=current_user.role in STAFF_ROLES,
    )


@router.post(
    "/quizzes/{quiz_id}/attempts",
    response_model=QuizAttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a quiz attempt",
)
async def submit_attempt(
    quiz_id: int,
    submission: QuizSubmission,
    current_user: Annotated[User, Depends(require_roles(UserRole.STUDENT))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> QuizAttemptResponse:
    """
    Submit answers for grading.

    **Errors:**
    - 404 if the quiz does not exist
    - 400 if the attempt limit is reached
    """
    attempt = await quiz_service.submit_attempt(
        quiz_id=quiz_id,
        student_id=current_user.id,
        answers=submission.answers,
        db=db,
    )
    return QuizAttemptResponse.model_validate(attempt)


@router.get(
    "/quizzes/{quiz_id}/attempts",
    response_model=List[QuizAttemptResponse],
    summary="Get my attempts",
)
async def get_attempts(
    quiz_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[QuizAttemptResponse]:
    attempts = await quiz_service.get_attempts(quiz_id, current_user.id, db)
    return [QuizAttemptResponse.model_validate(a) for a in attempts]


@router.get(
    "/attempts/{attempt_id}",
    response_model=QuizAttemptResponse,
    summary="Get one of my attempts",
)
async def get_attempt(
    attempt_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> QuizAttemptResponse:
    attempt = await quiz_service.get_attempt(attempt_id, current_user.id, db)
    return QuizAttemptResponse.model_validate(attempt)
