"""
Quiz Schemas

Pydantic models for quizzes, questions and graded attempts.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from app.models.enums import QuestionType


class QuizCreate(BaseModel):
    """Schema for creating a quiz."""

    lesson_id: int = Field(..., description="Lesson the quiz belongs to")
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    passing_score: int = Field(..., ge=0, le=100, description="Minimum percentage to pass")
    time_limit_minutes: Optional[int] = Field(None, gt=0)
    max_attempts: Optional[int] = Field(None, gt=0, description="Omit for unlimited attempts")


class QuizUpdate(BaseModel):
    """Schema for updating a quiz. Only provided fields change."""

    lesson_id: Optional[int] = None
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    passing_score: Optional[int] = Field(None, ge=0, le=100)
    time_limit_minutes: Optional[int] = Field(None, gt=0)
    max_attempts: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None


class QuizResponse(BaseModel):
    """Schema for quiz response."""

    id: int
    lesson_id: int
    title: str
    description: Optional[str] = None
    passing_score: int
    time_limit_minutes: Optional[int] = None
    max_attempts: Optional[int] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class QuizQuestionCreate(BaseModel):
    """Schema for adding a question to a quiz."""

    question_text: str = Field(..., min_length=1)
    question_type: QuestionType
    options: Optional[List[str]] = None
    correct_answer: str = Field(..., min_length=1)
    points: int = Field(..., gt=0)
    order_index: int = Field(0, ge=0)

    @model_validator(mode="after")
    def check_options(self) -> "QuizQuestionCreate":
        if self.question_type == QuestionType.MULTIPLE_CHOICE and not self.options:
            raise ValueError("Multiple choice questions need options")
        return self


class QuizQuestionResponse(BaseModel):
    """
    Schema for question response.

    ``correct_answer`` is an empty string unless answers were requested
    by staff.
    """

    id: int
    quiz_id: int
    question_text: str
    question_type: QuestionType
    options: Optional[List[str]] = None
    correct_answer: str
    points: int
    order_index: int

    model_config = {"from_attributes": True}


class QuizSubmission(BaseModel):
    """Schema for quiz answer submission."""

    answers: Dict[str, str] = Field(
        ...,
        description="Question ID to answer mapping (e.g., {'12': 'object'})",
    )


class QuizAttemptResponse(BaseModel):
    """Schema for a graded attempt."""

    id: int
    quiz_id: int
    student_id: uuid.UUID
    attempt_number: int
    score: int
    total_points: int
    percentage: int
    answers: Dict[str, str]
    is_passed: bool
    started_at: datetime
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
