"""
Quiz Attempt Model

Append-only record of a graded submission.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Dict, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.core.scoring import rounded_percentage

if TYPE_CHECKING:
    from app.models.quiz import Quiz


class QuizAttempt(Base):
    """
    Quiz attempt model. Rows are never updated once written.

    ``attempt_number`` is 1-based per (quiz, student); the unique constraint
    stops two concurrent submissions from claiming the same slot.

    Attributes:
        id: Integer primary key.
        quiz_id: Foreign key to quizzes table.
        student_id: Foreign key to users table.
        attempt_number: Sequence number of this attempt for the student.
        score: Points earned.
        total_points: Points available.
        answers: Submitted answers keyed by question id.
        is_passed: Whether the percentage reached the passing score.
    """

    __tablename__ = "quiz_attempts"

    __table_args__ = (
        UniqueConstraint(
            "quiz_id", "student_id", "attempt_number",
            name="uq_quiz_attempt_number",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    quiz_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("quizzes.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    attempt_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    total_points: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    answers: Mapped[Dict[str, str]] = mapped_column(
        JSONB,
        nullable=False,
    )
    is_passed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    quiz: Mapped["Quiz"] = relationship(
        "Quiz",
        back_populates="attempts",
    )

    @property
    def percentage(self) -> int:
        """Score as a rounded percentage of total points."""
        return rounded_percentage(self.score, self.total_points)

    def __repr__(self) -> str:
        return f"<QuizAttempt(id={self.id}, quiz_id={self.quiz_id}, score={self.score}/{self.total_points})>"
