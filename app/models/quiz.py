"""
Quiz Model

Graded assessment attached to a lesson.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.lesson import Lesson
    from app.models.quiz_question import QuizQuestion
    from app.models.quiz_attempt import QuizAttempt


class Quiz(Base):
    """
    Quiz model.

    Attributes:
        id: Integer primary key.
        lesson_id: Foreign key to lessons table.
        title: Quiz title.
        passing_score: Minimum percentage (0-100) needed to pass.
        time_limit_minutes: Advisory time limit, not enforced server-side.
        max_attempts: Graded submissions allowed per student (None = unlimited).
        is_active: Whether the quiz is offered to students.
    """

    __tablename__ = "quizzes"

    __table_args__ = (
        CheckConstraint(
            "passing_score >= 0 AND passing_score <= 100",
            name="ck_quiz_passing_score_range",
        ),
        CheckConstraint(
            "max_attempts IS NULL OR max_attempts > 0",
            name="ck_quiz_max_attempts_positive",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    lesson_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("lessons.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    passing_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    time_limit_minutes: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    max_attempts: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    lesson: Mapped["Lesson"] = relationship(
        "Lesson",
        back_populates="quizzes",
    )
    questions: Mapped[list["QuizQuestion"]] = relationship(
        "QuizQuestion",
        back_populates="quiz",
        order_by="QuizQuestion.order_index",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    attempts: Mapped[list["QuizAttempt"]] = relationship(
        "QuizAttempt",
        back_populates="quiz",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Quiz(id={self.id}, lesson_id={self.lesson_id})>"
