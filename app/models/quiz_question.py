"""
Quiz Question Model
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Integer, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import QuestionType

if TYPE_CHECKING:
    from app.models.quiz import Quiz


class QuizQuestion(Base):
    """
    Quiz question model.

    Attributes:
        id: Integer primary key.
        quiz_id: Foreign key to quizzes table.
        question_text: The prompt shown to students.
        question_type: multiple_choice, true_false or short_answer.
        options: Choices for multiple choice questions.
        correct_answer: Expected answer, compared case/whitespace-insensitively.
        points: Weight of the question in the quiz total.
        order_index: Display position.
    """

    __tablename__ = "quiz_questions"

    __table_args__ = (
        CheckConstraint("points > 0", name="ck_quiz_question_points_positive"),
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
    question_text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    question_type: Mapped[QuestionType] = mapped_column(
        Enum(
            QuestionType,
            name="question_type",
            create_constraint=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    options: Mapped[Optional[List[str]]] = mapped_column(
        JSONB,
        nullable=True,
    )
    correct_answer: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    points: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    order_index: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    quiz: Mapped["Quiz"] = relationship(
        "Quiz",
        back_populates="questions",
    )

    def __repr__(self) -> str:
        return f"<QuizQuestion(id={self.id}, quiz_id={self.quiz_id}, type={self.question_type})>"
