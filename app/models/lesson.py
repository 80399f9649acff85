"""
Lesson Model

A single unit of course content. Progress is tracked per lesson.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.course import Course
    from app.models.quiz import Quiz


class Lesson(Base):
    """
    Lesson model.

    Attributes:
        id: Integer primary key.
        course_id: Foreign key to courses table.
        title: Lesson title.
        video_url: Optional video location.
        order_index: Position inside the course.
        duration_minutes: Expected duration.
        is_published: Whether students can see the lesson.
    """

    __tablename__ = "lessons"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    course_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    video_url: Mapped[Optional[str]] = mapped_column(
        String(1000),
        nullable=True,
    )
    content: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    order_index: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    duration_minutes: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # Relationships
    course: Mapped["Course"] = relationship(
        "Course",
        back_populates="lessons",
    )
    quizzes: Mapped[list["Quiz"]] = relationship(
        "Quiz",
        back_populates="lesson",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Lesson(id={self.id}, course_id={self.course_id})>"
