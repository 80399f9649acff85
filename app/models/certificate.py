"""
Certificate Model

Course completion certificates with a public verification code.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.course import Course


class Certificate(Base):
    """
    Certificate model for course completion.

    At most one row per (student, course). Regeneration rewrites the code,
    URL and issue time in place, so the id is stable.

    Attributes:
        id: Integer primary key.
        student_id: Foreign key to users table.
        course_id: Foreign key to courses table.
        certificate_code: Unique public verification code.
        certificate_url: Path of the rendered PDF.
        issued_at: Timestamp when the certificate was (re)issued.
    """

    __tablename__ = "certificates"

    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_certificate_student_course"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
    )
    certificate_code: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
    )
    certificate_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    student: Mapped["User"] = relationship(
        "User",
        back_populates="certificates",
    )
    course: Mapped["Course"] = relationship("Course")

    def __repr__(self) -> str:
        return f"<Certificate(id={self.id}, code={self.certificate_code})>"
