"""
Coursehub Backend - Models Module

This module exports all SQLAlchemy models for the application.
Import Base for Alembic migrations.
"""

from app.core.database import Base

# Enums
from app.models.enums import (
    UserRole,
    QuestionType,
    DiscountType,
    PaymentStatus,
    CouponRejection,
    NotificationType,
)

# Models
from app.models.user import User
from app.models.course import Course
from app.models.lesson import Lesson
from app.models.enrollment import Enrollment
from app.models.lesson_progress import LessonProgress
from app.models.quiz import Quiz
from app.models.quiz_question import QuizQuestion
from app.models.quiz_attempt import QuizAttempt
from app.models.certificate import Certificate
from app.models.coupon import Coupon
from app.models.payment import Payment

__all__ = [
    # Base
    "Base",
    # Enums
    "UserRole",
    "QuestionType",
    "DiscountType",
    "PaymentStatus",
    "CouponRejection",
    "NotificationType",
    # Models
    "User",
    "Course",
    "Lesson",
    "Enrollment",
    "LessonProgress",
    "Quiz",
    "QuizQuestion",
    "QuizAttempt",
    "Certificate",
    "Coupon",
    "Payment",
]
