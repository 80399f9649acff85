"""
Coursehub Backend - Schemas Module

Pydantic models for request/response validation.
"""

from app.schemas.enrollment import (
    EnrollmentCreate,
    EnrollmentResponse,
    LessonProgressResponse,
    CourseProgressResponse,
)
from app.schemas.progress import ProgressUpdate
from app.schemas.quiz import (
    QuizCreate,
    QuizUpdate,
    QuizResponse,
    QuizQuestionCreate,
    QuizQuestionResponse,
    QuizSubmission,
    QuizAttemptResponse,
)
from app.schemas.certificate import (
    CertificateCreate,
    CertificateResponse,
    CertificateVerification,
)
from app.schemas.payment import (
    CouponCreate,
    CouponResponse,
    CouponValidateRequest,
    CouponValidationResponse,
    PaymentCreate,
    PaymentProcess,
    PaymentRefund,
    PaymentResponse,
)

__all__ = [
    # Enrollment
    "EnrollmentCreate",
    "EnrollmentResponse",
    "LessonProgressResponse",
    "CourseProgressResponse",
    # Progress
    "ProgressUpdate",
    # Quiz
    "QuizCreate",
    "QuizUpdate",
    "QuizResponse",
    "QuizQuestionCreate",
    "QuizQuestionResponse",
    "QuizSubmission",
    "QuizAttemptResponse",
    # Certificate
    "CertificateCreate",
    "CertificateResponse",
    "CertificateVerification",
    # Payment
    "CouponCreate",
    "CouponResponse",
    "CouponValidateRequest",
    "CouponValidationResponse",
    "PaymentCreate",
    "PaymentProcess",
    "PaymentRefund",
    "PaymentResponse",
]
