"""
Database Enums

Python Enums that map to PostgreSQL ENUM types.
"""

import enum


class UserRole(str, enum.Enum):
    """User role enumeration."""
    STUDENT = "STUDENT"
    INSTRUCTOR = "INSTRUCTOR"
    ADMIN = "ADMIN"


class QuestionType(str, enum.Enum):
    """Quiz question type enumeration."""
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"


class DiscountType(str, enum.Enum):
    """Coupon discount type enumeration."""
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PaymentStatus(str, enum.Enum):
    """Payment status enumeration."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class CouponRejection(str, enum.Enum):
    """Why a coupon did not validate."""
    NOT_FOUND = "NotFound"
    INACTIVE = "Inactive"
    EXPIRED = "Expired"
    LIMIT_EXCEEDED = "LimitExceeded"


class NotificationType(str, enum.Enum):
    """Notification type enumeration."""
    COURSE_UPDATE = "course_update"
    QUIZ_AVAILABLE = "quiz_available"
    CERTIFICATE_ISSUED = "certificate_issued"
    MESSAGE_RECEIVED = "message_received"
    PAYMENT_CONFIRMED = "payment_confirmed"
