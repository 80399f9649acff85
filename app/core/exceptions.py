"""
Service Exceptions

Error taxonomy shared by all services. Every error carries a broad
``kind`` (what callers branch on), a stable ``code`` naming the exact
failure, and the HTTP status the API layer answers with.
"""

from fastapi import status


class ServiceError(Exception):
    """Base service error."""

    kind = "INTERNAL"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str = "service_error"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"kind": self.kind, "code": self.code, "message": self.message}


# ============== Kinds ==============

class NotFoundError(ServiceError):
    kind = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class AlreadyExistsError(ServiceError):
    kind = "ALREADY_EXISTS"
    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(ServiceError):
    kind = "INVALID_STATE"
    status_code = status.HTTP_400_BAD_REQUEST


class PermissionDeniedError(ServiceError):
    kind = "PERMISSION_DENIED"
    status_code = status.HTTP_403_FORBIDDEN


class ValidationFailureError(ServiceError):
    kind = "VALIDATION_FAILURE"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


# ============== Not found ==============

class StudentNotFoundError(NotFoundError):
    def __init__(self, message: str = "Student not found"):
        super().__init__(message, "student_not_found")


class CourseNotFoundError(NotFoundError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class LessonNotFoundError(NotFoundError):
    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class QuizNotFoundError(NotFoundError):
    def __init__(self, message: str = "Quiz not found"):
        super().__init__(message, "quiz_not_found")


class AttemptNotFoundError(NotFoundError):
    def __init__(self, message: str = "Quiz attempt not found"):
        super().__init__(message, "attempt_not_found")


class EnrollmentNotFoundError(NotFoundError):
    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class CertificateNotFoundError(NotFoundError):
    def __init__(self, message: str = "Certificate not found"):
        super().__init__(message, "certificate_not_found")


class PaymentNotFoundError(NotFoundError):
    def __init__(self, message: str = "Payment not found"):
        super().__init__(message, "payment_not_found")


class CouponNotFoundError(NotFoundError):
    def __init__(self, message: str = "Coupon not found"):
        super().__init__(message, "coupon_not_found")


# ============== Already exists ==============

class AlreadyEnrolledError(AlreadyExistsError):
    def __init__(self, message: str = "Student is already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class AlreadyIssuedError(AlreadyExistsError):
    def __init__(self, message: str = "Certificate already issued for this course"):
        super().__init__(message, "already_issued")


class CouponCodeExistsError(AlreadyExistsError):
    def __init__(self, message: str = "Coupon code already exists"):
        super().__init__(message, "coupon_code_exists")


# ============== Invalid state ==============

class NotEnrolledError(InvalidStateError):
    def __init__(self, message: str = "Student is not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class InvalidRoleError(InvalidStateError):
    def __init__(self, message: str = "Only students can enroll in courses"):
        super().__init__(message, "invalid_role")


class NotCompletedError(InvalidStateError):
    def __init__(self, message: str = "Course has not been completed"):
        super().__init__(message, "not_completed")


class MaxAttemptsExceededError(InvalidStateError):
    def __init__(self, message: str = "Maximum attempts exceeded"):
        super().__init__(message, "max_attempts_exceeded")


class InvalidPaymentStateError(InvalidStateError):
    def __init__(self, message: str = "Payment cannot make this transition"):
        super().__init__(message, "invalid_payment_state")
