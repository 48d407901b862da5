"""Domain error taxonomy.

Every expected, user-facing outcome is a DomainError subclass carrying a
machine-readable ``code``, the HTTP status it renders as, and optional
extra fields for the client (e.g. the course price on PaymentRequired).
The API layer turns them into ``{"reason": code, "message": ..., **extra}``.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    code = "DomainError"
    status_code = 400
    default_message = "request could not be completed"

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"reason": self.code, "message": self.message, **self.extra}


class NotFound(DomainError):
    code = "NotFound"
    status_code = 404
    default_message = "resource not found"


class Forbidden(DomainError):
    code = "Forbidden"
    status_code = 403
    default_message = "not allowed to modify this resource"


# --- Payments ---


class PaymentRequired(DomainError):
    code = "PaymentRequired"
    status_code = 402
    default_message = "payment required to access this course"


class CourseFree(DomainError):
    code = "CourseFree"
    default_message = "this course is free"


class AlreadyPaid(DomainError):
    code = "AlreadyPaid"
    default_message = "you have already purchased this course"


class AlreadyEnrolled(DomainError):
    code = "AlreadyEnrolled"
    default_message = "you are already enrolled in this course"


class PaymentNotFound(DomainError):
    code = "PaymentNotFound"
    status_code = 404
    default_message = "payment record not found"


class InvalidSignature(DomainError):
    code = "InvalidSignature"
    default_message = "payment verification failed"


class OrderClosed(DomainError):
    code = "OrderClosed"
    status_code = 409
    default_message = "this order can no longer be paid; create a new order"


class GatewayUnavailable(DomainError):
    code = "GatewayUnavailable"
    status_code = 503
    default_message = "payment gateway unavailable, please retry"


# --- Enrollment & completion ---


class NotEnrolled(DomainError):
    code = "NotEnrolled"
    status_code = 403
    default_message = "you are not enrolled in this course"


class EnrollmentRequired(DomainError):
    code = "EnrollmentRequired"
    status_code = 403
    default_message = "enrollment required to access course content"


class AssessmentRequired(DomainError):
    code = "AssessmentRequired"
    default_message = "assessment required to complete course"


class CourseNotFinished(DomainError):
    code = "CourseNotFinished"
    default_message = "all lessons must be watched to complete course"


class CertificateNotEarned(DomainError):
    code = "CertificateNotEarned"
    status_code = 403
    default_message = "course completion required for certificate access"


# --- Reviews ---


class AlreadyReviewed(DomainError):
    code = "AlreadyReviewed"
    default_message = "you have already reviewed this course"


class CourseNotCompleted(DomainError):
    code = "CourseNotCompleted"
    default_message = "complete more of the course before reviewing it"


class InvalidReview(DomainError):
    code = "InvalidReview"
    status_code = 422
    default_message = "invalid review"


# --- Request shape problems the schema layer cannot catch ---


class InvalidAnswers(DomainError):
    code = "InvalidAnswers"
    status_code = 422
    default_message = "one answer is required per question"


class InvalidRefund(DomainError):
    code = "InvalidRefund"
    default_message = "refund amount must be between 1 and the amount paid"


class InvalidWebhook(DomainError):
    code = "InvalidWebhook"
    default_message = "malformed webhook payload"
