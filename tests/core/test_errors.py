from __future__ import annotations

import pytest

from learnhub.core import errors


def test_payment_required_carries_price() -> None:
    exc = errors.PaymentRequired(course_price=499, currency="INR", course_id="py-101")
    assert exc.status_code == 402
    assert exc.to_dict() == {
        "reason": "PaymentRequired",
        "message": "payment required to access this course",
        "course_price": 499,
        "currency": "INR",
        "course_id": "py-101",
    }


def test_custom_message_overrides_default() -> None:
    exc = errors.OrderClosed("order refunded", status="refunded")
    assert str(exc) == "order refunded"
    assert exc.to_dict()["status"] == "refunded"


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (errors.CourseFree, 400),
        (errors.AlreadyPaid, 400),
        (errors.AlreadyEnrolled, 400),
        (errors.InvalidSignature, 400),
        (errors.OrderClosed, 409),
        (errors.PaymentNotFound, 404),
        (errors.GatewayUnavailable, 503),
        (errors.NotEnrolled, 403),
        (errors.EnrollmentRequired, 403),
        (errors.AssessmentRequired, 400),
        (errors.CourseNotFinished, 400),
        (errors.CertificateNotEarned, 403),
        (errors.AlreadyReviewed, 400),
        (errors.CourseNotCompleted, 400),
        (errors.InvalidReview, 422),
        (errors.Forbidden, 403),
        (errors.NotFound, 404),
    ],
)
def test_status_codes(error: type[errors.DomainError], status: int) -> None:
    assert error.status_code == status
    assert error().to_dict()["reason"] == error.__name__
