"""Response models shared by more than one router."""

from __future__ import annotations

from pydantic import BaseModel

from learnhub.models.certificate import Certificate
from learnhub.models.review import RatingSummary, Review


class RatingOut(BaseModel):
    average: float
    count: int
    distribution: dict[str, int]

    @classmethod
    def from_summary(cls, summary: RatingSummary) -> RatingOut:
        return cls(
            average=summary.average,
            count=summary.count,
            distribution={str(i + 1): n for i, n in enumerate(summary.distribution)},
        )


class CertificateOut(BaseModel):
    id: str
    user_id: str
    course_id: str
    issued_at: int
    score: int
    verification_hash: str
    status: str

    @classmethod
    def from_certificate(cls, cert: Certificate) -> CertificateOut:
        return cls(
            id=str(cert.id),
            user_id=cert.user_id,
            course_id=cert.course_id,
            issued_at=cert.issued_at,
            score=cert.score,
            verification_hash=cert.verification_hash,
            status=cert.status,
        )


class ReviewOut(BaseModel):
    id: str
    user_id: str
    course_id: str
    rating: int
    title: str
    comment: str
    created_at: int
    updated_at: int

    @classmethod
    def from_review(cls, review: Review) -> ReviewOut:
        return cls(
            id=str(review.id),
            user_id=review.user_id,
            course_id=review.course_id,
            rating=review.rating,
            title=review.title,
            comment=review.comment,
            created_at=review.created_at,
            updated_at=review.updated_at,
        )
