"""Course reviews. Every write recomputes the course's rating summary."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from learnhub.api.dependencies import get_access_guard, get_review_service, require_user
from learnhub.api.schemas import RatingOut, ReviewOut
from learnhub.models.principal import Principal
from learnhub.services.access_guard import AccessGuard
from learnhub.services.reviews_service import ReviewService

router = APIRouter(prefix="/v1/reviews", tags=["reviews"])

Reviews = Annotated[ReviewService, Depends(get_review_service)]


class ReviewIn(BaseModel):
    course_id: str
    rating: int
    title: str = ""
    comment: str = ""


class ReviewUpdateIn(BaseModel):
    rating: int | None = None
    title: str | None = None
    comment: str | None = None


class ReviewPageOut(BaseModel):
    items: list[ReviewOut]
    page: int
    limit: int
    total: int


class CanReviewOut(BaseModel):
    allowed: bool
    reason: str | None
    message: str | None


@router.get("/course/{course_id}", response_model=ReviewPageOut)
async def list_course_reviews(
    course_id: str,
    reviews: Reviews,
    guard: Annotated[AccessGuard, Depends(get_access_guard)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> ReviewPageOut:
    await guard.load_course(course_id)
    items, total = await reviews.list_for_course(course_id, page=page, limit=limit)
    return ReviewPageOut(
        items=[ReviewOut.from_review(r) for r in items],
        page=page,
        limit=limit,
        total=total,
    )


@router.get("/course/{course_id}/rating", response_model=RatingOut)
async def course_rating(
    course_id: str,
    guard: Annotated[AccessGuard, Depends(get_access_guard)],
) -> RatingOut:
    course = await guard.load_course(course_id)
    return RatingOut.from_summary(course.rating)


@router.get("/course/{course_id}/can-review", response_model=CanReviewOut)
async def can_review(
    course_id: str,
    reviews: Reviews,
    principal: Annotated[Principal, Depends(require_user)],
) -> CanReviewOut:
    e = await reviews.aggregator.can_review(principal.user_id, course_id)
    return CanReviewOut(allowed=e.allowed, reason=e.reason, message=e.message)


@router.get("/user/{user_id}", response_model=list[ReviewOut])
async def list_user_reviews(user_id: str, reviews: Reviews) -> list[ReviewOut]:
    return [ReviewOut.from_review(r) for r in await reviews.list_for_user(user_id)]


@router.post("", response_model=ReviewOut, status_code=status.HTTP_201_CREATED)
async def create_review(
    body: ReviewIn,
    reviews: Reviews,
    principal: Annotated[Principal, Depends(require_user)],
) -> ReviewOut:
    review = await reviews.create(
        principal.user_id,
        body.course_id,
        rating=body.rating,
        title=body.title,
        comment=body.comment,
    )
    return ReviewOut.from_review(review)


@router.put("/{review_id}", response_model=ReviewOut)
async def update_review(
    review_id: UUID,
    body: ReviewUpdateIn,
    reviews: Reviews,
    principal: Annotated[Principal, Depends(require_user)],
) -> ReviewOut:
    review = await reviews.update(
        principal.user_id,
        review_id,
        rating=body.rating,
        title=body.title,
        comment=body.comment,
    )
    return ReviewOut.from_review(review)


@router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review_id: UUID,
    reviews: Reviews,
    principal: Annotated[Principal, Depends(require_user)],
) -> None:
    await reviews.delete(principal, review_id)
