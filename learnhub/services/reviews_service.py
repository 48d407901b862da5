from __future__ import annotations

import logging
from collections.abc import Callable
from uuid import UUID

from learnhub.core.clock import utc_now
from learnhub.core.errors import AlreadyReviewed, Forbidden, InvalidReview, NotFound
from learnhub.models.principal import Principal
from learnhub.models.review import Review
from learnhub.repos.bundle import Repos
from learnhub.repos.review_repo import DuplicateReview
from learnhub.services.locks import KeyedLock
from learnhub.services.rating_aggregator import RatingAggregator

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 100
COMMENT_MAX_LENGTH = 1000


def _validate(
    rating: int | None, title: str | None, comment: str | None
) -> tuple[str | None, str | None]:
    if rating is not None and not 1 <= rating <= 5:
        raise InvalidReview("rating must be between 1 and 5", field="rating")
    if title is not None:
        title = title.strip()
        if len(title) > TITLE_MAX_LENGTH:
            raise InvalidReview(
                f"title must be at most {TITLE_MAX_LENGTH} characters", field="title"
            )
    if comment is not None:
        comment = comment.strip()
        if len(comment) > COMMENT_MAX_LENGTH:
            raise InvalidReview(
                f"comment must be at most {COMMENT_MAX_LENGTH} characters",
                field="comment",
            )
    return title, comment


class ReviewService:
    """Review writes. Each one recomputes the course rating before returning.

    Writes commit before the course lock is released, so the next
    writer's recompute reads a review set that includes this one.
    """

    def __init__(
        self,
        repos: Repos,
        *,
        locks: KeyedLock,
        clock: Callable[[], int] = utc_now,
    ) -> None:
        self._repos = repos
        self._clock = clock
        self.aggregator = RatingAggregator(repos, locks=locks)

    async def create(
        self,
        user_id: str,
        course_id: str,
        *,
        rating: int,
        title: str = "",
        comment: str = "",
    ) -> Review:
        title, comment = _validate(rating, title, comment)
        async with self.aggregator.lock_course(course_id):
            eligibility = await self.aggregator.can_review(user_id, course_id)
            eligibility.raise_if_denied()
            review = Review.new(
                user_id=user_id,
                course_id=course_id,
                rating=rating,
                title=title or "",
                comment=comment or "",
                now=self._clock(),
            )
            try:
                await self._repos.reviews.add(review)
            except DuplicateReview:
                raise AlreadyReviewed() from None
            await self.aggregator.on_review_written(review, created=True)
            await self._repos.commit()
        logger.info(
            "Review created id=%s user=%s course=%s rating=%d",
            review.id,
            user_id,
            course_id,
            rating,
        )
        return review

    async def update(
        self,
        user_id: str,
        review_id: UUID,
        *,
        rating: int | None = None,
        title: str | None = None,
        comment: str | None = None,
    ) -> Review:
        title, comment = _validate(rating, title, comment)
        existing = await self._get(review_id)
        async with self.aggregator.lock_course(existing.course_id):
            current = await self._get(review_id)
            if current.user_id != user_id:
                logger.warning(
                    "Review update denied user=%s review=%s", user_id, review_id
                )
                raise Forbidden("you can only edit your own review")
            updated = current.edited(
                now=self._clock(), rating=rating, title=title, comment=comment
            )
            await self._repos.reviews.update(updated)
            await self.aggregator.on_review_written(updated, created=False)
            await self._repos.commit()
        return updated

    async def delete(self, principal: Principal, review_id: UUID) -> None:
        existing = await self._get(review_id)
        async with self.aggregator.lock_course(existing.course_id):
            current = await self._get(review_id)
            if current.user_id != principal.user_id and not principal.is_admin():
                logger.warning(
                    "Review delete denied user=%s review=%s",
                    principal.user_id,
                    review_id,
                )
                raise Forbidden("you can only delete your own review")
            await self._repos.reviews.delete(review_id)
            await self.aggregator.on_review_deleted(current)
            await self._repos.commit()
        logger.info("Review deleted id=%s by user=%s", review_id, principal.user_id)

    async def list_for_course(
        self, course_id: str, *, page: int = 1, limit: int = 10
    ) -> tuple[list[Review], int]:
        offset = (page - 1) * limit
        reviews = await self._repos.reviews.list_for_course(
            course_id, offset=offset, limit=limit
        )
        total = await self._repos.reviews.count_for_course(course_id)
        return reviews, total

    async def list_for_user(self, user_id: str) -> list[Review]:
        return await self._repos.reviews.list_for_user(user_id)

    async def _get(self, review_id: UUID) -> Review:
        review = await self._repos.reviews.get(review_id)
        if review is None:
            raise NotFound("review not found")
        return review
