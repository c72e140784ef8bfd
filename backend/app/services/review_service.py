"""
LensCritique Backend: Review Service
=====================================

What:  Submits a structured critique of someone else's post.
How:   Three separate units of work, each committed on its own:

           1. INSERT INTO reviews ...                 (commit)
           2. SELECT increment_post_reviews(post)     (commit)
           3. SELECT decrement_profile_unlock_counter(reviewer)  (commit)

       A failure in step 2 or 3 leaves the earlier steps in place. Nothing
       compensates for it; the error is reported to the caller.
Who:   Called by POST /api/posts/{post_id}/reviews.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import LensCritiqueError, ValidationError
from app.models.profile import Profile
from app.models.review import Review
from app.schemas.review import ReviewCreate, ReviewResponse, ReviewSubmissionResponse
from app.services.backend_errors import translate_db_error
from app.services.counters import decrement_profile_unlock_counter, increment_post_reviews
from app.services.post_service import PostService, post_service
from app.services.profile_service import ProfileService, profile_service

logger = logging.getLogger(__name__)


def align_answers(questions: Sequence[str], answers: Sequence[str]) -> List[str]:
    """
    answers[i] answers questions[i]. Every non-blank question needs a
    non-blank answer; answers past the last question are rejected.
    """
    questions = list(questions or [])
    answers = [a.strip() for a in (answers or [])]
    if len(answers) > len(questions):
        raise ValidationError(
            message=f"This post asks {len(questions)} question(s) but {len(answers)} answers were sent.",
            field="answers",
        )
    answers += [""] * (len(questions) - len(answers))
    for index, question in enumerate(questions):
        if question.strip() and not answers[index]:
            raise ValidationError(
                message=f"Please answer: {question.strip()}",
                field="answers",
                context={"question_index": index},
            )
    return answers


class ReviewService:
    def __init__(
        self,
        posts: Optional[PostService] = None,
        profiles: Optional[ProfileService] = None,
    ):
        self.posts = posts or post_service
        self.profiles = profiles or profile_service

    async def submit_review(
        self,
        db: AsyncSession,
        reviewer: Profile,
        post_id: uuid.UUID,
        review: ReviewCreate,
    ) -> ReviewSubmissionResponse:
        post = await self.posts.load_post(db, post_id)

        answers = align_answers(post.questions, review.answers)
        feedback = review.general_feedback.strip()
        if not feedback:
            raise ValidationError(
                message="Please add some general feedback.", field="general_feedback"
            )

        row = Review(
            id=uuid.uuid4(),
            post_id=post.id,
            reviewer_id=reviewer.id,
            confidence_score=review.confidence_score,
            style_score=review.style_score,
            approachability_score=review.approachability_score,
            answers=answers,
            general_feedback=feedback,
            is_anonymous=review.is_anonymous,
            created_at=datetime.now(timezone.utc),
        )

        # ── Step 1: review row ────────────────────────────────────────────
        try:
            db.add(row)
            await db.flush()
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise translate_db_error(e, table="reviews", operation="insert")
        logger.info("Review %s saved for post %s by %s", row.id, post.id, reviewer.id)

        # ── Step 2: post social-proof counter ─────────────────────────────
        try:
            await increment_post_reviews(db, post.id)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error("Review %s saved but post counter not incremented", row.id)
            raise translate_db_error(e, table="posts", operation="increment_post_reviews")

        # ── Step 3: reviewer unlock counter ───────────────────────────────
        try:
            await decrement_profile_unlock_counter(db, reviewer.id)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error("Review %s saved but unlock counter not decremented", row.id)
            raise translate_db_error(
                e, table="profiles", operation="decrement_profile_unlock_counter"
            )

        # ── Refresh: steps 1-3 are committed, a failed read only loses the counter
        remaining: Optional[int] = None
        try:
            refreshed = await self.profiles.fetch_profile(db, reviewer.id)
            if refreshed is not None:
                remaining = refreshed.posts_remaining_to_unlock
        except LensCritiqueError as e:
            logger.error(
                "Review %s recorded but counter refresh for %s failed: %s",
                row.id, reviewer.id, e.message,
            )

        return ReviewSubmissionResponse(
            message="Review submitted. Thanks for helping the community!",
            review=ReviewResponse.model_validate(row),
            posts_remaining_to_unlock=remaining,
        )


review_service = ReviewService()
