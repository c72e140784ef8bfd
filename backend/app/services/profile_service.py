"""
LensCritique Backend: Profile Service
======================================

What:  Profile lookup, first-sign-in self-healing, onboarding and the
       profile page.
How:   Async SQLAlchemy against the backend's `profiles`, `posts` and
       `reviews` tables. Relational failures go through translate_db_error.
Who:   Called by the session bootstrap (every request), the onboarding
       and profile routes, and the review workflow (counter refresh).

Self-healing:
    The backend is expected to create a profile row when an identity is
    created. When it has not (first sign-in, trigger missing), the profile
    is inserted here with `ON CONFLICT (id) DO NOTHING`, so two concurrent
    first requests cannot collide, and then read back.
"""

import logging
import uuid
from typing import Iterable, List, Optional

from sqlalchemy import desc, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import NotFoundError, ProfileUnavailableError, ValidationError
from app.models.post import Post
from app.models.profile import Profile
from app.models.review import Review
from app.schemas.common import CATEGORIES, RATING_METRICS
from app.schemas.post import PostResponse
from app.schemas.profile import MetricTotal, ProfilePageResponse, ProfileResponse
from app.schemas.review import ReceivedReviewResponse
from app.services.backend_errors import translate_db_error
from app.services.identity import AuthUser

logger = logging.getLogger(__name__)


def derive_username(user: AuthUser) -> str:
    """username metadata, else the local part of the email, else "user"."""
    if user.username:
        return user.username.strip()
    if user.email and user.email.split("@")[0]:
        return user.email.split("@")[0]
    return "user"


def unlock_label(remaining: Optional[int]) -> str:
    remaining = remaining or 0
    return f"{remaining} Reviews Left" if remaining > 0 else "Unlocked"


def normalize_interests(interests: Iterable[str]) -> List[str]:
    """De-duplicate preserving order, reject empty and unknown selections."""
    cleaned: List[str] = []
    for interest in interests:
        if interest not in cleaned:
            cleaned.append(interest)
    if not cleaned:
        raise ValidationError(
            message="Please pick at least one interest.", field="interests"
        )
    unknown = [c for c in cleaned if c not in CATEGORIES]
    if unknown:
        raise ValidationError(
            message=f"Unknown categories: {', '.join(unknown)}",
            field="interests",
            context={"valid": CATEGORIES},
        )
    return cleaned


class ProfileService:
    """
    Responsibilities:
        - fetch_profile():       single lookup by identity id
        - ensure_profile():      lookup with self-healing insert
        - complete_onboarding(): the only Incomplete → Complete transition
        - get_profile_page():    posts, received reviews and metric totals
    """

    async def fetch_profile(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[Profile]:
        """
        Raises:
            SchemaMissingError: the `profiles` relation does not exist
            DatabaseError:      any other relational failure
        """
        try:
            result = await db.execute(select(Profile).where(Profile.id == user_id))
            return result.scalar_one_or_none()
        except Exception as e:
            raise translate_db_error(e, table="profiles", operation="select")

    async def ensure_profile(self, db: AsyncSession, user: AuthUser) -> Profile:
        profile = await self.fetch_profile(db, user.id)
        if profile is not None:
            return profile

        username = derive_username(user)
        logger.info("No profile for %s; creating one as '%s'", user.id, username)
        try:
            await db.execute(
                pg_insert(Profile)
                .values(
                    id=user.id,
                    username=username,
                    interests=[],
                    posts_remaining_to_unlock=settings.initial_unlock_counter,
                )
                .on_conflict_do_nothing(index_elements=[Profile.id])
            )
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise translate_db_error(e, table="profiles", operation="insert")

        profile = await self.fetch_profile(db, user.id)
        if profile is None:
            logger.error("Profile for %s still missing after self-heal", user.id)
            raise ProfileUnavailableError(context={"user_id": str(user.id)})
        return profile

    async def complete_onboarding(
        self, db: AsyncSession, profile_id: uuid.UUID, interests: Iterable[str]
    ) -> Profile:
        """
        Store the interest selection and reset the unlock counter.

        The selection is validated before any backend call; an empty list
        never reaches the database.
        """
        cleaned = normalize_interests(interests)
        try:
            result = await db.execute(
                update(Profile)
                .where(Profile.id == profile_id)
                .values(
                    interests=cleaned,
                    posts_remaining_to_unlock=settings.initial_unlock_counter,
                )
                .returning(Profile)
            )
            profile = result.scalar_one_or_none()
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise translate_db_error(
                e,
                table="profiles",
                operation="update",
                denial_message=(
                    "Failed to save interests. Make sure your database tables "
                    "are created correctly."
                ),
            )

        if profile is None:
            raise NotFoundError(resource="profile", resource_id=str(profile_id))
        logger.info("Profile %s onboarded with interests %s", profile_id, cleaned)
        return profile

    async def get_profile_page(self, db: AsyncSession, profile: Profile) -> ProfilePageResponse:
        posts: List[PostResponse] = []
        reviews: List[ReceivedReviewResponse] = []

        # Failures leave the lists empty; the rest of the page still renders
        try:
            result = await db.execute(
                select(Post)
                .where(Post.user_id == profile.id)
                .order_by(desc(Post.created_at))
            )
            posts = [
                PostResponse.model_validate(p).model_copy(
                    update={"author_username": profile.username}
                )
                for p in result.scalars().all()
            ]
        except Exception as e:
            logger.error("Failed to load posts for profile %s: %s", profile.id, e)

        if posts:
            try:
                result = await db.execute(
                    select(Review, Profile.username)
                    .join(Post, Review.post_id == Post.id)
                    .outerjoin(Profile, Review.reviewer_id == Profile.id)
                    .where(Post.user_id == profile.id)
                    .order_by(desc(Review.created_at))
                )
                reviews = [
                    _received_review(review, reviewer_username)
                    for review, reviewer_username in result.all()
                ]
            except Exception as e:
                logger.error("Failed to load reviews for profile %s: %s", profile.id, e)

        totals = {
            "confidence": profile.total_confidence,
            "style": profile.total_style,
            "approachability": profile.total_approachability,
        }
        return ProfilePageResponse(
            profile=ProfileResponse.model_validate(profile),
            unlock_status=unlock_label(profile.posts_remaining_to_unlock),
            metrics=[
                MetricTotal(name=m.label, value=totals[m.key] or 0)
                for m in RATING_METRICS
            ],
            posts=posts,
            reviews_received=reviews,
        )


def _received_review(review: Review, reviewer_username: Optional[str]) -> ReceivedReviewResponse:
    return ReceivedReviewResponse(
        id=review.id,
        post_id=review.post_id,
        confidence_score=review.confidence_score,
        style_score=review.style_score,
        approachability_score=review.approachability_score,
        answers=review.answers or [],
        general_feedback=review.general_feedback,
        is_anonymous=review.is_anonymous,
        reviewer_username=None if review.is_anonymous else reviewer_username,
        created_at=review.created_at,
    )


profile_service = ProfileService()
