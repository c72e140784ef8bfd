"""
LensCritique Backend: Atomic Counter Procedures
================================================

What:  Thin wrappers over the backend's two counter procedures:

       increment_post_reviews(post_id_input uuid)
           posts.reviews_received += 1
       decrement_profile_unlock_counter(user_id_input uuid)
           profiles.posts_remaining_to_unlock =
               GREATEST(posts_remaining_to_unlock - 1, 0)

How:   Each wrapper issues exactly one `SELECT fn(:arg)` round trip. The
       arithmetic happens inside the procedure, so concurrent reviews of
       the same post (or by the same user) cannot lose updates. Never
       replace these with a read in Python followed by an UPDATE.
"""

import logging
import uuid

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.backend_errors import translate_db_error

logger = logging.getLogger(__name__)

INCREMENT_POST_REVIEWS = text("SELECT increment_post_reviews(:post_id_input)")
DECREMENT_UNLOCK_COUNTER = text("SELECT decrement_profile_unlock_counter(:user_id_input)")


async def increment_post_reviews(db: AsyncSession, post_id: uuid.UUID) -> None:
    try:
        await db.execute(INCREMENT_POST_REVIEWS, {"post_id_input": post_id})
    except Exception as e:
        raise translate_db_error(e, table="posts", operation="increment_post_reviews")
    logger.info("Incremented reviews_received for post %s", post_id)


async def decrement_profile_unlock_counter(db: AsyncSession, user_id: uuid.UUID) -> None:
    try:
        await db.execute(DECREMENT_UNLOCK_COUNTER, {"user_id_input": user_id})
    except Exception as e:
        raise translate_db_error(e, table="profiles", operation="decrement_profile_unlock_counter")
    logger.info("Decremented unlock counter for profile %s", user_id)
