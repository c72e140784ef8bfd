"""
LensCritique Backend: Post Service
===================================

What:  Post publication, the feed, "lucky match" and single-post lookup.
How:   Images go to object storage first (sequentially), then one row is
       inserted into `posts`. Feed reads join the author's username.
Who:   Called by the posts and feed routes.

Publication Flow (POST /api/posts):
    ┌────────────┐    ┌─────────────┐    ┌───────────────┐    ┌──────────┐
    │  Validate  │───▶│   Session   │───▶│ Upload images │───▶│  Insert  │
    │  (local)   │    │   check     │    │ one at a time │    │  posts   │
    └────────────┘    └─────────────┘    └───────────────┘    └──────────┘

    A failed upload stops the loop and the insert never runs. Images that
    were already uploaded stay in the bucket.

Liveness:
    is_live is decided once, at creation: live iff the author's unlock
    counter is <= 0 at that moment. Later changes to the counter never
    touch existing posts.
"""

import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import (
    AuthenticationRequiredError,
    NotFoundError,
    ValidationError,
)
from app.models.post import Post
from app.models.profile import Profile
from app.schemas.common import CATEGORIES
from app.schemas.post import CreatePostResponse, FeedResponse, PostResponse
from app.services.backend_errors import translate_db_error
from app.services.storage_service import ImageUpload, ObjectStorage, object_storage

logger = logging.getLogger(__name__)

FEED_MODES = ("recommended", "recent")

POSTS_DENIED_MESSAGE = (
    "Table Permission Denied: The 'posts' table is restricted. "
    "Apply the SQL Fix in the Admin Panel."
)


def is_live_on_creation(posts_remaining_to_unlock: Optional[int]) -> bool:
    return (posts_remaining_to_unlock or 0) <= 0


def clean_questions(questions: Iterable[str]) -> List[str]:
    cleaned = [q.strip() for q in questions if q and q.strip()]
    if len(cleaned) > settings.max_questions_per_post:
        raise ValidationError(
            message=f"Maximum {settings.max_questions_per_post} questions allowed",
            field="questions",
            context={"received": len(cleaned)},
        )
    return cleaned


def clean_categories(categories: Iterable[str]) -> List[str]:
    cleaned: List[str] = []
    for category in categories:
        if category not in cleaned:
            cleaned.append(category)
    if not cleaned:
        raise ValidationError(
            message="Please select at least one category.", field="categories"
        )
    unknown = [c for c in cleaned if c not in CATEGORIES]
    if unknown:
        raise ValidationError(
            message=f"Unknown categories: {', '.join(unknown)}",
            field="categories",
            context={"valid": CATEGORIES},
        )
    return cleaned


def to_response(post: Post, author_username: Optional[str] = None) -> PostResponse:
    return PostResponse.model_validate(post).model_copy(
        update={"author_username": author_username}
    )


class PostService:
    def __init__(self, storage: Optional[ObjectStorage] = None):
        self._storage = storage

    @property
    def storage(self) -> ObjectStorage:
        return self._storage or object_storage

    async def create_post(
        self,
        db: AsyncSession,
        author: Optional[Profile],
        access_token: Optional[str],
        images: List[ImageUpload],
        categories: Iterable[str],
        questions: Iterable[str],
    ) -> CreatePostResponse:
        """
        Publish a post.

        Every local check runs before the first backend call, so an
        over-limit image set is rejected without touching storage.

        Raises:
            ValidationError:             image count/type/size, categories, questions
            AuthenticationRequiredError: no session
            PermissionDeniedError:       storage or `posts` policy denial
            StorageError:                other upload failure
            DatabaseError:               insert failed
        """
        # ── Step 1: Local validation ──────────────────────────────────────
        self.storage.validate_images(images)
        clean_cats = clean_categories(categories)
        clean_qs = clean_questions(questions)

        # ── Step 2: Session ───────────────────────────────────────────────
        if author is None or not access_token:
            raise AuthenticationRequiredError()

        # ── Step 3: Sequential uploads ────────────────────────────────────
        image_urls: List[str] = []
        for index, image in enumerate(images, start=1):
            logger.info("Uploading image %d of %d for %s", index, len(images), author.id)
            ext = self.storage.validate_extension(image.filename)
            path = self.storage.object_path(author.id, ext)
            image_urls.append(await self.storage.upload(access_token, path, image))

        # ── Step 4: Insert ────────────────────────────────────────────────
        post = Post(
            id=uuid.uuid4(),
            user_id=author.id,
            categories=clean_cats,
            image_urls=image_urls,
            questions=clean_qs,
            is_live=is_live_on_creation(author.posts_remaining_to_unlock),
            reviews_required=settings.reviews_required_per_post,
            reviews_received=0,
            created_at=datetime.now(timezone.utc),
        )
        try:
            db.add(post)
            await db.flush()
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise translate_db_error(
                e, table="posts", operation="insert", denial_message=POSTS_DENIED_MESSAGE
            )

        logger.info(
            "Post %s created by %s (live=%s, images=%d)",
            post.id, author.id, post.is_live, len(image_urls),
        )
        return CreatePostResponse(
            message="Post Published! Your content is now being shared.",
            post=to_response(post, author.username),
        )

    async def list_feed(
        self, db: AsyncSession, viewer: Profile, mode: str = "recommended"
    ) -> List[PostResponse]:
        """
        Live posts by other users, newest first.

        `recommended` keeps posts sharing at least one category with the
        viewer's interests; with no interests it behaves like `recent`.
        A failed read is logged and yields an empty feed.
        """
        if mode not in FEED_MODES:
            raise ValidationError(
                message=f"Unknown feed mode '{mode}'. Use one of: {', '.join(FEED_MODES)}",
                field="mode",
            )

        query = (
            select(Post, Profile.username)
            .outerjoin(Profile, Post.user_id == Profile.id)
            .where(Post.is_live.is_(True), Post.user_id != viewer.id)
        )
        if mode == "recommended" and viewer.interests:
            query = query.where(Post.categories.overlap(list(viewer.interests)))
        query = query.order_by(desc(Post.created_at)).limit(settings.feed_page_size)

        try:
            result = await db.execute(query)
            return [to_response(post, username) for post, username in result.all()]
        except Exception as e:
            logger.error("Feed fetch failed for %s (%s): %s", viewer.id, mode, e)
            return []

    async def get_feed(
        self, db: AsyncSession, viewer: Profile, mode: str = "recommended"
    ) -> FeedResponse:
        posts = await self.list_feed(db, viewer, mode)
        return FeedResponse(
            mode=mode,
            posts=posts,
            posts_remaining_to_unlock=viewer.posts_remaining_to_unlock or 0,
        )

    async def lucky_match(
        self, db: AsyncSession, viewer: Profile, mode: str = "recommended"
    ) -> uuid.UUID:
        posts = await self.list_feed(db, viewer, mode)
        if not posts:
            raise NotFoundError(
                resource="post",
                message=(
                    "No matching posts found. Use the 'Seed Demo Data' button "
                    "to create sample posts!"
                ),
            )
        return random.choice(posts).id

    async def load_post(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        try:
            result = await db.execute(select(Post).where(Post.id == post_id))
            post = result.scalar_one_or_none()
        except Exception as e:
            raise translate_db_error(e, table="posts", operation="select")
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return post

    async def get_post(self, db: AsyncSession, post_id: uuid.UUID) -> PostResponse:
        try:
            result = await db.execute(
                select(Post, Profile.username)
                .outerjoin(Profile, Post.user_id == Profile.id)
                .where(Post.id == post_id)
            )
            row = result.first()
        except Exception as e:
            raise translate_db_error(e, table="posts", operation="select")
        if row is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        post, username = row
        return to_response(post, username)


post_service = PostService()
