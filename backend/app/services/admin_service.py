"""
LensCritique Backend: Admin Service
====================================

What:  Operator shortcuts shown on the admin screen and the feed's demo
       button: post registry, force-unlock, make-live, delete, sample-post
       seeding and the row-level-security remediation SQL.
How:   Direct SQLAlchemy writes against `profiles` and `posts`. Every call
       runs with the backend's own policies; nothing here bypasses them.
Who:   Called by the admin routes and POST /api/feed/seed-demo.

Seeding variants:
    admin  one fixed "SystemBot" profile owns all three sample posts
    demo   every sample post gets its own freshly generated bot profile
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List

from sqlalchemy import delete, desc, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError
from app.models.post import Post
from app.models.profile import Profile
from app.schemas.post import AdminPostListResponse
from app.services.backend_errors import translate_db_error
from app.services.post_service import to_response

logger = logging.getLogger(__name__)

SYSTEM_BOT_ID = uuid.UUID("00000000-0000-0000-0000-000000000000")
SEEDED_REVIEWS_REQUIRED = 5


@dataclass(frozen=True)
class SamplePost:
    username: str
    categories: List[str]
    image: str
    question: str


SAMPLE_POSTS = [
    SamplePost(
        username="FashionBot",
        categories=["Fashion", "Lifestyle"],
        image="https://images.unsplash.com/photo-1488161628813-244a26a2f690?q=80&w=800",
        question="Rate my summer street style",
    ),
    SamplePost(
        username="CareerBot",
        categories=["Professional"],
        image="https://images.unsplash.com/photo-1519085186583-fbc1192759e2?q=80&w=800",
        question="Is this headshot too serious for LinkedIn?",
    ),
    SamplePost(
        username="DatingBot",
        categories=["Dating"],
        image="https://images.unsplash.com/photo-1500648767791-00dcc994a43e?q=80&w=800",
        question="Does this vibe work for a dating profile?",
    ),
]

DEMO_POSTS = [
    SamplePost(
        username="StyleExpert",
        categories=["Fashion", "Lifestyle"],
        image="https://images.unsplash.com/photo-1534528741775-53994a69daeb?q=80&w=800",
        question="Does this outfit work for a first date in the city?",
    ),
    SamplePost(
        username="CareerPro",
        categories=["Professional"],
        image="https://images.unsplash.com/photo-1506794778202-cad84cf45f1d?q=80&w=800",
        question="How does my headshot look for LinkedIn? Is it too casual?",
    ),
    SamplePost(
        username="SocialVibe",
        categories=["Dating", "Social"],
        image="https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?q=80&w=800",
        question="Which photo gives off better energy for a social profile?",
    ),
]

REMEDIATION_SQL = """-- 1. FIX POSTS TABLE RLS
ALTER TABLE public.posts ENABLE ROW LEVEL SECURITY;
CREATE POLICY "Enable all for users" ON public.posts FOR ALL USING (true) WITH CHECK (true);

-- 2. FIX STORAGE BUCKET RLS (Run this to allow uploads)
-- Ensure you have a bucket named 'photos' created first!
INSERT INTO storage.buckets (id, name, public) VALUES ('photos', 'photos', true) ON CONFLICT (id) DO NOTHING;

CREATE POLICY "Public Read" ON storage.objects FOR SELECT USING (bucket_id = 'photos');
CREATE POLICY "Auth Upload" ON storage.objects FOR INSERT WITH CHECK (bucket_id = 'photos' AND auth.role() = 'authenticated');
CREATE POLICY "Auth Update" ON storage.objects FOR UPDATE USING (bucket_id = 'photos' AND auth.role() = 'authenticated');
CREATE POLICY "Auth Delete" ON storage.objects FOR DELETE USING (bucket_id = 'photos' AND auth.role() = 'authenticated');"""

REMEDIATION_INSTRUCTIONS = (
    "Copy and run this in the backend's SQL editor to fix \"new row violates "
    "row-level security policy\" errors for posts and image uploads."
)


def demo_bot_id() -> uuid.UUID:
    """A bot id in the all-zero prefix range, distinct from SYSTEM_BOT_ID."""
    return uuid.UUID(f"00000000-0000-0000-0000-{uuid.uuid4().hex[:12]}")


class AdminService:
    async def list_posts(self, db: AsyncSession) -> AdminPostListResponse:
        try:
            result = await db.execute(
                select(Post, Profile.username)
                .outerjoin(Profile, Post.user_id == Profile.id)
                .order_by(desc(Post.created_at))
            )
            posts = [to_response(post, username) for post, username in result.all()]
        except Exception as e:
            logger.error("Admin post listing failed: %s", e)
            posts = []
        return AdminPostListResponse(total=len(posts), posts=posts)

    async def force_unlock(self, db: AsyncSession, profile_id: uuid.UUID) -> None:
        try:
            await db.execute(
                update(Profile)
                .where(Profile.id == profile_id)
                .values(posts_remaining_to_unlock=0)
            )
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise translate_db_error(
                e,
                table="profiles",
                operation="update",
                denial_message=(
                    "Failed to unlock account. Ensure 'profiles' table has "
                    "'Update' RLS enabled."
                ),
            )
        logger.info("Profile %s force-unlocked", profile_id)

    async def make_live(self, db: AsyncSession, post_id: uuid.UUID) -> None:
        """Locked → Live. The reverse transition does not exist."""
        try:
            result = await db.execute(
                update(Post).where(Post.id == post_id).values(is_live=True)
            )
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise translate_db_error(e, table="posts", operation="update")
        if result.rowcount == 0:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        logger.info("Post %s made live", post_id)

    async def delete_post(self, db: AsyncSession, post_id: uuid.UUID) -> None:
        try:
            result = await db.execute(delete(Post).where(Post.id == post_id))
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise translate_db_error(e, table="posts", operation="delete")
        if result.rowcount == 0:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        logger.info("Post %s deleted", post_id)

    async def _upsert_bot(self, db: AsyncSession, bot_id: uuid.UUID, values: Dict) -> None:
        stmt = pg_insert(Profile).values(id=bot_id, **values)
        await db.execute(
            stmt.on_conflict_do_update(index_elements=[Profile.id], set_=values)
        )

    def _sample_row(self, owner: uuid.UUID, sample: SamplePost) -> Post:
        return Post(
            id=uuid.uuid4(),
            user_id=owner,
            categories=list(sample.categories),
            image_urls=[sample.image],
            questions=[sample.question],
            is_live=True,
            reviews_required=SEEDED_REVIEWS_REQUIRED,
            reviews_received=0,
            created_at=datetime.now(timezone.utc),
        )

    async def seed_system_posts(self, db: AsyncSession) -> int:
        """Three live sample posts owned by the fixed SystemBot profile."""
        try:
            await self._upsert_bot(
                db,
                SYSTEM_BOT_ID,
                {
                    "username": "SystemBot",
                    "interests": ["Social", "Lifestyle"],
                    "posts_remaining_to_unlock": 0,
                    "review_count": 999,
                },
            )
            for sample in SAMPLE_POSTS:
                db.add(self._sample_row(SYSTEM_BOT_ID, sample))
            await db.flush()
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise translate_db_error(e, table="posts", operation="seed")
        logger.info("Seeded %d SystemBot posts", len(SAMPLE_POSTS))
        return len(SAMPLE_POSTS)

    async def seed_demo_posts(self, db: AsyncSession) -> int:
        """Three live demo posts, each with its own bot profile."""
        try:
            for sample in DEMO_POSTS:
                bot_id = demo_bot_id()
                await self._upsert_bot(
                    db,
                    bot_id,
                    {
                        "username": sample.username,
                        "interests": list(sample.categories),
                        "total_confidence": 7,
                        "total_style": 8,
                        "total_approachability": 6,
                        "review_count": 5,
                        "posts_remaining_to_unlock": 0,
                    },
                )
                db.add(self._sample_row(bot_id, sample))
                await db.flush()
            await db.commit()
        except Exception as e:
            await db.rollback()
            raise translate_db_error(
                e,
                table="posts",
                operation="seed",
                denial_message=(
                    "Seeding failed. Ensure your database tables and RLS "
                    "policies allow these inserts."
                ),
            )
        logger.info("Seeded %d demo posts", len(DEMO_POSTS))
        return len(DEMO_POSTS)


admin_service = AdminService()
