"""
LensCritique Backend: Feed Routes
==================================

What:  The dashboard: the feed itself, "lucky match" and demo seeding.

Routes:
    GET  /api/feed?mode=recommended|recent
    GET  /api/feed/lucky-match          random post to review next
    POST /api/feed/seed-demo            three demo posts by fresh bot profiles
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ErrorResponse
from app.schemas.post import FeedResponse, LuckyMatchResponse, SeedResponse
from app.services.admin_service import admin_service
from app.services.post_service import post_service
from app.services.session_context import AppContext
from app.routes.dependencies import require_onboarded

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/feed", tags=["Feed"])

FEED_MODE_PATTERN = "^(recommended|recent)$"


@router.get("", response_model=FeedResponse, summary="Live posts by other users")
async def get_feed(
    mode: str = Query(default="recommended", pattern=FEED_MODE_PATTERN),
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> FeedResponse:
    return await post_service.get_feed(db, ctx.profile, mode)


@router.get(
    "/lucky-match",
    response_model=LuckyMatchResponse,
    responses={404: {"description": "Feed is empty", "model": ErrorResponse}},
    summary="Pick a random post to review",
)
async def lucky_match(
    mode: str = Query(default="recommended", pattern=FEED_MODE_PATTERN),
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> LuckyMatchResponse:
    post_id = await post_service.lucky_match(db, ctx.profile, mode)
    return LuckyMatchResponse(post_id=post_id, redirect_to=f"/review/{post_id}")


@router.post(
    "/seed-demo",
    response_model=SeedResponse,
    status_code=201,
    summary="Create demo posts to review",
)
async def seed_demo(
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> SeedResponse:
    created = await admin_service.seed_demo_posts(db)
    logger.info("Demo data seeded by %s", ctx.profile.id)
    return SeedResponse(
        message=(
            f"Successfully seeded {created} demo posts. You can now review "
            "them to unlock your own posts!"
        ),
        created=created,
    )
