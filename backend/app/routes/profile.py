"""
LensCritique Backend: Profile Route
====================================

What:  GET /api/profile returns everything the profile screen shows:
       own posts, reviews received, metric totals and the unlock label.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.profile import ProfilePageResponse
from app.services.profile_service import profile_service
from app.services.session_context import AppContext
from app.routes.dependencies import require_onboarded

router = APIRouter(prefix="/api", tags=["Profile"])


@router.get("/profile", response_model=ProfilePageResponse, summary="Profile page data")
async def get_profile_page(
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> ProfilePageResponse:
    return await profile_service.get_profile_page(db, ctx.profile)
