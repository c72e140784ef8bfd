"""
LensCritique Backend: Onboarding Route
=======================================

What:  POST /api/onboarding stores the caller's interests and resets the
       unlock counter. This is the only way out of the "incomplete" state.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ErrorResponse
from app.schemas.profile import OnboardingRequest, ProfileResponse
from app.services.profile_service import profile_service
from app.services.session_context import AppContext
from app.routes.dependencies import require_profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Onboarding"])


@router.post(
    "/onboarding",
    response_model=ProfileResponse,
    responses={
        400: {"description": "Empty or unknown interest selection", "model": ErrorResponse},
        401: {"description": "No session", "model": ErrorResponse},
    },
    summary="Complete onboarding",
)
async def complete_onboarding(
    body: OnboardingRequest,
    ctx: AppContext = Depends(require_profile),
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    profile = await profile_service.complete_onboarding(db, ctx.profile.id, body.interests)
    return ProfileResponse.model_validate(profile)
