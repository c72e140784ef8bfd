"""
LensCritique Backend: Admin Routes
===================================

What:  The admin screen. Available to any onboarded user; the backend's
       row-level policies decide what actually succeeds.

Routes:
    GET    /api/admin/posts                 every post, newest first
    POST   /api/admin/unlock                caller's counter → 0
    POST   /api/admin/posts/{post_id}/live  Locked → Live
    DELETE /api/admin/posts/{post_id}
    POST   /api/admin/seed                  SystemBot sample posts
    GET    /api/admin/remediation-sql       policy fix for the SQL editor
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.post import AdminPostListResponse, RemediationSQLResponse, SeedResponse
from app.services.admin_service import (
    REMEDIATION_INSTRUCTIONS,
    REMEDIATION_SQL,
    admin_service,
)
from app.services.session_context import AppContext
from app.routes.dependencies import require_onboarded

router = APIRouter(prefix="/api/admin", tags=["Admin"])

_not_found = {404: {"description": "Post not found", "model": ErrorResponse}}


@router.get("/posts", response_model=AdminPostListResponse, summary="All posts")
async def list_posts(
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> AdminPostListResponse:
    return await admin_service.list_posts(db)


@router.post("/unlock", response_model=MessageResponse, summary="Force-unlock own account")
async def unlock_me(
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await admin_service.force_unlock(db, ctx.profile.id)
    return MessageResponse(
        message="Account Unlocked! You can now post live content immediately."
    )


@router.post(
    "/posts/{post_id}/live",
    response_model=MessageResponse,
    responses=_not_found,
    summary="Make a post live",
)
async def make_live(
    post_id: UUID,
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await admin_service.make_live(db, post_id)
    return MessageResponse(message="Post is now live.")


@router.delete(
    "/posts/{post_id}",
    response_model=MessageResponse,
    responses=_not_found,
    summary="Delete a post",
)
async def delete_post(
    post_id: UUID,
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await admin_service.delete_post(db, post_id)
    return MessageResponse(message="Post deleted.")


@router.post("/seed", response_model=SeedResponse, status_code=201, summary="Seed bot posts")
async def seed_bot_posts(
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> SeedResponse:
    created = await admin_service.seed_system_posts(db)
    return SeedResponse(message="Seeded global live posts successfully!", created=created)


@router.get(
    "/remediation-sql",
    response_model=RemediationSQLResponse,
    summary="Row-level security fix",
)
async def remediation_sql(
    ctx: AppContext = Depends(require_onboarded),
) -> RemediationSQLResponse:
    return RemediationSQLResponse(sql=REMEDIATION_SQL, instructions=REMEDIATION_INSTRUCTIONS)
