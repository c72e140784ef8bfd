"""
LensCritique Backend: Post Routes
==================================

What:  Publishing a post, loading one for the review screen, and
       submitting a review of it.

Routes:
    POST /api/posts                      multipart: images[], categories[], questions[]
    GET  /api/posts/{post_id}
    POST /api/posts/{post_id}/reviews    JSON ReviewCreate

Request Flow (POST /api/posts):
    1. Count check on the raw upload list (more than 3 → 400, nothing read)
    2. Read each UploadFile into memory
    3. PostService validates the rest, uploads, inserts
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ErrorResponse
from app.schemas.post import CreatePostResponse, PostResponse
from app.schemas.review import ReviewCreate, ReviewSubmissionResponse
from app.services.post_service import post_service
from app.services.review_service import review_service
from app.services.session_context import AppContext
from app.services.storage_service import ImageUpload, ObjectStorage
from app.routes.dependencies import require_onboarded

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])


@router.post(
    "",
    status_code=201,
    response_model=CreatePostResponse,
    responses={
        400: {"description": "Too many images, bad type or size, no category", "model": ErrorResponse},
        401: {"description": "Session expired", "model": ErrorResponse},
        403: {"description": "Row-level policy denial", "model": ErrorResponse},
        502: {"description": "Storage upload failed", "model": ErrorResponse},
    },
    summary="Publish a post",
)
async def create_post(
    images: List[UploadFile] = File(..., description="1 to 3 images"),
    categories: List[str] = Form(..., description="One or more categories"),
    questions: List[str] = Form(default=[], description="Up to 3 questions"),
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> CreatePostResponse:
    ObjectStorage.validate_image_count(len(images))

    uploads: List[ImageUpload] = []
    try:
        for upload in images:
            uploads.append(
                ImageUpload(
                    filename=upload.filename or "",
                    content=await upload.read(),
                    content_type=upload.content_type,
                )
            )
    finally:
        for upload in images:
            await upload.close()

    logger.info(
        "Create post request: %d image(s), %d bytes",
        len(uploads), sum(u.size for u in uploads),
    )
    return await post_service.create_post(
        db=db,
        author=ctx.profile,
        access_token=ctx.access_token,
        images=uploads,
        categories=categories,
        questions=questions,
    )


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    responses={404: {"description": "Post not found", "model": ErrorResponse}},
    summary="Load a post for review",
)
async def get_post(
    post_id: UUID,
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.get_post(db, post_id)


@router.post(
    "/{post_id}/reviews",
    status_code=201,
    response_model=ReviewSubmissionResponse,
    responses={
        400: {"description": "Missing answers or feedback", "model": ErrorResponse},
        404: {"description": "Post not found", "model": ErrorResponse},
    },
    summary="Submit a review",
)
async def submit_review(
    post_id: UUID,
    body: ReviewCreate,
    ctx: AppContext = Depends(require_onboarded),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewSubmissionResponse:
    return await review_service.submit_review(db, ctx.profile, post_id, body)
