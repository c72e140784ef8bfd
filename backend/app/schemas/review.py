"""
LensCritique Backend: Review Schemas
=====================================

What:  Request body for the review screen and the review shapes returned
       on the profile page.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    """
    Body of POST /api/posts/{post_id}/reviews.

    Scores default to 5, the slider midpoint on the review screen.
    """
    confidence_score: int = Field(default=5, ge=1, le=10)
    style_score: int = Field(default=5, ge=1, le=10)
    approachability_score: int = Field(default=5, ge=1, le=10)
    answers: List[str] = Field(default_factory=list, max_length=10)
    general_feedback: str = Field(min_length=1, max_length=5000)
    is_anonymous: bool = True


class ReviewResponse(BaseModel):
    id: uuid.UUID
    post_id: uuid.UUID
    reviewer_id: uuid.UUID
    confidence_score: int
    style_score: int
    approachability_score: int
    answers: List[str] = Field(default_factory=list)
    general_feedback: str
    is_anonymous: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReceivedReviewResponse(BaseModel):
    """A review shown to the post's author. Reviewer hidden when anonymous."""
    id: uuid.UUID
    post_id: uuid.UUID
    confidence_score: int
    style_score: int
    approachability_score: int
    answers: List[str] = Field(default_factory=list)
    general_feedback: str
    is_anonymous: bool
    reviewer_username: Optional[str] = None
    created_at: Optional[datetime] = None


class ReviewSubmissionResponse(BaseModel):
    message: str
    review: ReviewResponse
    posts_remaining_to_unlock: Optional[int] = Field(
        default=None, description="Reviewer's counter after the submission"
    )
