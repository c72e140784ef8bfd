"""
LensCritique Backend: Profile Schemas
======================================

What:  API contracts for profiles, onboarding and the profile page.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.common import CATEGORIES
from app.schemas.post import PostResponse
from app.schemas.review import ReceivedReviewResponse


class ProfileResponse(BaseModel):
    id: uuid.UUID
    username: str
    avatar_url: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    total_confidence: float = 0
    total_style: float = 0
    total_approachability: float = 0
    review_count: int = 0
    posts_remaining_to_unlock: int = 0
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("interests", mode="before")
    @classmethod
    def null_interests_as_empty(cls, v):
        return v or []

    @property
    def unlock_label(self) -> str:
        if self.posts_remaining_to_unlock > 0:
            return f"{self.posts_remaining_to_unlock} Reviews Left"
        return "Unlocked"


class OnboardingRequest(BaseModel):
    """Interests picked on the onboarding screen. Must be non-empty."""
    interests: List[str] = Field(description="One or more categories")

    @field_validator("interests")
    @classmethod
    def known_categories(cls, v: List[str]) -> List[str]:
        unknown = [c for c in v if c not in CATEGORIES]
        if unknown:
            raise ValueError(f"Unknown categories: {unknown}. Valid: {CATEGORIES}")
        return v


class MetricTotal(BaseModel):
    name: str
    value: float


class ProfilePageResponse(BaseModel):
    """Everything the profile screen renders in one payload."""
    profile: ProfileResponse
    unlock_status: str = Field(description="'N Reviews Left' or 'Unlocked'")
    metrics: List[MetricTotal]
    posts: List[PostResponse]
    reviews_received: List[ReceivedReviewResponse]
