"""
LensCritique Backend: Post Schemas
===================================

What:  API contracts for publishing posts, the feed and the admin registry.

Post creation arrives as multipart/form-data (images + form fields), so it
has no request model here; PostService validates the pieces directly.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class PostResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    categories: List[str] = Field(default_factory=list)
    image_urls: List[str] = Field(default_factory=list)
    questions: List[str] = Field(default_factory=list)
    is_live: bool
    reviews_required: int
    reviews_received: int
    created_at: Optional[datetime] = None
    author_username: Optional[str] = Field(
        default=None, description="Joined from profiles at read time"
    )

    model_config = {"from_attributes": True}


class CreatePostResponse(BaseModel):
    message: str
    post: PostResponse


class FeedResponse(BaseModel):
    mode: str = Field(description="recommended or recent")
    posts: List[PostResponse]
    posts_remaining_to_unlock: int


class LuckyMatchResponse(BaseModel):
    post_id: uuid.UUID
    redirect_to: str


class SeedResponse(BaseModel):
    message: str
    created: int


class AdminPostListResponse(BaseModel):
    total: int
    posts: List[PostResponse]


class RemediationSQLResponse(BaseModel):
    sql: str
    instructions: str
