"""
LensCritique Backend: Review SQLAlchemy Model
==============================================

What:  ORM mapping of the backend's `reviews` table.

A review is written once per submission and is immutable afterwards: this
application has no update or delete path for it.
"""

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import Boolean, ForeignKey, Integer, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Review(Base):
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    post_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("posts.id"), nullable=False,
    )

    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False,
    )

    # 1-10 each
    confidence_score: Mapped[int] = mapped_column(Integer, nullable=False)
    style_score: Mapped[int] = mapped_column(Integer, nullable=False)
    approachability_score: Mapped[int] = mapped_column(Integer, nullable=False)

    # answers[i] answers post.questions[i]
    answers: Mapped[List[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=list, server_default=text("'{}'"),
    )

    general_feedback: Mapped[str] = mapped_column(Text, nullable=False, default="")

    is_anonymous: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true"),
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, post_id={self.post_id}, reviewer_id={self.reviewer_id})>"
