"""
LensCritique Backend: Post SQLAlchemy Model
============================================

What:  ORM mapping of the backend's `posts` table.

Liveness state machine:
    (never persisted) ──create──▶ Live     when author counter <= 0
                      ──create──▶ Locked   otherwise
    Locked ──admin make-live──▶ Live
    There is no Live → Locked transition.

`reviews_required` / `reviews_received` track social proof on this post
only; they are independent of the author's unlock counter.
"""

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Post(Base):
    """A set of up to three photos submitted for critique."""

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
    )

    categories: Mapped[List[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=list, server_default=text("'{}'"),
    )

    # Public object-storage URLs, in upload order
    image_urls: Mapped[List[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=list, server_default=text("'{}'"),
    )

    questions: Mapped[List[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=list, server_default=text("'{}'"),
    )

    is_live: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false"),
    )

    reviews_required: Mapped[int] = mapped_column(
        Integer, nullable=False, default=3, server_default=text("3"),
    )

    # Incremented only through the increment_post_reviews procedure
    reviews_received: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_posts_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<Post(id={self.id}, user_id={self.user_id}, is_live={self.is_live}, "
            f"reviews={self.reviews_received}/{self.reviews_required})>"
        )
