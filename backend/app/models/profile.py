"""
LensCritique Backend: Profile SQLAlchemy Model
===============================================

What:  ORM mapping of the backend's `profiles` table.
How:   One row per identity; `id` equals the identity service's user id.
Who:   Read by the session bootstrap on every request, written by
       onboarding, admin actions and the unlock-counter procedure.

Lifecycle:
    1. Created on first sign-in by the self-healing upsert (empty interests)
    2. Onboarding writes interests and resets the unlock counter
    3. Each review the user submits decrements the counter (floor 0)
    4. Never deleted by this application
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Float, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import ARRAY, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Profile(Base):
    """A user's public profile, interests and review bookkeeping."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        comment="Identity id of the owning account",
    )

    username: Mapped[str] = mapped_column(String(255), nullable=False)

    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    # Empty list means onboarding has not been completed
    interests: Mapped[List[str]] = mapped_column(
        ARRAY(Text),
        nullable=True,
        default=list,
        server_default=text("'{}'"),
    )

    # ── Cumulative rating totals (maintained by the backend) ──────────────
    total_confidence: Mapped[float] = mapped_column(
        Float, nullable=False, default=0, server_default=text("0"),
    )
    total_style: Mapped[float] = mapped_column(
        Float, nullable=False, default=0, server_default=text("0"),
    )
    total_approachability: Mapped[float] = mapped_column(
        Float, nullable=False, default=0, server_default=text("0"),
    )
    review_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0"),
    )

    # Reviews still owed before the next post is live on creation
    posts_remaining_to_unlock: Mapped[int] = mapped_column(
        Integer, nullable=False, default=3, server_default=text("3"),
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    @property
    def has_interests(self) -> bool:
        return bool(self.interests)

    @property
    def is_unlocked(self) -> bool:
        return (self.posts_remaining_to_unlock or 0) <= 0

    def __repr__(self) -> str:
        return (
            f"<Profile(id={self.id}, username='{self.username}', "
            f"remaining={self.posts_remaining_to_unlock})>"
        )
