"""
LensCritique Backend: Admin Service Unit Tests
===============================================

What we test:
    ✅ Force-unlock, make-live, delete
    ✅ SystemBot seeding vs per-post demo bots
    ✅ Remediation SQL covers posts and the photos bucket
"""

import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import ProgrammingError

from app.exceptions import DatabaseError, NotFoundError, PermissionDeniedError
from app.models.post import Post
from app.services.admin_service import (
    REMEDIATION_SQL,
    SEEDED_REVIEWS_REQUIRED,
    SYSTEM_BOT_ID,
    AdminService,
    demo_bot_id,
)


def compiled(call):
    return call.args[0].compile(dialect=postgresql.dialect())


def added_posts(mock_db_session):
    return [c.args[0] for c in mock_db_session.add.call_args_list if isinstance(c.args[0], Post)]


class TestModeration:

    def setup_method(self):
        self.service = AdminService()

    @pytest.mark.asyncio
    async def test_force_unlock_zeroes_counter(self, mock_db_session):
        profile_id = uuid.uuid4()

        await self.service.force_unlock(mock_db_session, profile_id)

        statement = compiled(mock_db_session.execute.await_args)
        assert str(statement).startswith("UPDATE profiles")
        assert statement.params["posts_remaining_to_unlock"] == 0
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_force_unlock_denied(self, mock_db_session):
        mock_db_session.execute.side_effect = ProgrammingError(
            "UPDATE", {}, Exception("violates row-level security policy")
        )
        with pytest.raises(PermissionDeniedError) as exc_info:
            await self.service.force_unlock(mock_db_session, uuid.uuid4())
        assert exc_info.value.message.startswith("Failed to unlock account")

    @pytest.mark.asyncio
    async def test_make_live(self, mock_db_session):
        mock_db_session.execute.return_value = MagicMock(rowcount=1)

        await self.service.make_live(mock_db_session, uuid.uuid4())

        assert compiled(mock_db_session.execute.await_args).params["is_live"] is True

    @pytest.mark.asyncio
    async def test_make_live_unknown_post(self, mock_db_session):
        mock_db_session.execute.return_value = MagicMock(rowcount=0)
        with pytest.raises(NotFoundError):
            await self.service.make_live(mock_db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_delete_unknown_post(self, mock_db_session):
        mock_db_session.execute.return_value = MagicMock(rowcount=0)
        with pytest.raises(NotFoundError):
            await self.service.delete_post(mock_db_session, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_list_posts_failure_is_empty(self, mock_db_session):
        mock_db_session.execute.side_effect = RuntimeError("boom")
        listing = await self.service.list_posts(mock_db_session)
        assert listing.total == 0
        assert listing.posts == []


class TestSeeding:

    def setup_method(self):
        self.service = AdminService()

    @pytest.mark.asyncio
    async def test_system_posts_share_one_bot(self, mock_db_session):
        created = await self.service.seed_system_posts(mock_db_session)

        posts = added_posts(mock_db_session)
        assert created == 3
        assert len(posts) == 3
        assert {p.user_id for p in posts} == {SYSTEM_BOT_ID}
        assert all(p.is_live for p in posts)
        assert all(p.reviews_required == SEEDED_REVIEWS_REQUIRED for p in posts)

        upsert = compiled(mock_db_session.execute.await_args_list[0])
        assert upsert.params["id"] == SYSTEM_BOT_ID
        assert upsert.params["username"] == "SystemBot"
        assert "ON CONFLICT (id) DO UPDATE" in str(upsert)
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_demo_posts_each_get_a_bot(self, mock_db_session):
        created = await self.service.seed_demo_posts(mock_db_session)

        posts = added_posts(mock_db_session)
        owners = {p.user_id for p in posts}
        assert created == 3
        assert len(owners) == 3
        assert SYSTEM_BOT_ID not in owners
        usernames = [
            compiled(c).params["username"] for c in mock_db_session.execute.await_args_list
        ]
        assert usernames == ["StyleExpert", "CareerPro", "SocialVibe"]

    @pytest.mark.asyncio
    async def test_seed_failure_rolls_back(self, mock_db_session):
        mock_db_session.execute.side_effect = RuntimeError("boom")
        with pytest.raises(DatabaseError):
            await self.service.seed_demo_posts(mock_db_session)
        mock_db_session.rollback.assert_awaited_once()
        mock_db_session.commit.assert_not_awaited()

    def test_demo_bot_id_range(self):
        bot_id = demo_bot_id()
        assert str(bot_id).startswith("00000000-0000-0000-0000-")
        assert bot_id != demo_bot_id()


def test_remediation_sql_covers_posts_and_bucket():
    assert "ALTER TABLE public.posts ENABLE ROW LEVEL SECURITY" in REMEDIATION_SQL
    assert "bucket_id = 'photos'" in REMEDIATION_SQL
