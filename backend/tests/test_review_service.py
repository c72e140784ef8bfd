"""
LensCritique Backend: Review Workflow Unit Tests
=================================================

What we test:
    ✅ Answer alignment with the post's questions
    ✅ Each counter procedure runs exactly once, in order, after the insert
    ✅ Every step commits on its own; a failed step leaves earlier ones
    ✅ Missing post → NotFoundError, no writes
    ✅ A failed counter refresh after all commits still reports success
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.exceptions import DatabaseError, NotFoundError, ValidationError
from app.models.review import Review
from app.schemas.review import ReviewCreate
from app.services.counters import (
    DECREMENT_UNLOCK_COUNTER,
    INCREMENT_POST_REVIEWS,
    decrement_profile_unlock_counter,
    increment_post_reviews,
)
from app.services.review_service import ReviewService, align_answers


class TestAlignAnswers:

    def test_answers_follow_question_order(self):
        assert align_answers(["Q1", "Q2"], [" yes ", "no"]) == ["yes", "no"]

    def test_missing_answer_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            align_answers(["Q1", "Q2"], ["yes"])
        assert exc_info.value.message == "Please answer: Q2"

    def test_blank_answer_rejected(self):
        with pytest.raises(ValidationError):
            align_answers(["Q1"], ["   "])

    def test_extra_answers_rejected(self):
        with pytest.raises(ValidationError):
            align_answers(["Q1"], ["a", "b"])

    def test_no_questions_no_answers(self):
        assert align_answers([], []) == []


class TestCounters:

    @pytest.mark.asyncio
    async def test_increment_is_one_procedure_call(self, mock_db_session):
        post_id = uuid.uuid4()
        await increment_post_reviews(mock_db_session, post_id)

        mock_db_session.execute.assert_awaited_once_with(
            INCREMENT_POST_REVIEWS, {"post_id_input": post_id}
        )
        assert str(INCREMENT_POST_REVIEWS) == "SELECT increment_post_reviews(:post_id_input)"

    @pytest.mark.asyncio
    async def test_decrement_is_one_procedure_call(self, mock_db_session):
        user_id = uuid.uuid4()
        await decrement_profile_unlock_counter(mock_db_session, user_id)

        mock_db_session.execute.assert_awaited_once_with(
            DECREMENT_UNLOCK_COUNTER, {"user_id_input": user_id}
        )

    @pytest.mark.asyncio
    async def test_failure_is_translated(self, mock_db_session):
        mock_db_session.execute.side_effect = RuntimeError("function does not exist")
        with pytest.raises(DatabaseError):
            await increment_post_reviews(mock_db_session, uuid.uuid4())


class TestSubmitReview:

    def setup_method(self):
        self.posts = MagicMock()
        self.profiles = MagicMock()
        self.service = ReviewService(posts=self.posts, profiles=self.profiles)
        self.body = ReviewCreate(
            confidence_score=8,
            style_score=6,
            approachability_score=9,
            answers=["Yes, keep it"],
            general_feedback="Great framing, soften the shadows.",
        )

    def arrange(self, make_post, make_profile, remaining_after=2):
        post = make_post(questions=["Keep the hat?"])
        reviewer = make_profile(posts_remaining_to_unlock=remaining_after + 1)
        self.posts.load_post = AsyncMock(return_value=post)
        self.profiles.fetch_profile = AsyncMock(
            return_value=make_profile(id=reviewer.id, posts_remaining_to_unlock=remaining_after)
        )
        return post, reviewer

    @pytest.mark.asyncio
    async def test_insert_then_each_procedure_once(self, mock_db_session, make_post, make_profile):
        post, reviewer = self.arrange(make_post, make_profile)

        result = await self.service.submit_review(mock_db_session, reviewer, post.id, self.body)

        saved = mock_db_session.add.call_args.args[0]
        assert isinstance(saved, Review)
        assert saved.reviewer_id == reviewer.id
        assert saved.post_id == post.id
        assert saved.answers == ["Yes, keep it"]
        assert saved.is_anonymous is True

        calls = mock_db_session.execute.await_args_list
        assert [c.args for c in calls] == [
            (INCREMENT_POST_REVIEWS, {"post_id_input": post.id}),
            (DECREMENT_UNLOCK_COUNTER, {"user_id_input": reviewer.id}),
        ]
        assert mock_db_session.commit.await_count == 3
        assert result.posts_remaining_to_unlock == 2
        assert result.review.confidence_score == 8

    @pytest.mark.asyncio
    async def test_counter_never_reported_below_zero(self, mock_db_session, make_post, make_profile):
        post, reviewer = self.arrange(make_post, make_profile, remaining_after=0)

        result = await self.service.submit_review(mock_db_session, reviewer, post.id, self.body)

        assert result.posts_remaining_to_unlock == 0

    @pytest.mark.asyncio
    async def test_refresh_failure_still_reports_success(
        self, mock_db_session, make_post, make_profile
    ):
        post, reviewer = self.arrange(make_post, make_profile)
        self.profiles.fetch_profile = AsyncMock(side_effect=DatabaseError())

        result = await self.service.submit_review(mock_db_session, reviewer, post.id, self.body)

        assert mock_db_session.commit.await_count == 3
        assert result.posts_remaining_to_unlock is None
        assert result.message.startswith("Review submitted")

    @pytest.mark.asyncio
    async def test_increment_failure_keeps_review(self, mock_db_session, make_post, make_profile):
        post, reviewer = self.arrange(make_post, make_profile)
        mock_db_session.execute.side_effect = RuntimeError("procedure failed")

        with pytest.raises(DatabaseError):
            await self.service.submit_review(mock_db_session, reviewer, post.id, self.body)

        mock_db_session.add.assert_called_once()
        assert mock_db_session.commit.await_count == 1
        assert mock_db_session.execute.await_count == 1
        self.profiles.fetch_profile.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_post(self, mock_db_session, make_profile):
        self.posts.load_post = AsyncMock(side_effect=NotFoundError(resource="post"))

        with pytest.raises(NotFoundError):
            await self.service.submit_review(
                mock_db_session, make_profile(), uuid.uuid4(), self.body
            )

        mock_db_session.add.assert_not_called()
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unanswered_question(self, mock_db_session, make_post, make_profile):
        post, reviewer = self.arrange(make_post, make_profile)
        body = self.body.model_copy(update={"answers": []})

        with pytest.raises(ValidationError):
            await self.service.submit_review(mock_db_session, reviewer, post.id, body)
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_feedback(self, mock_db_session, make_post, make_profile):
        post, reviewer = self.arrange(make_post, make_profile)
        body = self.body.model_copy(update={"general_feedback": "   "})

        with pytest.raises(ValidationError):
            await self.service.submit_review(mock_db_session, reviewer, post.id, body)
        mock_db_session.add.assert_not_called()
