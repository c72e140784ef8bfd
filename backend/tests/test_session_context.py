"""
LensCritique Backend: Session Bootstrap and Route Guard Tests
==============================================================

What we test:
    ✅ Guard state derivation
    ✅ Route table: /auth, /onboarding, guarded pages, wildcard
    ✅ Empty interests always route to onboarding, non-empty never do
    ✅ Bootstrap: no token, expired token, missing schema, profile failure
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.exceptions import DatabaseError, IdentityServiceError, SchemaMissingError
from app.services.identity import AuthUser
from app.services.session_context import (
    AppContext,
    GuardState,
    SessionBootstrap,
    guard_state,
    resolve_route,
)

GUARDED = ["/", "/create", "/profile", "/admin", f"/review/{uuid.uuid4()}"]


class TestGuardState:

    def test_no_user_is_unauthenticated(self):
        assert guard_state(AppContext()) is GuardState.UNAUTHENTICATED

    def test_session_without_profile_is_pending(self, make_context):
        assert guard_state(make_context(profile=None)) is GuardState.PROFILE_PENDING

    def test_empty_interests_is_incomplete(self, make_context):
        assert guard_state(make_context(interests=[])) is GuardState.AUTHENTICATED_INCOMPLETE

    def test_null_interests_is_incomplete(self, make_context):
        assert guard_state(make_context(interests=None)) is GuardState.AUTHENTICATED_INCOMPLETE

    def test_interests_is_complete(self, make_context):
        assert guard_state(make_context(interests=["Dating"])) is GuardState.AUTHENTICATED_COMPLETE


class TestResolveRoute:

    def test_auth_page_only_when_signed_out(self, make_context):
        assert resolve_route("/auth", AppContext()).allowed
        decision = resolve_route("/auth", make_context())
        assert not decision.allowed
        assert decision.redirect_to == "/"

    def test_onboarding_needs_a_session(self, make_context):
        assert resolve_route("/onboarding", AppContext()).redirect_to == "/auth"
        assert resolve_route("/onboarding", make_context(interests=[])).allowed
        assert resolve_route("/onboarding", make_context()).allowed

    @pytest.mark.parametrize("path", GUARDED)
    def test_guarded_pages_signed_out_go_to_auth(self, path):
        decision = resolve_route(path, AppContext())
        assert not decision.allowed
        assert decision.redirect_to == "/auth"

    @pytest.mark.parametrize("path", GUARDED)
    def test_empty_interests_always_go_to_onboarding(self, path, make_context):
        for remaining in (0, 3):
            ctx = make_context(interests=[], posts_remaining_to_unlock=remaining)
            decision = resolve_route(path, ctx)
            assert decision.redirect_to == "/onboarding"
            assert not decision.allowed

    @pytest.mark.parametrize("path", GUARDED + ["/onboarding", "/auth", "/nowhere"])
    def test_interests_never_go_to_onboarding(self, path, make_context):
        decision = resolve_route(path, make_context(interests=["Social"]))
        assert decision.redirect_to != "/onboarding"

    @pytest.mark.parametrize("path", GUARDED)
    def test_onboarded_user_is_allowed(self, path, make_context):
        assert resolve_route(path, make_context()).allowed

    def test_profile_pending_waits_without_redirect(self, make_context):
        decision = resolve_route("/create", make_context(profile=None))
        assert not decision.allowed
        assert decision.redirect_to is None
        assert decision.state is GuardState.PROFILE_PENDING

    @pytest.mark.parametrize("path", ["/nowhere", "/review", "/review/1/extra"])
    def test_unknown_paths_go_home(self, path, make_context):
        decision = resolve_route(path, make_context())
        assert decision.redirect_to == "/"

    def test_path_normalization(self, make_context):
        assert resolve_route("/create/", make_context()).path == "/create"
        assert resolve_route("profile?tab=posts", make_context()).path == "/profile"


class TestSessionBootstrap:

    def setup_method(self):
        self.identity = MagicMock()
        self.profiles = MagicMock()
        self.bootstrap = SessionBootstrap(identity=self.identity, profiles=self.profiles)
        self.user = AuthUser(id=uuid.uuid4(), email="alice@example.com")

    @pytest.mark.asyncio
    async def test_no_token(self, mock_db_session):
        self.identity.get_user = AsyncMock()
        ctx = await self.bootstrap.resolve(mock_db_session, None)
        assert not ctx.is_authenticated
        self.identity.get_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_token(self, mock_db_session):
        self.identity.get_user = AsyncMock(return_value=None)
        ctx = await self.bootstrap.resolve(mock_db_session, "stale")
        assert guard_state(ctx) is GuardState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_identity_outage_reads_as_signed_out(self, mock_db_session):
        self.identity.get_user = AsyncMock(side_effect=IdentityServiceError())
        ctx = await self.bootstrap.resolve(mock_db_session, "token")
        assert not ctx.is_authenticated

    @pytest.mark.asyncio
    async def test_profile_loaded(self, mock_db_session, make_profile):
        profile = make_profile(id=self.user.id)
        self.identity.get_user = AsyncMock(return_value=self.user)
        self.profiles.ensure_profile = AsyncMock(return_value=profile)

        ctx = await self.bootstrap.resolve(mock_db_session, "token")

        assert ctx.access_token == "token"
        assert ctx.profile is profile
        self.profiles.ensure_profile.assert_awaited_once_with(mock_db_session, self.user)

    @pytest.mark.asyncio
    async def test_missing_schema_is_recorded(self, mock_db_session):
        self.identity.get_user = AsyncMock(return_value=self.user)
        self.profiles.ensure_profile = AsyncMock(side_effect=SchemaMissingError())

        ctx = await self.bootstrap.resolve(mock_db_session, "token")

        assert ctx.profile is None
        assert "profiles" in ctx.schema_error
        assert guard_state(ctx) is GuardState.PROFILE_PENDING

    @pytest.mark.asyncio
    async def test_other_profile_failure_leaves_profile_empty(self, mock_db_session):
        self.identity.get_user = AsyncMock(return_value=self.user)
        self.profiles.ensure_profile = AsyncMock(side_effect=DatabaseError())

        ctx = await self.bootstrap.resolve(mock_db_session, "token")

        assert ctx.is_authenticated
        assert ctx.profile is None
        assert ctx.schema_error is None
