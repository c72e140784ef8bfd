"""
LensCritique Backend: API Route Tests
======================================

What:  HTTP-level behaviour through the full app (middleware, guards,
       exception handlers) with services patched out.

What we test:
    ✅ Guard chain: 401 → /auth, 403 → /onboarding, 503 schema missing
    ✅ Error body shape: sticky policy denial pointing at /admin
    ✅ Sign-up confirmation notice, unconfirmed sign-in
    ✅ Navigation decisions
    ✅ Over-limit image upload rejected before the service runs
    ✅ Health status levels, X-Request-ID propagation
    ✅ Rate-limited responses carry the caller's request ID
"""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from app.config import settings
from app.exceptions import EmailNotConfirmedError, NotFoundError, PermissionDeniedError
from app.routes.dependencies import get_app_context
from app.services.identity import identity_client
from app.services.session_context import AppContext
from app.services.storage_service import STORAGE_DENIED_MESSAGE


def jpeg(name="a.jpg"):
    return ("images", (name, b"\xff\xd8\xff" * 4, "image/jpeg"))


class TestGuards:

    @pytest.mark.asyncio
    async def test_signed_out_goes_to_auth(self, api):
        api.override(get_app_context, AppContext())

        response = await api.client.get("/api/feed")

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "authentication_required"
        assert body["redirect_to"] == "/auth"

    @pytest.mark.asyncio
    async def test_no_interests_goes_to_onboarding(self, api, make_context):
        api.override(get_app_context, make_context(interests=[]))

        response = await api.client.get("/api/profile")

        assert response.status_code == 403
        assert response.json()["redirect_to"] == "/onboarding"

    @pytest.mark.asyncio
    async def test_missing_schema_is_sticky(self, api, make_context):
        ctx = make_context(profile=None)
        ctx.schema_error = "The 'profiles' table is missing."
        api.override(get_app_context, ctx)

        response = await api.client.get("/api/feed")

        assert response.status_code == 503
        body = response.json()
        assert body["error"] == "schema_missing"
        assert body["dismissible"] is False

    @pytest.mark.asyncio
    async def test_profile_still_syncing(self, api, make_context):
        api.override(get_app_context, make_context(profile=None))

        response = await api.client.post("/api/onboarding", json={"interests": ["Fashion"]})

        assert response.status_code == 503
        assert response.json()["error"] == "profile_unavailable"


class TestAuth:

    @pytest.mark.asyncio
    async def test_sign_up_pending_confirmation(self, api):
        with patch.object(identity_client, "sign_up", AsyncMock(return_value=None)):
            response = await api.client.post(
                "/api/auth/sign-up",
                json={"email": "new@example.com", "password": "secret1"},
            )

        assert response.status_code == 201
        body = response.json()
        assert body["confirmation_required"] is True
        assert body["message"].startswith("Check your email")
        assert body["session"] is None

    @pytest.mark.asyncio
    async def test_sign_up_rejects_short_password(self, api):
        response = await api.client.post(
            "/api/auth/sign-up", json={"email": "new@example.com", "password": "123"}
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_sign_in_unconfirmed_email(self, api):
        with patch.object(
            identity_client, "sign_in", AsyncMock(side_effect=EmailNotConfirmedError())
        ):
            response = await api.client.post(
                "/api/auth/sign-in",
                json={"email": "new@example.com", "password": "secret1"},
            )

        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "email_not_confirmed"
        assert body["details"] == {"type": "confirmation"}

    @pytest.mark.asyncio
    async def test_session_lookup_signed_out(self, api):
        api.override(get_app_context, AppContext())

        response = await api.client.get("/api/auth/session")

        assert response.status_code == 200
        assert response.json()["guard_state"] == "unauthenticated"
        assert response.json()["authenticated"] is False


class TestNavigation:

    @pytest.mark.asyncio
    async def test_incomplete_profile_redirected(self, api, make_context):
        api.override(get_app_context, make_context(interests=[]))

        response = await api.client.get("/api/navigation", params={"path": "/create"})

        assert response.json() == {
            "path": "/create",
            "allowed": False,
            "redirect_to": "/onboarding",
            "guard_state": "authenticated_incomplete",
        }

    @pytest.mark.asyncio
    async def test_review_page_allowed(self, api, make_context):
        api.override(get_app_context, make_context())
        path = f"/review/{uuid.uuid4()}"

        response = await api.client.get("/api/navigation", params={"path": path})

        assert response.json()["allowed"] is True


class TestPosts:

    @pytest.mark.asyncio
    async def test_four_images_rejected_before_service(self, api, make_context):
        api.override(get_app_context, make_context())
        service = MagicMock()
        service.create_post = AsyncMock()

        with patch("app.routes.posts.post_service", service):
            response = await api.client.post(
                "/api/posts",
                files=[jpeg(f"{i}.jpg") for i in range(4)],
                data={"categories": "Fashion"},
            )

        assert response.status_code == 400
        assert response.json()["message"] == "Maximum 3 images allowed"
        service.create_post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_storage_denial_points_to_admin(self, api, make_context):
        api.override(get_app_context, make_context())
        service = MagicMock()
        service.create_post = AsyncMock(
            side_effect=PermissionDeniedError(message=STORAGE_DENIED_MESSAGE, resource="storage")
        )

        with patch("app.routes.posts.post_service", service):
            response = await api.client.post(
                "/api/posts", files=[jpeg()], data={"categories": "Fashion"}
            )

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "permission_denied"
        assert body["dismissible"] is False
        assert body["remediation"] == "/admin"
        assert body["message"] == STORAGE_DENIED_MESSAGE

    @pytest.mark.asyncio
    async def test_review_of_missing_post(self, api, make_context):
        api.override(get_app_context, make_context())
        service = MagicMock()
        service.submit_review = AsyncMock(side_effect=NotFoundError(resource="post"))

        with patch("app.routes.posts.review_service", service):
            response = await api.client.post(
                f"/api/posts/{uuid.uuid4()}/reviews",
                json={"general_feedback": "Nice", "answers": []},
            )

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_feed_rejects_unknown_mode(self, api, make_context):
        api.override(get_app_context, make_context())
        response = await api.client.get("/api/feed", params={"mode": "popular"})
        assert response.status_code == 422


class TestHealth:

    @pytest.mark.asyncio
    async def test_degraded_when_identity_down(self, api):
        engine = MagicMock()
        engine.connect.return_value.__aenter__.return_value.execute = AsyncMock()

        with patch("app.routes.health.engine", engine), patch.object(
            identity_client, "health_check", AsyncMock(return_value=False)
        ):
            response = await api.client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
        assert response.json()["identity"] == "unavailable"

    @pytest.mark.asyncio
    async def test_unhealthy_when_database_down(self, api):
        engine = MagicMock()
        engine.connect.side_effect = OSError("connection refused")

        with patch("app.routes.health.engine", engine), patch.object(
            identity_client, "health_check", AsyncMock(return_value=True)
        ):
            response = await api.client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, api):
        api.override(get_app_context, AppContext())

        response = await api.client.get(
            "/api/auth/session", headers={"X-Request-ID": "abc12345"}
        )

        assert response.headers["X-Request-ID"] == "abc12345"


class TestRateLimit:

    @pytest.mark.asyncio
    async def test_rejection_carries_request_id(self, monkeypatch, mock_db_session):
        from app.database import get_db_session
        from app.main import create_app

        monkeypatch.setattr(settings, "rate_limit_requests", 1)
        app = create_app()
        app.dependency_overrides[get_app_context] = lambda: AppContext()
        app.dependency_overrides[get_db_session] = lambda: mock_db_session
        headers = {"X-Request-ID": "rid00001"}

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            first = await client.get("/api/auth/session", headers=headers)
            second = await client.get("/api/auth/session", headers=headers)

        assert first.status_code == 200
        assert second.status_code == 429
        assert second.json()["error"] == "rate_limit_exceeded"
        assert second.json()["request_id"] == "rid00001"
        assert second.headers["X-Request-ID"] == "rid00001"
        assert int(second.headers["Retry-After"]) >= 1
