"""
LensCritique Backend: Identity Service Client
==============================================

What:  Async client for the managed backend's auth REST API
       (`{BACKEND_URL}/auth/v1`): sign-up, password sign-in, sign-out and
       access-token lookup.
How:   One shared `httpx.AsyncClient` per process. Every call carries the
       public `apikey` header; user-scoped calls add the caller's bearer
       token. Failures are translated into the application's exceptions.
Who:   Used by the auth routes, the session bootstrap and the health check.
When:  Client created lazily on first use, closed in the shutdown lifespan.

Auth-state subscription:
    Listeners registered with `on_auth_state_change(callback)` receive
    `(event, session)` whenever this process signs a user in or out.
    The returned `Subscription` removes the listener again:

        sub = identity_client.on_auth_state_change(log_event)
        ...
        sub.unsubscribe()

Nothing here retries. A failed call is reported once.
"""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx

from app.config import settings
from app.exceptions import EmailNotConfirmedError, IdentityServiceError

logger = logging.getLogger(__name__)


class AuthChangeEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"


@dataclass
class AuthUser:
    """An identity as reported by the auth API."""

    id: uuid.UUID
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def username(self) -> Optional[str]:
        value = self.user_metadata.get("username")
        return value if isinstance(value, str) and value.strip() else None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AuthUser":
        return cls(
            id=uuid.UUID(str(payload["id"])),
            email=payload.get("email"),
            user_metadata=payload.get("user_metadata") or {},
        )


@dataclass
class AuthSession:
    access_token: str
    user: AuthUser
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AuthSession":
        return cls(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in=payload.get("expires_in"),
            user=AuthUser.from_payload(payload["user"]),
        )


AuthStateListener = Callable[[AuthChangeEvent, Optional[AuthSession]], None]


class Subscription:
    """Handle returned by `IdentityClient.on_auth_state_change`."""

    def __init__(self, client: "IdentityClient", callback: AuthStateListener):
        self._client = client
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._client._listeners.remove(self)
            self.active = False


def _error_message(response: httpx.Response) -> str:
    """Best human-readable message from an auth API error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("msg", "error_description", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.reason_phrase


def _is_email_not_confirmed(message: str) -> bool:
    return "email not confirmed" in message.lower()


class IdentityClient:
    """
    Thin wrapper over the auth REST API.

    Args:
        base_url:   Override of settings.auth_base_url (tests).
        anon_key:   Override of settings.backend_anon_key (tests).
        transport:  Custom httpx transport, e.g. httpx.MockTransport in tests.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        anon_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.auth_base_url
        self.anon_key = anon_key if anon_key is not None else settings.backend_anon_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._listeners: List[Subscription] = []

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"apikey": self.anon_key},
                transport=self._transport,
            )
        return self._client

    def _bearer(self, access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Identity service unreachable (%s %s): %s", method, url, e)
            raise IdentityServiceError(
                message="The identity service is unreachable. Please try again later.",
                context={"error_type": type(e).__name__},
            )

    def _raise_for_error(self, response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        message = _error_message(response)
        if _is_email_not_confirmed(message):
            raise EmailNotConfirmedError(context={"operation": operation})
        status = response.status_code if 400 <= response.status_code < 500 else 502
        logger.warning(
            "Identity %s failed: HTTP %d %s", operation, response.status_code, message
        )
        raise IdentityServiceError(
            message=message,
            status_code=status,
            context={"operation": operation, "upstream_status": response.status_code},
        )

    # ── Auth-state subscription ───────────────────────────────────────────

    def on_auth_state_change(self, callback: AuthStateListener) -> Subscription:
        subscription = Subscription(self, callback)
        self._listeners.append(subscription)
        return subscription

    def _emit(self, event: AuthChangeEvent, session: Optional[AuthSession]) -> None:
        for subscription in list(self._listeners):
            try:
                subscription.callback(event, session)
            except Exception:
                logger.exception("Auth state listener failed on %s", event.value)

    # ── Operations ────────────────────────────────────────────────────────

    async def sign_up(
        self, email: str, password: str, username: Optional[str] = None
    ) -> Optional[AuthSession]:
        """
        Create an account.

        Returns the new session, or None when the backend requires the email
        address to be confirmed before the first sign-in.
        """
        metadata = {"username": username or email.split("@")[0]}
        response = await self._request(
            "POST",
            "/signup",
            json={"email": email, "password": password, "data": metadata},
        )
        self._raise_for_error(response, "sign_up")
        payload = response.json()

        if not payload.get("access_token"):
            logger.info("Sign-up for %s awaits email confirmation", email)
            return None

        session = AuthSession.from_payload(payload)
        logger.info("Signed up and signed in user %s", session.user.id)
        self._emit(AuthChangeEvent.SIGNED_IN, session)
        return session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        self._raise_for_error(response, "sign_in")
        session = AuthSession.from_payload(response.json())
        logger.info("Signed in user %s", session.user.id)
        self._emit(AuthChangeEvent.SIGNED_IN, session)
        return session

    async def sign_out(self, access_token: str) -> None:
        response = await self._request(
            "POST", "/logout", headers=self._bearer(access_token)
        )
        # An already-expired token is as good as signed out
        if response.status_code not in (401, 403, 404):
            self._raise_for_error(response, "sign_out")
        self._emit(AuthChangeEvent.SIGNED_OUT, None)

    async def get_user(self, access_token: str) -> Optional[AuthUser]:
        """User behind `access_token`, or None when the token is invalid or expired."""
        response = await self._request("GET", "/user", headers=self._bearer(access_token))
        if response.status_code in (401, 403):
            logger.debug("Access token rejected by identity service")
            return None
        self._raise_for_error(response, "get_user")
        return AuthUser.from_payload(response.json())

    async def health_check(self) -> bool:
        try:
            response = await self.client.get("/health")
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning("Identity health check failed: %s", e)
            return False

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


identity_client = IdentityClient()
