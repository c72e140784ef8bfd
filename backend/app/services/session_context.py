"""
LensCritique Backend: Session Bootstrap and Route Guard
========================================================

What:  Builds the per-request `AppContext` (identity + profile) and decides
       which client screen the user may see.
How:   SessionBootstrap.resolve() asks the identity service who owns the
       bearer token, then loads (or self-heals) the profile. The guard is a
       pure function of that context.
Who:   FastAPI dependencies in app.routes.dependencies; GET /api/navigation.
When:  Once per request. Nothing is cached between requests.

Guard states:
    UNAUTHENTICATED           no valid session
    PROFILE_PENDING           session, but the profile could not be loaded
    AUTHENTICATED_INCOMPLETE  profile with no interests (needs onboarding)
    AUTHENTICATED_COMPLETE    profile with at least one interest

Route table:
    /auth              UNAUTHENTICATED only, everyone else → /
    /onboarding        any session, else → /auth
    /, /create,
    /profile, /admin,
    /review/{post_id}  COMPLETE only; no session → /auth,
                       no interests → /onboarding
    anything else      → /
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import IdentityServiceError, LensCritiqueError, SchemaMissingError
from app.models.profile import Profile
from app.services.identity import AuthUser, IdentityClient, identity_client
from app.services.profile_service import ProfileService, profile_service

logger = logging.getLogger(__name__)


class GuardState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    PROFILE_PENDING = "profile_pending"
    AUTHENTICATED_INCOMPLETE = "authenticated_incomplete"
    AUTHENTICATED_COMPLETE = "authenticated_complete"


@dataclass
class AppContext:
    """
    Everything a handler knows about the caller.

    Passed explicitly through dependencies; never stored globally.
    """

    access_token: Optional[str] = None
    user: Optional[AuthUser] = None
    profile: Optional[Profile] = None
    schema_error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


def guard_state(ctx: AppContext) -> GuardState:
    if not ctx.is_authenticated:
        return GuardState.UNAUTHENTICATED
    if ctx.profile is None:
        return GuardState.PROFILE_PENDING
    if not ctx.profile.interests:
        return GuardState.AUTHENTICATED_INCOMPLETE
    return GuardState.AUTHENTICATED_COMPLETE


@dataclass(frozen=True)
class RouteDecision:
    path: str
    allowed: bool
    state: GuardState
    redirect_to: Optional[str] = None


AUTH_PATH = "/auth"
ONBOARDING_PATH = "/onboarding"
HOME_PATH = "/"

GUARDED_PATHS = {"/", "/create", "/profile", "/admin"}
_REVIEW_PATH = re.compile(r"^/review/[^/]+$")


def _normalize(path: str) -> str:
    path = (path or "/").split("?", 1)[0].split("#", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def is_guarded(path: str) -> bool:
    return path in GUARDED_PATHS or bool(_REVIEW_PATH.match(path))


def resolve_route(path: str, ctx: AppContext) -> RouteDecision:
    path = _normalize(path)
    state = guard_state(ctx)

    if path == AUTH_PATH:
        if state is GuardState.UNAUTHENTICATED:
            return RouteDecision(path, True, state)
        return RouteDecision(path, False, state, HOME_PATH)

    if path == ONBOARDING_PATH:
        if state is GuardState.UNAUTHENTICATED:
            return RouteDecision(path, False, state, AUTH_PATH)
        return RouteDecision(path, True, state)

    if not is_guarded(path):
        return RouteDecision(path, False, state, HOME_PATH)

    if state is GuardState.UNAUTHENTICATED:
        return RouteDecision(path, False, state, AUTH_PATH)
    if state is GuardState.AUTHENTICATED_INCOMPLETE:
        return RouteDecision(path, False, state, ONBOARDING_PATH)
    if state is GuardState.PROFILE_PENDING:
        # "Syncing profile": no redirect, the client keeps waiting
        return RouteDecision(path, False, state)
    return RouteDecision(path, True, state)


class SessionBootstrap:
    """Resolves an access token into an AppContext."""

    def __init__(
        self,
        identity: Optional[IdentityClient] = None,
        profiles: Optional[ProfileService] = None,
    ):
        self.identity = identity or identity_client
        self.profiles = profiles or profile_service

    async def resolve(self, db: AsyncSession, access_token: Optional[str]) -> AppContext:
        if not access_token:
            return AppContext()

        try:
            user = await self.identity.get_user(access_token)
        except IdentityServiceError as e:
            logger.error("Session lookup failed, treating as signed out: %s", e.message)
            return AppContext()
        if user is None:
            return AppContext()
        return await self.for_user(db, access_token, user)

    async def for_user(self, db: AsyncSession, access_token: str, user: AuthUser) -> AppContext:
        """Context for an identity that is already known (e.g. right after sign-in)."""
        ctx = AppContext(access_token=access_token, user=user)
        try:
            ctx.profile = await self.profiles.ensure_profile(db, user)
        except SchemaMissingError as e:
            logger.error("Profile lookup for %s: %s", user.id, e.message)
            ctx.schema_error = e.message
        except LensCritiqueError as e:
            logger.error("Profile fetch failed for %s: %s", user.id, e.message)
        return ctx


session_bootstrap = SessionBootstrap()
