"""
LensCritique Backend: Route Dependencies
=========================================

What:  FastAPI dependencies that turn the Authorization header into an
       AppContext and enforce the route guard on API endpoints.

Dependency chain:
    get_access_token ─▶ get_app_context ─▶ require_session ─▶ require_onboarded

    require_session    no session            → 401, redirect_to /auth
    require_onboarded  session, no interests → 403, redirect_to /onboarding
                       schema missing        → 503, persistent notice
                       profile not loadable  → 503, "Syncing profile..."
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.exceptions import (
    AuthenticationRequiredError,
    OnboardingRequiredError,
    ProfileUnavailableError,
    SchemaMissingError,
)
from app.services.session_context import AppContext, session_bootstrap

bearer_scheme = HTTPBearer(auto_error=False, description="Backend access token")


async def get_access_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials


async def get_app_context(
    access_token: Optional[str] = Depends(get_access_token),
    db: AsyncSession = Depends(get_db_session),
) -> AppContext:
    return await session_bootstrap.resolve(db, access_token)


async def require_session(ctx: AppContext = Depends(get_app_context)) -> AppContext:
    if not ctx.is_authenticated:
        raise AuthenticationRequiredError()
    return ctx


async def require_profile(ctx: AppContext = Depends(require_session)) -> AppContext:
    if ctx.schema_error:
        raise SchemaMissingError()
    if ctx.profile is None:
        raise ProfileUnavailableError()
    return ctx


async def require_onboarded(ctx: AppContext = Depends(require_profile)) -> AppContext:
    if not ctx.profile.interests:
        raise OnboardingRequiredError()
    return ctx
