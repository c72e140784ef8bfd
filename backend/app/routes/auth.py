"""
LensCritique Backend: Authentication Routes
============================================

What:  The sign-in screen's actions: sign-up, sign-in, sign-out and the
       current-session lookup the client runs on start-up.
How:   Credentials go straight to the identity service. A successful
       sign-in also loads (or self-heals) the profile, so the client gets
       its guard state in the same response.

Routes:
    POST /api/auth/sign-up    create account (may require email confirmation)
    POST /api/auth/sign-in    password sign-in
    POST /api/auth/sign-out   end the session behind the bearer token
    GET  /api/auth/session    who am I, and where may I go
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.auth import (
    AuthUserResponse,
    SessionResponse,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
)
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.profile import ProfileResponse
from app.services.identity import AuthSession, identity_client
from app.services.session_context import (
    AppContext,
    guard_state,
    session_bootstrap,
)
from app.routes.dependencies import get_app_context, require_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

CONFIRMATION_MESSAGE = "Check your email for a confirmation link to activate your account."


def session_response(ctx: AppContext, refresh_token: Optional[str] = None) -> SessionResponse:
    user = None
    if ctx.user is not None:
        user = AuthUserResponse(
            id=ctx.user.id,
            email=ctx.user.email,
            username=ctx.profile.username if ctx.profile else ctx.user.username,
        )
    return SessionResponse(
        authenticated=ctx.is_authenticated,
        guard_state=guard_state(ctx).value,
        access_token=ctx.access_token,
        refresh_token=refresh_token,
        user=user,
        profile=ProfileResponse.model_validate(ctx.profile) if ctx.profile else None,
        schema_error=ctx.schema_error,
    )


async def _signed_in(db: AsyncSession, session: AuthSession) -> SessionResponse:
    ctx = await session_bootstrap.for_user(db, session.access_token, session.user)
    return session_response(ctx, refresh_token=session.refresh_token)


@router.post(
    "/sign-up",
    response_model=SignUpResponse,
    status_code=201,
    responses={
        400: {"description": "Rejected by the identity service", "model": ErrorResponse},
        422: {"description": "Malformed email or short password"},
    },
    summary="Create an account",
)
async def sign_up(
    body: SignUpRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SignUpResponse:
    session = await identity_client.sign_up(body.email, body.password, body.username)
    if session is None:
        return SignUpResponse(confirmation_required=True, message=CONFIRMATION_MESSAGE)
    return SignUpResponse(
        confirmation_required=False,
        message="Account created.",
        session=await _signed_in(db, session),
    )


@router.post(
    "/sign-in",
    response_model=SessionResponse,
    responses={
        400: {"description": "Invalid credentials", "model": ErrorResponse},
        401: {"description": "Email not confirmed", "model": ErrorResponse},
    },
    summary="Sign in with email and password",
)
async def sign_in(
    body: SignInRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SessionResponse:
    session = await identity_client.sign_in(body.email, body.password)
    return await _signed_in(db, session)


@router.post("/sign-out", response_model=MessageResponse, summary="Sign out")
async def sign_out(ctx: AppContext = Depends(require_session)) -> MessageResponse:
    await identity_client.sign_out(ctx.access_token)
    return MessageResponse(message="Signed out.")


@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Current session, profile and guard state",
)
async def get_session(ctx: AppContext = Depends(get_app_context)) -> SessionResponse:
    return session_response(ctx)
