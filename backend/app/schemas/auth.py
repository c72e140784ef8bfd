"""
LensCritique Backend: Authentication Schemas
=============================================

What:  Request/response contracts for the sign-in screen and session lookup.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.schemas.profile import ProfileResponse


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=72)
    username: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Display name; defaults to the local part of the email",
    )


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class AuthUserResponse(BaseModel):
    id: uuid.UUID
    email: Optional[str] = None
    username: Optional[str] = None


class SessionResponse(BaseModel):
    """
    Result of sign-in, or of a session lookup.

    `guard_state` is one of: unauthenticated, profile_pending,
    authenticated_incomplete, authenticated_complete.
    """
    authenticated: bool
    guard_state: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user: Optional[AuthUserResponse] = None
    profile: Optional[ProfileResponse] = None
    schema_error: Optional[str] = None


class SignUpResponse(BaseModel):
    confirmation_required: bool
    message: str
    session: Optional[SessionResponse] = None


class NavigationResponse(BaseModel):
    path: str
    allowed: bool
    redirect_to: Optional[str] = None
    guard_state: str
