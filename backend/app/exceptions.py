"""
LensCritique Backend: Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    LensCritiqueError (base)
    ├── ValidationError              → 400 Bad Request (client can fix)
    ├── AuthenticationRequiredError  → 401 (redirect to /auth)
    │   └── EmailNotConfirmedError   → 401 (confirmation notice)
    ├── OnboardingRequiredError      → 403 (redirect to /onboarding)
    ├── PermissionDeniedError        → 403 (row-level policy denial)
    ├── NotFoundError                → 404 Not Found
    ├── RateLimitExceededError       → 429 Too Many Requests
    ├── DatabaseError                → 500 Internal Server Error
    ├── StorageError                 → 502 Bad Gateway
    ├── IdentityServiceError         → 502 Bad Gateway
    ├── SchemaMissingError           → 503 (persistent instructions)
    └── ProfileUnavailableError      → 503 (profile still syncing)

Nothing in this hierarchy is retried automatically. Every operation is
best-effort and at-most-once from the caller's point of view.
"""

from typing import Any, Dict, Optional


class LensCritiqueError(Exception):
    """
    Base exception for all LensCritique application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client
                  unless the handler chooses to expose it as `details`)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(LensCritiqueError):
    """
    Raised when client input fails a business rule.

    When:    Too many images, unsupported image type, empty interest list,
             missing answers, unknown category.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationRequiredError(LensCritiqueError):
    """
    Raised when an action needs a session and none is available.

    HTTP:    401 Unauthorized, with `redirect_to: /auth`
    """

    redirect_to = "/auth"

    def __init__(
        self,
        message: str = "Session expired. Please log in again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class EmailNotConfirmedError(AuthenticationRequiredError):
    """
    Raised when sign-in is refused because the email address is unconfirmed.

    The client shows this as a confirmation notice rather than a failure.
    """

    def __init__(
        self,
        message: str = (
            "Your email is not confirmed yet. "
            "Please check your inbox for the verification link."
        ),
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class OnboardingRequiredError(LensCritiqueError):
    """
    Raised when a profile with no interests reaches a main screen.

    HTTP:    403 Forbidden, with `redirect_to: /onboarding`
    """

    redirect_to = "/onboarding"

    def __init__(
        self,
        message: str = "Pick at least one interest before continuing.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(LensCritiqueError):
    """
    Raised when the backend rejects a write with a row-level policy denial.

    What:    Storage upload or table write refused by the backend's
             row-level authorization.
    HTTP:    403 Forbidden
    Shown as a non-dismissing notification that points the user at the
    admin screen, where the remediation SQL lives.
    """

    remediation = "/admin"

    def __init__(
        self,
        message: str = "Permission denied by a row-level security policy.",
        resource: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if resource:
            ctx["resource"] = resource
        super().__init__(message=message, context=ctx)
        self.resource = resource


class NotFoundError(LensCritiqueError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RateLimitExceededError(LensCritiqueError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests (with Retry-After header)
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(LensCritiqueError):
    """
    Raised when a relational call fails for a reason we do not classify.

    HTTP:    500 Internal Server Error
    The message returned to the client is always generic; details are
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageError(LensCritiqueError):
    """
    Raised when an object storage upload fails without a policy denial.

    HTTP:    502 Bad Gateway
    """

    def __init__(
        self,
        message: str = "Image upload failed.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class IdentityServiceError(LensCritiqueError):
    """
    Raised when the identity service rejects or fails a request.

    When:    Invalid credentials, duplicate sign-up, identity service down.
    HTTP:    502 Bad Gateway, or the upstream 4xx status when it is a
             client mistake (kept in `status_code`).
    """

    def __init__(
        self,
        message: str = "The identity service could not complete the request.",
        status_code: int = 502,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.status_code = status_code


class SchemaMissingError(LensCritiqueError):
    """
    Raised when a required table does not exist on the backend.

    HTTP:    503 Service Unavailable
    Surfaced as a persistent instructional message, never retried.
    """

    def __init__(
        self,
        table: str = "profiles",
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"The '{table}' table is missing. "
            "Did you run the SQL setup script on the backend?"
        )
        ctx = context or {}
        ctx["table"] = table
        super().__init__(message=message, context=ctx)
        self.table = table


class ProfileUnavailableError(LensCritiqueError):
    """
    Raised when a session exists but its profile could not be loaded.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Syncing profile... If this persists, refresh the app.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
