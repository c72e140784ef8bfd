"""
LensCritique Backend: Shared Schemas and Domain Constants
==========================================================

What:  Categories, rating metrics, and the error/health response contracts
       shared by every route module.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Category(str, Enum):
    """Interest / post categories. Values are stored verbatim in text[] columns."""
    DATING = "Dating"
    PROFESSIONAL = "Professional"
    FASHION = "Fashion"
    SOCIAL = "Social"
    LIFESTYLE = "Lifestyle"


CATEGORIES: List[str] = [c.value for c in Category]


class RatingMetric(BaseModel):
    label: str
    key: str
    description: str


RATING_METRICS: List[RatingMetric] = [
    RatingMetric(
        label="Confidence",
        key="confidence",
        description="How confident does the subject look?",
    ),
    RatingMetric(
        label="Style",
        key="style",
        description="Sense of fashion and presentation",
    ),
    RatingMetric(
        label="Approachability",
        key="approachability",
        description="How friendly/inviting is the vibe?",
    ),
]


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example (row-level policy denial):
        {
            "error": "permission_denied",
            "message": "Storage Permission Denied: ...",
            "details": {"resource": "storage"},
            "request_id": "a1b2c3d4",
            "dismissible": false,
            "remediation": "/admin"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
    redirect_to: Optional[str] = Field(
        default=None, description="Client route the user should be sent to"
    )
    dismissible: bool = Field(
        default=True, description="False for notices that must stay on screen"
    )
    remediation: Optional[str] = Field(
        default=None, description="Client route explaining how to fix the problem"
    )


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    identity: str = Field(description="Identity service: available, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
