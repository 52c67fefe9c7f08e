"""
Pydantic schemas for the message domain and the HTTP layer.

This module contains:
- The Message domain model shared by the store, the service and responses
- Request models for incoming payloads
- Response models for API responses
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from message_api.utils import new_message_id, utc_now


# =============================================================================
# Domain Models
# =============================================================================

class Message(BaseModel):
    """
    A message owned by an organization.

    id and created_at are (re)assigned by the store on creation;
    updated_at is refreshed by the store on every update.
    """
    id: UUID = Field(default_factory=new_message_id, description="Unique message identifier")
    organization_id: UUID = Field(..., description="Owning organization")
    title: str = Field(..., description="Title, unique among active messages of the organization")
    content: str = Field(..., description="Message body")
    created_at: datetime = Field(default_factory=utc_now, description="Creation time (UTC)")
    updated_at: datetime = Field(default_factory=utc_now, description="Last update time (UTC)")
    is_active: bool = Field(default=True, description="Whether the message can still be updated or deleted")


# =============================================================================
# Pydantic Request Models
# =============================================================================

class CreateMessageRequest(BaseModel):
    """
    Payload for creating a message.

    Fields are deliberately unconstrained here: length and blank checks
    run in the service so every violation is reported in one response.
    """
    title: Optional[str] = Field(None, description="Message title (3-200 characters)")
    content: Optional[str] = Field(None, description="Message content (10-1000 characters)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "title": "Release Notes",
                    "content": "v1.0 is now live today.",
                }
            ]
        }
    }


class UpdateMessageRequest(BaseModel):
    """Payload for replacing the title and content of a message."""
    title: Optional[str] = Field(None, description="Message title (3-200 characters)")
    content: Optional[str] = Field(None, description="Message content (10-1000 characters)")


# =============================================================================
# Pydantic Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Response model for not-found, conflict and internal errors."""
    detail: str = Field(..., description="Error description")


class ValidationErrorResponse(BaseModel):
    """Response model for 400 responses, one entry per offending field."""
    errors: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Violation messages keyed by field name"
    )


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")
