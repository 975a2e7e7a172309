"""
StoreHub Backend: Shared Response Schemas
==========================================

What:  Error, health and user payloads shared by several routes.
"""

import uuid
from typing import List, Optional

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    """A user as returned after a heart toggle."""
    id: uuid.UUID
    email: str
    name: str
    hearts: List[uuid.UUID] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    """
    Standardized error body for every JSON error.

    Example:
        {
            "error": "authorization_error",
            "message": "You must own a store in order to edit it!",
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    upload_dir: str = Field(description="Upload directory: writable, unwritable")
    uptime_seconds: float = Field(description="Seconds since service started")
