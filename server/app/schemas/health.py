"""Liveness ping schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    """Liveness states reported by the ping endpoint."""
    HEALTHY = "healthy"


class HealthResponse(BaseModel):
    """Liveness ping response."""

    status: HealthStatus
    service: str = Field(..., description="Service name")
    environment: str = Field(..., description="Deployment environment")
    timestamp: datetime = Field(..., description="Current server time (ISO 8601)")
    version: str = "1.0.0"
