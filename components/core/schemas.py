"""Core schemas for the application."""

from pydantic import BaseModel


class HealthCheck(BaseModel):
    """Schema for health check response."""
    service_name: str
    status: str
    database: str


class ErrorResponse(BaseModel):
    """Schema for engine error responses."""
    detail: str
    code: str
