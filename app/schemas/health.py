"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response body for the health check endpoint."""

    status: Literal["ok", "degraded"] = Field(default="ok", description="ok, or degraded when the database is unreachable")
    environment: str = Field(description="Current app environment (dev or prod)")
    database: Literal["connected", "disconnected"]
