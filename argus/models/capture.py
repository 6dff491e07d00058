"""Capture result data structures."""

from __future__ import annotations

from pydantic import BaseModel, Field

from argus.models.config import RouteConfig, ViewportConfig


class CaptureTask(BaseModel):
    """One route rendered at one viewport."""

    route: RouteConfig
    viewport: ViewportConfig


class CaptureResult(BaseModel):
    path: str
    viewport: ViewportConfig
    route_path: str
    duration_ms: int = 0
    warnings: list[str] = Field(default_factory=list)


class CaptureError(BaseModel):
    route: str
    viewport: str
    error: str


class CaptureReport(BaseModel):
    total: int = 0
    successful: int = 0
    failed: int = 0
    results: list[CaptureResult] = Field(default_factory=list)
    errors: list[CaptureError] = Field(default_factory=list)
    duration_ms: int = 0
