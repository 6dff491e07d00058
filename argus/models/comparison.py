"""Comparison result data structures."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

ComparisonStatus = Literal["passed", "failed", "new", "missing", "error"]


class DiffResult(BaseModel):
    diff_pixels: int = 0
    total_pixels: int = 0
    # None when the images could not be compared pixel-by-pixel (dimension mismatch)
    diff_percentage: Optional[float] = 0.0
    passed: bool = False
    diff_image_path: Optional[str] = None
    width: int = 0
    height: int = 0
    error: Optional[str] = None


class ComparisonResult(DiffResult):
    name: str
    baseline_path: str
    current_path: str
    status: ComparisonStatus


class ComparisonReport(BaseModel):
    total: int = 0
    passed: int = 0
    failed: int = 0
    new: int = 0
    missing: int = 0
    errors: int = 0
    results: list[ComparisonResult] = Field(default_factory=list)
    duration_ms: int = 0

    def has_failures(self, update_missing: bool = False) -> bool:
        """Whether the comparison should fail a CI run."""
        if self.failed or self.errors:
            return True
        return bool(self.new) and not update_missing


class ApprovalResult(BaseModel):
    approved: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
