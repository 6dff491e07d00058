"""JSON report output."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from argus.models.comparison import ComparisonReport
from argus.models.config import ArgusConfig
from argus.models.explorer import ExplorerReport

logger = logging.getLogger(__name__)

TOOL_NAME = "argus"
TOOL_VERSION = "0.1.0"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_json_report(report: ComparisonReport, config: ArgusConfig) -> dict:
    """Build the CI-facing JSON document for a comparison run."""
    return {
        "meta": {
            "tool": TOOL_NAME,
            "version": TOOL_VERSION,
            "timestamp": _timestamp(),
            "duration_ms": report.duration_ms,
            "base_url": config.base_url,
            "browser": config.browser,
        },
        "summary": {
            "total": report.total,
            "passed": report.passed,
            "failed": report.failed,
            "new": report.new,
            "missing": report.missing,
            "errors": report.errors,
        },
        "results": [
            {
                "name": r.name,
                "status": r.status,
                "diff_percentage": r.diff_percentage,
                "baseline": r.baseline_path,
                "current": r.current_path,
                "diff": r.diff_image_path,
                "error": r.error,
                "dimensions": {"width": r.width, "height": r.height},
            }
            for r in report.results
        ],
    }


def generate_json_report(
    report: ComparisonReport, config: ArgusConfig, output_path: str | Path
) -> str:
    """Write a machine-readable comparison report and return its path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        json.dump(create_json_report(report, config), f, indent=2, default=str)
    logger.info("JSON report: %s", output_path)
    return str(output_path)


def save_explorer_report(report: ExplorerReport, output_path: str | Path) -> str:
    """Persist an explorer run (page results included) as JSON."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data = {"generated_at": _timestamp(), **report.model_dump(mode="json")}
    with open(output_path, "w") as f:
        json.dump(data, f, indent=2, default=str)
    logger.info("Explorer report: %s", output_path)
    return str(output_path)
