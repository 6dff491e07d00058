"""Comparison engine: pairs baseline and current screenshot trees and diffs them."""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Callable, Optional

from argus.diff.image_diff import compare_images
from argus.models.comparison import ApprovalResult, ComparisonReport, ComparisonResult
from argus.models.config import ArgusConfig, ThresholdConfig

logger = logging.getLogger(__name__)

ComparisonProgressCallback = Callable[[int, int, ComparisonResult], None]


def get_png_files(directory: str | Path) -> list[Path]:
    """All PNG files under ``directory``, relative to it. Missing dir -> []."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(p.relative_to(directory) for p in directory.rglob("*.png") if p.is_file())


def _classify(error: Optional[str], passed: bool) -> str:
    if error:
        return "error"
    return "passed" if passed else "failed"


def compare_directories(
    baseline_dir: str | Path,
    current_dir: str | Path,
    diff_dir: str | Path,
    threshold: Optional[ThresholdConfig] = None,
    on_progress: Optional[ComparisonProgressCallback] = None,
) -> ComparisonReport:
    """Compare every screenshot identity found in either tree."""
    start = time.time()
    threshold = threshold or ThresholdConfig()
    baseline_dir, current_dir, diff_dir = Path(baseline_dir), Path(current_dir), Path(diff_dir)

    baseline_set = set(get_png_files(baseline_dir))
    current_set = set(get_png_files(current_dir))
    all_files = sorted(baseline_set | current_set)
    total = len(all_files)
    logger.info("Comparing %d screenshots (%d baselines, %d current)",
                total, len(baseline_set), len(current_set))

    results: list[ComparisonResult] = []
    for index, relative in enumerate(all_files, 1):
        baseline_path = baseline_dir / relative
        current_path = current_dir / relative
        common = {
            "name": relative.stem,
            "baseline_path": str(baseline_path),
            "current_path": str(current_path),
        }

        if relative not in baseline_set:
            result = ComparisonResult(**common, status="new")
        elif relative not in current_set:
            result = ComparisonResult(**common, status="missing")
        else:
            diff = compare_images(
                baseline_path,
                current_path,
                diff_dir / relative,
                failure_threshold=threshold.failure_threshold,
                threshold=threshold.pixel,
            )
            result = ComparisonResult(
                **common,
                status=_classify(diff.error, diff.passed),
                **diff.model_dump(),
            )

        logger.debug("%s: %s", relative, result.status)
        results.append(result)
        if on_progress:
            on_progress(index, total, result)

    statuses = [r.status for r in results]
    return ComparisonReport(
        total=total,
        passed=statuses.count("passed"),
        failed=statuses.count("failed"),
        new=statuses.count("new"),
        missing=statuses.count("missing"),
        errors=statuses.count("error"),
        results=results,
        duration_ms=int((time.time() - start) * 1000),
    )


def run_comparison(
    config: ArgusConfig, on_progress: Optional[ComparisonProgressCallback] = None
) -> ComparisonReport:
    return compare_directories(
        config.baselines_dir,
        config.current_dir,
        config.diffs_dir,
        threshold=config.threshold,
        on_progress=on_progress,
    )


def approve_screenshots(
    config: ArgusConfig, filters: Optional[list[str]] = None
) -> ApprovalResult:
    """Promote current screenshots to baselines.

    ``filters`` are case-insensitive substrings of the screenshot name; with no
    filters every current screenshot is approved. Stale diff images for the
    approved screenshots are deleted.
    """
    lowered = [f.lower() for f in filters or []]
    result = ApprovalResult()

    for relative in get_png_files(config.current_dir):
        name = relative.stem
        if lowered and not any(f in name.lower() for f in lowered):
            result.skipped.append(name)
            continue

        baseline_path = config.baselines_dir / relative
        baseline_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(config.current_dir / relative, baseline_path)
        (config.diffs_dir / relative).unlink(missing_ok=True)
        result.approved.append(name)

    logger.info("Approved %d screenshots, skipped %d", len(result.approved), len(result.skipped))
    return result


def cleanup_comparison(config: ArgusConfig) -> None:
    """Remove the current and diff trees, keeping baselines."""
    for directory in (config.current_dir, config.diffs_dir):
        shutil.rmtree(directory, ignore_errors=True)


def promote_new_screenshots(report: ComparisonReport) -> list[str]:
    """Copy every ``new`` screenshot of ``report`` into the baseline tree."""
    promoted: list[str] = []
    for result in report.results:
        if result.status != "new":
            continue
        baseline_path = Path(result.baseline_path)
        baseline_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(result.current_path, baseline_path)
        promoted.append(result.name)
    if promoted:
        logger.info("Promoted %d new screenshots to baselines", len(promoted))
    return promoted
