"""JUnit XML output, for CI systems that render test results."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path

from argus.models.comparison import ComparisonReport, ComparisonResult
from argus.models.config import ArgusConfig

logger = logging.getLogger(__name__)

SUITES_NAME = "Argus Visual Regression"
SUITE_NAME = "Visual Comparisons"
TESTCASE_CLASSNAME = "argus.visual"


def _format_pct(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.4f}%"


def _add_outcome(testcase: ET.Element, result: ComparisonResult) -> None:
    match result.status:
        case "failed":
            failure = ET.SubElement(testcase, "failure", {
                "message": f"Visual difference detected: {_format_pct(result.diff_percentage)}",
                "type": "VisualDiff",
            })
            failure.text = (
                f"Baseline: {result.baseline_path}\n"
                f"Current: {result.current_path}\n"
                f"Diff: {_format_pct(result.diff_percentage)}"
            )
            if result.diff_image_path:
                failure.text += f"\nDiff image: {result.diff_image_path}"
        case "error":
            message = result.error or "Unknown error"
            error = ET.SubElement(testcase, "error", {"message": message, "type": "Error"})
            error.text = message
        case "new":
            ET.SubElement(testcase, "skipped", {"message": "No baseline image found"})
        case "missing":
            ET.SubElement(testcase, "skipped", {"message": "Current screenshot missing"})


def create_junit_xml(report: ComparisonReport, config: ArgusConfig) -> str:
    duration = f"{report.duration_ms / 1000:.3f}"
    counts = {
        "tests": str(report.total),
        "failures": str(report.failed),
        "errors": str(report.errors),
        "skipped": str(report.new + report.missing),
        "time": duration,
    }

    suites = ET.Element("testsuites", {"name": SUITES_NAME, **counts})
    suite = ET.SubElement(suites, "testsuite", {
        "name": SUITE_NAME,
        **counts,
        "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S"),
    })
    properties = ET.SubElement(suite, "properties")
    ET.SubElement(properties, "property", {"name": "base_url", "value": config.base_url})
    ET.SubElement(properties, "property", {"name": "browser", "value": config.browser})

    for result in report.results:
        # per-comparison timings are not tracked
        testcase = ET.SubElement(suite, "testcase", {
            "name": result.name,
            "classname": TESTCASE_CLASSNAME,
            "time": "0.001",
        })
        _add_outcome(testcase, result)

    ET.indent(suites)
    return ET.tostring(suites, encoding="unicode", xml_declaration=True)


def generate_junit_report(
    report: ComparisonReport, config: ArgusConfig, output_path: str | Path
) -> str:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(create_junit_xml(report, config), encoding="utf-8")
    logger.info("JUnit report: %s", output_path)
    return str(output_path)
