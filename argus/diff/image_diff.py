"""Pixel diff: perceptual per-pixel comparison of two equally-sized images.

Colour distance is measured in YIQ space, weighted the way the human eye is
most sensitive to brightness, and compared against ``35215 * threshold**2``
(35215 being the largest possible YIQ delta). ``threshold`` therefore ranges
from 0 (any change counts) to 1 (nothing counts), 0.1 being a sensible default.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from argus.models.comparison import DiffResult

logger = logging.getLogger(__name__)

MAX_YIQ_DELTA = 35215.0
DIFF_COLOR = (255, 0, 0, 255)
DIFF_FADE_ALPHA = 0.1


def _blend_white(rgba: np.ndarray) -> np.ndarray:
    """Composite an RGBA array over white, returning float RGB."""
    rgb = rgba[..., :3].astype(np.float64)
    alpha = rgba[..., 3:4].astype(np.float64) / 255.0
    return 255.0 + (rgb - 255.0) * alpha


def _yiq(rgb: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    y = r * 0.29889531 + g * 0.58662247 + b * 0.11448223
    i = r * 0.59597799 - g * 0.27417610 - b * 0.32180189
    q = r * 0.21147017 - g * 0.52261711 + b * 0.31114694
    return y, i, q


def pixel_diff(
    baseline: np.ndarray, current: np.ndarray, threshold: float = 0.1
) -> tuple[int, np.ndarray]:
    """Count differing pixels between two ``(H, W, 4)`` uint8 arrays.

    Returns the count and an RGBA diff image: the baseline as faded
    grayscale, with differing pixels painted red.
    """
    if baseline.shape != current.shape:
        raise ValueError(f"Image shapes differ: {baseline.shape} vs {current.shape}")

    base_rgb = _blend_white(baseline)
    curr_rgb = _blend_white(current)

    y1, i1, q1 = _yiq(base_rgb)
    y2, i2, q2 = _yiq(curr_rgb)
    delta = 0.5053 * (y1 - y2) ** 2 + 0.299 * (i1 - i2) ** 2 + 0.1957 * (q1 - q2) ** 2

    mask = delta > MAX_YIQ_DELTA * threshold * threshold
    diff_count = int(mask.sum())

    gray = 255.0 + (y1 - 255.0) * DIFF_FADE_ALPHA
    gray = np.clip(gray, 0, 255).astype(np.uint8)
    diff_image = np.empty(baseline.shape[:2] + (4,), dtype=np.uint8)
    diff_image[..., 0] = gray
    diff_image[..., 1] = gray
    diff_image[..., 2] = gray
    diff_image[..., 3] = 255
    diff_image[mask] = DIFF_COLOR

    return diff_count, diff_image


def _load_rgba(path: str | Path) -> np.ndarray:
    with Image.open(path) as img:
        return np.asarray(img.convert("RGBA"))


def compare_images(
    baseline_path: str | Path,
    current_path: str | Path,
    diff_path: Optional[str | Path] = None,
    failure_threshold: float = 0.1,
    threshold: float = 0.1,
) -> DiffResult:
    """Compare two PNG files and optionally write a diff image.

    Args:
        diff_path: Where to write the diff PNG. Only written if pixels differ.
        failure_threshold: Highest passing percentage of differing pixels (0-100).
        threshold: Per-pixel colour sensitivity (0-1).
    """
    try:
        baseline = _load_rgba(baseline_path)
        current = _load_rgba(current_path)
    except (OSError, UnidentifiedImageError) as e:
        logger.debug("Failed to load images %s / %s: %s", baseline_path, current_path, e)
        return DiffResult(diff_percentage=100.0, passed=False, error=f"Failed to load image: {e}")

    height, width = baseline.shape[:2]
    if baseline.shape != current.shape:
        ch, cw = current.shape[:2]
        return DiffResult(
            diff_percentage=None,
            passed=False,
            width=width,
            height=height,
            error=f"Dimension mismatch: baseline {width}x{height}, current {cw}x{ch}",
        )

    diff_pixels, diff_image = pixel_diff(baseline, current, threshold)
    total_pixels = width * height
    diff_percentage = (diff_pixels / total_pixels) * 100 if total_pixels else 0.0

    diff_image_path = None
    if diff_path is not None and diff_pixels > 0:
        diff_path = Path(diff_path)
        diff_path.parent.mkdir(parents=True, exist_ok=True)
        Image.fromarray(diff_image).save(diff_path)
        diff_image_path = str(diff_path)

    return DiffResult(
        diff_pixels=diff_pixels,
        total_pixels=total_pixels,
        diff_percentage=diff_percentage,
        passed=diff_percentage <= failure_threshold,
        diff_image_path=diff_image_path,
        width=width,
        height=height,
    )
