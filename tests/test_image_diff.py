"""Tests for the perceptual pixel diff."""

import numpy as np
import pytest
from PIL import Image

from argus.diff.image_diff import DIFF_COLOR, compare_images, pixel_diff


def _solid(color, size=(4, 4)):
    return np.full((size[1], size[0], 4), color, dtype=np.uint8)


class TestPixelDiff:
    """Tests for pixel_diff."""

    def test_identical(self):
        count, diff = pixel_diff(_solid((10, 20, 30, 255)), _solid((10, 20, 30, 255)))
        assert count == 0
        assert diff.shape == (4, 4, 4)

    def test_changed_pixels_painted_red(self):
        baseline = _solid((255, 255, 255, 255))
        current = baseline.copy()
        current[1, 2] = (0, 0, 0, 255)

        count, diff = pixel_diff(baseline, current)

        assert count == 1
        assert tuple(diff[1, 2]) == DIFF_COLOR
        # unchanged pixels are a faded copy of the baseline
        assert tuple(diff[0, 0]) == (255, 255, 255, 255)

    def test_small_colour_shift_under_threshold(self):
        baseline = _solid((255, 255, 255, 255))
        current = _solid((250, 250, 250, 255))
        assert pixel_diff(baseline, current, threshold=0.1)[0] == 0
        assert pixel_diff(baseline, current, threshold=0.0)[0] == 16

    def test_threshold_one_ignores_everything(self):
        count, _ = pixel_diff(_solid((0, 0, 0, 255)), _solid((255, 255, 255, 255)), threshold=1.0)
        assert count == 0

    def test_transparent_pixels_blend_with_white(self):
        count, _ = pixel_diff(_solid((0, 0, 0, 0)), _solid((255, 255, 255, 255)))
        assert count == 0

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            pixel_diff(_solid((0, 0, 0, 255), (4, 4)), _solid((0, 0, 0, 255), (4, 5)))


class TestCompareImages:
    """Tests for compare_images."""

    def test_identical_passes_without_diff_image(self, tmp_path, png_factory):
        a = png_factory(tmp_path / "a.png")
        b = png_factory(tmp_path / "b.png")
        diff_path = tmp_path / "diff" / "a.png"

        result = compare_images(a, b, diff_path)

        assert result.passed
        assert result.diff_pixels == 0
        assert result.diff_percentage == 0.0
        assert result.total_pixels == 100
        assert (result.width, result.height) == (10, 10)
        assert result.diff_image_path is None
        assert not diff_path.exists()

    def test_difference_above_failure_threshold(self, tmp_path, png_factory):
        a = png_factory(tmp_path / "a.png")
        b = png_factory(tmp_path / "b.png")
        with Image.open(b) as img:
            img = img.copy()
        img.putpixel((3, 3), (0, 0, 0, 255))
        img.save(b)
        diff_path = tmp_path / "diffs" / "nested" / "a.png"

        result = compare_images(a, b, diff_path, failure_threshold=0.5)

        assert result.diff_pixels == 1
        assert result.diff_percentage == pytest.approx(1.0)
        assert not result.passed
        assert result.diff_image_path == str(diff_path)
        with Image.open(diff_path) as diff:
            assert diff.size == (10, 10)
            assert diff.getpixel((3, 3)) == DIFF_COLOR

    def test_difference_within_failure_threshold(self, tmp_path, png_factory):
        a = png_factory(tmp_path / "a.png", size=(100, 100))
        b = png_factory(tmp_path / "b.png", size=(100, 100))
        with Image.open(b) as img:
            img = img.copy()
        img.putpixel((0, 0), (0, 0, 0, 255))
        img.save(b)

        result = compare_images(a, b, failure_threshold=0.1)

        assert result.diff_percentage == pytest.approx(0.01)
        assert result.passed
        assert result.diff_image_path is None

    def test_dimension_mismatch(self, tmp_path, png_factory):
        a = png_factory(tmp_path / "a.png", size=(10, 10))
        b = png_factory(tmp_path / "b.png", size=(10, 12))

        result = compare_images(a, b, tmp_path / "d.png")

        assert not result.passed
        assert result.diff_percentage is None
        assert result.error == "Dimension mismatch: baseline 10x10, current 10x12"
        assert not (tmp_path / "d.png").exists()

    def test_unreadable_image(self, tmp_path, png_factory):
        a = png_factory(tmp_path / "a.png")
        b = tmp_path / "b.png"
        b.write_bytes(b"not a png")

        result = compare_images(a, b)

        assert not result.passed
        assert result.diff_percentage == 100.0
        assert result.error.startswith("Failed to load image")

    def test_missing_file(self, tmp_path, png_factory):
        a = png_factory(tmp_path / "a.png")
        result = compare_images(a, tmp_path / "gone.png")
        assert result.error.startswith("Failed to load image")
