"""Tests for docscan.preprocessing — rescale, grayscale and contrast stretch."""

from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

from docscan.preprocessing import (
    DEFAULT_MAX_DIMENSION,
    PreprocessingPipeline,
    fit,
    stretch_contrast,
    to_grayscale,
)


def _channels_equal(image: Image.Image) -> bool:
    arr = np.asarray(image)
    return bool((arr[..., 0] == arr[..., 1]).all() and (arr[..., 1] == arr[..., 2]).all())


# ── fit() ─────────────────────────────────────────────────────────────────


class TestFit:
    def test_within_bounds_is_unchanged(self):
        image = Image.new("RGB", (1500, 1000))
        assert fit(image, 2000) is image

    def test_exactly_at_bound_is_unchanged(self):
        image = Image.new("RGB", (2000, 2000))
        assert fit(image, 2000) is image

    def test_landscape_is_scaled_by_width(self):
        assert fit(Image.new("RGB", (3000, 1500)), 2000).size == (2000, 1000)

    def test_portrait_is_scaled_by_height(self):
        assert fit(Image.new("RGB", (1200, 4000)), 2000).size == (600, 2000)

    def test_aspect_ratio_is_kept(self):
        width, height = fit(Image.new("RGB", (4032, 3024)), 1000).size
        assert width == 1000
        assert height == 750

    def test_thin_image_keeps_one_pixel(self):
        assert fit(Image.new("RGB", (10000, 1)), 2000).size == (2000, 1)

    @pytest.mark.parametrize("max_dimension", [0, -5])
    def test_rejects_non_positive_bound(self, max_dimension):
        with pytest.raises(ValueError):
            fit(Image.new("RGB", (10, 10)), max_dimension)


# ── to_grayscale() ────────────────────────────────────────────────────────


class TestToGrayscale:
    def test_pure_red(self):
        gray = to_grayscale(Image.new("RGB", (4, 4), color=(255, 0, 0)))
        assert gray.getpixel((0, 0)) == (76, 76, 76)

    def test_output_is_rgb_with_equal_channels(self):
        rng = np.random.default_rng(0)
        image = Image.fromarray(rng.integers(0, 256, (20, 30, 3), dtype=np.uint8))
        gray = to_grayscale(image)
        assert gray.mode == "RGB"
        assert gray.size == (30, 20)
        assert _channels_equal(gray)

    def test_idempotent(self):
        rng = np.random.default_rng(1)
        image = Image.fromarray(rng.integers(0, 256, (20, 30, 3), dtype=np.uint8))
        once = to_grayscale(image)
        twice = to_grayscale(once)
        np.testing.assert_array_equal(np.asarray(once), np.asarray(twice))

    def test_returns_new_image(self, gray_image):
        assert to_grayscale(gray_image) is not gray_image


# ── stretch_contrast() ────────────────────────────────────────────────────


class TestStretchContrast:
    def test_flat_image_returned_as_is(self, gray_image):
        assert stretch_contrast(gray_image) is gray_image

    def test_range_expands_to_full_scale(self):
        plane = np.array([[100, 125, 150]], dtype=np.uint8)
        image = Image.fromarray(np.stack([plane] * 3, axis=-1))
        stretched = np.asarray(stretch_contrast(image))[..., 0]
        assert stretched.tolist() == [[0, 127, 255]]

    def test_full_range_is_identity(self):
        plane = np.arange(256, dtype=np.uint8).reshape(16, 16)
        image = Image.fromarray(np.stack([plane] * 3, axis=-1))
        np.testing.assert_array_equal(np.asarray(stretch_contrast(image)), np.asarray(image))


# ── PreprocessingPipeline ─────────────────────────────────────────────────


class TestPipeline:
    def test_default_bound(self):
        assert PreprocessingPipeline().max_dimension == DEFAULT_MAX_DIMENSION == 2000

    def test_large_flat_image(self):
        image = Image.new("RGB", (3000, 3000), color=(128, 128, 128))
        out = PreprocessingPipeline().run(image)
        assert out.size == (2000, 2000)
        arr = np.asarray(out)
        assert arr.min() == arr.max()
        assert _channels_equal(out)

    def test_output_spans_full_range(self):
        plane = np.tile(np.linspace(60, 180, 50).astype(np.uint8), (40, 1))
        image = Image.fromarray(np.stack([plane] * 3, axis=-1))
        arr = np.asarray(PreprocessingPipeline().run(image))
        assert arr.min() == 0
        assert arr.max() == 255

    def test_per_run_bound_overrides_default(self):
        image = Image.new("RGB", (800, 400), color=(10, 20, 30))
        out = PreprocessingPipeline(max_dimension=2000).run(image, max_dimension=400)
        assert out.size == (400, 200)

    def test_explicit_zero_bound_is_not_replaced_by_default(self):
        with pytest.raises(ValueError):
            PreprocessingPipeline().run(Image.new("RGB", (3000, 100)), max_dimension=0)

    def test_stage_order(self):
        image = Image.new("RGB", (10, 10))
        calls = []
        with patch("docscan.preprocessing.fit", side_effect=lambda img, m: calls.append("fit") or img), \
             patch("docscan.preprocessing.to_grayscale", side_effect=lambda img: calls.append("gray") or img), \
             patch("docscan.preprocessing.stretch_contrast", side_effect=lambda img: calls.append("stretch") or img):
            PreprocessingPipeline().run(image)
        assert calls == ["fit", "gray", "stretch"]

    def test_assess_scores_the_original(self, sharp_image):
        quality = PreprocessingPipeline().assess(sharp_image)
        assert quality.resolution_pixels == 600_000
        assert quality.acceptable
