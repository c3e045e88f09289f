"""Image-quality scoring: lighting, brightness and sharpness.

Two flavours of brightness live here.  :func:`detect_lighting` runs on
every live camera frame and only has to drive a "turn on the flash" hint,
so it favours availability: it samples a coarse grid of the luminance
plane and falls back to ``GOOD`` on anything odd rather than raising.
:func:`brightness_score` runs once on a captured image and feeds the
quality gate in :func:`assess_quality`.

Sharpness is the mean absolute discrete Laplacian over a 100×100 window
in the centre of the image.  A flat or defocused image has almost no
second-derivative response, crisp text spikes it.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np
from loguru import logger
from PIL import Image

from docscan.sampling import PlanarLuminanceView, luminance_array, luminance_of, rgb_array

# Live-preview lighting thresholds, 0-255 luminance scale
VERY_LOW_LIGHT_THRESHOLD = 30.0
LOW_LIGHT_THRESHOLD = 60.0
LIGHTING_SAMPLE_STEP = 8

BRIGHTNESS_SAMPLE_STEP = 10

SHARPNESS_WINDOW = 100
SHARPNESS_NORMALIZER = 50.0

# Quality gate
VERY_BLURRY = 0.3
SLIGHTLY_BLURRY = 0.6
TOO_DARK = 0.3
OVEREXPOSED = 0.9
MIN_RESOLUTION = 500_000
ACCEPTABLE_BRIGHTNESS = (0.2, 0.95)


class LightingCondition(str, Enum):
    GOOD = "good"
    LOW = "low"
    VERY_LOW = "very_low"


# ── Brightness ─────────────────────────────────────────────────────────────


def detect_lighting(
    view: PlanarLuminanceView, sample_step: int = LIGHTING_SAMPLE_STEP
) -> LightingCondition:
    """Classify the lighting of a live frame from a grid of luminance samples.

    Samples whose offset falls past the end of the buffer are skipped.  With
    no usable samples, or on any error, returns ``GOOD`` so a malformed frame
    never raises a false low-light warning.
    """
    try:
        samples = view.sampled_values(sample_step)
        if samples.size == 0:
            return LightingCondition.GOOD
        brightness = float(samples.mean())
    except Exception as e:
        logger.warning(f"Lighting detection failed, assuming good lighting: {e}")
        return LightingCondition.GOOD

    if brightness < VERY_LOW_LIGHT_THRESHOLD:
        return LightingCondition.VERY_LOW
    if brightness < LOW_LIGHT_THRESHOLD:
        return LightingCondition.LOW
    return LightingCondition.GOOD


def brightness_score(image: Image.Image) -> float:
    """Mean luminance of every 10th pixel in both axes, scaled to [0, 1]."""
    if image.mode == "L":
        samples = np.asarray(image, dtype=np.int32)[::BRIGHTNESS_SAMPLE_STEP, ::BRIGHTNESS_SAMPLE_STEP]
    else:
        rgb = rgb_array(image)[::BRIGHTNESS_SAMPLE_STEP, ::BRIGHTNESS_SAMPLE_STEP]
        samples = luminance_of(rgb)
    if samples.size == 0:
        return 128 / 255.0
    return float(samples.mean()) / 255.0


# ── Sharpness ──────────────────────────────────────────────────────────────


def sharpness_score(image: Image.Image) -> float:
    """Blur score in [0, 1]: 0 is flat or blurry, 1 is sharp.

    Border pixels are never stencil centres, so the Laplacian needs no
    boundary handling.
    """
    width, height = image.size
    half = SHARPNESS_WINDOW // 2
    cx, cy = width // 2, height // 2

    x0, x1 = max(1, cx - half), min(width - 1, cx + half)
    y0, y1 = max(1, cy - half), min(height - 1, cy + half)
    if x1 <= x0 or y1 <= y0:
        return 0.0

    # One pixel of context on every side of the window.
    lum = luminance_array(image.crop((x0 - 1, y0 - 1, x1 + 1, y1 + 1)))
    center = lum[1:-1, 1:-1]
    laplacian = np.abs(
        4 * center - lum[:-2, 1:-1] - lum[2:, 1:-1] - lum[1:-1, :-2] - lum[1:-1, 2:]
    )
    return float(np.clip(laplacian.mean() / SHARPNESS_NORMALIZER, 0.0, 1.0))


# ── Assessment ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class QualityAssessment:
    acceptable: bool
    blur_score: float
    brightness_score: float
    resolution_pixels: int
    warnings: tuple[str, ...] = ()

    @property
    def needs_preprocessing(self) -> bool:
        return self.brightness_score < 0.5 or self.blur_score < SLIGHTLY_BLURRY

    @property
    def description(self) -> str:
        if not self.acceptable:
            return "Poor quality - may affect recognition accuracy"
        if self.blur_score < SLIGHTLY_BLURRY:
            return "Image appears blurry"
        if self.brightness_score < 0.5:
            return "Image is too dark"
        return "Good quality"


def assess_quality(image: Image.Image) -> QualityAssessment:
    """Score an image and derive its advisory warnings and acceptability.

    Warnings and acceptability are independent: a low-resolution image gets a
    warning but can still be acceptable.
    """
    blur = sharpness_score(image)
    brightness = brightness_score(image)
    resolution = image.width * image.height
    warnings: list[str] = []

    if resolution == 0:
        warnings.append("Image is empty")

    if blur < VERY_BLURRY:
        warnings.append("Image is very blurry")
    elif blur < SLIGHTLY_BLURRY:
        warnings.append("Image may be slightly blurry")

    if brightness < TOO_DARK:
        warnings.append("Image is too dark")
    elif brightness > OVEREXPOSED:
        warnings.append("Image may be overexposed")

    if resolution < MIN_RESOLUTION:
        warnings.append("Image has low resolution")

    low, high = ACCEPTABLE_BRIGHTNESS
    acceptable = blur >= VERY_BLURRY and low <= brightness <= high

    logger.debug(
        f"Quality: blur={blur:.2f} brightness={brightness:.2f} "
        f"resolution={resolution} acceptable={acceptable}"
    )
    return QualityAssessment(
        acceptable=acceptable,
        blur_score=blur,
        brightness_score=brightness,
        resolution_pixels=resolution,
        warnings=tuple(warnings),
    )
