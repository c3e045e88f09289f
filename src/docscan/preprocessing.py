"""Image normalisation ahead of text recognition.

Pipeline
--------
1. Rescale        : shrink so neither side exceeds ``max_dimension``
                    (2000 px by default), keeping the aspect ratio.

2. Grayscale      : per-pixel luminance with the 0.299 / 0.587 / 0.114
                    weights, written back into all three channels.

3. Contrast       : histogram stretch: the darkest pixel maps to 0 and
   stretch          the brightest to 255.  Faded print and dim photographs
                    gain tonal range; an already flat image is returned
                    untouched.

The quality gate (:meth:`PreprocessingPipeline.assess`) scores the
*original* image, never the pipeline output.
"""

from typing import Optional

import numpy as np
from loguru import logger
from PIL import Image

from docscan.quality import QualityAssessment, assess_quality
from docscan.sampling import luminance_array, rgb_array

DEFAULT_MAX_DIMENSION = 2000


def _gray_image(gray: np.ndarray) -> Image.Image:
    gray = gray.astype(np.uint8)
    return Image.fromarray(np.stack([gray, gray, gray], axis=-1))


def to_grayscale(image: Image.Image) -> Image.Image:
    """Return a new RGB image whose three channels all hold the luminance."""
    return _gray_image(luminance_array(image))


def stretch_contrast(image: Image.Image) -> Image.Image:
    """Linearly remap intensities so the observed min/max span 0-255.

    Expects grayscale input: the red channel is read as the luminance.
    A flat image (min == max) is returned as-is.
    """
    red = rgb_array(image)[..., 0].astype(np.int32)
    lo, hi = int(red.min()), int(red.max())
    if hi == lo:
        return image

    lut = np.clip((np.arange(256, dtype=np.int32) - lo) * 255 // (hi - lo), 0, 255)
    return _gray_image(lut[red])


def fit(image: Image.Image, max_dimension: int) -> Image.Image:
    """Downscale so both sides are at most *max_dimension*, keeping the aspect ratio.

    Images already within bounds are returned unchanged.
    """
    if max_dimension <= 0:
        raise ValueError(f"max_dimension must be positive, got {max_dimension}")

    width, height = image.size
    if width <= max_dimension and height <= max_dimension:
        return image

    scale = min(max_dimension / width, max_dimension / height)
    new_size = (
        min(max_dimension, max(1, round(width * scale))),
        min(max_dimension, max(1, round(height * scale))),
    )
    logger.debug(f"Rescaling {width}x{height} -> {new_size[0]}x{new_size[1]}")
    return image.resize(new_size, Image.Resampling.BILINEAR)


class PreprocessingPipeline:
    """Rescale → grayscale → contrast stretch, plus the quality gate."""

    def __init__(self, max_dimension: int = DEFAULT_MAX_DIMENSION) -> None:
        self.max_dimension = max_dimension

    def run(self, image: Image.Image, max_dimension: Optional[int] = None) -> Image.Image:
        image = fit(image, self.max_dimension if max_dimension is None else max_dimension)
        image = to_grayscale(image)
        return stretch_contrast(image)

    def assess(self, image: Image.Image) -> QualityAssessment:
        return assess_quality(image)
