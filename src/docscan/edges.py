"""Coarse document-boundary detection for the live camera preview.

The detector trades precision for speed so it can keep up with preview
frames:

1. Downsample the luminance 4× by averaging 4×4 blocks.
2. Mark a pixel as an edge when its luminance differs by more than 50
   from its right or lower neighbour.
3. Read the edge map on a 10-pixel grid and take the bounding box of the
   edge points found there.
4. Reject boxes covering less than 10 % or more than 90 % of the frame;
   those are noise or background, not a page.
5. Pad the box by 20 px (clamped to the frame) and scale it back up.

The confidence attached to the result is a fixed heuristic, not a
calibrated probability.  Treat it only as a coarse reliability flag.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
from loguru import logger
from PIL import Image

from docscan.sampling import PlanarLuminanceView, luminance_array

DOWNSAMPLE_FACTOR = 4
EDGE_THRESHOLD = 50
GRID_STEP = 10
MIN_AREA_RATIO = 0.1
MAX_AREA_RATIO = 0.9
MARGIN = 20.0
DETECTION_CONFIDENCE = 0.7
RELIABLE_CONFIDENCE = 0.5


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def scaled(self, factor: float) -> "Point":
        return Point(self.x * factor, self.y * factor)


@dataclass(frozen=True)
class DocumentCorners:
    top_left: Point
    top_right: Point
    bottom_right: Point
    bottom_left: Point
    confidence: float = 0.0

    @property
    def is_reliable(self) -> bool:
        return self.confidence > RELIABLE_CONFIDENCE

    @property
    def area(self) -> float:
        """Mean width times mean height of the quadrilateral."""
        width = (self.top_left.distance_to(self.top_right)
                 + self.bottom_left.distance_to(self.bottom_right)) / 2
        height = (self.top_left.distance_to(self.bottom_left)
                  + self.top_right.distance_to(self.bottom_right)) / 2
        return width * height

    def points(self) -> tuple[Point, Point, Point, Point]:
        return (self.top_left, self.top_right, self.bottom_right, self.bottom_left)

    def scaled(self, factor: float) -> "DocumentCorners":
        return DocumentCorners(
            top_left=self.top_left.scaled(factor),
            top_right=self.top_right.scaled(factor),
            bottom_right=self.bottom_right.scaled(factor),
            bottom_left=self.bottom_left.scaled(factor),
            confidence=self.confidence,
        )


def _downsample(gray: np.ndarray, factor: int) -> np.ndarray:
    h, w = gray.shape[0] // factor, gray.shape[1] // factor
    blocks = gray[: h * factor, : w * factor].reshape(h, factor, w, factor)
    return blocks.mean(axis=(1, 3), dtype=np.float32).astype(np.int32)


def _edge_map(gray: np.ndarray) -> np.ndarray:
    """Boolean edge map; the outermost rows and columns are never edges."""
    edges = np.zeros(gray.shape, dtype=bool)
    if gray.shape[0] < 3 or gray.shape[1] < 3:
        return edges
    center = gray[1:-1, 1:-1]
    gradient_x = np.abs(center - gray[1:-1, 2:])
    gradient_y = np.abs(center - gray[2:, 1:-1])
    edges[1:-1, 1:-1] = np.maximum(gradient_x, gradient_y) > EDGE_THRESHOLD
    return edges


def _bounding_corners(edges: np.ndarray) -> Optional[DocumentCorners]:
    height, width = edges.shape
    ys, xs = np.nonzero(edges[::GRID_STEP, ::GRID_STEP])
    if xs.size == 0:
        return None

    min_x, max_x = float(xs.min() * GRID_STEP), float(xs.max() * GRID_STEP)
    min_y, max_y = float(ys.min() * GRID_STEP), float(ys.max() * GRID_STEP)

    area_ratio = (max_x - min_x) * (max_y - min_y) / (width * height)
    if area_ratio < MIN_AREA_RATIO or area_ratio > MAX_AREA_RATIO:
        logger.debug(f"Rejected edge box with area ratio {area_ratio:.2f}")
        return None

    left, top = max(0.0, min_x - MARGIN), max(0.0, min_y - MARGIN)
    right, bottom = min(float(width), max_x + MARGIN), min(float(height), max_y + MARGIN)
    return DocumentCorners(
        top_left=Point(left, top),
        top_right=Point(right, top),
        bottom_right=Point(right, bottom),
        bottom_left=Point(left, bottom),
        confidence=DETECTION_CONFIDENCE,
    )


def _detect_luminance(gray: np.ndarray) -> Optional[DocumentCorners]:
    small = _downsample(gray, DOWNSAMPLE_FACTOR)
    if small.size == 0:
        return None
    corners = _bounding_corners(_edge_map(small))
    if corners is None:
        return None
    return corners.scaled(DOWNSAMPLE_FACTOR)


def detect_document(frame: PlanarLuminanceView) -> Optional[DocumentCorners]:
    """Detect a document in a live frame, or return ``None``.

    Any failure, including bad stride metadata, yields ``None`` so the
    preview overlay simply disappears for that frame.
    """
    try:
        return _detect_luminance(frame.luminance_grid().astype(np.int32))
    except Exception as e:
        logger.error(f"Error detecting document edges: {e}")
        return None


def detect_document_in_image(image: Image.Image) -> Optional[DocumentCorners]:
    """Same detection on a decoded image, in that image's pixel coordinates."""
    return _detect_luminance(luminance_array(image))
