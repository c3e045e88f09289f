"""Luminance access for camera frames and decoded images.

Camera frames arrive as a planar luminance buffer plus stride metadata
from the capture layer.  The strides are untrusted: a row may be padded
well beyond ``width`` bytes and samples may be interleaved, so every
offset is computed as ``y * row_stride + x * pixel_stride`` and checked
against the real buffer capacity before it is read.  Nothing here ever
assumes ``row_stride == width``.

Decoded images (Pillow ``Image`` objects) are read through
:func:`rgb_array` / :func:`luminance_array`, which apply the integer
weights ``(299 R + 587 G + 114 B) // 1000``.  That is the truncated
``0.299 / 0.587 / 0.114`` sum, and exact for gray pixels.
"""

import numpy as np
from PIL import Image

from docscan.errors import OutOfBounds

LUMA_WEIGHTS = (299, 587, 114)


class PlanarLuminanceView:
    """Read-only, non-owning view over one luminance plane.

    *buffer* is anything exposing the buffer protocol as bytes: ``bytes``,
    ``bytearray``, ``memoryview`` or a contiguous ``uint8`` NumPy array.
    """

    def __init__(
        self,
        buffer,
        row_stride: int,
        pixel_stride: int,
        width: int,
        height: int,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid frame size {width}x{height}")
        if row_stride <= 0 or pixel_stride <= 0:
            raise ValueError(
                f"Strides must be positive (row_stride={row_stride}, pixel_stride={pixel_stride})"
            )
        self._data = np.frombuffer(buffer, dtype=np.uint8)
        self.row_stride = row_stride
        self.pixel_stride = pixel_stride
        self.width = width
        self.height = height

    @property
    def capacity(self) -> int:
        return int(self._data.size)

    def offset(self, x: int, y: int) -> int:
        return y * self.row_stride + x * self.pixel_stride

    def sample(self, x: int, y: int) -> int:
        """Return the luminance byte at (*x*, *y*).

        Raises :class:`OutOfBounds` when the coordinates fall outside the view
        or the computed offset falls outside the buffer.
        """
        offset = self.offset(x, y)
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise OutOfBounds(
                offset,
                self.capacity,
                f"Pixel ({x}, {y}) outside {self.width}x{self.height} view",
            )
        if offset >= self.capacity:
            raise OutOfBounds(offset, self.capacity)
        return int(self._data[offset])

    def _offsets(self, step: int) -> np.ndarray:
        if step <= 0:
            raise ValueError(f"step must be positive, got {step}")
        ys = np.arange(0, self.height, step, dtype=np.int64)
        xs = np.arange(0, self.width, step, dtype=np.int64)
        return ys[:, None] * self.row_stride + xs[None, :] * self.pixel_stride

    def luminance_grid(self, step: int = 1) -> np.ndarray:
        """Return every *step*-th row and column as a 2-D ``uint8`` array.

        Offsets grow with both x and y, so checking the last one covers every
        access; a single bad offset raises :class:`OutOfBounds` for the whole grid.
        """
        offsets = self._offsets(step)
        last = int(offsets[-1, -1])
        if last >= self.capacity:
            raise OutOfBounds(last, self.capacity)
        return self._data[offsets]

    def sampled_values(self, step: int) -> np.ndarray:
        """Return the grid samples whose offsets lie inside the buffer, flattened.

        Offsets past the end of the buffer are skipped rather than raised.
        """
        offsets = self._offsets(step)
        return self._data[offsets[offsets < self.capacity]]

    def to_image(self) -> Image.Image:
        """Copy the plane into a tightly packed grayscale Pillow image."""
        return Image.fromarray(self.luminance_grid())


def rgb_array(image: Image.Image) -> np.ndarray:
    """Return the image as an ``(h, w, 3)`` ``uint8`` array."""
    if image.mode == "L":
        gray = np.asarray(image, dtype=np.uint8)
        return np.stack([gray, gray, gray], axis=-1)
    if image.mode != "RGB":
        image = image.convert("RGB")
    return np.asarray(image, dtype=np.uint8)


def luminance_of(rgb: np.ndarray) -> np.ndarray:
    """Integer luminance of an ``(..., 3)`` RGB array, as ``int32``."""
    r, g, b = (rgb[..., i].astype(np.int32) for i in range(3))
    wr, wg, wb = LUMA_WEIGHTS
    return (wr * r + wg * g + wb * b) // 1000


def luminance_array(image: Image.Image) -> np.ndarray:
    """Per-pixel luminance of a Pillow image as an ``(h, w)`` ``int32`` array."""
    if image.mode == "L":
        return np.asarray(image, dtype=np.int32)
    return luminance_of(rgb_array(image))
