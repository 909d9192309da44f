"""Rasterizer: decode a photo and fit it into the fixed working canvas.

The source image is scaled uniformly to fit, centered, and drawn onto a
cleared RGB canvas. Canvas area outside the drawn image stays black.
"""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import numpy as np
from PIL import Image, ImageOps

from hydrocolor.analysis.errors import DecodeError

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from hydrocolor.analysis.palette import RGB

logger = logging.getLogger(__name__)

CANVAS_WIDTH: int = 520
CANVAS_HEIGHT: int = 360
DEFAULT_MAX_IMAGE_PIXELS: int = 50_000_000


@dataclass(frozen=True)
class PixelBuffer:
    """HxWx3 RGB uint8 pixel data, row-major and C-contiguous."""

    pixels: NDArray[np.uint8]

    def __post_init__(self) -> None:
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 3:
            raise ValueError(f"Expected an HxWx3 array, got shape {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {self.pixels.dtype}")
        object.__setattr__(self, "pixels", np.ascontiguousarray(self.pixels))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def stride(self) -> int:
        """Bytes per row."""
        return int(self.pixels.strides[0])

    @classmethod
    def filled(cls, width: int, height: int, color: RGB) -> PixelBuffer:
        """Create a buffer with every pixel set to ``color``."""
        pixels = np.empty((height, width, 3), dtype=np.uint8)
        pixels[:, :] = color
        return cls(pixels)


class ImageDecoder(Protocol):
    """Capability for turning encoded image bytes into a working canvas."""

    def decode_and_resize(self, image_bytes: bytes, target_width: int, target_height: int) -> PixelBuffer:
        """Decode ``image_bytes`` and composite it into a canvas of the target size.

        Args:
            image_bytes: Raw file bytes (any supported format).
            target_width: Canvas width in pixels.
            target_height: Canvas height in pixels.

        Returns:
            A ``target_height`` x ``target_width`` pixel buffer.

        Raises:
            DecodeError: If the bytes cannot be decoded as an image.
        """
        ...


def fit_geometry(natural_width: int, natural_height: int, target_width: int, target_height: int) -> tuple[int, int, int, int]:
    """Return ``(dx, dy, dw, dh)`` placing a scaled-to-fit image centered on the canvas."""
    scale = min(target_width / natural_width, target_height / natural_height)
    dw = math.floor(natural_width * scale)
    dh = math.floor(natural_height * scale)
    dx = (target_width - dw) // 2
    dy = (target_height - dh) // 2
    return dx, dy, dw, dh


def _drawable(image: Image.Image) -> Image.Image:
    """Convert to 8-bit RGB, or RGBA when the source carries transparency."""
    if image.mode.startswith("I"):
        # 16-bit grayscale keeps its high byte, as a browser canvas does.
        wide = np.asarray(image, dtype=np.int64)
        return Image.fromarray(np.clip(wide >> 8, 0, 255).astype(np.uint8)).convert("RGB")
    if image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info:
        return image.convert("RGBA")
    return image.convert("RGB")


def composite(image: Image.Image, target_width: int, target_height: int) -> PixelBuffer:
    """Draw ``image`` scaled-to-fit and centered onto a cleared black canvas.

    Transparent source pixels leave the canvas black.
    """
    dx, dy, dw, dh = fit_geometry(image.width, image.height, target_width, target_height)
    with Image.new("RGB", (target_width, target_height)) as canvas:
        if dw > 0 and dh > 0:
            with _drawable(image).resize((dw, dh), Image.Resampling.BILINEAR) as scaled:
                mask = scaled.getchannel("A") if scaled.mode == "RGBA" else None
                canvas.paste(scaled.convert("RGB"), (dx, dy), mask)
        return PixelBuffer(np.array(canvas, dtype=np.uint8))


class PillowImageDecoder:
    """ImageDecoder backed by Pillow."""

    def __init__(self, max_image_pixels: int = DEFAULT_MAX_IMAGE_PIXELS) -> None:
        self._max_image_pixels = max_image_pixels

    def decode_and_resize(self, image_bytes: bytes, target_width: int, target_height: int) -> PixelBuffer:
        """Decode with Pillow, honoring EXIF orientation, and composite onto the canvas.

        The opened image is closed on every exit path, including errors.
        """
        try:
            with Image.open(io.BytesIO(image_bytes)) as source:
                width, height = source.size
                if width <= 0 or height <= 0:
                    raise DecodeError(f"Image has no pixels ({width}x{height})")
                if width * height > self._max_image_pixels:
                    raise DecodeError(f"Image too large: {width}x{height} exceeds {self._max_image_pixels} pixels")
                with ImageOps.exif_transpose(source) as oriented:
                    buffer = composite(oriented, target_width, target_height)
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
            raise DecodeError(f"Could not decode image: {exc}") from exc

        logger.debug("Decoded %dx%d image onto %dx%d canvas", width, height, target_width, target_height)
        return buffer


def normalize(
    image_bytes: bytes,
    decoder: ImageDecoder | None = None,
    *,
    width: int = CANVAS_WIDTH,
    height: int = CANVAS_HEIGHT,
) -> PixelBuffer:
    """Decode ``image_bytes`` into a ``width`` x ``height`` working canvas.

    Raises:
        DecodeError: If the bytes cannot be decoded as an image.
    """
    if decoder is None:
        decoder = PillowImageDecoder()
    return decoder.decode_and_resize(image_bytes, width, height)
