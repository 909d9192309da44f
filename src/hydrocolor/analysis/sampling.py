"""Center-region sampling: pixel filtering and trimmed-mean color estimation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from hydrocolor.analysis.errors import InsufficientSamplesError, RejectionCounts
from hydrocolor.analysis.matching import CONFIDENCE_SCALE

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from hydrocolor.analysis.rasterizer import PixelBuffer


@dataclass(frozen=True)
class ClassifierParams:
    """Empirically tuned thresholds. Defaults must stay as they are."""

    glare_brightness: float = 245.0
    shadow_brightness: float = 25.0
    highlight_brightness: float = 220.0
    highlight_saturation: float = 0.08
    trim_fraction: float = 0.15
    min_usable_pixels: int = 50
    confidence_scale: float = CONFIDENCE_SCALE


DEFAULT_PARAMS = ClassifierParams()


@dataclass(frozen=True)
class SamplingRegion:
    """Centered square sub-area of the working canvas."""

    x: int
    y: int
    size: int

    @property
    def pixel_count(self) -> int:
        return self.size * self.size

    @classmethod
    def centered(cls, canvas_width: int, canvas_height: int, requested_size: int) -> SamplingRegion:
        """Clamp ``requested_size`` to the canvas and center the square."""
        size = max(0, min(requested_size, canvas_width, canvas_height))
        return cls(
            x=(canvas_width - size) // 2,
            y=(canvas_height - size) // 2,
            size=size,
        )


@dataclass(frozen=True)
class UsablePixels:
    """Pixels that survived filtering, plus what the filters removed."""

    rgb: NDArray[np.int64]
    brightness: NDArray[np.float64]
    saturation: NDArray[np.float64]
    rejected: RejectionCounts

    @property
    def count(self) -> int:
        return int(self.rgb.shape[0])


def extract_region(buffer: PixelBuffer, region: SamplingRegion) -> NDArray[np.uint8]:
    """Return the region's pixels as an Nx3 array in row-major order."""
    block = buffer.pixels[region.y : region.y + region.size, region.x : region.x + region.size]
    return block.reshape(-1, 3)


def filter_pixels(samples: NDArray[np.uint8], params: ClassifierParams = DEFAULT_PARAMS) -> UsablePixels:
    """Drop glare, shadow and near-neutral highlight pixels.

    Each pixel is judged on its own, so the result does not depend on
    iteration order. A pixel rejected by an earlier test is not counted
    again by a later one (glare, then shadow, then neutral).
    """
    rgb = samples.astype(np.int64)
    brightness = rgb.sum(axis=1) / 3.0

    max_c = rgb.max(axis=1, initial=0)
    min_c = rgb.min(axis=1, initial=255)
    saturation = np.zeros(len(rgb), dtype=np.float64)
    nonzero = max_c > 0
    saturation[nonzero] = (max_c[nonzero] - min_c[nonzero]) / max_c[nonzero]

    glare = brightness > params.glare_brightness
    shadow = ~glare & (brightness < params.shadow_brightness)
    neutral = (
        ~glare
        & ~shadow
        & (brightness > params.highlight_brightness)
        & (saturation < params.highlight_saturation)
    )
    usable = ~(glare | shadow | neutral)

    return UsablePixels(
        rgb=rgb[usable],
        brightness=brightness[usable],
        saturation=saturation[usable],
        rejected=RejectionCounts(
            glare=int(glare.sum()),
            shadow=int(shadow.sum()),
            neutral=int(neutral.sum()),
        ),
    )


@dataclass(frozen=True)
class ColorEstimate:
    """Trimmed-mean statistics of the usable pixels."""

    mean_color: tuple[float, float, float]
    brightness: float
    saturation: float


def trimmed_mean(usable: UsablePixels, trim_fraction: float = DEFAULT_PARAMS.trim_fraction) -> ColorEstimate:
    """Average color, brightness and saturation after dropping the darkest and brightest tails.

    Pixels are ordered by brightness with ties broken by r, g, b, which
    makes the kept set a function of the pixel multiset alone.

    Raises:
        ValueError: If there are no usable pixels.
    """
    n = usable.count
    if n == 0:
        raise ValueError("Cannot average an empty pixel set")

    trim = math.floor(n * trim_fraction)
    if 2 * trim >= n:
        trim = (n - 1) // 2

    rgb = usable.rgb
    order = np.lexsort((rgb[:, 2], rgb[:, 1], rgb[:, 0], usable.brightness))
    kept = order[trim : n - trim]
    total = rgb[kept].sum(axis=0)
    count = len(kept)
    return ColorEstimate(
        mean_color=(float(total[0]) / count, float(total[1]) / count, float(total[2]) / count),
        brightness=float(total.sum()) / (3 * count),
        saturation=math.fsum(usable.saturation[kept]) / count,
    )


def describe_shortfall(usable: int, region_pixels: int, rejected: RejectionCounts, min_usable: int) -> str:
    """Build a human-readable explanation for too few usable pixels."""
    if region_pixels < min_usable:
        return f"Sampling region too small: {region_pixels} pixels, need at least {min_usable}."
    causes = {
        "glare": rejected.glare,
        "shadow": rejected.shadow,
        "washed-out highlights": rejected.neutral,
    }
    cause = max(causes, key=lambda name: causes[name])
    return (
        f"Not enough usable pixels ({usable} of {region_pixels}), mostly lost to {cause}. "
        "Try better light."
    )


def sample_region(
    buffer: PixelBuffer,
    region: SamplingRegion,
    params: ClassifierParams = DEFAULT_PARAMS,
) -> tuple[ColorEstimate, UsablePixels]:
    """Filter the region and return its trimmed-mean statistics.

    Raises:
        InsufficientSamplesError: If fewer than ``params.min_usable_pixels`` survive filtering.
    """
    usable = filter_pixels(extract_region(buffer, region), params)
    if usable.count < params.min_usable_pixels:
        raise InsufficientSamplesError(
            describe_shortfall(usable.count, region.pixel_count, usable.rejected, params.min_usable_pixels),
            usable=usable.count,
            region_pixels=region.pixel_count,
            rejected=usable.rejected,
        )
    return trimmed_mean(usable, params.trim_fraction), usable
