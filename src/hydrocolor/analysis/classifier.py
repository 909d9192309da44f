"""Hydration color classification.

Pipeline:
    image bytes -> Rasterizer (520x360 canvas) -> centered square region
    -> glare/shadow/neutral filtering -> trimmed mean -> palette ranking
    -> confidence from the best/second-best distance gap

Both entry points return a ``ClassificationResult`` and never raise for
bad input: undecodable images and regions with too few usable pixels come
back as ``ok=False`` results carrying a ``FailureReason``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hydrocolor.analysis.errors import (
    AnalysisError,
    FailureReason,
    InsufficientSamplesError,
    RejectionCounts,
)
from hydrocolor.analysis.matching import RankedMatch, match_confidence, rank_palette
from hydrocolor.analysis.rasterizer import CANVAS_HEIGHT, CANVAS_WIDTH, normalize
from hydrocolor.analysis.sampling import DEFAULT_PARAMS, ClassifierParams, SamplingRegion, sample_region

if TYPE_CHECKING:
    from hydrocolor.analysis.rasterizer import ImageDecoder, PixelBuffer

logger = logging.getLogger(__name__)

DEFAULT_REGION_SIZE: int = 140


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of one classification attempt.

    On success every field except ``reason``/``message``/``rejected`` is set.
    On failure only ``ok``, ``reason``, ``message`` and, for sampler
    failures, ``rejected`` and ``region`` are set.
    """

    ok: bool
    level: int | None = None
    label: str | None = None
    confidence: float | None = None
    usable_pixel_count: int | None = None
    mean_color: tuple[float, float, float] | None = None
    brightness: float | None = None
    saturation: float | None = None
    ranking: tuple[RankedMatch, ...] = ()
    region: SamplingRegion | None = None
    reason: FailureReason | None = None
    message: str | None = None
    rejected: RejectionCounts | None = None

    @classmethod
    def failure(
        cls,
        error: AnalysisError,
        region: SamplingRegion | None = None,
    ) -> ClassificationResult:
        rejected = error.rejected if isinstance(error, InsufficientSamplesError) else None
        return cls(ok=False, reason=error.reason, message=str(error), region=region, rejected=rejected)


def classify(
    buffer: PixelBuffer,
    region_size: int = DEFAULT_REGION_SIZE,
    params: ClassifierParams = DEFAULT_PARAMS,
) -> ClassificationResult:
    """Estimate the hydration level of the centered region of ``buffer``.

    Args:
        buffer: Normalized working canvas.
        region_size: Requested side length of the square sampling region.
            Clamped to the canvas dimensions.
        params: Filtering and scoring thresholds.

    Returns:
        A successful result, or a failure with reason
        ``FailureReason.INSUFFICIENT_SAMPLES``.
    """
    region = SamplingRegion.centered(buffer.width, buffer.height, region_size)
    try:
        estimate, usable = sample_region(buffer, region, params)
    except InsufficientSamplesError as exc:
        logger.debug("Insufficient samples in %s: %s", region, exc)
        return ClassificationResult.failure(exc, region)

    ranking = rank_palette(estimate.mean_color)
    best = ranking[0].entry
    confidence = match_confidence(ranking, params.confidence_scale)
    logger.debug(
        "Classified region %s: level=%d confidence=%.3f usable=%d",
        region,
        best.level,
        confidence,
        usable.count,
    )
    return ClassificationResult(
        ok=True,
        level=best.level,
        label=best.label,
        confidence=confidence,
        usable_pixel_count=usable.count,
        mean_color=estimate.mean_color,
        brightness=estimate.brightness,
        saturation=estimate.saturation,
        ranking=ranking,
        region=region,
    )


def analyze_image(
    image_bytes: bytes,
    region_size: int = DEFAULT_REGION_SIZE,
    *,
    decoder: ImageDecoder | None = None,
    width: int = CANVAS_WIDTH,
    height: int = CANVAS_HEIGHT,
    params: ClassifierParams = DEFAULT_PARAMS,
) -> ClassificationResult:
    """Decode ``image_bytes`` onto the working canvas and classify it."""
    try:
        buffer = normalize(image_bytes, decoder, width=width, height=height)
    except AnalysisError as exc:
        logger.debug("Decode failed: %s", exc)
        return ClassificationResult.failure(exc)
    return classify(buffer, region_size, params)
