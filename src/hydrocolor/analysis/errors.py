"""Failure taxonomy for the color analysis pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class FailureReason(StrEnum):
    DECODE_ERROR = "decode_error"
    INSUFFICIENT_SAMPLES = "insufficient_samples"


@dataclass(frozen=True)
class RejectionCounts:
    """Number of region pixels dropped by each filter."""

    glare: int = 0
    shadow: int = 0
    neutral: int = 0

    @property
    def total(self) -> int:
        return self.glare + self.shadow + self.neutral


class AnalysisError(Exception):
    """Base class for failures that end a classification attempt."""

    reason: FailureReason


class DecodeError(AnalysisError):
    """The source bytes could not be decoded as an image."""

    reason = FailureReason.DECODE_ERROR


class InsufficientSamplesError(AnalysisError):
    """Too few pixels survived filtering to estimate a color."""

    reason = FailureReason.INSUFFICIENT_SAMPLES

    def __init__(self, message: str, *, usable: int, region_pixels: int, rejected: RejectionCounts) -> None:
        super().__init__(message)
        self.usable = usable
        self.region_pixels = region_pixels
        self.rejected = rejected
