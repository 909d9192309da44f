"""Pydantic request/response schemas for the HydroColor API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from hydrocolor.analysis.classifier import ClassificationResult
    from hydrocolor.analysis.palette import PaletteEntry


class PaletteColor(BaseModel):
    """A reference palette entry."""

    level: int = Field(ge=1, le=8)
    label: str
    hex: str
    rgb: tuple[int, int, int]

    @classmethod
    def from_entry(cls, entry: PaletteEntry) -> PaletteColor:
        return cls(level=entry.level, label=entry.label, hex=entry.hex, rgb=entry.reference_color)


class RankedColor(BaseModel):
    """A palette entry ranked by distance from the sampled color."""

    level: int
    label: str
    hex: str
    distance: float = Field(ge=0.0)


class Region(BaseModel):
    """Sampling region in working-canvas pixel coordinates."""

    x: int
    y: int
    size: int


class Rejections(BaseModel):
    """Region pixels dropped by each filter."""

    glare: int
    shadow: int
    neutral: int


class AnalysisResponse(BaseModel):
    """Successful hydration color estimate."""

    ok: Literal[True] = True
    level: int = Field(ge=1, le=8)
    label: str
    confidence: float = Field(ge=0.0, le=1.0)
    usable_pixels: int
    mean_color: tuple[float, float, float]
    brightness: float = Field(ge=0.0, le=255.0, description="Mean brightness of the trimmed pixels")
    saturation: float = Field(ge=0.0, le=1.0, description="Mean saturation of the trimmed pixels")
    ranking: list[RankedColor]
    region: Region

    @classmethod
    def from_result(cls, result: ClassificationResult) -> AnalysisResponse:
        if not result.ok or result.region is None:
            raise ValueError("Cannot build an analysis response from a failed result")
        return cls(
            level=result.level,
            label=result.label,
            confidence=result.confidence,
            usable_pixels=result.usable_pixel_count,
            mean_color=result.mean_color,
            brightness=result.brightness,
            saturation=result.saturation,
            ranking=[
                RankedColor(level=m.entry.level, label=m.entry.label, hex=m.entry.hex, distance=m.distance)
                for m in result.ranking
            ],
            region=Region(x=result.region.x, y=result.region.y, size=result.region.size),
        )


class AnalysisFailureResponse(BaseModel):
    """Analysis could not produce an estimate."""

    ok: Literal[False] = False
    reason: str = Field(description="'decode_error' or 'insufficient_samples'")
    detail: str
    rejected: Rejections | None = None

    @classmethod
    def from_result(cls, result: ClassificationResult) -> AnalysisFailureResponse:
        rejected = None
        if result.rejected is not None:
            rejected = Rejections(
                glare=result.rejected.glare,
                shadow=result.rejected.shadow,
                neutral=result.rejected.neutral,
            )
        return cls(reason=str(result.reason), detail=result.message or "", rejected=rejected)


class PaletteResponse(BaseModel):
    """Response for the palette listing endpoint."""

    palette: list[PaletteColor]


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    concurrent_requests: int
    queue_depth: int


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
