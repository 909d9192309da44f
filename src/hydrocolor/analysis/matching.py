"""Palette ranking by RGB distance and match confidence."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hydrocolor.analysis.palette import REFERENCE_PALETTE, PaletteEntry

if TYPE_CHECKING:
    from collections.abc import Sequence

CONFIDENCE_SCALE: float = 40.0


@dataclass(frozen=True)
class RankedMatch:
    """A palette entry and its distance from the sampled color."""

    entry: PaletteEntry
    distance: float


def rgb_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance in RGB space."""
    dr = a[0] - b[0]
    dg = a[1] - b[1]
    db = a[2] - b[2]
    return math.sqrt(dr * dr + dg * dg + db * db)


def rank_palette(
    color: Sequence[float],
    palette: Sequence[PaletteEntry] = REFERENCE_PALETTE,
) -> tuple[RankedMatch, ...]:
    """Rank palette entries by distance to ``color``, nearest first.

    Equidistant entries are ordered by level, lowest first.
    """
    matches = [RankedMatch(entry=entry, distance=rgb_distance(color, entry.reference_color)) for entry in palette]
    matches.sort(key=lambda m: (m.distance, m.entry.level))
    return tuple(matches)


def match_confidence(ranking: Sequence[RankedMatch], scale: float = CONFIDENCE_SCALE) -> float:
    """Map the gap between the two nearest entries onto 0.0-1.0."""
    if len(ranking) < 2:
        return 0.0
    gap = ranking[1].distance - ranking[0].distance
    return max(0.0, min(1.0, gap / scale))
