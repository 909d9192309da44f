"""Reference palette of hydration color levels, palest first."""

from __future__ import annotations

from dataclasses import dataclass, field

RGB = tuple[int, int, int]


def hex_to_rgb(value: str) -> RGB:
    """Parse a ``#RRGGBB`` or ``#RGB`` color string.

    Raises:
        ValueError: If the string is not a 3- or 6-digit hex color.
    """
    digits = value.strip().lstrip("#")
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    if len(digits) != 6:
        raise ValueError(f"Invalid hex color: {value!r}")
    packed = int(digits, 16)
    return (packed >> 16) & 255, (packed >> 8) & 255, packed & 255


@dataclass(frozen=True)
class PaletteEntry:
    """One hydration level and its canonical sample color."""

    level: int
    label: str
    hex: str
    reference_color: RGB = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "reference_color", hex_to_rgb(self.hex))


REFERENCE_PALETTE: tuple[PaletteEntry, ...] = (
    PaletteEntry(level=1, label="Very pale", hex="#FFFDF2"),
    PaletteEntry(level=2, label="Pale straw", hex="#FFF6C9"),
    PaletteEntry(level=3, label="Light yellow", hex="#FFE993"),
    PaletteEntry(level=4, label="Yellow", hex="#FFD35C"),
    PaletteEntry(level=5, label="Dark yellow", hex="#FFB93A"),
    PaletteEntry(level=6, label="Amber", hex="#F39A1F"),
    PaletteEntry(level=7, label="Dark amber", hex="#D97D12"),
    PaletteEntry(level=8, label="Very dark amber", hex="#B45E0C"),
)


_BY_LEVEL: dict[int, PaletteEntry] = {entry.level: entry for entry in REFERENCE_PALETTE}


def get_entry(level: int) -> PaletteEntry:
    """Return the palette entry for a hydration level."""
    try:
        return _BY_LEVEL[level]
    except KeyError:
        raise KeyError(f"Unknown hydration level: {level}") from None
