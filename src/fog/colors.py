"""Distinguishable colors for log stream prefixes.

"Happy" colors are saturated, mid-to-bright HSV colors that read well on
both dark and light terminals. A palette spreads hues evenly around the
color wheel so that N colors stay as far apart as possible.
"""

import colorsys
import random
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Color:
    """RGB color with components in [0, 1]."""

    r: float
    g: float
    b: float

    @classmethod
    def from_hsv(cls, hue: float, saturation: float, value: float) -> "Color":
        """Build a color from hue in degrees and saturation/value in [0, 1]."""
        r, g, b = colorsys.hsv_to_rgb((hue % 360.0) / 360.0, saturation, value)
        return cls(r, g, b)

    @property
    def rgb255(self) -> tuple[int, int, int]:
        """8-bit components, as accepted by click.style(fg=...)."""
        return (round(self.r * 255), round(self.g * 255), round(self.b * 255))

    @property
    def hex(self) -> str:
        return "#{:02x}{:02x}{:02x}".format(*self.rgb255)


def happy_color(rng: random.Random | None = None) -> Color:
    """A single random happy color (random hue)."""
    rng = rng or random
    return Color.from_hsv(rng.random() * 360.0, 0.727 + rng.random() * 0.2, 0.3 + rng.random() * 0.6)


def happy_palette(count: int, rng: random.Random | None = None) -> list[Color]:
    """``count`` happy colors with evenly spaced hues.

    Saturation and value are jittered, so two palettes of the same size
    are not identical.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    rng = rng or random
    step = 360.0 / count if count else 0.0
    return [
        Color.from_hsv(i * step, 0.8 + rng.random() * 0.2, 0.65 + rng.random() * 0.2)
        for i in range(count)
    ]
