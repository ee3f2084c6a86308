"""RGB <-> HSV conversion for 8-bit light colours."""

from __future__ import annotations

import colorsys


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def rgb_to_hsv(r: int, g: int, b: int) -> tuple[float, float, float]:
    """Convert 0-255 RGB to (hue degrees in [0, 360), saturation 0-1, value 0-1)."""
    h, s, v = colorsys.rgb_to_hsv(r / 255.0, g / 255.0, b / 255.0)
    return h * 360.0, s, v


def hsv_to_rgb(hue: float, saturation: float, value: float) -> tuple[int, int, int]:
    """Convert (hue degrees, saturation 0-1, value 0-1) to 0-255 RGB.

    Hue wraps; saturation, value and the resulting channels are clamped.
    """
    r, g, b = colorsys.hsv_to_rgb(
        (hue % 360.0) / 360.0,
        _clamp(saturation, 0.0, 1.0),
        _clamp(value, 0.0, 1.0),
    )
    return tuple(int(_clamp(round(c * 255.0), 0, 255)) for c in (r, g, b))  # type: ignore[return-value]
