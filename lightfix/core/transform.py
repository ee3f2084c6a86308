"""Pure light and cell transforms driven by a LightFixConfig."""

from __future__ import annotations

import math
from dataclasses import replace

from lightfix.codec.layout import U32_MAX
from lightfix.core.color import hsv_to_rgb, rgb_to_hsv
from lightfix.core.model import (
    CellRecord,
    LightChange,
    LightData,
    LightFixConfig,
    LightFlag,
    LightRecord,
    LightSnapshot,
)

COLORED_SATURATION_THRESHOLD = 0.05
COLORED = "colored"
STANDARD = "standard"
NEGATIVE = "negative"

# Plain ints: inverting an IntFlag member would drop bits the enum does not name.
_NEGATIVE_MASK = int(LightFlag.NEGATIVE)
_FLICKER_MASK = int(LightFlag.FLICKER | LightFlag.FLICKER_SLOW)
_NO_COLOR = (0, 0, 0, 0)


def is_colored(data: LightData) -> bool:
    _, saturation, _ = rgb_to_hsv(*data.rgb)
    return saturation > COLORED_SATURATION_THRESHOLD


def classify(data: LightData) -> str:
    if data.has_flag(LightFlag.NEGATIVE):
        return NEGATIVE
    return COLORED if is_colored(data) else STANDARD


def _nullify(data: LightData) -> LightData:
    return replace(data, radius=0, color=_NO_COLOR, flags=data.flags & ~_NEGATIVE_MASK)


def scale_radius(radius: int, multiplier: float) -> int:
    """Scale ``radius``, saturating to the unsigned 32-bit LHDT field; NaN gives 0."""
    scaled = radius * multiplier
    if math.isnan(scaled):
        return 0
    return int(min(max(scaled, 0.0), float(U32_MAX)))


def transform_light(light: LightRecord, config: LightFixConfig) -> LightRecord:
    """Return a copy of ``light`` with colour, radius and flags normalized.

    Negative lights are switched off entirely and nothing else is applied to
    them. Other lights get the colored or standard multipliers depending on
    their saturation, and lose their flicker flags when
    ``config.disable_flickering`` is set.
    """
    data = light.data
    if data.has_flag(LightFlag.NEGATIVE):
        return light.with_data(_nullify(data))

    colored = is_colored(data)
    multipliers = config.multipliers(colored)

    hue, saturation, value = rgb_to_hsv(*data.rgb)
    r, g, b = hsv_to_rgb(
        (hue * multipliers.hue) % 360.0,
        saturation * multipliers.saturation,
        value * multipliers.value,
    )
    radius = scale_radius(data.radius, multipliers.radius)

    flags = data.flags
    if config.disable_flickering:
        flags &= ~_FLICKER_MASK

    return light.with_data(replace(data, radius=radius, color=(r, g, b, 0), flags=flags))


def transform_cell(cell: CellRecord, config: LightFixConfig) -> CellRecord:
    """Drop the sunlight tint from a cell's atmosphere.

    Only the sunlight colour changes; a cell without an AMBI subrecord is
    returned as is.
    """
    atmosphere = cell.atmosphere
    if not config.disable_interior_sun or atmosphere is None:
        return cell
    if atmosphere.sunlight == _NO_COLOR:
        return cell
    return cell.with_atmosphere(replace(atmosphere, sunlight=_NO_COLOR))


def snapshot(data: LightData) -> LightSnapshot:
    hue, saturation, value = rgb_to_hsv(*data.rgb)
    return LightSnapshot(
        color=data.color,
        hue=hue,
        saturation=saturation,
        value=value,
        radius=data.radius,
        flags=data.flags,
    )


def describe_light_change(before: LightRecord, after: LightRecord) -> LightChange:
    return LightChange(
        id=before.id,
        classification=classify(before.data),
        before=snapshot(before.data),
        after=snapshot(after.data),
    )
