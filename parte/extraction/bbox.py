"""Portrait bounding-box normalization, validation and padding.

Providers describe the portrait either in pixels or in percent of the image
size. Everything downstream works in percent.
"""

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from parte.extraction.models import BoundingBox

_COORDINATE_KEYS = ("x", "y", "width", "height")
_PERCENT_KEYS = ("x_percent", "y_percent", "width_percent", "height_percent")

MIN_SIZE_PERCENT = 5.0
TOP_PADDING_THRESHOLD_PERCENT = 8.0
PADDING_PERCENT = 1.0


def normalize_coordinates(
    box: Mapping[str, Any], image_width: int, image_height: int
) -> dict[str, Any]:
    """Express a ``{x, y, width, height}`` box as percentages.

    If any value exceeds 100 all four are treated as pixels. A box whose
    values are all <= 100 is assumed to be in percent already and returned
    unchanged, as is a box with missing keys.
    """
    if any(key not in box for key in _COORDINATE_KEYS):
        return dict(box)
    try:
        values = {key: float(box[key]) for key in _COORDINATE_KEYS}
    except (TypeError, ValueError):
        return dict(box)

    if not any(value > 100 for value in values.values()):
        return dict(box)
    if image_width <= 0 or image_height <= 0:
        return dict(box)

    normalized = dict(box)
    normalized["x"] = round(values["x"] / image_width * 100, 2)
    normalized["y"] = round(values["y"] / image_height * 100, 2)
    normalized["width"] = round(values["width"] / image_width * 100, 2)
    normalized["height"] = round(values["height"] / image_height * 100, 2)
    return normalized


def bbox_from_mapping(
    raw: Any, image_size: tuple[int, int] | None = None
) -> BoundingBox | None:
    """Build a BoundingBox from either key style, normalizing pixel boxes.

    Returns None when the mapping lacks any coordinate or holds
    non-numeric values. No range validation happens here.
    """
    if not isinstance(raw, Mapping):
        return None
    if all(key in raw for key in _PERCENT_KEYS):
        box = {plain: raw[pct] for plain, pct in zip(_COORDINATE_KEYS, _PERCENT_KEYS)}
    elif all(key in raw for key in _COORDINATE_KEYS):
        box = {key: raw[key] for key in _COORDINATE_KEYS}
    else:
        return None

    if image_size is not None:
        box = normalize_coordinates(box, *image_size)
    try:
        return BoundingBox(
            x_percent=float(box["x"]),
            y_percent=float(box["y"]),
            width_percent=float(box["width"]),
            height_percent=float(box["height"]),
        )
    except (TypeError, ValueError):
        return None


def is_valid_bbox(bbox: BoundingBox) -> bool:
    """Check the range rules a usable portrait region must satisfy."""
    values = (bbox.x_percent, bbox.y_percent, bbox.width_percent, bbox.height_percent)
    if any(value < 0 or value > 100 for value in values):
        return False
    if bbox.width_percent < MIN_SIZE_PERCENT or bbox.height_percent < MIN_SIZE_PERCENT:
        return False
    if bbox.x_percent + bbox.width_percent > 100:
        return False
    if bbox.y_percent + bbox.height_percent > 100:
        return False
    return True


def apply_border_padding(bbox: BoundingBox) -> BoundingBox:
    """Shrink the box slightly to cut off the black frame around portraits.

    Sides and bottom always lose 1%; the top only when the photo sits near
    the top edge of the page.
    """
    top = PADDING_PERCENT if bbox.y_percent < TOP_PADDING_THRESHOLD_PERCENT else 0.0
    side = PADDING_PERCENT
    bottom = PADDING_PERCENT

    padded = BoundingBox(
        x_percent=_clamp(bbox.x_percent + side),
        y_percent=_clamp(bbox.y_percent + top),
        width_percent=_clamp(bbox.width_percent - 2 * side),
        height_percent=_clamp(bbox.height_percent - (top + bottom)),
    )
    if padded.x_percent + padded.width_percent > 100:
        padded = replace(padded, width_percent=100 - padded.x_percent)
    if padded.y_percent + padded.height_percent > 100:
        padded = replace(padded, height_percent=100 - padded.y_percent)
    return padded


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))
