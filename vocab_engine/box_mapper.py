from __future__ import annotations

import math
from typing import Sequence

from .errors import InvalidBoxError
from .types import PixelRect

NORMALIZED_SCALE = 1000.0


def map_box(box_2d: Sequence[float], *, width: int, height: int) -> PixelRect:
    """Map a normalized [ymin, xmin, ymax, xmax] box (0-1000) to source pixels.

    Zero-size extents are clamped to 1 pixel. No rotation or aspect correction.
    Raises InvalidBoxError when a coordinate is NaN/infinite or max < min on
    either axis.
    """
    ymin, xmin, ymax, xmax = (float(v) for v in box_2d)
    if not all(math.isfinite(v) for v in (ymin, xmin, ymax, xmax)):
        raise InvalidBoxError(f"non-finite box: {[ymin, xmin, ymax, xmax]}")
    if xmax < xmin or ymax < ymin:
        raise InvalidBoxError(f"inverted box: {[ymin, xmin, ymax, xmax]}")

    sx = xmin / NORMALIZED_SCALE * width
    sy = ymin / NORMALIZED_SCALE * height
    sw = (xmax - xmin) / NORMALIZED_SCALE * width
    sh = (ymax - ymin) / NORMALIZED_SCALE * height
    return PixelRect(x=sx, y=sy, width=max(1.0, sw), height=max(1.0, sh))


def to_crop_box(rect: PixelRect) -> tuple[int, int, int, int]:
    """Integer (left, top, right, bottom) box for PIL.Image.crop.

    Output size is the truncated rect size (at least 1x1). Regions that run
    past the image edge are kept; PIL fills them with black.
    """
    x0 = int(round(rect.x))
    y0 = int(round(rect.y))
    w = max(1, int(rect.width))
    h = max(1, int(rect.height))
    return x0, y0, x0 + w, y0 + h
