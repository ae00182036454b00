"""Page-relative coordinate helpers.

Annotations live in normalized page fractions: (0, 0) is the top-left corner
of the page surface and (1, 1) the bottom-right one.
"""
from typing import Optional, Tuple

from proof_viewer.models import RECT, PointerEvent, SurfaceRect


def clamp(v: float, lo: float, hi: float) -> float:
    return min(max(v, lo), hi)


def normalize(event: PointerEvent, rect: SurfaceRect) -> Tuple[float, float]:
    """Map *event* into ``[0, 1]²`` relative to the live surface *rect*."""
    if rect.width <= 0 or rect.height <= 0:
        return 0.0, 0.0
    return (
        clamp((event.client_x - rect.left) / rect.width, 0.0, 1.0),
        clamp((event.client_y - rect.top) / rect.height, 0.0, 1.0),
    )


def clamp_position(
    shape_type: str,
    x: float,
    y: float,
    w: Optional[float] = None,
    h: Optional[float] = None,
) -> Tuple[float, float]:
    """Clamp a shape's anchor so the whole shape stays on the page.

    A pin is a point and is clamped to ``[0, 1]²``; a rect's top-left corner
    is clamped to ``[0, 1 - w] × [0, 1 - h]``.
    """
    if shape_type == RECT:
        w = w or 0.0
        h = h or 0.0
        return clamp(x, 0.0, 1.0 - w), clamp(y, 0.0, 1.0 - h)
    return clamp(x, 0.0, 1.0), clamp(y, 0.0, 1.0)


def rect_from_corners(x0: float, y0: float, x1: float, y1: float) -> Tuple[float, float, float, float]:
    """Return *(x, y, w, h)* of the rectangle spanned by two corners."""
    return min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0)
