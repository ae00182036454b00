"""Annotation overlay: draw pins and note rectangles on top of a page image.

All helpers that deal with pixel positions take *img_width* and *img_height*,
the **logical** size of the rendered page, so they stay consistent with the
fractional (0.0-1.0) annotation coordinates at any zoom level.
"""
import math
from typing import List, Optional, Tuple

from PySide6.QtCore import QRect, Qt
from PySide6.QtGui import QColor, QFont, QPainter, QPen, QPixmap

from proof_viewer.models import PIN, RECT, Annotation

PIN_RADIUS = 7              # px
_LABEL_FONT_PT = 8
_PIN_TOLERANCE = 12         # px hit radius around a pin

_PIN_FILL = QColor(220, 38, 38)
_RECT_PEN = QColor(37, 99, 235)
_RECT_FILL = QColor(37, 99, 235, 40)
_GHOST_PEN = QColor(37, 99, 235, 180)


def _logical_size(pixmap: QPixmap) -> Tuple[int, int]:
    dpr = pixmap.devicePixelRatio()
    return int(pixmap.width() / dpr), int(pixmap.height() / dpr)


def draw_annotations(
    pixmap: QPixmap,
    annotations: List[Annotation],
    preview: Optional[Tuple[str, float, float]] = None,
    ghost: Optional[Tuple[float, float, float, float]] = None,
) -> QPixmap:
    """Return a *copy* of *pixmap* with *annotations* (and gesture feedback) drawn on it.

    *preview* moves one annotation to a live drag position; *ghost* is the
    rectangle currently being drawn.
    """
    result = pixmap.copy()
    painter = QPainter(result)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    w, h = _logical_size(result)
    for ann in annotations:
        x, y = ann.x, ann.y
        if preview is not None and preview[0] == ann.id:
            x, y = preview[1], preview[2]
        _draw_one(painter, ann, x, y, w, h)
    if ghost is not None:
        gx, gy, gw, gh = ghost
        painter.setPen(QPen(_GHOST_PEN, 1, Qt.PenStyle.DashLine))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawRect(QRect(int(gx * w), int(gy * h), int(gw * w), int(gh * h)))
    painter.end()
    return result


def find_annotation_at(
    annotations: List[Annotation],
    fx: float,
    fy: float,
    img_width: int,
    img_height: int,
) -> Optional[Annotation]:
    """Return the topmost annotation under *(fx, fy)*, or None for the background."""
    px, py = fx * img_width, fy * img_height
    # Last drawn wins
    for ann in reversed(annotations):
        if ann.type == RECT:
            rect = QRect(
                int(ann.x * img_width), int(ann.y * img_height),
                max(1, int((ann.w or 0) * img_width)), max(1, int((ann.h or 0) * img_height)),
            )
            if rect.adjusted(-2, -2, 2, 2).contains(int(px), int(py)):
                return ann
        elif math.hypot(ann.x * img_width - px, ann.y * img_height - py) <= _PIN_TOLERANCE:
            return ann
    return None


def _draw_one(painter: QPainter, ann: Annotation, fx: float, fy: float, w: int, h: int):
    cx, cy = int(fx * w), int(fy * h)
    if ann.type == PIN:
        painter.setPen(QPen(QColor("white"), 2))
        painter.setBrush(_PIN_FILL)
        painter.drawEllipse(cx - PIN_RADIUS, cy - PIN_RADIUS, PIN_RADIUS * 2, PIN_RADIUS * 2)

    elif ann.type == RECT:
        rect = QRect(cx, cy, int((ann.w or 0) * w), int((ann.h or 0) * h))
        painter.setPen(QPen(_RECT_PEN, 2))
        painter.setBrush(_RECT_FILL)
        painter.drawRect(rect)
        font = QFont()
        font.setPointSize(_LABEL_FONT_PT)
        font.setBold(True)
        painter.setFont(font)
        painter.setPen(QPen(_RECT_PEN, 1))
        painter.drawText(rect.adjusted(4, 2, -2, -2),
                         Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignTop, "Note")
