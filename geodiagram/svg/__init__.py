from .canvas import (
    Canvas,
    CanvasOptions,
    ClippedRegion,
    Element,
    FinalizedCanvas,
    GradientStop,
    LegendRow,
)
from .path import BoundingBox, PathBuilder
from .text import escape_xml, estimate_text_width, format_number, wrap_text

__all__ = [
    "BoundingBox",
    "Canvas",
    "CanvasOptions",
    "ClippedRegion",
    "Element",
    "FinalizedCanvas",
    "GradientStop",
    "LegendRow",
    "PathBuilder",
    "escape_xml",
    "estimate_text_width",
    "format_number",
    "wrap_text",
]
