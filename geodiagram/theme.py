"""Visual constants shared by the canvas and the diagram renderer."""

from __future__ import annotations

PADDING = 20

FONT_FAMILY = "sans-serif"

FONT_SIZE_SMALL = 11
FONT_SIZE_BASE = 12
FONT_SIZE_MEDIUM = 14
FONT_SIZE_LARGE = 16
FONT_SIZE_XLARGE = 18

FONT_WEIGHT_MEDIUM = "500"
FONT_WEIGHT_BOLD = "700"

COLOR_TEXT = "#333333"
COLOR_AXIS = "#333333"
COLOR_WHITE = "#ffffff"
COLOR_BLACK = "#000000"

STROKE_THIN = 1.0
STROKE_BASE = 1.5
STROKE_THICK = 2.0
STROKE_XTHICK = 2.5
STROKE_XXTHICK = 3.0

DASH_DASHED = "5 3"
DASH_DOTTED = "2 2"

POINT_RADIUS_SMALL = 3.0
POINT_RADIUS_BASE = 4.0
POINT_RADIUS_LARGE = 5.0

# Average glyph advance as a fraction of the font size.
CHAR_WIDTH_RATIO = 0.6
LINE_HEIGHT_DEFAULT = 1.2
