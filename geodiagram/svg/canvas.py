"""SVG canvas built as an ordered list of primitive records.

Every draw call validates its numbers, appends an :class:`Element` to the body
and widens the running extents by the primitive's bounding box (including
stroke and cap expansion).  Nothing is serialized until :meth:`Canvas.finalize`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

from ..errors import CanvasError
from ..theme import (
    COLOR_AXIS,
    COLOR_TEXT,
    FONT_FAMILY,
    FONT_SIZE_BASE,
    LINE_HEIGHT_DEFAULT,
    STROKE_THIN,
)
from .path import BoundingBox, PathBuilder
from .text import escape_xml, estimate_text_width, format_number, wrap_text

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
Rect = Tuple[float, float, float, float]

SVG_NS = "http://www.w3.org/2000/svg"
XHTML_NS = "http://www.w3.org/1999/xhtml"

TEXT_ANCHORS = ("start", "middle", "end")
TEXT_BASELINES = ("alphabetic", "middle", "central", "hanging")
LINE_CAPS = ("butt", "round", "square")


@dataclass
class Element:
    """One SVG node.  ``raw`` holds pre-serialized inner markup."""

    tag: str
    attrs: List[Tuple[str, str]] = field(default_factory=list)
    children: List["Element"] = field(default_factory=list)
    text: Optional[str] = None
    raw: Optional[str] = None

    def get(self, name: str) -> Optional[str]:
        for key, value in self.attrs:
            if key == name:
                return value
        return None

    def to_svg(self) -> str:
        attrs = "".join(f' {key}="{escape_xml(value)}"' for key, value in self.attrs)
        if not self.children and self.text is None and self.raw is None:
            return f"<{self.tag}{attrs}/>"
        inner: List[str] = []
        if self.text is not None:
            inner.append(escape_xml(self.text))
        if self.raw is not None:
            inner.append(self.raw)
        inner.extend(child.to_svg() for child in self.children)
        return f"<{self.tag}{attrs}>{''.join(inner)}</{self.tag}>"


@dataclass(frozen=True)
class GradientStop:
    offset: float
    color: str
    opacity: Optional[float] = None


@dataclass(frozen=True)
class LegendRow:
    label: str
    color: str
    dash: Optional[str] = None
    marker: Optional[str] = None  # "circle" | "square"


@dataclass
class CanvasOptions:
    chart_area: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)  # x, y, width, height
    font_px_default: float = FONT_SIZE_BASE
    line_height_default: float = LINE_HEIGHT_DEFAULT


@dataclass(frozen=True)
class FinalizedCanvas:
    min_x: int
    min_y: int
    width: int
    height: int
    markup: str

    @property
    def view_box(self) -> str:
        return f"{self.min_x} {self.min_y} {self.width} {self.height}"

    def to_document(self, font_px: float = FONT_SIZE_BASE) -> str:
        return (
            f'<svg width="{self.width}" height="{self.height}" viewBox="{self.view_box}" '
            f'xmlns="{SVG_NS}" font-family="{FONT_FAMILY}" font-size="{format_number(font_px)}">'
            f"{self.markup}</svg>"
        )


def _require_finite(name: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise CanvasError(f"{name} must be a finite number, got {value!r}")
    return float(value)


def _require_non_negative(name: str, value: float) -> float:
    value = _require_finite(name, value)
    if value < 0:
        raise CanvasError(f"{name} must be >= 0, got {value!r}")
    return value


def _require_positive(name: str, value: float) -> float:
    value = _require_finite(name, value)
    if value <= 0:
        raise CanvasError(f"{name} must be > 0, got {value!r}")
    return value


def _require_unit_interval(name: str, value: float) -> float:
    value = _require_finite(name, value)
    if not 0.0 <= value <= 1.0:
        raise CanvasError(f"{name} must lie in [0, 1], got {value!r}")
    return value


def _require_choice(name: str, value: str, choices: Sequence[str]) -> str:
    if value not in choices:
        raise CanvasError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


def _require_id(name: str, value: str) -> str:
    if not value or any(ch.isspace() for ch in value):
        raise CanvasError(f"{name} must be a non-empty identifier without whitespace, got {value!r}")
    return value


def _points_box(points: Iterable[Point]) -> BoundingBox:
    xs: List[float] = []
    ys: List[float] = []
    for idx, (x, y) in enumerate(points):
        xs.append(_require_finite(f"points[{idx}].x", x))
        ys.append(_require_finite(f"points[{idx}].y", y))
    return BoundingBox(min(xs), max(xs), min(ys), max(ys))


def _cap_padding(stroke_width: float, linecap: Optional[str]) -> float:
    half = stroke_width / 2.0
    if linecap == "square":
        return half * math.sqrt(2.0)
    return half


def _rotate_about(point: Point, center: Point, degrees: float) -> Point:
    theta = math.radians(degrees)
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)
    dx = point[0] - center[0]
    dy = point[1] - center[1]
    return (center[0] + dx * cos_t - dy * sin_t, center[1] + dx * sin_t + dy * cos_t)


class Canvas:
    """Render target that records primitives and tracks their extents."""

    def __init__(self, options: Optional[CanvasOptions] = None) -> None:
        self.options = options or CanvasOptions()
        _require_positive("font_px_default", self.options.font_px_default)
        _require_positive("line_height_default", self.options.line_height_default)
        x, y, width, height = (
            _require_finite(name, value)
            for name, value in zip(("chart_area.x", "chart_area.y", "chart_area.width", "chart_area.height"),
                                   self.options.chart_area)
        )
        if width < 0 or height < 0:
            raise CanvasError("chart_area dimensions must be >= 0")
        self._min_x = x
        self._max_x = x + width
        self._min_y = y
        self._max_y = y + height
        self._body: List[Element] = []
        self._defs: List[Element] = []
        self._def_ids: Set[str] = set()
        self._styles: List[str] = []
        self._clip_counter = 0

    # ------------------------------------------------------------------
    # Extents

    @property
    def extents(self) -> BoundingBox:
        return BoundingBox(self._min_x, self._max_x, self._min_y, self._max_y)

    @property
    def elements(self) -> List[Element]:
        return list(self._body)

    def _include(self, box: BoundingBox, padding: float = 0.0) -> None:
        self._min_x = min(self._min_x, box.min_x - padding)
        self._max_x = max(self._max_x, box.max_x + padding)
        self._min_y = min(self._min_y, box.min_y - padding)
        self._max_y = max(self._max_y, box.max_y + padding)

    def _append(self, element: Element, box: BoundingBox, padding: float = 0.0) -> None:
        self._body.append(element)
        self._include(box, padding)

    # ------------------------------------------------------------------
    # Style helpers

    @staticmethod
    def _stroke_attrs(
        attrs: List[Tuple[str, str]],
        stroke: Optional[str],
        stroke_width: Optional[float],
        dash: Optional[str],
        linecap: Optional[str],
        opacity: Optional[float],
    ) -> float:
        width = 0.0
        if stroke is not None:
            attrs.append(("stroke", stroke))
            width = _require_non_negative("stroke_width", STROKE_THIN if stroke_width is None else stroke_width)
            attrs.append(("stroke-width", format_number(width)))
        elif stroke_width is not None:
            raise CanvasError("stroke_width given without a stroke color")
        if dash is not None:
            attrs.append(("stroke-dasharray", dash))
        if linecap is not None:
            attrs.append(("stroke-linecap", _require_choice("linecap", linecap, LINE_CAPS)))
        if opacity is not None:
            attrs.append(("opacity", format_number(_require_unit_interval("opacity", opacity))))
        return width

    @staticmethod
    def _fill_attrs(
        attrs: List[Tuple[str, str]],
        fill: Optional[str],
        fill_pattern_id: Optional[str],
        fill_opacity: Optional[float],
    ) -> None:
        if fill is not None and fill_pattern_id is not None:
            raise CanvasError("fill and fill_pattern_id are mutually exclusive")
        if fill_pattern_id is not None:
            attrs.append(("fill", f"url(#{_require_id('fill_pattern_id', fill_pattern_id)})"))
        elif fill is not None:
            attrs.append(("fill", fill))
        if fill_opacity is not None:
            attrs.append(("fill-opacity", format_number(_require_unit_interval("fill_opacity", fill_opacity))))

    # ------------------------------------------------------------------
    # Primitives

    def draw_line(
        self,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        *,
        stroke: str = COLOR_AXIS,
        stroke_width: Optional[float] = None,
        dash: Optional[str] = None,
        linecap: Optional[str] = None,
        opacity: Optional[float] = None,
        marker_end: Optional[str] = None,
    ) -> None:
        box = _points_box([(x1, y1), (x2, y2)])
        attrs = [
            ("x1", format_number(x1)),
            ("y1", format_number(y1)),
            ("x2", format_number(x2)),
            ("y2", format_number(y2)),
        ]
        width = self._stroke_attrs(attrs, stroke, stroke_width, dash, linecap, opacity)
        if marker_end is not None:
            attrs.append(("marker-end", f"url(#{_require_id('marker_end', marker_end)})"))
        self._append(Element("line", attrs), box, _cap_padding(width, linecap))

    def draw_circle(
        self,
        cx: float,
        cy: float,
        r: float,
        *,
        fill: Optional[str] = None,
        fill_pattern_id: Optional[str] = None,
        fill_opacity: Optional[float] = None,
        stroke: Optional[str] = None,
        stroke_width: Optional[float] = None,
        opacity: Optional[float] = None,
    ) -> None:
        cx = _require_finite("cx", cx)
        cy = _require_finite("cy", cy)
        r = _require_non_negative("r", r)
        attrs = [("cx", format_number(cx)), ("cy", format_number(cy)), ("r", format_number(r))]
        self._fill_attrs(attrs, fill, fill_pattern_id, fill_opacity)
        width = self._stroke_attrs(attrs, stroke, stroke_width, None, None, opacity)
        self._append(Element("circle", attrs), BoundingBox(cx - r, cx + r, cy - r, cy + r), width / 2.0)

    def draw_ellipse(
        self,
        cx: float,
        cy: float,
        rx: float,
        ry: float,
        *,
        fill: Optional[str] = None,
        fill_pattern_id: Optional[str] = None,
        fill_opacity: Optional[float] = None,
        stroke: Optional[str] = None,
        stroke_width: Optional[float] = None,
        opacity: Optional[float] = None,
    ) -> None:
        cx = _require_finite("cx", cx)
        cy = _require_finite("cy", cy)
        rx = _require_non_negative("rx", rx)
        ry = _require_non_negative("ry", ry)
        attrs = [
            ("cx", format_number(cx)),
            ("cy", format_number(cy)),
            ("rx", format_number(rx)),
            ("ry", format_number(ry)),
        ]
        self._fill_attrs(attrs, fill, fill_pattern_id, fill_opacity)
        width = self._stroke_attrs(attrs, stroke, stroke_width, None, None, opacity)
        self._append(Element("ellipse", attrs), BoundingBox(cx - rx, cx + rx, cy - ry, cy + ry), width / 2.0)

    def draw_rect(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        *,
        rx: Optional[float] = None,
        fill: Optional[str] = None,
        fill_pattern_id: Optional[str] = None,
        fill_opacity: Optional[float] = None,
        stroke: Optional[str] = None,
        stroke_width: Optional[float] = None,
        dash: Optional[str] = None,
        opacity: Optional[float] = None,
    ) -> None:
        x = _require_finite("x", x)
        y = _require_finite("y", y)
        width = _require_non_negative("width", width)
        height = _require_non_negative("height", height)
        attrs = [
            ("x", format_number(x)),
            ("y", format_number(y)),
            ("width", format_number(width)),
            ("height", format_number(height)),
        ]
        if rx is not None:
            attrs.append(("rx", format_number(_require_non_negative("rx", rx))))
        self._fill_attrs(attrs, fill, fill_pattern_id, fill_opacity)
        sw = self._stroke_attrs(attrs, stroke, stroke_width, dash, None, opacity)
        self._append(Element("rect", attrs), BoundingBox(x, x + width, y, y + height), sw / 2.0)

    def draw_path(
        self,
        path: PathBuilder,
        *,
        fill: Optional[str] = None,
        fill_opacity: Optional[float] = None,
        stroke: Optional[str] = None,
        stroke_width: Optional[float] = None,
        dash: Optional[str] = None,
        linecap: Optional[str] = None,
        linejoin: Optional[str] = None,
        opacity: Optional[float] = None,
    ) -> None:
        box = path.bounding_box()
        if box is None:
            raise CanvasError("Cannot draw an empty path")
        attrs = [("d", path.to_path_data())]
        attrs.append(("fill", fill if fill is not None else "none"))
        if fill_opacity is not None:
            attrs.append(("fill-opacity", format_number(_require_unit_interval("fill_opacity", fill_opacity))))
        width = self._stroke_attrs(attrs, stroke, stroke_width, dash, linecap, opacity)
        if linejoin is not None:
            attrs.append(("stroke-linejoin", _require_choice("linejoin", linejoin, ("miter", "round", "bevel"))))
        self._append(Element("path", attrs), box, width / 2.0)

    def draw_polygon(
        self,
        points: Sequence[Point],
        *,
        fill: Optional[str] = None,
        fill_pattern_id: Optional[str] = None,
        fill_opacity: Optional[float] = None,
        stroke: Optional[str] = None,
        stroke_width: Optional[float] = None,
        dash: Optional[str] = None,
        opacity: Optional[float] = None,
    ) -> None:
        if len(points) < 3:
            raise CanvasError(f"A polygon needs at least 3 points, got {len(points)}")
        box = _points_box(points)
        attrs = [("points", " ".join(f"{format_number(x)},{format_number(y)}" for x, y in points))]
        self._fill_attrs(attrs, fill, fill_pattern_id, fill_opacity)
        width = self._stroke_attrs(attrs, stroke, stroke_width, dash, None, opacity)
        self._append(Element("polygon", attrs), box, width / 2.0)

    def draw_polyline(
        self,
        points: Sequence[Point],
        *,
        stroke: str = COLOR_AXIS,
        stroke_width: Optional[float] = None,
        dash: Optional[str] = None,
        linecap: Optional[str] = None,
        opacity: Optional[float] = None,
    ) -> None:
        if len(points) < 2:
            raise CanvasError(f"A polyline needs at least 2 points, got {len(points)}")
        box = _points_box(points)
        attrs = [
            ("points", " ".join(f"{format_number(x)},{format_number(y)}" for x, y in points)),
            ("fill", "none"),
        ]
        width = self._stroke_attrs(attrs, stroke, stroke_width, dash, linecap, opacity)
        self._append(Element("polyline", attrs), box, _cap_padding(width, linecap))

    def draw_text(
        self,
        x: float,
        y: float,
        text: str,
        *,
        font_px: Optional[float] = None,
        anchor: str = "start",
        baseline: str = "alphabetic",
        font_weight: Optional[str] = None,
        fill: str = COLOR_TEXT,
        stroke: Optional[str] = None,
        stroke_width: Optional[float] = None,
        paint_order: Optional[str] = None,
        opacity: Optional[float] = None,
        max_width: Optional[float] = None,
        line_height: Optional[float] = None,
        rotate: Optional[float] = None,
    ) -> BoundingBox:
        """Draw ``text`` and return the box it occupies after rotation and stroke."""

        x = _require_finite("x", x)
        y = _require_finite("y", y)
        font_px = _require_positive("font_px", self.options.font_px_default if font_px is None else font_px)
        line_height = _require_positive(
            "line_height", self.options.line_height_default if line_height is None else line_height
        )
        _require_choice("anchor", anchor, TEXT_ANCHORS)
        _require_choice("baseline", baseline, TEXT_BASELINES)
        if max_width is not None:
            max_width = _require_positive("max_width", max_width)
        if paint_order is not None and paint_order != "stroke fill":
            raise CanvasError(f"paint_order must be 'stroke fill', got {paint_order!r}")
        if rotate is not None:
            rotate = _require_finite("rotate", rotate)

        lines = wrap_text(text, max_width, font_px)
        width = max(estimate_text_width(line, font_px) for line in lines)
        height = font_px + (len(lines) - 1) * font_px * line_height

        if anchor == "start":
            left = x
        elif anchor == "middle":
            left = x - width / 2.0
        else:
            left = x - width
        if baseline == "alphabetic":
            top = y - font_px * 0.8
        elif baseline == "hanging":
            top = y
        else:
            top = y - font_px / 2.0

        corners = [(left, top), (left + width, top), (left, top + height), (left + width, top + height)]
        if rotate:
            corners = [_rotate_about(corner, (x, y), rotate) for corner in corners]
        box = _points_box(corners)

        attrs = [
            ("x", format_number(x)),
            ("y", format_number(y)),
            ("font-size", format_number(font_px)),
            ("text-anchor", anchor),
            ("dominant-baseline", baseline),
        ]
        if font_weight is not None:
            attrs.append(("font-weight", font_weight))
        attrs.append(("fill", fill))
        stroke_px = self._stroke_attrs(attrs, stroke, stroke_width, None, None, None)
        if paint_order is not None:
            attrs.append(("paint-order", paint_order))
        if opacity is not None:
            attrs.append(("opacity", format_number(_require_unit_interval("opacity", opacity))))
        if rotate:
            attrs.append(("transform", f"rotate({format_number(rotate)} {format_number(x)} {format_number(y)})"))

        element = Element("text", attrs)
        if len(lines) == 1:
            element.text = lines[0]
        else:
            step = format_number(font_px * line_height)
            for idx, line in enumerate(lines):
                dy = "0" if idx == 0 else step
                element.children.append(Element("tspan", [("x", format_number(x)), ("dy", dy)], text=line))

        box = box.expand(stroke_px / 2.0)
        self._append(element, box)
        return box

    def draw_wrapped_text(self, x: float, y: float, text: str, max_width: float, **kwargs) -> BoundingBox:
        return self.draw_text(x, y, text, max_width=max_width, **kwargs)

    def draw_foreign_object(self, x: float, y: float, width: float, height: float, html: str) -> None:
        """Embed a rich text block; ``html`` must declare the XHTML namespace."""

        x = _require_finite("x", x)
        y = _require_finite("y", y)
        width = _require_positive("width", width)
        height = _require_positive("height", height)
        if f'xmlns="{XHTML_NS}"' not in html:
            raise CanvasError("foreignObject content must declare the XHTML namespace")
        attrs = [
            ("x", format_number(x)),
            ("y", format_number(y)),
            ("width", format_number(width)),
            ("height", format_number(height)),
        ]
        self._append(Element("foreignObject", attrs, raw=html), BoundingBox(x, x + width, y, y + height))

    def draw_image(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        href: str,
        *,
        preserve_aspect_ratio: Optional[str] = None,
        opacity: Optional[float] = None,
    ) -> None:
        x = _require_finite("x", x)
        y = _require_finite("y", y)
        width = _require_positive("width", width)
        height = _require_positive("height", height)
        if not href:
            raise CanvasError("image href must not be empty")
        attrs = [
            ("href", href),
            ("x", format_number(x)),
            ("y", format_number(y)),
            ("width", format_number(width)),
            ("height", format_number(height)),
        ]
        if preserve_aspect_ratio is not None:
            attrs.append(("preserveAspectRatio", preserve_aspect_ratio))
        if opacity is not None:
            attrs.append(("opacity", format_number(_require_unit_interval("opacity", opacity))))
        self._append(Element("image", attrs), BoundingBox(x, x + width, y, y + height))

    def draw_legend_block(
        self,
        x: float,
        y: float,
        rows: Sequence[LegendRow],
        *,
        font_px: Optional[float] = None,
        row_height: Optional[float] = None,
        sample_length: float = 24.0,
    ) -> BoundingBox:
        """Draw one row per entry: a sample stroke, an optional marker and a label."""

        if not rows:
            raise CanvasError("A legend needs at least one row")
        font_px = _require_positive("font_px", self.options.font_px_default if font_px is None else font_px)
        row_height = _require_positive("row_height", font_px * 1.6 if row_height is None else row_height)
        sample_length = _require_positive("sample_length", sample_length)
        before = len(self._body)
        boxes: List[BoundingBox] = []
        for idx, row in enumerate(rows):
            cy = y + idx * row_height + row_height / 2.0
            self.draw_line(x, cy, x + sample_length, cy, stroke=row.color, stroke_width=2.0, dash=row.dash)
            mid = x + sample_length / 2.0
            if row.marker == "circle":
                self.draw_circle(mid, cy, 3.0, fill=row.color)
            elif row.marker == "square":
                self.draw_rect(mid - 3.0, cy - 3.0, 6.0, 6.0, fill=row.color)
            elif row.marker is not None:
                raise CanvasError(f"Unknown legend marker {row.marker!r}")
            boxes.append(
                self.draw_text(x + sample_length + 8.0, cy, row.label, font_px=font_px, baseline="middle")
            )
        logger.debug("Legend block drew %d elements", len(self._body) - before)
        return BoundingBox(
            x,
            max(box.max_x for box in boxes),
            y,
            max(y + len(rows) * row_height, max(box.max_y for box in boxes)),
        )

    # ------------------------------------------------------------------
    # Definitions

    def add_def(self, element: Element) -> None:
        def_id = element.get("id")
        if def_id is None:
            raise CanvasError(f"<{element.tag}> definitions require an id")
        if def_id in self._def_ids:
            return
        self._def_ids.add(def_id)
        self._defs.append(element)

    def has_def(self, def_id: str) -> bool:
        return def_id in self._def_ids

    def add_style(self, css: str) -> None:
        if css.strip():
            self._styles.append(css)

    def add_hatch_pattern(
        self,
        pattern_id: str,
        color: str,
        *,
        spacing: float = 4.0,
        angle: float = 45.0,
        stroke_width: float = 1.0,
    ) -> str:
        spacing = _require_positive("spacing", spacing)
        angle = _require_finite("angle", angle)
        stroke_width = _require_positive("stroke_width", stroke_width)
        pattern = Element(
            "pattern",
            [
                ("id", _require_id("pattern_id", pattern_id)),
                ("patternUnits", "userSpaceOnUse"),
                ("width", format_number(spacing)),
                ("height", format_number(spacing)),
                ("patternTransform", f"rotate({format_number(angle)})"),
            ],
            children=[
                Element(
                    "line",
                    [
                        ("x1", "0"),
                        ("y1", "0"),
                        ("x2", "0"),
                        ("y2", format_number(spacing)),
                        ("stroke", color),
                        ("stroke-width", format_number(stroke_width)),
                    ],
                )
            ],
        )
        self.add_def(pattern)
        return pattern_id

    @staticmethod
    def _gradient_stops(stops: Sequence[GradientStop]) -> List[Element]:
        if len(stops) < 2:
            raise CanvasError("A gradient needs at least two stops")
        result = []
        for stop in stops:
            attrs = [
                ("offset", format_number(_require_unit_interval("offset", stop.offset))),
                ("stop-color", stop.color),
            ]
            if stop.opacity is not None:
                attrs.append(("stop-opacity", format_number(_require_unit_interval("stop opacity", stop.opacity))))
            result.append(Element("stop", attrs))
        return result

    def add_linear_gradient(
        self,
        gradient_id: str,
        stops: Sequence[GradientStop],
        *,
        x1: float = 0.0,
        y1: float = 0.0,
        x2: float = 1.0,
        y2: float = 0.0,
    ) -> str:
        attrs = [("id", _require_id("gradient_id", gradient_id))]
        for name, value in (("x1", x1), ("y1", y1), ("x2", x2), ("y2", y2)):
            attrs.append((name, format_number(_require_finite(name, value))))
        self.add_def(Element("linearGradient", attrs, children=self._gradient_stops(stops)))
        return gradient_id

    def add_radial_gradient(
        self,
        gradient_id: str,
        stops: Sequence[GradientStop],
        *,
        cx: float = 0.5,
        cy: float = 0.5,
        r: float = 0.5,
    ) -> str:
        attrs = [
            ("id", _require_id("gradient_id", gradient_id)),
            ("cx", format_number(_require_finite("cx", cx))),
            ("cy", format_number(_require_finite("cy", cy))),
            ("r", format_number(_require_positive("r", r))),
        ]
        self.add_def(Element("radialGradient", attrs, children=self._gradient_stops(stops)))
        return gradient_id

    def add_arrow_marker(self, marker_id: str, color: str, *, size: float = 8.0) -> str:
        size = _require_positive("size", size)
        marker = Element(
            "marker",
            [
                ("id", _require_id("marker_id", marker_id)),
                ("viewBox", "0 0 10 10"),
                ("refX", "9"),
                ("refY", "5"),
                ("markerWidth", format_number(size)),
                ("markerHeight", format_number(size)),
                ("orient", "auto-start-reverse"),
            ],
            children=[Element("path", [("d", "M 0 0 L 10 5 L 0 10 Z"), ("fill", color)])],
        )
        self.add_def(marker)
        return marker_id

    # ------------------------------------------------------------------
    # Clipping

    def draw_in_clipped_region(
        self, clip: Tuple[float, float, float, float], draw: Callable[["ClippedRegion"], None]
    ) -> str:
        """Run ``draw`` inside a clip rectangle ``(x, y, width, height)``.

        The callback's primitives are computed against this canvas but are
        moved into a ``<g clip-path=...>`` group afterwards.  The canvas extents
        are restored exactly, so clipped content never widens them.  Returns
        the clip-path id.
        """

        cx, cy = _require_finite("clip.x", clip[0]), _require_finite("clip.y", clip[1])
        cw, ch = _require_non_negative("clip.width", clip[2]), _require_non_negative("clip.height", clip[3])

        clip_id = f"clip-{self._clip_counter}"
        self._clip_counter += 1

        snapshot_len = len(self._body)
        snapshot = (self._min_x, self._max_x, self._min_y, self._max_y)
        try:
            draw(ClippedRegion(self))
        finally:
            buffered = self._body[snapshot_len:]
            del self._body[snapshot_len:]
            self._min_x, self._max_x, self._min_y, self._max_y = snapshot

        self.add_def(
            Element(
                "clipPath",
                [("id", clip_id)],
                children=[
                    Element(
                        "rect",
                        [
                            ("x", format_number(cx)),
                            ("y", format_number(cy)),
                            ("width", format_number(cw)),
                            ("height", format_number(ch)),
                        ],
                    )
                ],
            )
        )
        self._body.append(Element("g", [("clip-path", f"url(#{clip_id})")], children=buffered))

        return clip_id

    # ------------------------------------------------------------------
    # Output

    def finalize(self, padding: float = 0.0) -> FinalizedCanvas:
        padding = _require_non_negative("padding", padding)
        min_x = math.floor(self._min_x - padding)
        min_y = math.floor(self._min_y - padding)
        width = math.ceil(self._max_x - self._min_x + 2 * padding)
        height = math.ceil(self._max_y - self._min_y + 2 * padding)
        # Integer flooring may shift the box left/up; keep the far edge covered.
        width = max(width, math.ceil(self._max_x + padding) - min_x)
        height = max(height, math.ceil(self._max_y + padding) - min_y)

        parts: List[str] = []
        if self._styles or self._defs:
            inner = "".join(f"<style>{css}</style>" for css in self._styles)
            inner += "".join(element.to_svg() for element in self._defs)
            parts.append(f"<defs>{inner}</defs>")
        parts.extend(element.to_svg() for element in self._body)
        logger.info(
            "Finalized canvas with %d elements, %d defs, viewBox=%d %d %d %d",
            len(self._body),
            len(self._defs),
            min_x,
            min_y,
            width,
            height,
        )
        return FinalizedCanvas(min_x=min_x, min_y=min_y, width=width, height=height, markup="".join(parts))


class ClippedRegion:
    """Proxy handed to clipped-region callbacks; only drawing is forwarded."""

    def __init__(self, canvas: Canvas) -> None:
        self._canvas = canvas

    def __getattr__(self, name: str):
        if name == "draw_in_clipped_region":
            raise CanvasError("clipped regions cannot be nested")
        if name.startswith("draw_"):
            return getattr(self._canvas, name)
        raise AttributeError(f"{name!r} is not available inside a clipped region")
