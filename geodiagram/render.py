"""Draw a solved diagram onto a :class:`~geodiagram.svg.Canvas`.

Draw order is fixed: shaded regions, lines (with their labels), angle
markers (with their labels), vertices (with their labels), region labels.
Every label goes through one :class:`~geodiagram.placement.LabelPlacer`, so
labels drawn earlier get the better spots.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .desugar import DesugaredDiagram
from .errors import GeometryReferenceError
from .placement import LabelPlacementDegraded, LabelPlacer, PlacedLabel, PlacementOptions, bounds_around
from .schema import AngleConstraint
from .solver.utils import centroid
from .svg import Canvas, CanvasOptions, PathBuilder, estimate_text_width
from .theme import (
    COLOR_AXIS,
    COLOR_BLACK,
    COLOR_TEXT,
    COLOR_WHITE,
    DASH_DASHED,
    FONT_SIZE_BASE,
    FONT_SIZE_LARGE,
    FONT_SIZE_MEDIUM,
    FONT_WEIGHT_BOLD,
    FONT_WEIGHT_MEDIUM,
    PADDING,
    POINT_RADIUS_BASE,
    STROKE_THICK,
    STROKE_XTHICK,
)

logger = logging.getLogger(__name__)

Point = Tuple[float, float]

RIGHT_ANGLE_MARKER_SIZE = 15.0
RIGHT_ANGLE_LABEL_RADIUS = 25.0
DEFAULT_ARC_RADIUS = 25.0
ARC_LABEL_OFFSET = 6.0
ANGLE_LABEL_FONT = FONT_SIZE_MEDIUM
ARC_OFFSET_TOTAL = ARC_LABEL_OFFSET + ANGLE_LABEL_FONT * 1.5
VERTEX_LABEL_DISTANCE = 15.0
LINE_LABEL_OFFSET = 12.0
ARC_OBSTACLE_STEPS = 8
RAY_MARKER_ID = "ray-arrow"


@dataclass
class RenderOptions:
    padding: float = PADDING
    placement: PlacementOptions = field(default_factory=PlacementOptions)
    font_px: float = FONT_SIZE_BASE


@dataclass
class RenderResult:
    svg: str
    positions: Dict[str, Point]
    labels: List[PlacedLabel]
    warnings: List[LabelPlacementDegraded]
    view_box: Tuple[int, int, int, int]


def _unit(a: Point, b: Point) -> Optional[Point]:
    dx, dy = b[0] - a[0], b[1] - a[1]
    length = math.hypot(dx, dy)
    if length <= 1e-9:
        return None
    return (dx / length, dy / length)


def _ray_end(start: Point, through: Point, box: Tuple[float, float, float, float]) -> Point:
    """Where the ray from ``start`` through ``through`` leaves ``box``."""

    direction = _unit(start, through)
    if direction is None:
        raise GeometryReferenceError("ray has zero length")
    min_x, max_x, min_y, max_y = box
    exits = []
    for d, s, lo, hi in ((direction[0], start[0], min_x, max_x), (direction[1], start[1], min_y, max_y)):
        if d > 1e-12:
            exits.append((hi - s) / d)
        elif d < -1e-12:
            exits.append((lo - s) / d)
    t = min(exits)
    # Always reach at least the through point.
    t = max(t, math.hypot(through[0] - start[0], through[1] - start[1]))
    return (start[0] + direction[0] * t, start[1] + direction[1] * t)


def _largest_gap_direction(angles: Sequence[float]) -> float:
    if not angles:
        return math.pi / 4
    ordered = sorted(angles)
    best_gap = -1.0
    best = math.pi / 4
    for i, a1 in enumerate(ordered):
        if i == len(ordered) - 1:
            gap = ordered[0] + 2 * math.pi - a1
        else:
            gap = ordered[i + 1] - a1
        if gap > best_gap + 1e-12:
            best_gap = gap
            best = a1 + gap / 2
    return best


def _angle_label_radius(c: AngleConstraint, size: float) -> float:
    viz = c.visualization
    if viz.type == "right":
        return RIGHT_ANGLE_LABEL_RADIUS
    base = (viz.radius or DEFAULT_ARC_RADIUS) + ARC_OFFSET_TOTAL
    radius = base
    half_sin = math.sin(size / 2)
    if half_sin > 0.01:
        radius = max(base, ANGLE_LABEL_FONT * 0.7 / half_sin)
    text = viz.label or ""
    if len(text) > 3:
        radius += 18 + max(0, len(text) - 4) * 4
    return radius


class _DiagramRenderer:
    def __init__(self, diagram: DesugaredDiagram, positions: Mapping[str, Point], options: RenderOptions) -> None:
        self.diagram = diagram
        self.spec = diagram.spec
        self.positions = dict(positions)
        self.options = options
        self.lines = diagram.lines
        chart = (0.0, 0.0, float(self.spec.width), float(self.spec.height))
        self.canvas = Canvas(CanvasOptions(chart_area=chart, font_px_default=options.font_px))
        self.figure_box = bounds_around(
            self.positions.values(), (0.0, float(self.spec.width), 0.0, float(self.spec.height)), 0.0
        )
        self.placer = LabelPlacer(
            bounds_around(self.positions.values(), self.figure_box, options.padding), options.placement
        )
        self.screen_segments: Dict[str, Tuple[Point, Point]] = {}

    def pos(self, name: str) -> Point:
        try:
            return self.positions[name]
        except KeyError:
            raise GeometryReferenceError(f"vertex {name} has no solved position", element=name) from None

    # ------------------------------------------------------------------

    def render(self) -> RenderResult:
        self._collect_screen_segments()
        for name in self.diagram.vertex_order:
            self.placer.add_circle(self.pos(name), POINT_RADIUS_BASE)
        self._draw_shaded_regions()
        self._draw_lines()
        self._draw_angles()
        self._draw_vertices()
        self._draw_region_labels()
        final = self.canvas.finalize(self.options.padding)
        logger.info(
            "Rendered diagram: %d labels placed, %d degraded", len(self.placer.placed), len(self.placer.warnings)
        )
        return RenderResult(
            svg=final.to_document(self.options.font_px),
            positions=self.positions,
            labels=list(self.placer.placed),
            warnings=list(self.placer.warnings),
            view_box=(final.min_x, final.min_y, final.width, final.height),
        )

    def _collect_screen_segments(self) -> None:
        for line in self.spec.lines:
            start, through = self.pos(line.from_), self.pos(line.to)
            if line.is_ray:
                try:
                    end = _ray_end(start, through, self.figure_box)
                except GeometryReferenceError:
                    raise GeometryReferenceError(f"ray {line.id} has zero length", element=line.id) from None
            else:
                end = through
            self.screen_segments[line.id] = (start, end)
            self.placer.add_segment(start, end)

    def _place_text(
        self,
        ideal: Point,
        text: str,
        *,
        font_px: float,
        font_weight: Optional[str] = None,
        fill: str = COLOR_TEXT,
        halo: bool = False,
    ) -> None:
        width = estimate_text_width(text, font_px)
        placement = self.placer.place(ideal, width, font_px, text)
        extra = {}
        if halo:
            extra = {"stroke": COLOR_WHITE, "stroke_width": 0.3, "paint_order": "stroke fill"}
        self.canvas.draw_text(
            placement.x,
            placement.y,
            text,
            font_px=font_px,
            anchor="middle",
            baseline="middle",
            font_weight=font_weight,
            fill=fill,
            **extra,
        )

    # ------------------------------------------------------------------

    def _draw_shaded_regions(self) -> None:
        for region in self.spec.shaded_regions or []:
            self.canvas.draw_polygon(
                [self.pos(name) for name in region.vertices],
                fill=region.fill_color,
                fill_opacity=region.opacity,
            )

    def _draw_lines(self) -> None:
        all_points = list(self.positions.values())
        figure_center = centroid(all_points)
        for line in self.spec.lines:
            start, end = self.screen_segments[line.id]
            marker = None
            if line.is_ray:
                marker = self.canvas.add_arrow_marker(RAY_MARKER_ID, COLOR_AXIS)
            self.canvas.draw_line(
                start[0],
                start[1],
                end[0],
                end[1],
                stroke=COLOR_AXIS,
                stroke_width=STROKE_THICK,
                dash=DASH_DASHED if line.style == "dashed" else None,
                marker_end=marker,
            )
        for line in self.spec.lines:
            if line.label is None:
                continue
            a, b = self.pos(line.from_), self.pos(line.to)
            mid = ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)
            direction = _unit(a, b)
            if direction is None:
                raise GeometryReferenceError(f"line {line.id} has zero length", element=line.id)
            normal = (-direction[1], direction[0])
            away = (mid[0] - figure_center[0], mid[1] - figure_center[1])
            if normal[0] * away[0] + normal[1] * away[1] < 0:
                normal = (-normal[0], -normal[1])
            text = line.label.text
            offset = LINE_LABEL_OFFSET + FONT_SIZE_MEDIUM / 2
            ideal = (mid[0] + normal[0] * offset, mid[1] + normal[1] * offset)
            self._place_text(ideal, text, font_px=FONT_SIZE_MEDIUM, halo=True)

    def _angle_geometry(self, c: AngleConstraint) -> Tuple[Point, Point, Point]:
        vertex = self.pos(c.vertex)
        units = []
        for lid in (c.line1, c.line2):
            line = self.lines[lid]
            other = line.to if line.from_ == c.vertex else line.from_
            unit = _unit(vertex, self.pos(other))
            if unit is None:
                raise GeometryReferenceError(
                    f"angle {c.id}: {lid} has zero length at {c.vertex}", element=c.id
                )
            units.append(unit)
        return vertex, units[0], units[1]

    def _draw_angles(self) -> None:
        for c in self.diagram.constraints:
            if c.type != "angle":
                continue
            viz = c.visualization
            vertex, u1, u2 = self._angle_geometry(c)
            a1 = math.atan2(u1[1], u1[0])
            a2 = math.atan2(u2[1], u2[0])
            diff = a2 - a1
            while diff > math.pi:
                diff -= 2 * math.pi
            while diff < -math.pi:
                diff += 2 * math.pi
            obstacles: List[Point] = []

            if viz.type == "right":
                size = RIGHT_ANGLE_MARKER_SIZE
                m1 = (vertex[0] + u1[0] * size, vertex[1] + u1[1] * size)
                m2 = (vertex[0] + u2[0] * size, vertex[1] + u2[1] * size)
                m3 = (vertex[0] + (u1[0] + u2[0]) * size, vertex[1] + (u1[1] + u2[1]) * size)
                path = PathBuilder().move_to(*m1).line_to(*m3).line_to(*m2)
                self.canvas.draw_path(path, stroke=viz.color, stroke_width=STROKE_THICK)
                obstacles = [m1, m3, m2]
            elif viz.type == "arc":
                radius = viz.radius or DEFAULT_ARC_RADIUS
                start = (vertex[0] + radius * u1[0], vertex[1] + radius * u1[1])
                end = (vertex[0] + radius * u2[0], vertex[1] + radius * u2[1])
                path = PathBuilder().move_to(*start).arc_to(
                    radius, radius, viz.x_axis_rotation, viz.large_arc_flag, viz.sweep_flag, *end
                )
                self.canvas.draw_path(path, stroke=viz.color, stroke_width=STROKE_XTHICK)
                sweep = (a2 - a1) % (2 * math.pi)
                if viz.sweep_flag == 0:
                    sweep -= 2 * math.pi
                obstacles = [
                    (
                        vertex[0] + radius * math.cos(a1 + sweep * k / ARC_OBSTACLE_STEPS),
                        vertex[1] + radius * math.sin(a1 + sweep * k / ARC_OBSTACLE_STEPS),
                    )
                    for k in range(ARC_OBSTACLE_STEPS + 1)
                ]

            if viz.label:
                mid = a1 + diff / 2
                if viz.label_position_hint == "outside":
                    mid += math.pi
                label_radius = _angle_label_radius(c, abs(diff))
                ideal = (vertex[0] + label_radius * math.cos(mid), vertex[1] + label_radius * math.sin(mid))
                self._place_text(
                    ideal,
                    viz.label,
                    font_px=ANGLE_LABEL_FONT,
                    font_weight=FONT_WEIGHT_MEDIUM,
                    halo=True,
                )
            if obstacles:
                self.placer.add_polyline(obstacles)

    def _incident_directions(self, name: str) -> List[float]:
        here = self.pos(name)
        angles: List[float] = []
        for line_id, (start, end) in self.screen_segments.items():
            line = self.lines[line_id]
            targets: List[Point] = []
            if line.from_ == name:
                targets.append(end)
            elif line.to == name:
                targets.append(start)
                if line.is_ray:
                    targets.append(end)
            else:
                continue
            for target in targets:
                unit = _unit(here, target)
                if unit is not None:
                    angles.append(math.atan2(unit[1], unit[0]))
        for c in self.diagram.constraints:
            if c.type == "intersect" and c.id == name:
                hosts = (c.line1, c.line2)
            elif c.type == "midpoint" and c.id == name:
                hosts = (c.line,)
            else:
                continue
            for lid in hosts:
                start, end = self.screen_segments[lid]
                for target in (start, end):
                    unit = _unit(here, target)
                    if unit is not None:
                        angles.append(math.atan2(unit[1], unit[0]))
        return angles

    def _draw_vertices(self) -> None:
        for name in self.diagram.vertex_order:
            x, y = self.pos(name)
            self.canvas.draw_circle(x, y, POINT_RADIUS_BASE, fill=COLOR_BLACK)
        for name in self.diagram.vertex_order:
            label = self.diagram.vertex_labels.get(name)
            if not label:
                continue
            x, y = self.pos(name)
            angle = _largest_gap_direction(self._incident_directions(name))
            dx, dy = math.cos(angle), math.sin(angle)
            width = estimate_text_width(label, FONT_SIZE_LARGE)
            reach = VERTEX_LABEL_DISTANCE + abs(dx) * width / 2 + abs(dy) * FONT_SIZE_LARGE / 2
            self._place_text(
                (x + dx * reach, y + dy * reach),
                label,
                font_px=FONT_SIZE_LARGE,
                font_weight=FONT_WEIGHT_BOLD,
            )

    def _draw_region_labels(self) -> None:
        for label in self.spec.region_labels or []:
            placement = label.placement
            if placement.type == "centroid":
                anchor = centroid([self.pos(name) for name in placement.vertices])
            else:
                line = self.lines[placement.line]
                a, b = self.pos(line.from_), self.pos(line.to)
                t = placement.offset
                anchor = (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)
            self._place_text(anchor, label.text, font_px=FONT_SIZE_MEDIUM, fill=label.color or COLOR_TEXT)


def render_diagram(
    diagram: DesugaredDiagram, positions: Mapping[str, Point], options: Optional[RenderOptions] = None
) -> RenderResult:
    """Render ``diagram`` at the solved ``positions`` into an SVG document."""

    return _DiagramRenderer(diagram, positions, options or RenderOptions()).render()
