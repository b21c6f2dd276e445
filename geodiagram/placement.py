"""Collision-aware text placement shared by every label in a diagram render.

Rectangles are ``(min_x, max_x, min_y, max_y)`` tuples.  A label is first
tried at its ideal anchor; on collision, candidates are sampled on concentric
rings around the anchor and the first free in-bounds position wins.  When the
search radius is exhausted the label is clamped into bounds anyway and a
:class:`LabelPlacementDegraded` warning is recorded.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

Point = Tuple[float, float]
Rect = Tuple[float, float, float, float]
Segment = Tuple[Point, Point]

_EPS = 1e-9


@dataclass
class PlacementOptions:
    ring_step: float = 4.0
    angular_samples: int = 16
    max_radius: float = 64.0
    label_padding: float = 2.0
    bounds_padding: float = 2.0


@dataclass(frozen=True)
class PlacedLabel:
    x: float
    y: float
    width: float
    height: float
    padding: float
    text: str = ""

    @property
    def rect(self) -> Rect:
        return _rect_from_center((self.x, self.y), self.width + 2 * self.padding, self.height + 2 * self.padding)


@dataclass(frozen=True)
class LabelPlacementDegraded:
    text: str
    ideal: Point
    position: Point
    message: str


@dataclass(frozen=True)
class Placement:
    x: float
    y: float
    label: PlacedLabel
    radius: float
    degraded: bool = False


def _rect_from_center(center: Point, width: float, height: float) -> Rect:
    half_w = 0.5 * width
    half_h = 0.5 * height
    return (center[0] - half_w, center[0] + half_w, center[1] - half_h, center[1] + half_h)


def _point_in_rect(point: Point, rect: Rect) -> bool:
    x, y = point
    return rect[0] - _EPS <= x <= rect[1] + _EPS and rect[2] - _EPS <= y <= rect[3] + _EPS


def rects_intersect(r1: Rect, r2: Rect) -> bool:
    return not (r1[1] < r2[0] or r2[1] < r1[0] or r1[3] < r2[2] or r2[3] < r1[2])


def _orientation(p: Point, q: Point, r: Point) -> float:
    return (q[1] - p[1]) * (r[0] - q[0]) - (q[0] - p[0]) * (r[1] - q[1])


def _bbox(p: Point, q: Point) -> Rect:
    return (min(p[0], q[0]), max(p[0], q[0]), min(p[1], q[1]), max(p[1], q[1]))


def segments_intersect(p1: Point, p2: Point, q1: Point, q2: Point) -> bool:
    o1 = _orientation(p1, p2, q1)
    o2 = _orientation(p1, p2, q2)
    o3 = _orientation(q1, q2, p1)
    o4 = _orientation(q1, q2, p2)
    if o1 == 0 and _point_in_rect(q1, _bbox(p1, p2)):
        return True
    if o2 == 0 and _point_in_rect(q2, _bbox(p1, p2)):
        return True
    if o3 == 0 and _point_in_rect(p1, _bbox(q1, q2)):
        return True
    if o4 == 0 and _point_in_rect(p2, _bbox(q1, q2)):
        return True
    return (o1 > 0) != (o2 > 0) and (o3 > 0) != (o4 > 0)


def segment_intersects_rect(start: Point, end: Point, rect: Rect) -> bool:
    if _point_in_rect(start, rect) or _point_in_rect(end, rect):
        return True
    corners = [(rect[0], rect[2]), (rect[1], rect[2]), (rect[1], rect[3]), (rect[0], rect[3])]
    edges = list(zip(corners, corners[1:] + corners[:1]))
    return any(segments_intersect(start, end, e1, e2) for e1, e2 in edges)


def _circle_intersects_rect(center: Point, radius: float, rect: Rect) -> bool:
    closest_x = min(max(center[0], rect[0]), rect[1])
    closest_y = min(max(center[1], rect[2]), rect[3])
    return math.hypot(center[0] - closest_x, center[1] - closest_y) <= radius + 1e-6


def _rect_within(inner: Rect, outer: Rect) -> bool:
    return (
        inner[0] >= outer[0] - _EPS
        and inner[1] <= outer[1] + _EPS
        and inner[2] >= outer[2] - _EPS
        and inner[3] <= outer[3] + _EPS
    )


def ring_offsets(options: PlacementOptions) -> np.ndarray:
    """Candidate offsets ordered by ring radius, then by angle from 0."""

    radii = np.arange(1, int(math.floor(options.max_radius / options.ring_step + _EPS)) + 1) * options.ring_step
    angles = np.arange(options.angular_samples) * (2.0 * math.pi / options.angular_samples)
    rr, aa = np.meshgrid(radii, angles, indexing="ij")
    offsets = np.stack([rr * np.cos(aa), rr * np.sin(aa), rr], axis=-1)
    return offsets.reshape(-1, 3)


class LabelPlacer:
    """Tracks obstacles and committed labels for one diagram render."""

    def __init__(self, bounds: Rect, options: Optional[PlacementOptions] = None) -> None:
        self.options = options or PlacementOptions()
        if self.options.ring_step <= 0 or self.options.angular_samples <= 0 or self.options.max_radius < 0:
            raise ValueError("placement ring step, sample count and radius must be positive")
        pad = self.options.bounds_padding
        self.bounds: Rect = (bounds[0] + pad, bounds[1] - pad, bounds[2] + pad, bounds[3] - pad)
        self.segments: List[Segment] = []
        self.circles: List[Tuple[Point, float]] = []
        self.placed: List[PlacedLabel] = []
        self.warnings: List[LabelPlacementDegraded] = []
        self._offsets = ring_offsets(self.options)

    def add_segment(self, start: Point, end: Point) -> None:
        self.segments.append((start, end))

    def add_polyline(self, points: Sequence[Point]) -> None:
        for start, end in zip(points, points[1:]):
            self.add_segment(start, end)

    def add_circle(self, center: Point, radius: float) -> None:
        self.circles.append((center, radius))

    def collides(self, rect: Rect) -> bool:
        if any(rects_intersect(rect, other.rect) for other in self.placed):
            return True
        if any(_circle_intersects_rect(center, radius, rect) for center, radius in self.circles):
            return True
        return any(segment_intersects_rect(start, end, rect) for start, end in self.segments)

    def is_free(self, center: Point, width: float, height: float) -> bool:
        pad = self.options.label_padding
        rect = _rect_from_center(center, width + 2 * pad, height + 2 * pad)
        return _rect_within(rect, self.bounds) and not self.collides(rect)

    def _clamp(self, center: Point, width: float, height: float) -> Point:
        pad = self.options.label_padding
        half_w = width / 2.0 + pad
        half_h = height / 2.0 + pad
        min_x, max_x, min_y, max_y = self.bounds
        if max_x - min_x < 2 * half_w:
            x = (min_x + max_x) / 2.0
        else:
            x = min(max(center[0], min_x + half_w), max_x - half_w)
        if max_y - min_y < 2 * half_h:
            y = (min_y + max_y) / 2.0
        else:
            y = min(max(center[1], min_y + half_h), max_y - half_h)
        return (x, y)

    def _commit(self, center: Point, width: float, height: float, text: str, radius: float, degraded: bool) -> Placement:
        label = PlacedLabel(center[0], center[1], width, height, self.options.label_padding, text)
        self.placed.append(label)
        return Placement(center[0], center[1], label, radius, degraded)

    def place(self, ideal: Point, width: float, height: float, text: str = "") -> Placement:
        """Find a free position for a ``width`` x ``height`` box centred near ``ideal``."""

        if self.is_free(ideal, width, height):
            return self._commit(ideal, width, height, text, 0.0, False)

        for dx, dy, radius in self._offsets:
            candidate = (ideal[0] + float(dx), ideal[1] + float(dy))
            if self.is_free(candidate, width, height):
                logger.debug("Placed %r at ring radius %.1f", text, radius)
                return self._commit(candidate, width, height, text, float(radius), False)

        fallback = self._clamp(ideal, width, height)
        warning = LabelPlacementDegraded(
            text=text,
            ideal=ideal,
            position=fallback,
            message=(
                f"no collision-free position for label {text!r} within "
                f"{self.options.max_radius:g}px of ({ideal[0]:.1f}, {ideal[1]:.1f}); clamped"
            ),
        )
        self.warnings.append(warning)
        logger.warning(warning.message)
        return self._commit(fallback, width, height, text, self.options.max_radius, True)

    def overlapping_pairs(self) -> List[Tuple[int, int]]:
        out = []
        for i, first in enumerate(self.placed):
            for j in range(i + 1, len(self.placed)):
                if rects_intersect(first.rect, self.placed[j].rect):
                    out.append((i, j))
        return out


def bounds_around(points: Iterable[Point], base: Rect, margin: float) -> Rect:
    """``base`` grown to cover ``points`` plus ``margin`` on every side."""

    min_x, max_x, min_y, max_y = base
    for x, y in points:
        min_x = min(min_x, x - margin)
        max_x = max(max_x, x + margin)
        min_y = min(min_y, y - margin)
        max_y = max(max_y, y + margin)
    return (min_x, max_x, min_y, max_y)
