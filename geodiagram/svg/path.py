"""Incremental SVG path builder with a conservative bounding box."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .text import format_number


@dataclass(frozen=True)
class BoundingBox:
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def expand(self, amount: float) -> "BoundingBox":
        return BoundingBox(
            self.min_x - amount,
            self.max_x + amount,
            self.min_y - amount,
            self.max_y + amount,
        )

    def as_rect(self) -> Tuple[float, float, float, float]:
        return (self.min_x, self.max_x, self.min_y, self.max_y)


class PathBuilder:
    """Accumulates path commands and tracks the extent of every point touched.

    Curves contribute their control points rather than their true extrema, and
    elliptical arcs contribute only their start and end points.  The resulting
    box is therefore an approximation: loose for Bezier curves and possibly
    tight-but-short for wide arcs.
    """

    def __init__(self) -> None:
        self._tokens: List[str] = []
        self._min_x = float("inf")
        self._max_x = float("-inf")
        self._min_y = float("inf")
        self._max_y = float("-inf")
        self._cursor: Optional[Tuple[float, float]] = None

    def _track(self, x: float, y: float) -> None:
        self._min_x = min(self._min_x, x)
        self._max_x = max(self._max_x, x)
        self._min_y = min(self._min_y, y)
        self._max_y = max(self._max_y, y)

    def _emit(self, command: str, *values: float) -> None:
        parts = [command] + [format_number(value) for value in values]
        self._tokens.append(" ".join(parts))

    def move_to(self, x: float, y: float) -> "PathBuilder":
        self._emit("M", x, y)
        self._track(x, y)
        self._cursor = (x, y)
        return self

    def line_to(self, x: float, y: float) -> "PathBuilder":
        self._emit("L", x, y)
        self._track(x, y)
        self._cursor = (x, y)
        return self

    def quadratic_curve_to(self, cx: float, cy: float, x: float, y: float) -> "PathBuilder":
        self._emit("Q", cx, cy, x, y)
        self._track(cx, cy)
        self._track(x, y)
        self._cursor = (x, y)
        return self

    def bezier_curve_to(
        self, c1x: float, c1y: float, c2x: float, c2y: float, x: float, y: float
    ) -> "PathBuilder":
        self._emit("C", c1x, c1y, c2x, c2y, x, y)
        self._track(c1x, c1y)
        self._track(c2x, c2y)
        self._track(x, y)
        self._cursor = (x, y)
        return self

    def arc_to(
        self,
        rx: float,
        ry: float,
        x_axis_rotation: float,
        large_arc_flag: int,
        sweep_flag: int,
        x: float,
        y: float,
    ) -> "PathBuilder":
        self._tokens.append(
            "A {rx} {ry} {rot} {laf} {sf} {x} {y}".format(
                rx=format_number(rx),
                ry=format_number(ry),
                rot=format_number(x_axis_rotation),
                laf=int(large_arc_flag),
                sf=int(sweep_flag),
                x=format_number(x),
                y=format_number(y),
            )
        )
        if self._cursor is not None:
            self._track(*self._cursor)
        self._track(x, y)
        self._cursor = (x, y)
        return self

    def close_path(self) -> "PathBuilder":
        self._tokens.append("Z")
        return self

    @property
    def is_empty(self) -> bool:
        return not self._tokens

    def to_path_data(self) -> str:
        return " ".join(self._tokens)

    def bounding_box(self) -> Optional[BoundingBox]:
        if self._min_x == float("inf"):
            return None
        return BoundingBox(self._min_x, self._max_x, self._min_y, self._max_y)
