"""Translate a desugared diagram into polynomial constraints over z3 reals."""

from __future__ import annotations

import logging
import math
from fractions import Fraction
from typing import List, Optional, Sequence, Tuple

import z3

from ..desugar import DesugaredDiagram, RegularPolygonRing
from ..errors import GeometryReferenceError
from ..logging_utils import apply_debug_logging
from ..schema import (
    AngleConstraint,
    EqualAngleConstraint,
    EqualLengthConstraint,
    IntersectConstraint,
    MidpointConstraint,
    ParallelConstraint,
    PerpendicularConstraint,
    SymmetryConstraint,
)
from .model import Model, PointName, PointVars, SolverConstraint
from .utils import COS_DENOMINATOR_LIMIT, cos_sign, cos_squared_fraction, exact_fraction

logger = logging.getLogger(__name__)

Vec = Tuple[z3.ArithRef, z3.ArithRef]


class _Z3Builder:
    """Internal helper that accumulates z3 assertions for a diagram."""

    def __init__(self, diagram: DesugaredDiagram, ctx: z3.Context, cos_limit: int) -> None:
        self.diagram = diagram
        self.ctx = ctx
        self.cos_limit = cos_limit
        self.lines = diagram.lines
        self.model = Model(diagram=diagram, context=ctx)
        self._current: Optional[SolverConstraint] = None
        self._ring_count = 0
        self._ring_corners = self._collect_ring_corners()

    # ------------------------------------------------------------------
    # Variables and terms

    def point(self, name: PointName) -> PointVars:
        try:
            pv = self.model.points[name]
        except KeyError:
            raise GeometryReferenceError(f"unknown vertex {name}", element=name) from None
        self.model.referenced.add(name)
        return pv

    def aux(self, name: str) -> z3.ArithRef:
        base, suffix = name, 1
        while name in self.model.aux:
            name = f"{base}_{suffix}"
            suffix += 1
        var = z3.Real(name, self.ctx)
        self.model.aux[name] = var
        return var

    def rational(self, value: Fraction) -> z3.ArithRef:
        return z3.RatVal(value.numerator, value.denominator, self.ctx)

    def vec(self, a: PointName, b: PointName) -> Vec:
        pa, pb = self.point(a), self.point(b)
        return (pb.x - pa.x, pb.y - pa.y)

    def line_vec(self, line_id: str) -> Vec:
        line = self.lines[line_id]
        return self.vec(line.from_, line.to)

    @staticmethod
    def dot(u: Vec, v: Vec) -> z3.ArithRef:
        return u[0] * v[0] + u[1] * v[1]

    @staticmethod
    def cross(u: Vec, v: Vec) -> z3.ArithRef:
        return u[0] * v[1] - u[1] * v[0]

    def _far_end(self, line_id: str, vertex: PointName) -> PointName:
        line = self.lines[line_id]
        return line.to if line.from_ == vertex else line.from_

    def angle_rays(self, c: AngleConstraint) -> Tuple[Vec, Vec]:
        u = self.vec(c.vertex, self._far_end(c.line1, c.vertex))
        v = self.vec(c.vertex, self._far_end(c.line2, c.vertex))
        return u, v

    def _collect_ring_corners(self):
        corners = {}
        for c in self.diagram.constraints:
            if not isinstance(c, RegularPolygonRing):
                continue
            n = len(c.vertices)
            interior = 180.0 * (n - 2) / n
            for i, name in enumerate(c.vertices):
                neighbours = frozenset((c.vertices[i - 1], c.vertices[(i + 1) % n]))
                corners[(name, neighbours)] = interior
        return corners

    def ring_interior(self, c: AngleConstraint) -> Optional[float]:
        """Interior angle of the regular ring whose corner ``c`` spans, if any."""

        ends = frozenset((self._far_end(c.line1, c.vertex), self._far_end(c.line2, c.vertex)))
        return self._ring_corners.get((c.vertex, ends))

    # ------------------------------------------------------------------
    # Bookkeeping

    def _begin(self, index: int, kind: str, entities: Sequence[str], value: Optional[float], source: object) -> None:
        record = SolverConstraint(index=index, kind=kind, entities=tuple(entities), value=value, source=source)
        self.model.constraints.append(record)
        self._current = record

    def _assert(self, expr: z3.BoolRef) -> None:
        self.model.assertions.append(expr)
        if self._current is not None:
            self._current.assertions += 1

    # ------------------------------------------------------------------
    # Build

    def build(self) -> Model:
        for name in self.diagram.vertex_order:
            self.model.points[name] = PointVars(
                x=z3.Real(f"{name}_x", self.ctx),
                y=z3.Real(f"{name}_y", self.ctx),
            )
        for line in self.diagram.spec.lines:
            self._begin(-1, "nonDegenerate", (line.id,), None, line)
            u = self.line_vec(line.id)
            self._assert(self.dot(u, u) > 0)
        for idx, c in enumerate(self.diagram.constraints):
            self._dispatch(idx, c)
        self._current = None
        logger.info(
            "Translated %d constraints into %d assertions over %d points and %d auxiliary variables",
            len(self.diagram.constraints),
            len(self.model.assertions),
            len(self.model.points),
            len(self.model.aux),
        )
        return self.model

    def _dispatch(self, idx: int, c: object) -> None:
        kind = c.type
        if kind == "angle":
            self._handle_angle(idx, c)
        elif kind == "equalLength":
            self._handle_equal_length(idx, c)
        elif kind == "equalAngle":
            self._handle_equal_angle(idx, c)
        elif kind == "parallel":
            self._handle_parallel(idx, c)
        elif kind == "perpendicular":
            self._handle_perpendicular(idx, c)
        elif kind == "symmetry":
            self._handle_symmetry(idx, c)
        elif kind == "intersect":
            self._handle_intersect(idx, c)
        elif kind == "midpoint":
            self._handle_midpoint(idx, c)
        elif kind == "regularRing":
            self._handle_regular_ring(idx, c)
        else:
            raise GeometryReferenceError(f"constraints[{idx}]: unsupported constraint kind {kind!r}")

    # ------------------------------------------------------------------
    # Handlers

    def _pin_angle(self, c: AngleConstraint, u: Vec, v: Vec, measure: float) -> None:
        d = self.dot(u, v)
        interior = self.ring_interior(c)
        if interior is None:
            cos2 = self.rational(cos_squared_fraction(measure, self.cos_limit))
            self._assert(d * d == self.dot(u, u) * self.dot(v, v) * cos2)
        elif math.isclose(measure, interior, abs_tol=1e-6) or math.isclose(measure, 360 - interior, abs_tol=1e-6):
            # Exact irrational corner; the ring alone pins it.
            self._current.note = "fixed by regular ring"
        else:
            logger.warning(
                "angle at %s measures %s but its regular polygon corner is %s",
                c.vertex,
                format(measure, "g"),
                format(interior, "g"),
            )
            self._assert(z3.BoolVal(False, self.ctx))
            return
        sign = cos_sign(measure)
        if sign > 0:
            self._assert(d > 0)
        elif sign < 0:
            self._assert(d < 0)

    def _handle_angle(self, idx: int, c: AngleConstraint) -> None:
        viz = c.visualization
        self._begin(idx, "angle", (c.vertex, c.line1, c.line2), c.measure, c)
        u, v = self.angle_rays(c)
        self._pin_angle(c, u, v, c.measure)
        # Positive cross: v is clockwise of u on a y-down canvas (SVG sweep-flag 1).
        orientation = 1 if viz.sweep_flag == 1 else -1
        if c.measure > 180:
            orientation = -orientation
        cross = self.cross(u, v)
        self._assert(cross >= 0 if orientation > 0 else cross <= 0)

    def _handle_equal_length(self, idx: int, c: EqualLengthConstraint) -> None:
        self._begin(idx, "equalLength", c.lines, c.value, c)
        ref = self.line_vec(c.lines[0])
        ref_sq = self.dot(ref, ref)
        for lid in c.lines[1:]:
            other = self.line_vec(lid)
            self._assert(self.dot(other, other) == ref_sq)
        if c.value is not None:
            self.model.has_absolute_length = True
            value = exact_fraction(c.value)
            self._assert(ref_sq == self.rational(value * value))

    def _handle_equal_angle(self, idx: int, c: EqualAngleConstraint) -> None:
        self._begin(idx, "equalAngle", c.angles, c.value, c)
        angles = self.diagram.angles
        ref = angles[c.angles[0]]
        u0, v0 = self.angle_rays(ref)
        d0 = self.dot(u0, v0)
        n0 = self.dot(u0, u0) * self.dot(v0, v0)
        for aid in c.angles[1:]:
            ui, vi = self.angle_rays(angles[aid])
            di = self.dot(ui, vi)
            ni = self.dot(ui, ui) * self.dot(vi, vi)
            # cos^2 equality without division: di^2 / ni == d0^2 / n0.
            self._assert(di * di * n0 == d0 * d0 * ni)
            self._assert(di * d0 >= 0)
        if c.value is not None:
            pinned = next((angles[aid] for aid in c.angles if self.ring_interior(angles[aid]) is not None), ref)
            self._pin_angle(pinned, *self.angle_rays(pinned), c.value)

    def _handle_parallel(self, idx: int, c: ParallelConstraint) -> None:
        self._begin(idx, "parallel", c.lines, None, c)
        first = self.line_vec(c.lines[0])
        for lid in c.lines[1:]:
            self._assert(self.cross(first, self.line_vec(lid)) == 0)

    def _handle_perpendicular(self, idx: int, c: PerpendicularConstraint) -> None:
        self._begin(idx, "perpendicular", c.lines[:2], None, c)
        if len(c.lines) > 2:
            logger.warning(
                "constraints[%d] perpendicular relates only %s and %s; ignoring %s",
                idx,
                c.lines[0],
                c.lines[1],
                ", ".join(c.lines[2:]),
            )
            self._current.note = "extra lines ignored"
        self._assert(self.dot(self.line_vec(c.lines[0]), self.line_vec(c.lines[1])) == 0)

    def _symmetry_pairs(self, c: SymmetryConstraint) -> List[Tuple[PointName, PointName]]:
        pairs: List[Tuple[PointName, PointName]] = []
        for first, second in c.pairs:
            if first.startswith("line_"):
                a, b = self.lines[first], self.lines[second]
                pairs.append((a.from_, b.from_))
                pairs.append((a.to, b.to))
            else:
                pairs.append((first, second))
        return pairs

    def _handle_symmetry(self, idx: int, c: SymmetryConstraint) -> None:
        axis_desc = c.axis_line or c.axis_type
        self._begin(idx, "symmetry", tuple(c.elements), None, c)
        self._current.note = f"axis={axis_desc}"
        spec = self.diagram.spec
        for p_name, q_name in self._symmetry_pairs(c):
            p, q = self.point(p_name), self.point(q_name)
            if c.axis_line is not None:
                axis = self.lines[c.axis_line]
                a = self.point(axis.from_)
                direction = self.line_vec(c.axis_line)
                t = self.aux(f"sym_{p_name}_{q_name}_t")
                # Midpoint of (p, q) on the axis, written as p + q = 2 (a + t d).
                self._assert(p.x + q.x == 2 * (a.x + t * direction[0]))
                self._assert(p.y + q.y == 2 * (a.y + t * direction[1]))
                self._assert(self.dot((q.x - p.x, q.y - p.y), direction) == 0)
            elif c.axis_type == "horizontal":
                self.model.uses_canvas_axes = True
                self._assert(p.y + q.y == self.rational(exact_fraction(spec.height)))
                self._assert(q.x == p.x)
            else:
                self.model.uses_canvas_axes = True
                self._assert(p.x + q.x == self.rational(exact_fraction(spec.width)))
                self._assert(q.y == p.y)

    def _handle_intersect(self, idx: int, c: IntersectConstraint) -> None:
        self._begin(idx, "intersect", (c.id, c.line1, c.line2), None, c)
        x = self.point(c.id)
        t = self.aux(f"{c.id}_t")
        u = self.aux(f"{c.id}_u")
        for param, lid in ((t, c.line1), (u, c.line2)):
            line = self.lines[lid]
            a = self.point(line.from_)
            d = self.line_vec(lid)
            self._assert(x.x == a.x + param * d[0])
            self._assert(x.y == a.y + param * d[1])

    def _handle_midpoint(self, idx: int, c: MidpointConstraint) -> None:
        self._begin(idx, "midpoint", (c.id, c.line), None, c)
        line = self.lines[c.line]
        m, p1, p2 = self.point(c.id), self.point(line.from_), self.point(line.to)
        self._assert(2 * m.x == p1.x + p2.x)
        self._assert(2 * m.y == p1.y + p2.y)

    def _handle_regular_ring(self, idx: int, c: RegularPolygonRing) -> None:
        self._begin(idx, "regularRing", c.vertices, None, c.source)
        ring = self._ring_count
        self._ring_count += 1
        cx = self.aux(f"ring{ring}_cx")
        cy = self.aux(f"ring{ring}_cy")
        names = list(c.vertices)
        radii = []
        for name in names:
            p = self.point(name)
            radii.append((p.x - cx) * (p.x - cx) + (p.y - cy) * (p.y - cy))
        for radius in radii[1:]:
            self._assert(radius == radii[0])
        n = len(names)
        sides = []
        for i in range(n):
            edge = self.vec(names[i], names[(i + 1) % n])
            for j in range(n):
                if j in (i, (i + 1) % n):
                    continue
                sides.append(self.cross(edge, self.vec(names[i], names[j])))
        # Either orientation, as long as every vertex sits strictly on one side of every edge.
        self._assert(z3.Or(z3.And([s > 0 for s in sides]), z3.And([s < 0 for s in sides])))


def translate(diagram: DesugaredDiagram, *, cos_denominator_limit: int = COS_DENOMINATOR_LIMIT) -> Model:
    """Build a :class:`Model` with a fresh z3 context for ``diagram``."""

    logger.info(
        "Translating diagram: vertices=%d lines=%d constraints=%d",
        len(diagram.vertex_order),
        len(diagram.lines),
        len(diagram.constraints),
    )
    builder = _Z3Builder(diagram, z3.Context(), cos_denominator_limit)
    return builder.build()


apply_debug_logging(globals(), logger=logger)
