"""Utility helpers shared across solver modules."""

from __future__ import annotations

import logging
import math
from fractions import Fraction
from typing import Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..desugar import DesugaredDiagram
from ..errors import ModelExtractionError
from .model import Coords, PointName

logger = logging.getLogger(__name__)

COS_DENOMINATOR_LIMIT = 10**6


def exact_fraction(value: float) -> Fraction:
    """Exact rational for a user-supplied decimal (``0.1`` becomes ``1/10``)."""

    return Fraction(repr(float(value)))


def cos_squared_fraction(measure_deg: float, limit: int = COS_DENOMINATOR_LIMIT) -> Fraction:
    """Squared cosine of ``measure_deg`` as a rational with a bounded denominator.

    Right angles map to exactly 0 and 60 degrees to exactly 1/4, so exact
    relations such as perpendicularity stay consistent with angle constraints.
    """

    cos_val = math.cos(math.radians(measure_deg))
    return Fraction(cos_val * cos_val).limit_denominator(limit)


def cos_sign(measure_deg: float, tol: float = 1e-12) -> int:
    cos_val = math.cos(math.radians(measure_deg))
    if abs(cos_val) <= tol:
        return 0
    return 1 if cos_val > 0 else -1


def parse_model_number(text: str, *, variable: Optional[str] = None) -> float:
    """Parse a solver numeral (``"1.25"``, ``"-3/4"``, ``"1.4142135623?"``) into a float."""

    cleaned = text.strip().rstrip("?").strip()
    if not cleaned:
        raise ModelExtractionError(f"empty model value for {variable}", variable=variable)
    try:
        if "/" in cleaned:
            num_text, den_text = cleaned.split("/", 1)
            numerator = Fraction(num_text.strip())
            denominator = Fraction(den_text.strip())
            if denominator == 0:
                raise ModelExtractionError(
                    f"model value {text!r} for {variable} has a zero denominator", variable=variable
                )
            value = float(numerator / denominator)
        else:
            value = float(Fraction(cleaned))
    except (ValueError, ZeroDivisionError, OverflowError) as exc:
        raise ModelExtractionError(
            f"cannot parse model value {text!r} for {variable}", variable=variable
        ) from exc
    if not math.isfinite(value):
        raise ModelExtractionError(f"model value {text!r} for {variable} is not finite", variable=variable)
    return value


def anchor_positions(
    positions: Mapping[PointName, Coords], anchor: PointName, offset: Coords
) -> Dict[PointName, Coords]:
    """Translate every position so ``anchor`` lands on ``offset``."""

    names = list(positions)
    if anchor not in positions:
        raise ModelExtractionError(f"anchor vertex {anchor} has no solved position", variable=anchor)
    coords = np.array([positions[name] for name in names], dtype=float)
    shift = np.asarray(offset, dtype=float) - coords[names.index(anchor)]
    coords = coords + shift
    logger.info("Anchored %d positions on %s with shift (%.4f, %.4f)", len(names), anchor, shift[0], shift[1])
    return {name: (float(x), float(y)) for name, (x, y) in zip(names, coords)}


def _vec(a: Coords, b: Coords) -> np.ndarray:
    return np.array([b[0] - a[0], b[1] - a[1]], dtype=float)


def _cross(u: np.ndarray, v: np.ndarray) -> float:
    return float(u[0] * v[1] - u[1] * v[0])


def _unit_ratio(value: float, u: np.ndarray, v: np.ndarray) -> float:
    norm = float(np.linalg.norm(u) * np.linalg.norm(v))
    if norm <= 1e-12:
        return math.inf
    return abs(value) / norm


def _point_line_distance(p: Coords, a: Coords, b: Coords) -> float:
    direction = _vec(a, b)
    length = float(np.linalg.norm(direction))
    if length <= 1e-12:
        return math.inf
    return abs(_cross(direction, _vec(a, p))) / length


def _reflect(p: Coords, a: Coords, b: Coords) -> np.ndarray:
    direction = _vec(a, b)
    direction = direction / np.linalg.norm(direction)
    rel = _vec(a, p)
    foot = np.asarray(a, dtype=float) + direction * float(np.dot(rel, direction))
    return 2.0 * foot - np.asarray(p, dtype=float)


def angle_rays(diagram: DesugaredDiagram, angle_id: str, positions: Mapping[PointName, Coords]) -> Tuple[np.ndarray, np.ndarray]:
    c = diagram.angles[angle_id]
    lines = diagram.lines
    vertex = positions[c.vertex]
    others = []
    for lid in (c.line1, c.line2):
        line = lines[lid]
        other = line.to if line.from_ == c.vertex else line.from_
        others.append(_vec(vertex, positions[other]))
    return others[0], others[1]


def signed_angle_degrees(u: np.ndarray, v: np.ndarray) -> float:
    """Rotation from ``u`` to ``v``; positive is clockwise on a y-down canvas."""

    return math.degrees(math.atan2(_cross(u, v), float(np.dot(u, v))))


def _angular_difference(a: float, b: float) -> float:
    diff = abs(a - b) % 360.0
    return min(diff, 360.0 - diff)


def evaluate_residuals(
    diagram: DesugaredDiagram, positions: Mapping[PointName, Coords]
) -> Dict[str, float]:
    """Numerically re-check each constraint against solved ``positions``.

    Lengths and distances are reported in canvas units, angles in degrees and
    parallel/perpendicular relations as a sine/cosine ratio.
    """

    lines = diagram.lines
    out: Dict[str, float] = {}

    def seg(lid: str) -> np.ndarray:
        line = lines[lid]
        return _vec(positions[line.from_], positions[line.to])

    for idx, c in enumerate(diagram.constraints):
        key = f"constraints[{idx}] {c.type}"
        if c.type == "equalLength":
            lengths = [float(np.linalg.norm(seg(lid))) for lid in c.lines]
            ref = c.value if c.value is not None else lengths[0]
            out[key] = max(abs(length - ref) for length in lengths)
        elif c.type == "perpendicular":
            u, v = seg(c.lines[0]), seg(c.lines[1])
            out[key] = _unit_ratio(float(np.dot(u, v)), u, v)
        elif c.type == "parallel":
            first = seg(c.lines[0])
            out[key] = max(_unit_ratio(_cross(first, seg(lid)), first, seg(lid)) for lid in c.lines[1:])
        elif c.type == "midpoint":
            line = lines[c.line]
            p1, p2, m = positions[line.from_], positions[line.to], positions[c.id]
            out[key] = math.hypot(2 * m[0] - p1[0] - p2[0], 2 * m[1] - p1[1] - p2[1])
        elif c.type == "intersect":
            x = positions[c.id]
            out[key] = max(
                _point_line_distance(x, positions[lines[lid].from_], positions[lines[lid].to])
                for lid in (c.line1, c.line2)
            )
        elif c.type == "angle":
            u, v = angle_rays(diagram, c.id, positions)
            expected = c.measure if c.measure <= 180 else c.measure - 360.0
            if c.visualization.sweep_flag == 0:
                expected = -expected
            out[key] = _angular_difference(signed_angle_degrees(u, v), expected)
        elif c.type == "equalAngle":
            measured = [abs(signed_angle_degrees(*angle_rays(diagram, aid, positions))) for aid in c.angles]
            ref = measured[0]
            if c.value is not None:
                ref = c.value if c.value <= 180 else 360.0 - c.value
            out[key] = max(abs(m - ref) for m in measured)
        elif c.type == "symmetry":
            out[key] = _symmetry_residual(diagram, c, positions)
        elif c.type == "regularRing":
            pts = [positions[name] for name in c.vertices]
            n = len(pts)
            interior = 180.0 * (n - 2) / n
            out[key] = max(
                abs(abs(signed_angle_degrees(_vec(pts[i], pts[i - 1]), _vec(pts[i], pts[(i + 1) % n]))) - interior)
                for i in range(n)
            )
    return out


def _symmetry_residual(diagram: DesugaredDiagram, c, positions: Mapping[PointName, Coords]) -> float:
    lines = diagram.lines
    pairs = []
    for first, second in c.pairs:
        if first.startswith("line_"):
            pairs.append((lines[first].from_, lines[second].from_))
            pairs.append((lines[first].to, lines[second].to))
        else:
            pairs.append((first, second))
    worst = 0.0
    for p, q in pairs:
        pp, qq = positions[p], positions[q]
        if c.axis_line is not None:
            axis = lines[c.axis_line]
            reflected = _reflect(pp, positions[axis.from_], positions[axis.to])
        elif c.axis_type == "horizontal":
            reflected = np.array([pp[0], diagram.spec.height - pp[1]])
        else:
            reflected = np.array([diagram.spec.width - pp[0], pp[1]])
        worst = max(worst, float(np.linalg.norm(reflected - np.asarray(qq, dtype=float))))
    return worst


def max_residual(residuals: Mapping[str, float]) -> float:
    return max(residuals.values(), default=0.0)


def centroid(points: Sequence[Coords]) -> Coords:
    arr = np.asarray(points, dtype=float)
    mean = arr.mean(axis=0)
    return (float(mean[0]), float(mean[1]))
