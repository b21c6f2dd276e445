"""Run the z3 satisfiability check and turn its model into coordinates."""

from __future__ import annotations

import logging
from fractions import Fraction
from typing import Dict, List, Tuple

import z3

from ..errors import ModelExtractionError, UnsatisfiableConstraints
from ..logging_utils import apply_debug_logging
from .model import Coords, Model, PointName, Solution, SolveOptions, SolverConstraint
from .utils import anchor_positions, evaluate_residuals, max_residual, parse_model_number

logger = logging.getLogger(__name__)

DEFAULT_LENGTH_RATIO = 0.4


def _describe_constraint(constraint: SolverConstraint) -> str:
    parts = [constraint.kind]
    if constraint.entities:
        parts.append("entities=" + ",".join(constraint.entities))
    if constraint.value is not None:
        parts.append(f"value={constraint.value:.6g}")
    if constraint.note:
        parts.append(f"note={constraint.note}")
    if constraint.index >= 0:
        parts.append(f"index={constraint.index}")
    return " | ".join(parts)


def _gauge_assertions(model: Model, options: SolveOptions) -> Tuple[List[z3.BoolRef], List[str]]:
    """Fix translation, rotation and (when free) scale of a relative-only system."""

    if not options.gauge:
        return [], []
    if model.uses_canvas_axes:
        logger.info("Skipping gauge: constraints refer to canvas axes")
        return [], []

    ctx = model.context
    assertions: List[z3.BoolRef] = []
    notes: List[str] = []
    anchor = model.points[model.anchor_vertex]
    assertions.append(anchor.x == z3.RealVal(0, ctx))
    assertions.append(anchor.y == z3.RealVal(0, ctx))
    notes.append(f"origin={model.anchor_vertex}")

    lines = model.diagram.spec.lines
    if lines:
        first = lines[0]
        a, b = model.points[first.from_], model.points[first.to]
        assertions.append(a.y == b.y)
        assertions.append(b.x > a.x)
        notes.append(f"horizontal={first.id}")
        if not model.has_absolute_length:
            spec = model.diagram.spec
            length = options.default_length
            if length is None:
                length = DEFAULT_LENGTH_RATIO * min(spec.width, spec.height)
            value = Fraction(repr(float(length)))
            assertions.append(b.x - a.x == z3.RatVal(value.numerator, value.denominator, ctx))
            notes.append(f"length({first.id})={float(length):.6g}")
    return assertions, notes


def _model_text(value: z3.ExprRef, precision: int) -> str:
    if z3.is_rational_value(value):
        return value.as_string()
    if z3.is_algebraic_value(value):
        return value.as_decimal(precision)
    return str(value)


def _extract_positions(model: Model, z3_model: z3.ModelRef, options: SolveOptions) -> Tuple[Dict[PointName, Coords], List[str]]:
    positions: Dict[PointName, Coords] = {}
    warnings: List[str] = []
    for name, pv in model.points.items():
        coords = []
        for var in (pv.x, pv.y):
            value = z3_model[var]
            if value is None:
                if name in model.referenced:
                    raise ModelExtractionError(f"no model binding for {var}", variable=str(var))
                message = f"{name} is not constrained; {var} defaults to 0"
                logger.warning(message)
                warnings.append(message)
                value = z3_model.eval(var, model_completion=True)
            coords.append(parse_model_number(_model_text(value, options.decimal_precision), variable=str(var)))
        positions[name] = (coords[0], coords[1])
    return positions, warnings


def solve(model: Model, options: SolveOptions = SolveOptions()) -> Solution:
    """Check ``model`` for satisfiability and return anchored coordinates."""

    solver = z3.Solver(ctx=model.context)
    solver.add(*model.assertions)
    gauges, gauge_notes = _gauge_assertions(model, options)
    if gauges:
        solver.add(*gauges)
        logger.info("Applied gauge: %s", ", ".join(gauge_notes))

    logger.info(
        "Starting SMT solve with %d assertions (%d gauge)", len(model.assertions) + len(gauges), len(gauges)
    )
    verdict = solver.check()
    logger.info("SMT solve verdict=%s", verdict)

    if verdict == z3.unsat:
        for constraint in model.constraints:
            logger.info("constraint: %s", _describe_constraint(constraint))
        raise UnsatisfiableConstraints("constraints are unsatisfiable", status="unsat")
    if verdict != z3.sat:
        reason = solver.reason_unknown()
        raise UnsatisfiableConstraints(f"solver could not decide the constraints: {reason}", status="unknown")

    raw, warnings = _extract_positions(model, solver.model(), options)
    residuals = evaluate_residuals(model.diagram, raw)
    worst = max_residual(residuals)
    positions = anchor_positions(raw, model.anchor_vertex, options.anchor)
    logger.info("SMT solve extracted %d positions max_residual=%.3g", len(positions), worst)
    return Solution(
        positions=positions,
        raw_positions=raw,
        status="sat",
        anchor_vertex=model.anchor_vertex,
        constraints=list(model.constraints),
        residuals=residuals,
        max_residual=worst,
        warnings=warnings,
    )


apply_debug_logging(globals(), logger=logger)
