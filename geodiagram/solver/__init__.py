"""Solver façade: translate a diagram into z3 assertions and solve it."""

from __future__ import annotations

import logging

from ..desugar import DesugaredDiagram
from .model import (
    Model,
    ModelExtractionError,
    PointVars,
    Solution,
    SolveOptions,
    SolverConstraint,
    UnsatisfiableConstraints,
)
from .smt import solve
from .translator import translate
from .utils import anchor_positions, evaluate_residuals, parse_model_number

logger = logging.getLogger(__name__)


def solve_diagram(diagram: DesugaredDiagram, options: SolveOptions = SolveOptions()) -> Solution:
    """Translate and solve ``diagram`` in one fresh solver context."""

    logger.info(
        "Solving diagram with %d vertices (%d virtual) and %d constraints",
        len(diagram.vertex_order),
        len(diagram.virtual_vertices),
        len(diagram.constraints),
    )
    model = translate(diagram)
    solution = solve(model, options)
    logger.info("Solve finished status=%s max_residual=%.3g", solution.status, solution.max_residual)
    return solution


__all__ = [
    "Model",
    "ModelExtractionError",
    "PointVars",
    "Solution",
    "SolveOptions",
    "SolverConstraint",
    "UnsatisfiableConstraints",
    "anchor_positions",
    "evaluate_residuals",
    "parse_model_number",
    "solve",
    "solve_diagram",
    "translate",
]
