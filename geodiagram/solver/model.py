"""Core data structures for the SMT solver pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

import z3

from ..desugar import DesugaredDiagram
from ..errors import ModelExtractionError, UnsatisfiableConstraints
from ..theme import PADDING

PointName = str
Coords = Tuple[float, float]


@dataclass
class SolverConstraint:
    """Record of a constraint emitted while building the SMT system."""

    index: int
    kind: str
    entities: Tuple[str, ...]
    value: Optional[float]
    source: Optional[object]
    assertions: int = 0
    note: Optional[str] = None


@dataclass(frozen=True)
class PointVars:
    x: z3.ArithRef
    y: z3.ArithRef


@dataclass
class Model:
    diagram: DesugaredDiagram
    context: z3.Context
    points: Dict[PointName, PointVars] = field(default_factory=dict)
    aux: Dict[str, z3.ArithRef] = field(default_factory=dict)
    assertions: List[z3.BoolRef] = field(default_factory=list)
    constraints: List[SolverConstraint] = field(default_factory=list)
    referenced: Set[PointName] = field(default_factory=set)
    uses_canvas_axes: bool = False
    has_absolute_length: bool = False

    @property
    def point_order(self) -> List[PointName]:
        return list(self.points)

    @property
    def anchor_vertex(self) -> PointName:
        return self.diagram.vertex_order[0]


@dataclass
class SolveOptions:
    anchor: Coords = (2.0 * PADDING, 2.0 * PADDING)
    gauge: bool = True
    default_length: Optional[float] = None
    decimal_precision: int = 20


@dataclass
class Solution:
    positions: Dict[PointName, Coords]
    raw_positions: Dict[PointName, Coords]
    status: str
    anchor_vertex: PointName
    constraints: List[SolverConstraint] = field(default_factory=list)
    residuals: Dict[str, float] = field(default_factory=dict)
    max_residual: float = 0.0
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status == "sat"


__all__ = [
    "Coords",
    "Model",
    "ModelExtractionError",
    "PointName",
    "PointVars",
    "Solution",
    "SolveOptions",
    "SolverConstraint",
    "UnsatisfiableConstraints",
]
