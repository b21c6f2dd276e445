import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .errors import GeometryReferenceError
from .schema import (
    AngleConstraint,
    Constraint,
    DiagramSpec,
    EqualLengthConstraint,
    Line,
    PresetPolygonConstraint,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegularPolygonRing:
    """Concyclic, strictly convex ring of vertices; emitted for regular polygons."""

    type = 'regularRing'
    vertices: Tuple[str, ...]
    source: Optional[PresetPolygonConstraint] = None


SolverConstraintSpec = Union[Constraint, RegularPolygonRing]


@dataclass
class DesugaredDiagram:
    spec: DiagramSpec
    constraints: List[SolverConstraintSpec] = field(default_factory=list)
    vertex_order: List[str] = field(default_factory=list)
    virtual_vertices: List[str] = field(default_factory=list)
    vertex_labels: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def lines(self) -> Dict[str, Line]:
        return self.spec.line_map()

    @property
    def angles(self) -> Dict[str, AngleConstraint]:
        return {c.id: c for c in self.constraints if c.type == 'angle'}


def find_line(lines: Sequence[Line], a: str, b: str) -> Optional[Line]:
    for line in lines:
        if (line.from_, line.to) in ((a, b), (b, a)):
            return line
    return None


def _expand_polygon(spec: DiagramSpec, c: PresetPolygonConstraint, idx: int) -> List[SolverConstraintSpec]:
    if not c.is_regular:
        logger.info('constraints[%d] presetPolygon is not regular; only its lines are drawn', idx)
        return []
    edge_lines = []
    for a, b in c.edges:
        line = find_line(spec.lines, a, b)
        if line is None:
            raise GeometryReferenceError(
                f'constraints[{idx}] (presetPolygon): no declared line joins {a} and {b}', element=a
            )
        edge_lines.append(line.id)
    out: List[SolverConstraintSpec] = [
        EqualLengthConstraint(type='equalLength', lines=edge_lines, value=c.side_length)
    ]
    if c.closed:
        out.append(RegularPolygonRing(vertices=tuple(c.vertices), source=c))
    logger.info(
        'constraints[%d] presetPolygon expanded over %d edges (sideLength=%s)', idx, len(edge_lines), c.side_length
    )
    return out


def desugar(spec: DiagramSpec) -> DesugaredDiagram:
    """Expand polygon presets and collect the vertices created by constraints."""
    out = DesugaredDiagram(spec=spec)
    out.vertex_order = spec.vertex_ids()
    out.vertex_labels = {v.id: v.label for v in spec.vertices}
    for idx, c in enumerate(spec.constraints):
        if c.type == 'presetPolygon':
            out.constraints.extend(_expand_polygon(spec, c, idx))
            continue
        if c.type in ('intersect', 'midpoint'):
            out.virtual_vertices.append(c.id)
            out.vertex_order.append(c.id)
            out.vertex_labels[c.id] = c.label
        out.constraints.append(c)
    logger.info(
        'Desugared %d constraints into %d (virtual vertices: %d)',
        len(spec.constraints),
        len(out.constraints),
        len(out.virtual_vertices),
    )
    return out
