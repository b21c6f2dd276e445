from typing import Any, Iterable, List, Mapping, Set, Union

import pydantic

from .errors import GeometryReferenceError, ValidationError
from .schema import DiagramSpec

__all__ = ['load_diagram', 'validate', 'ValidationError', 'GeometryReferenceError']


def load_diagram(data: Union[DiagramSpec, Mapping[str, Any], str, bytes]) -> DiagramSpec:
    """Parse ``data`` (a mapping or JSON text) into a :class:`DiagramSpec`."""
    if isinstance(data, DiagramSpec):
        return data
    try:
        if isinstance(data, (str, bytes)):
            return DiagramSpec.model_validate_json(data)
        return DiagramSpec.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            f'diagram does not match schema ({exc.error_count()} error(s)):\n{exc}',
            errors=exc.errors(include_url=False),
        ) from exc


def _where(idx: int, kind: str) -> str:
    return f'constraints[{idx}] ({kind})'


def _ensure_unique(ids: Iterable[str], what: str) -> Set[str]:
    seen: Set[str] = set()
    for item in ids:
        if item in seen:
            raise GeometryReferenceError(f'duplicate {what} id {item}', element=item)
        seen.add(item)
    return seen


def _ensure_known(ids: Iterable[str], known: Set[str], where: str, what: str) -> None:
    for item in ids:
        if item not in known:
            raise GeometryReferenceError(f'{where}: unknown {what} {item}', element=item)


def validate(spec: DiagramSpec) -> None:
    """Check that every reference in ``spec`` resolves before anything is solved."""
    declared = _ensure_unique(spec.vertex_ids(), 'vertex')
    line_ids = _ensure_unique([l.id for l in spec.lines], 'line')
    angle_ids = _ensure_unique([c.id for c in spec.constraints if c.type == 'angle'], 'angle')
    virtual_ids: List[str] = [c.id for c in spec.constraints if c.type in ('intersect', 'midpoint')]
    virtual = _ensure_unique(virtual_ids, 'virtual vertex')
    clash = sorted(virtual & declared)
    if clash:
        raise GeometryReferenceError(f'virtual vertex {clash[0]} is already declared', element=clash[0])
    vertices = declared | virtual
    lines = spec.line_map()

    for line in spec.lines:
        _ensure_known(line.endpoints, vertices, f'line {line.id}', 'vertex')

    for idx, c in enumerate(spec.constraints):
        where = _where(idx, c.type)
        if c.type == 'angle':
            _ensure_known([c.vertex], vertices, where, 'vertex')
            _ensure_known([c.line1, c.line2], line_ids, where, 'line')
            if c.line1 == c.line2:
                raise GeometryReferenceError(f'{where}: angle {c.id} uses {c.line1} twice', element=c.id)
            for lid in (c.line1, c.line2):
                if c.vertex not in lines[lid].endpoints:
                    raise GeometryReferenceError(
                        f'{where}: vertex {c.vertex} is not an endpoint of {lid}', element=lid
                    )
        elif c.type in ('equalLength', 'parallel', 'perpendicular'):
            _ensure_known(c.lines, line_ids, where, 'line')
        elif c.type == 'equalAngle':
            _ensure_known(c.angles, angle_ids, where, 'angle')
        elif c.type == 'symmetry':
            if c.axis_line is not None:
                _ensure_known([c.axis_line], line_ids, where, 'line')
            for first, second in c.pairs:
                known = vertices if first.startswith('vertex_') else line_ids
                _ensure_known([first, second], known, where, 'element')
        elif c.type == 'intersect':
            _ensure_known([c.line1, c.line2], line_ids, where, 'line')
            if c.line1 == c.line2:
                raise GeometryReferenceError(f'{where}: {c.id} intersects {c.line1} with itself', element=c.id)
            for lid in (c.line1, c.line2):
                if c.id in lines[lid].endpoints:
                    raise GeometryReferenceError(f'{where}: {c.id} is defined by its own line {lid}', element=c.id)
        elif c.type == 'midpoint':
            _ensure_known([c.line], line_ids, where, 'line')
            if c.id in lines[c.line].endpoints:
                raise GeometryReferenceError(f'{where}: {c.id} is defined by its own line {c.line}', element=c.id)
        elif c.type == 'presetPolygon':
            _ensure_known(c.vertices, vertices, where, 'vertex')
            if len(set(c.vertices)) != len(c.vertices):
                raise GeometryReferenceError(f'{where}: polygon vertices must be distinct')

    for idx, region in enumerate(spec.shaded_regions or []):
        _ensure_known(region.vertices, vertices, f'shadedRegions[{idx}]', 'vertex')
    for idx, label in enumerate(spec.region_labels or []):
        placement = label.placement
        if placement.type == 'centroid':
            _ensure_known(placement.vertices, vertices, f'regionLabels[{idx}]', 'vertex')
        else:
            _ensure_known([placement.line], line_ids, f'regionLabels[{idx}]', 'line')
