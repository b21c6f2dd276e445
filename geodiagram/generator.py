"""Entry point: input document in, complete SVG document out."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from .desugar import DesugaredDiagram, desugar
from .render import RenderOptions, RenderResult, render_diagram
from .schema import DiagramSpec
from .solver import Solution, SolveOptions, solve_diagram
from .validate import load_diagram, validate

logger = logging.getLogger(__name__)

DiagramInput = Union[DiagramSpec, Mapping[str, Any], str, bytes]


@dataclass
class GeneratorOptions:
    solve: SolveOptions = field(default_factory=SolveOptions)
    render: RenderOptions = field(default_factory=RenderOptions)


@dataclass
class DiagramResult:
    spec: DiagramSpec
    diagram: DesugaredDiagram
    solution: Solution
    render: RenderResult

    @property
    def svg(self) -> str:
        return self.render.svg


def build_diagram(data: DiagramInput, options: Optional[GeneratorOptions] = None) -> DiagramResult:
    """Validate, solve and render ``data``; any failure raises and no markup is returned."""

    options = options or GeneratorOptions()
    spec = load_diagram(data)
    validate(spec)
    logger.info(
        "Validated diagram: %d vertices, %d lines, %d constraints",
        len(spec.vertices),
        len(spec.lines),
        len(spec.constraints),
    )
    diagram = desugar(spec)
    solution = solve_diagram(diagram, options.solve)
    rendered = render_diagram(diagram, solution.positions, options.render)
    return DiagramResult(spec=spec, diagram=diagram, solution=solution, render=rendered)


def generate_constraint_geometry_diagram(data: DiagramInput, options: Optional[GeneratorOptions] = None) -> str:
    return build_diagram(data, options).svg
