from .errors import (
    CanvasError,
    DiagramError,
    GeometryReferenceError,
    ModelExtractionError,
    UnsatisfiableConstraints,
    ValidationError,
)
from .schema import DiagramSpec
from .validate import load_diagram, validate
from .desugar import desugar, DesugaredDiagram
from .solver import solve, solve_diagram, translate, SolveOptions, Solution, Model
from .placement import LabelPlacer, LabelPlacementDegraded, PlacedLabel, PlacementOptions
from .render import render_diagram, RenderOptions, RenderResult
from .generator import (
    build_diagram,
    generate_constraint_geometry_diagram,
    DiagramResult,
    GeneratorOptions,
)
from .svg import Canvas, CanvasOptions, PathBuilder

__all__ = [
    'CanvasError',
    'DiagramError',
    'GeometryReferenceError',
    'ModelExtractionError',
    'UnsatisfiableConstraints',
    'ValidationError',
    'DiagramSpec',
    'load_diagram',
    'validate',
    'desugar',
    'DesugaredDiagram',
    'solve',
    'solve_diagram',
    'translate',
    'SolveOptions',
    'Solution',
    'Model',
    'LabelPlacer',
    'LabelPlacementDegraded',
    'PlacedLabel',
    'PlacementOptions',
    'render_diagram',
    'RenderOptions',
    'RenderResult',
    'build_diagram',
    'generate_constraint_geometry_diagram',
    'DiagramResult',
    'GeneratorOptions',
    'Canvas',
    'CanvasOptions',
    'PathBuilder',
]
