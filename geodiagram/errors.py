"""Error taxonomy shared by every stage of diagram generation."""

from __future__ import annotations

from typing import Optional, Sequence


class DiagramError(Exception):
    """Base class for failures that abort a diagram render."""


class ValidationError(DiagramError):
    """Input document does not match the diagram schema."""

    def __init__(self, message: str, *, errors: Optional[Sequence[dict]] = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class GeometryReferenceError(DiagramError):
    """A reference names an unknown element or relies on degenerate geometry."""

    def __init__(self, message: str, *, element: Optional[str] = None) -> None:
        super().__init__(message)
        self.element = element


class UnsatisfiableConstraints(DiagramError):
    """The SMT solver could not find coordinates satisfying every constraint."""

    def __init__(self, message: str, *, status: str = "unsat") -> None:
        super().__init__(message)
        self.status = status


class ModelExtractionError(DiagramError):
    """A satisfying model was found but a coordinate could not be read from it."""

    def __init__(self, message: str, *, variable: Optional[str] = None) -> None:
        super().__init__(message)
        self.variable = variable


class CanvasError(DiagramError, ValueError):
    """Invalid parameters passed to a canvas primitive."""
