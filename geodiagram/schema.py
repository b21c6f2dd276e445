"""Input document models for constraint-driven geometry diagrams."""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator

from .theme import COLOR_AXIS

VERTEX_ID_PATTERN = r"^vertex_[A-Za-z0-9_]+$"
LINE_ID_PATTERN = r"^line_[A-Za-z0-9_]+$"
ANGLE_ID_PATTERN = r"^angle_[A-Za-z0-9_]+$"
COLOR_PATTERN = r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$"

VertexId = Annotated[str, StringConstraints(pattern=VERTEX_ID_PATTERN)]
LineId = Annotated[str, StringConstraints(pattern=LINE_ID_PATTERN)]
AngleId = Annotated[str, StringConstraints(pattern=ANGLE_ID_PATTERN)]
Color = Annotated[str, StringConstraints(pattern=COLOR_PATTERN)]
ElementId = Union[VertexId, LineId]


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)


class Label(_Strict):
    value: Union[int, float, str]
    unit: Optional[str] = None

    @property
    def text(self) -> str:
        value = self.value
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return f"{value}{self.unit or ''}"


class Vertex(_Strict):
    id: VertexId
    label: Optional[str] = None


class Line(_Strict):
    id: LineId
    from_: VertexId = Field(alias="from")
    to: VertexId
    is_ray: bool = Field(False, alias="isRay")
    style: Literal["solid", "dashed"] = "solid"
    label: Optional[Label] = None

    @model_validator(mode="after")
    def _distinct_endpoints(self) -> "Line":
        if self.from_ == self.to:
            raise ValueError(f"line {self.id} starts and ends at {self.to}")
        return self

    @property
    def endpoints(self) -> tuple:
        return (self.from_, self.to)


class AngleVisualization(_Strict):
    type: Literal["arc", "right", "none"] = "arc"
    radius: Optional[Annotated[float, Field(gt=0)]] = None
    color: Color = COLOR_AXIS
    x_axis_rotation: float = Field(0.0, alias="xAxisRotation")
    large_arc_flag: Literal[0, 1] = Field(0, alias="largeArcFlag")
    sweep_flag: Literal[0, 1] = Field(1, alias="sweepFlag")
    label: Optional[str] = None
    label_position_hint: Literal["auto", "outside", "inside"] = Field("auto", alias="labelPositionHint")


class AngleConstraint(_Strict):
    type: Literal["angle"]
    id: AngleId
    vertex: VertexId
    line1: LineId
    line2: LineId
    measure: float = Field(gt=0, lt=360)
    visualization: AngleVisualization = Field(default_factory=AngleVisualization)


class EqualLengthConstraint(_Strict):
    type: Literal["equalLength"]
    lines: List[LineId] = Field(min_length=2)
    value: Optional[Annotated[float, Field(gt=0)]] = None


class EqualAngleConstraint(_Strict):
    type: Literal["equalAngle"]
    angles: List[AngleId] = Field(min_length=2)
    value: Optional[Annotated[float, Field(gt=0, lt=360)]] = None


class ParallelConstraint(_Strict):
    type: Literal["parallel"]
    lines: List[LineId] = Field(min_length=2)


class PerpendicularConstraint(_Strict):
    type: Literal["perpendicular"]
    lines: List[LineId] = Field(min_length=2)


class SymmetryConstraint(_Strict):
    type: Literal["symmetry"]
    axis_line: Optional[LineId] = Field(None, alias="axisLine")
    axis_type: Optional[Literal["horizontal", "vertical"]] = Field(None, alias="axisType")
    elements: List[ElementId] = Field(min_length=2)

    @model_validator(mode="after")
    def _check_axis_and_pairs(self) -> "SymmetryConstraint":
        if (self.axis_line is None) == (self.axis_type is None):
            raise ValueError("symmetry needs exactly one of axisLine or axisType")
        if len(self.elements) % 2:
            raise ValueError("symmetry elements must come in pairs")
        for first, second in self.pairs:
            if first.split("_", 1)[0] != second.split("_", 1)[0]:
                raise ValueError(f"symmetry pair ({first}, {second}) mixes a vertex and a line")
        return self

    @property
    def pairs(self) -> List[tuple]:
        return [(self.elements[i], self.elements[i + 1]) for i in range(0, len(self.elements) - 1, 2)]


class IntersectConstraint(_Strict):
    type: Literal["intersect"]
    id: VertexId
    line1: LineId
    line2: LineId
    label: Optional[str] = None


class MidpointConstraint(_Strict):
    type: Literal["midpoint"]
    id: VertexId
    line: LineId
    label: Optional[str] = None


class PresetPolygonConstraint(_Strict):
    type: Literal["presetPolygon"]
    vertices: List[VertexId] = Field(min_length=3)
    is_regular: bool = Field(True, alias="isRegular")
    side_length: Optional[Annotated[float, Field(gt=0)]] = Field(None, alias="sideLength")
    closed: bool = True

    @property
    def edges(self) -> List[tuple]:
        count = len(self.vertices)
        limit = count if self.closed else count - 1
        return [(self.vertices[i], self.vertices[(i + 1) % count]) for i in range(limit)]


Constraint = Annotated[
    Union[
        AngleConstraint,
        EqualLengthConstraint,
        EqualAngleConstraint,
        ParallelConstraint,
        PerpendicularConstraint,
        SymmetryConstraint,
        IntersectConstraint,
        MidpointConstraint,
        PresetPolygonConstraint,
    ],
    Field(discriminator="type"),
]


class ShadedRegion(_Strict):
    vertices: List[VertexId] = Field(min_length=3)
    fill_color: Color = Field(alias="fillColor")
    opacity: float = Field(1.0, ge=0, le=1)


class CentroidPlacement(_Strict):
    type: Literal["centroid"]
    vertices: List[VertexId] = Field(min_length=3)


class AlongLinePlacement(_Strict):
    type: Literal["alongLine"]
    line: LineId
    offset: float


class RegionLabel(_Strict):
    text: str
    placement: Annotated[Union[CentroidPlacement, AlongLinePlacement], Field(discriminator="type")]
    color: Optional[Color] = None


class DiagramSpec(_Strict):
    type: Literal["constraintGeometryDiagram"]
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    vertices: List[Vertex] = Field(min_length=1)
    lines: List[Line] = Field(default_factory=list)
    constraints: List[Constraint] = Field(min_length=1)
    shaded_regions: Optional[List[ShadedRegion]] = Field(None, alias="shadedRegions")
    region_labels: Optional[List[RegionLabel]] = Field(None, alias="regionLabels")
    layout_hint: Optional[Literal["circle", "grid", "linear"]] = Field(None, alias="layoutHint")

    def line_map(self) -> dict:
        return {line.id: line for line in self.lines}

    def vertex_ids(self) -> List[str]:
        return [vertex.id for vertex in self.vertices]
