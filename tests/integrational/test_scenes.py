from __future__ import annotations

import json
import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable

import pytest

from geodiagram import UnsatisfiableConstraints, build_diagram
from geodiagram.placement import rects_intersect

DATA_DIR = Path(__file__).resolve().parent / "scenes"


@dataclass
class SceneCase:
    case_id: str
    diagram: Dict[str, Any]
    expect_success: bool = True
    tol_residual: float = 1e-3
    expect: Dict[str, float] = field(default_factory=dict)


def _iter_cases() -> Iterable[SceneCase]:
    for scene_path in sorted(DATA_DIR.glob("*.json")):
        with scene_path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict) or "diagram" not in data:
            raise ValueError(f"Scene {scene_path.name} must be an object with a 'diagram' key")
        yield SceneCase(
            case_id=scene_path.stem,
            diagram=data["diagram"],
            expect_success=bool(data.get("expect_success", True)),
            tol_residual=float(data.get("tol_residual", 1e-3)),
            expect=dict(data.get("expect", {})),
        )


CASES = list(_iter_cases())


@pytest.mark.parametrize("case", CASES, ids=[case.case_id for case in CASES])
def test_scene(case: SceneCase):
    if not case.expect_success:
        with pytest.raises(UnsatisfiableConstraints):
            build_diagram(case.diagram)
        return

    result = build_diagram(case.diagram)
    solution = result.solution

    assert solution.success
    assert solution.max_residual < case.tol_residual, solution.residuals

    root = ET.fromstring(result.svg)
    assert root.get("viewBox") is not None

    min_x, min_y, width, height = result.render.view_box
    for name, (x, y) in solution.positions.items():
        assert min_x <= x <= min_x + width, name
        assert min_y <= y <= min_y + height, name

    labels = result.render.labels
    for i, first in enumerate(labels):
        for second in labels[i + 1:]:
            assert not rects_intersect(first.rect, second.rect), (first.text, second.text)

    if "side" in case.expect:
        names = case.diagram["constraints"][0]["vertices"]
        pts = [solution.positions[name] for name in names]
        for i, p in enumerate(pts):
            assert math.dist(p, pts[(i + 1) % len(pts)]) == pytest.approx(case.expect["side"], abs=1e-6)
    if "interior_angle" in case.expect:
        names = case.diagram["constraints"][0]["vertices"]
        pts = [solution.positions[name] for name in names]
        for i, here in enumerate(pts):
            prev, nxt = pts[i - 1], pts[(i + 1) % len(pts)]
            u = (prev[0] - here[0], prev[1] - here[1])
            v = (nxt[0] - here[0], nxt[1] - here[1])
            angle = math.degrees(math.atan2(abs(u[0] * v[1] - u[1] * v[0]), u[0] * v[0] + u[1] * v[1]))
            assert angle == pytest.approx(case.expect["interior_angle"], abs=1e-3)
