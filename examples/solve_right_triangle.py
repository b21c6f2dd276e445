"""Example pipeline: validate a right triangle, solve coordinates and print them."""

from geodiagram import desugar, load_diagram, validate
from geodiagram.solver import SolveOptions, solve, translate

DIAGRAM = {
    "type": "constraintGeometryDiagram",
    "width": 300,
    "height": 300,
    "vertices": [
        {"id": "vertex_A", "label": "A"},
        {"id": "vertex_B", "label": "B"},
        {"id": "vertex_C", "label": "C"},
    ],
    "lines": [
        {"id": "line_AB", "from": "vertex_A", "to": "vertex_B"},
        {"id": "line_AC", "from": "vertex_A", "to": "vertex_C"},
        {"id": "line_BC", "from": "vertex_B", "to": "vertex_C"},
    ],
    "constraints": [
        {"type": "perpendicular", "lines": ["line_AB", "line_AC"]},
        {"type": "equalLength", "lines": ["line_AB", "line_AC"], "value": 90},
    ],
}


def main() -> None:
    spec = load_diagram(DIAGRAM)
    validate(spec)
    desugared = desugar(spec)
    model = translate(desugared)
    solution = solve(model, SolveOptions())
    print("Success:", solution.success)
    print("Max residual:", solution.max_residual)
    for name, (x, y) in solution.positions.items():
        print(f"{name}: ({x:.6f}, {y:.6f})")


if __name__ == "__main__":
    main()
