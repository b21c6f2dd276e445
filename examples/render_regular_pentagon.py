"""Example: render a labelled regular pentagon to ``pentagon.svg``."""

import logging
from pathlib import Path

from geodiagram import generate_constraint_geometry_diagram

NAMES = ["P", "Q", "R", "S", "T"]

DIAGRAM = {
    "type": "constraintGeometryDiagram",
    "width": 300,
    "height": 300,
    "vertices": [{"id": f"vertex_{n}", "label": n} for n in NAMES],
    "lines": [
        {"id": f"line_{a}{b}", "from": f"vertex_{a}", "to": f"vertex_{b}"}
        for a, b in zip(NAMES, NAMES[1:] + NAMES[:1])
    ],
    "constraints": [
        {"type": "presetPolygon", "vertices": [f"vertex_{n}" for n in NAMES], "sideLength": 80},
    ],
    "shadedRegions": [
        {"vertices": [f"vertex_{n}" for n in NAMES], "fillColor": "#cfe8ff", "opacity": 0.5},
    ],
}


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
    svg = generate_constraint_geometry_diagram(DIAGRAM)
    out = Path("pentagon.svg")
    out.write_text(svg, encoding="utf-8")
    print(f"Wrote {out} ({len(svg)} bytes)")


if __name__ == "__main__":
    main()
