import xml.etree.ElementTree as ET

from geodiagram import generate_constraint_geometry_diagram


def test_two_point_smoke():
    svg = generate_constraint_geometry_diagram(
        {
            'type': 'constraintGeometryDiagram',
            'width': 200,
            'height': 100,
            'vertices': [{'id': 'vertex_A', 'label': 'A'}, {'id': 'vertex_B', 'label': 'B'}],
            'lines': [{'id': 'line_AB', 'from': 'vertex_A', 'to': 'vertex_B', 'label': {'value': 3}}],
            'constraints': [{'type': 'equalLength', 'lines': ['line_AB', 'line_AB'], 'value': 60}],
        }
    )

    root = ET.fromstring(svg)
    texts = sorted(t.text for t in root.iter('{http://www.w3.org/2000/svg}text'))
    assert texts == ['3', 'A', 'B']
    circles = list(root.iter('{http://www.w3.org/2000/svg}circle'))
    assert len(circles) == 2
    assert {c.get('cy') for c in circles} == {'40'}
