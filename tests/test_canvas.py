import math
import xml.etree.ElementTree as ET

import pytest

from geodiagram import CanvasError
from geodiagram.svg import Canvas, CanvasOptions, PathBuilder
from geodiagram.svg.canvas import GradientStop, LegendRow
from geodiagram.svg.text import wrap_text

SVG = "{http://www.w3.org/2000/svg}"


def make_canvas(area=(0.0, 0.0, 100.0, 50.0)):
    return Canvas(CanvasOptions(chart_area=area))


def test_extents_start_at_chart_area():
    canvas = make_canvas()

    box = canvas.extents
    assert (box.min_x, box.max_x, box.min_y, box.max_y) == (0, 100, 0, 50)


def test_line_extents_include_half_stroke():
    canvas = make_canvas()
    canvas.draw_line(-10, 5, 20, 5, stroke="#000", stroke_width=4)

    assert canvas.extents.min_x == pytest.approx(-12)


def test_square_caps_pad_by_diagonal():
    canvas = make_canvas()
    canvas.draw_line(-10, 5, 20, 5, stroke="#000", stroke_width=4, linecap="square")

    assert canvas.extents.min_x == pytest.approx(-10 - 2 * math.sqrt(2))


def test_invalid_numbers_raise_canvas_error():
    canvas = make_canvas()

    with pytest.raises(CanvasError):
        canvas.draw_circle(0, 0, -1)
    with pytest.raises(CanvasError):
        canvas.draw_circle(0, 0, 1, fill="#000", opacity=1.5)
    with pytest.raises(CanvasError):
        canvas.draw_line(float("nan"), 0, 1, 1)
    with pytest.raises(CanvasError):
        canvas.draw_rect(0, 0, 5, 5, fill="#000", fill_pattern_id="hatch")
    with pytest.raises(CanvasError):
        canvas.draw_polygon([(0, 0), (1, 1)])
    with pytest.raises(CanvasError):
        canvas.draw_path(PathBuilder())
    assert canvas.elements == []


def test_text_rejects_unknown_paint_order():
    canvas = make_canvas()

    with pytest.raises(CanvasError):
        canvas.draw_text(0, 0, "A", stroke="#fff", paint_order="fill stroke")


def test_text_box_follows_anchor_and_baseline():
    canvas = make_canvas()

    box = canvas.draw_text(50, 20, "abcd", font_px=10, anchor="middle", baseline="middle")
    assert (box.min_x, box.max_x) == pytest.approx((38, 62))
    assert (box.min_y, box.max_y) == pytest.approx((15, 25))

    alpha = canvas.draw_text(0, 20, "ab", font_px=10)
    assert alpha.min_y == pytest.approx(12)
    assert alpha.min_x == 0


def test_rotated_text_box_swaps_axes():
    canvas = make_canvas()

    box = canvas.draw_text(0, 0, "abcd", font_px=10, baseline="hanging", rotate=90)

    assert box.width == pytest.approx(10)
    assert box.height == pytest.approx(24)
    markup = canvas.elements[-1].to_svg()
    assert 'transform="rotate(90 0 0)"' in markup


def test_text_attributes_and_escaping():
    canvas = make_canvas()
    canvas.draw_text(
        10,
        10,
        "a<b",
        font_px=14,
        anchor="middle",
        baseline="middle",
        font_weight="700",
        fill="#333333",
        stroke="#ffffff",
        stroke_width=0.3,
        paint_order="stroke fill",
    )

    markup = canvas.elements[-1].to_svg()
    assert markup == (
        '<text x="10" y="10" font-size="14" text-anchor="middle" dominant-baseline="middle" '
        'font-weight="700" fill="#333333" stroke="#ffffff" stroke-width="0.3" '
        'paint-order="stroke fill">a&lt;b</text>'
    )


def test_wrapped_text_uses_tspans():
    canvas = make_canvas()
    canvas.draw_wrapped_text(0, 0, "one two three", 40, font_px=10)

    markup = canvas.elements[-1].to_svg()
    assert markup.count("<tspan") == 3
    assert 'dy="12"' in markup


def test_wrap_text_breaks_on_newlines_and_width():
    assert wrap_text("a\nb", None, 10) == ["a", "b"]
    assert wrap_text("aa bb cc", 30, 10) == ["aa", "bb", "cc"]
    assert wrap_text("aa bb", 60, 10) == ["aa bb"]


def test_clipped_region_wraps_body_and_restores_extents():
    canvas = make_canvas()

    def draw(region):
        region.draw_line(-500, 10, 500, 10, stroke="#000")
        region.draw_circle(150, 150, 10, fill="#000")

    clip_id = canvas.draw_in_clipped_region((0, 0, 200, 200), draw)

    assert clip_id == "clip-0"
    assert len(canvas.elements) == 1
    group = canvas.elements[0]
    assert group.tag == "g"
    assert group.get("clip-path") == "url(#clip-0)"
    assert [child.tag for child in group.children] == ["line", "circle"]
    box = canvas.extents
    assert (box.min_x, box.max_x, box.min_y, box.max_y) == (0, 100, 0, 50)
    assert canvas.has_def("clip-0")


def test_clipped_content_inside_clip_does_not_grow_extents():
    canvas = make_canvas((0.0, 0.0, 100.0, 100.0))
    canvas.draw_in_clipped_region((0, 0, 200, 200), lambda c: c.draw_circle(150, 150, 10, fill="#000"))

    box = canvas.extents
    assert (box.max_x, box.max_y) == (100, 100)
    assert canvas.finalize().width == 100


def test_clipped_regions_cannot_nest():
    canvas = make_canvas()

    def draw(region):
        region.draw_in_clipped_region((0, 0, 5, 5), lambda inner: None)

    with pytest.raises(CanvasError, match="nested"):
        canvas.draw_in_clipped_region((0, 0, 10, 10), draw)
    assert canvas.elements == []


def test_clip_ids_count_per_canvas():
    first = make_canvas()
    assert first.draw_in_clipped_region((0, 0, 1, 1), lambda r: None) == "clip-0"
    assert first.draw_in_clipped_region((0, 0, 1, 1), lambda r: None) == "clip-1"

    second = make_canvas()
    assert second.draw_in_clipped_region((0, 0, 1, 1), lambda r: None) == "clip-0"


def test_clipped_region_only_forwards_drawing():
    canvas = make_canvas()

    def draw(region):
        region.add_style("rect { fill: red }")

    with pytest.raises(AttributeError):
        canvas.draw_in_clipped_region((0, 0, 10, 10), draw)
    assert canvas.elements == []


def test_finalize_rounds_outward():
    canvas = make_canvas((0.0, 0.0, 100.5, 50.0))

    final = canvas.finalize(10)

    assert (final.min_x, final.min_y) == (-10, -10)
    assert final.width == 121
    assert final.height == 70
    assert final.view_box == "-10 -10 121 70"


def test_finalize_covers_every_primitive():
    canvas = make_canvas()
    canvas.draw_circle(-3.3, 7, 2.2, stroke="#000", stroke_width=1)
    canvas.draw_rect(90, 40, 25.25, 30.7)
    canvas.draw_text(0, 0, "label", font_px=12)

    final = canvas.finalize(0)
    box = canvas.extents

    assert final.min_x <= box.min_x
    assert final.min_y <= box.min_y
    assert final.min_x + final.width >= box.max_x
    assert final.min_y + final.height >= box.max_y


def test_defs_emitted_only_when_present():
    canvas = make_canvas()
    canvas.draw_line(0, 0, 10, 10)
    assert "<defs>" not in canvas.finalize().markup

    canvas.add_arrow_marker("arrow", "#333333")
    canvas.add_arrow_marker("arrow", "#333333")
    markup = canvas.finalize().markup
    assert markup.startswith("<defs>")
    assert markup.count('id="arrow"') == 1


def test_pattern_and_gradient_defs():
    canvas = make_canvas()
    canvas.add_hatch_pattern("hatch", "#999999", spacing=6, angle=30)
    canvas.add_linear_gradient("fade", [GradientStop(0, "#ffffff"), GradientStop(1, "#000000", 0.5)])
    canvas.add_radial_gradient("glow", [GradientStop(0, "#ffffff"), GradientStop(1, "#000000")])
    canvas.draw_rect(0, 0, 10, 10, fill_pattern_id="hatch")

    document = canvas.finalize().to_document()
    root = ET.fromstring(document)
    defs = root.find(f"{SVG}defs")

    assert defs.find(f"{SVG}pattern").get("patternTransform") == "rotate(30)"
    assert defs.find(f"{SVG}linearGradient").findall(f"{SVG}stop")[1].get("stop-opacity") == "0.5"
    assert defs.find(f"{SVG}radialGradient") is not None
    assert root.find(f"{SVG}rect").get("fill") == "url(#hatch)"

    with pytest.raises(CanvasError):
        canvas.add_linear_gradient("bad", [GradientStop(0, "#fff")])


def test_foreign_object_requires_xhtml_namespace():
    canvas = make_canvas()

    with pytest.raises(CanvasError):
        canvas.draw_foreign_object(0, 0, 10, 10, "<div>hi</div>")

    canvas.draw_foreign_object(0, 0, 10, 10, '<div xmlns="http://www.w3.org/1999/xhtml">hi</div>')
    assert canvas.elements[-1].tag == "foreignObject"


def test_legend_block_draws_rows():
    canvas = make_canvas()

    box = canvas.draw_legend_block(
        0, 0, [LegendRow("solid", "#000000", marker="circle"), LegendRow("dashed", "#ff0000", dash="5 3")]
    )

    tags = [element.tag for element in canvas.elements]
    assert tags == ["line", "circle", "text", "line", "text"]
    assert box.min_x == 0 and box.max_y > 0


def test_document_is_well_formed():
    canvas = make_canvas()
    canvas.draw_path(PathBuilder().move_to(0, 0).line_to(5, 5), stroke="#000")

    root = ET.fromstring(canvas.finalize(20).to_document())

    assert root.tag == f"{SVG}svg"
    assert root.get("viewBox") == "-20 -20 140 90"
    assert root.find(f"{SVG}path").get("fill") == "none"
