import logging
import math

import pytest

from geodiagram.placement import (
    LabelPlacer,
    PlacementOptions,
    rects_intersect,
    ring_offsets,
    segment_intersects_rect,
    segments_intersect,
)

BOUNDS = (0.0, 200.0, 0.0, 200.0)


def test_free_ideal_is_kept():
    placer = LabelPlacer(BOUNDS)

    placement = placer.place((100, 100), 10, 12, "A")

    assert (placement.x, placement.y) == (100, 100)
    assert placement.radius == 0
    assert not placement.degraded


def test_coinciding_ideals_are_separated():
    placer = LabelPlacer(BOUNDS)

    first = placer.place((100, 100), 20, 14, "a")
    second = placer.place((100, 100), 20, 14, "b")

    assert (first.x, first.y) != (second.x, second.y)
    assert not rects_intersect(first.label.rect, second.label.rect)
    assert placer.overlapping_pairs() == []
    assert second.radius == pytest.approx(20)
    assert second.y > 100


def test_labels_avoid_segments_and_circles():
    placer = LabelPlacer(BOUNDS)
    placer.add_segment((50, 100), (150, 100))
    placer.add_circle((100, 120), 6)

    placement = placer.place((100, 100), 10, 10, "x")

    rect = placement.label.rect
    assert not segment_intersects_rect((50, 100), (150, 100), rect)
    assert placement.radius > 0


def test_exhausted_search_clamps_and_warns(caplog):
    options = PlacementOptions(max_radius=8)
    placer = LabelPlacer((0.0, 30.0, 0.0, 30.0), options)
    for y in range(0, 31, 2):
        placer.add_segment((0, y), (30, y))

    with caplog.at_level(logging.WARNING, logger="geodiagram.placement"):
        placement = placer.place((100, 100), 10, 10, "lost")

    assert placement.degraded
    assert (placement.x, placement.y) == (21.0, 21.0)
    assert len(placer.warnings) == 1
    assert placer.warnings[0].text == "lost"
    assert "lost" in caplog.text


def test_ring_offsets_order_by_radius_then_angle():
    offsets = ring_offsets(PlacementOptions(ring_step=4, angular_samples=4, max_radius=8))

    assert offsets.shape == (8, 3)
    assert offsets[0] == pytest.approx([4, 0, 4])
    assert offsets[1] == pytest.approx([0, 4, 4], abs=1e-9)
    assert offsets[4] == pytest.approx([8, 0, 8])
    assert all(offsets[i, 2] <= offsets[i + 1, 2] for i in range(len(offsets) - 1))


def test_placer_rejects_bad_options():
    with pytest.raises(ValueError):
        LabelPlacer(BOUNDS, PlacementOptions(ring_step=0))


def test_segment_predicates():
    assert segments_intersect((0, 0), (10, 10), (0, 10), (10, 0))
    assert not segments_intersect((0, 0), (10, 0), (0, 1), (10, 1))
    assert segments_intersect((0, 0), (10, 0), (10, 0), (20, 5))
    assert segment_intersects_rect((-5, 5), (15, 5), (0, 10, 0, 10))
    assert not segment_intersects_rect((-5, -5), (-1, 20), (0, 10, 0, 10))


def test_out_of_bounds_ideal_moves_inside():
    placer = LabelPlacer(BOUNDS)

    placement = placer.place((199, 100), 10, 10, "edge")

    rect = placement.label.rect
    assert rect[1] <= 198 + 1e-9
    assert not placement.degraded
    assert math.hypot(placement.x - 199, placement.y - 100) <= 64
