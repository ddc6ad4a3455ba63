"""
Tests for the SVG overlay markup.
"""

from linkmap.geometry import ContainTransform
from linkmap.interaction import InteractionState
from linkmap.models import MarkerRef
from linkmap.overlay import (
    HOVER_STROKE,
    SELECTED_STROKE,
    _marker_label,
    build_overlay_svg,
    legend_entries,
)


def transform():
    return ContainTransform.fit(200, 100, 200, 100)


class TestBuildOverlay:

    def test_no_transform(self, manager):
        assert build_overlay_svg(manager, None, InteractionState()) == ""

    def test_markers_and_edges(self, manager):
        manager.add_marker(10, 10)
        manager.add_marker(50, 10)
        svg = build_overlay_svg(manager, transform(), InteractionState())
        assert svg.count("<circle") == 2
        assert svg.count("<line") == 1
        assert ">1</text>" in svg and ">2</text>" in svg

    def test_edges_hidden(self, manager):
        manager.add_marker(10, 10)
        manager.add_marker(50, 10)
        manager.set_display("show_edges", False)
        assert "<line" not in build_overlay_svg(manager, transform(), InteractionState())

    def test_ranges(self, manager):
        manager.add_marker(10, 10)
        manager.set_display("show_ranges", True)
        svg = build_overlay_svg(manager, transform(), InteractionState())
        assert 'r="300.0"' in svg

    def test_waypoints_toggle(self, manager):
        manager.add_waypoint(20, 20, "hazard")
        manager.add_waypoint(40, 20, "objective")
        svg = build_overlay_svg(manager, transform(), InteractionState())
        assert "<polygon" in svg and "<circle" in svg
        manager.set_display("show_waypoints", False)
        assert build_overlay_svg(manager, transform(), InteractionState()) == ""

    def test_highlighting(self, manager):
        selected = manager.add_marker(10, 10)
        hovered = manager.add_marker(150, 80)
        state = InteractionState(hover=MarkerRef(hovered.id), selected=MarkerRef(selected.id))
        svg = build_overlay_svg(manager, transform(), state)
        assert f'stroke="{SELECTED_STROKE}"' in svg
        assert f'stroke="{HOVER_STROKE}"' in svg


class TestMarkerLabel:

    def test_variants(self):
        degree = [3, 1]
        assert _marker_label(0, degree, True, False) == "1"
        assert _marker_label(1, degree, True, True) == "2:1"
        assert _marker_label(0, degree, False, True) == "3"
        assert _marker_label(0, degree, False, False) == ""


def test_legend_covers_thresholds_and_kinds():
    entries = legend_entries()
    assert "300 m" in entries and "350 m" in entries
    assert "landmark" in entries
