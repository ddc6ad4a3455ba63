"""
Tests for the contain-fit transform and screen-space hit-testing.
"""

import pytest

from linkmap.constants import PICK_RADIUS
from linkmap.geometry import ContainTransform, hit_test, image_to_screen, screen_to_image
from linkmap.models import Marker, MarkerRef, Waypoint, WaypointRef


class TestContainTransform:

    def test_wide_container_letterboxes_horizontally(self):
        t = ContainTransform.fit(1000, 500, 200, 200)
        assert t.scale == 2.5
        assert t.offset_x == 250
        assert t.offset_y == 0
        assert t.drawn_rect == (250, 0, 500, 500)

    def test_tall_container_letterboxes_vertically(self):
        t = ContainTransform.fit(400, 1000, 800, 400)
        assert t.scale == 0.5
        assert t.offset_x == 0
        assert t.offset_y == 400

    @pytest.mark.parametrize("dims", [(0, 100, 10, 10), (100, 100, 0, 10), (100, -1, 10, 10)])
    def test_degenerate_sizes(self, dims):
        assert ContainTransform.fit(*dims) is None

    def test_forward_and_inverse_agree(self):
        t = ContainTransform.fit(1024, 680, 3000, 2000)
        sx, sy = t.image_to_screen(1234.5, 876.25)
        x, y = t.screen_to_image_unbounded(sx, sy)
        assert x == pytest.approx(1234.5)
        assert y == pytest.approx(876.25)

    def test_clamp_to_image(self):
        t = ContainTransform.fit(100, 100, 200, 100)
        assert t.clamp_to_image(-5, 50) == (0.0, 50)
        assert t.clamp_to_image(250, 150) == (200.0, 100.0)


class TestScreenToImage:

    def test_inside_image(self):
        t = ContainTransform.fit(1000, 500, 200, 200)
        assert screen_to_image(t, 500, 250) == pytest.approx((100, 100))

    def test_letterbox_area_is_outside(self):
        t = ContainTransform.fit(1000, 500, 200, 200)
        assert screen_to_image(t, 100, 250) is None
        assert screen_to_image(t, 900, 250) is None

    def test_container_origin_is_subtracted(self):
        t = ContainTransform.fit(200, 100, 200, 100)
        assert screen_to_image(t, 60, 40, origin=(50, 30)) == pytest.approx((10, 10))
        assert screen_to_image(t, 40, 40, origin=(50, 30)) is None

    def test_no_transform(self):
        assert screen_to_image(None, 10, 10) is None

    def test_image_to_screen_with_origin(self):
        t = ContainTransform.fit(200, 100, 100, 50)
        assert image_to_screen(t, 10, 10, origin=(5, 5)) == (25, 25)


class TestHitTest:

    @pytest.fixture
    def transform(self):
        # 1:1 mapping, no letterbox
        return ContainTransform.fit(200, 100, 200, 100)

    def test_marker_within_pick_radius(self, transform):
        markers = [Marker(id="a", x=50, y=50)]
        assert hit_test(transform, 50 + PICK_RADIUS, 50, markers, []) == MarkerRef("a")
        assert hit_test(transform, 50 + PICK_RADIUS + 0.5, 50, markers, []) is None

    def test_markers_take_priority_over_waypoints(self, transform):
        markers = [Marker(id="m", x=50, y=50)]
        waypoints = [Waypoint(id="w", x=50, y=50, kind="hazard")]
        assert hit_test(transform, 50, 50, markers, waypoints) == MarkerRef("m")

    def test_newest_overlapping_item_wins(self, transform):
        markers = [Marker(id="old", x=50, y=50), Marker(id="new", x=55, y=50)]
        assert hit_test(transform, 52, 50, markers, []) == MarkerRef("new")

    def test_waypoint_hit(self, transform):
        waypoints = [Waypoint(id="w1", x=10, y=10), Waypoint(id="w2", x=90, y=90)]
        assert hit_test(transform, 91, 89, [], waypoints) == WaypointRef("w2")

    def test_pick_radius_is_in_screen_pixels(self):
        # Image drawn at half size: 20 image px is 10 screen px
        t = ContainTransform.fit(100, 50, 200, 100)
        markers = [Marker(id="a", x=100, y=50)]
        sx, sy = t.image_to_screen(120, 50)
        assert hit_test(t, sx, sy, markers, []) == MarkerRef("a")

    def test_nothing_hit(self, transform):
        assert hit_test(transform, 10, 10, [Marker(id="a", x=150, y=80)], []) is None
        assert hit_test(None, 10, 10, [Marker(id="a", x=10, y=10)], []) is None
