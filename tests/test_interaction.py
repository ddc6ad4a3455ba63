"""
Tests for the pointer state machine.

The 200x100 image is shown in a 200x100 container, so screen and image
coordinates coincide unless a test says otherwise.
"""

import pytest

from linkmap.annotation_manager import AnnotationManager
from linkmap.interaction import (
    DRAGGING,
    HOVERING,
    IDLE,
    InteractionController,
    InteractionState,
)
from linkmap.models import Marker, MarkerRef, Settings, Waypoint, WaypointRef


@pytest.fixture
def controller(manager):
    return InteractionController(manager, 200, 100)


def drag(controller, start, end):
    controller.pointer_down(*start)
    controller.pointer_move(*end, buttons=1)
    return controller.pointer_up()


class TestHover:

    def test_hover_and_idle(self, manager, controller):
        marker = manager.add_marker(50, 50)
        state = controller.pointer_move(55, 52)
        assert state.phase == HOVERING
        assert state.hover == MarkerRef(marker.id)

        state = controller.pointer_move(150, 50)
        assert state.phase == IDLE
        assert state.hover is None

    def test_hover_waypoint(self, manager, controller):
        waypoint = manager.add_waypoint(20, 20, "supply")
        assert controller.pointer_move(20, 21).hover == WaypointRef(waypoint.id)

    def test_leave_clears_hover_only(self, manager, controller):
        marker = manager.add_marker(50, 50)
        controller.click(50, 50)
        controller.pointer_move(50, 50)
        state = controller.pointer_leave()
        assert state.hover is None
        assert state.selected == MarkerRef(marker.id)

    def test_state_listener_only_fires_on_change(self, manager, controller):
        manager.add_marker(50, 50)
        seen = []
        controller.set_on_state_change(seen.append)
        controller.pointer_move(50, 50)
        controller.pointer_move(51, 50)
        assert len(seen) == 1


class TestClick:

    def test_click_on_empty_space_creates_marker(self, manager, controller):
        created = controller.click(30, 40)
        assert isinstance(created, Marker)
        assert (created.x, created.y) == (30, 40)
        assert created.threshold == manager.settings.default_threshold
        assert manager.markers == [created]

    def test_click_on_marker_selects_it(self, manager, controller):
        marker = manager.add_marker(50, 50)
        assert controller.click(52, 48) is None
        assert controller.state.selected == MarkerRef(marker.id)
        assert len(manager.markers) == 1

    def test_creating_clears_selection(self, manager, controller):
        manager.add_marker(50, 50)
        controller.click(50, 50)
        controller.click(150, 80)
        assert controller.state.selected is None
        assert len(manager.markers) == 2

    def test_marker_cap_ignores_click(self, manager, controller):
        for i in range(50):
            manager.add_marker(4 * i, 10)
        controller.click(0, 10)
        before = controller.state
        assert before.selected is not None

        assert controller.click(100, 80) is None
        assert len(manager.markers) == 50
        assert controller.state == before

    def test_waypoint_tool_creates_waypoint(self, manager, controller):
        manager.set_tool("hazard")
        created = controller.click(30, 40)
        assert isinstance(created, Waypoint)
        assert created.kind == "hazard"
        assert manager.markers == []

    def test_waypoints_are_not_capped(self, manager, controller):
        for i in range(50):
            manager.add_marker(4 * i, 10)
        manager.set_tool("objective")
        assert isinstance(controller.click(100, 80), Waypoint)

    def test_click_in_letterbox_does_nothing(self, manager):
        # 200x100 image in a 400x100 container: drawn from x=100 to x=300
        controller = InteractionController(manager, 400, 100)
        assert controller.click(50, 50) is None
        assert controller.click(350, 50) is None
        assert manager.markers == []

        created = controller.click(150, 50)
        assert (created.x, created.y) == (50, 50)

    def test_container_origin(self, manager):
        controller = InteractionController(manager, 200, 100, origin=(10, 20))
        created = controller.click(40, 60)
        assert (created.x, created.y) == (30, 40)

    def test_no_image(self):
        empty = AnnotationManager()
        controller = InteractionController(empty, 200, 100)
        assert controller.click(10, 10) is None
        assert controller.pointer_move(10, 10).phase == IDLE
        assert empty.markers == []

    def test_hidden_waypoints_cannot_be_picked(self, manager, controller):
        manager.add_waypoint(50, 50, "hazard")
        manager.set_display("show_waypoints", False)
        assert controller.pointer_move(50, 50).hover is None
        assert controller.pointer_down(50, 50).drag is None
        controller.pointer_up()

        created = controller.click(50, 50)
        assert isinstance(created, Marker)
        assert controller.state.selected is None

    def test_hiding_waypoints_drops_their_selection(self, manager, controller):
        waypoint = manager.add_waypoint(50, 50, "hazard")
        marker = manager.add_marker(150, 50)
        controller.click(50, 50)
        assert controller.state.selected == WaypointRef(waypoint.id)

        manager.set_display("show_waypoints", False)
        assert controller.state.selected is None

        controller.click(150, 50)
        manager.set_display("show_waypoints", True)
        manager.set_display("show_waypoints", False)
        assert controller.state.selected == MarkerRef(marker.id)


class TestDrag:

    def test_press_on_target_starts_drag_and_selects(self, manager, controller):
        marker = manager.add_marker(50, 50)
        state = controller.pointer_down(53, 52)
        assert state.phase == DRAGGING
        assert state.dragging == MarkerRef(marker.id)
        assert state.selected == MarkerRef(marker.id)
        assert (state.drag.grab_dx, state.drag.grab_dy) == (3, 2)

    def test_drag_keeps_grab_offset(self, manager, controller):
        marker = manager.add_marker(50, 50)
        controller.pointer_down(53, 52)
        controller.pointer_move(103, 72, buttons=1)
        assert (marker.x, marker.y) == (100, 70)

    def test_drag_is_clamped_to_image(self, manager, controller):
        marker = manager.add_marker(50, 50)
        controller.pointer_down(53, 50)
        controller.pointer_move(260, 130, buttons=1)
        assert (marker.x, marker.y) == (200, 100)
        controller.pointer_move(-40, -10, buttons=1)
        assert (marker.x, marker.y) == (0, 0)

    def test_release_keeps_selection(self, manager, controller):
        marker = manager.add_marker(50, 50)
        state = drag(controller, (50, 50), (70, 50))
        assert state.phase == IDLE
        assert state.selected == MarkerRef(marker.id)

    def test_drag_suppresses_exactly_one_click(self, manager, controller):
        manager.add_marker(50, 50)
        drag(controller, (50, 50), (60, 50))
        assert controller.state.just_dragged is True

        assert controller.click(60, 50) is None
        assert controller.state.just_dragged is False
        assert len(manager.markers) == 1

        assert controller.click(150, 80) is not None
        assert len(manager.markers) == 2

    def test_press_release_without_move_does_not_suppress(self, manager, controller):
        marker = manager.add_marker(50, 50)
        controller.pointer_down(50, 50)
        controller.pointer_up()
        assert controller.state.just_dragged is False

        controller.clear_selection()
        controller.click(50, 50)
        assert controller.state.selected == MarkerRef(marker.id)

    def test_press_on_empty_space_does_not_drag(self, manager, controller):
        state = controller.pointer_down(150, 80)
        assert state.phase == IDLE
        assert manager.markers == []

    def test_secondary_button_does_not_drag(self, manager, controller):
        manager.add_marker(50, 50)
        assert controller.pointer_down(50, 50, button=2).drag is None

    def test_move_without_primary_button_releases(self, manager, controller):
        marker = manager.add_marker(50, 50)
        controller.pointer_down(50, 50)
        controller.pointer_move(60, 50, buttons=1)
        state = controller.pointer_move(80, 50, buttons=0)
        assert state.drag is None
        assert state.just_dragged is True
        assert (marker.x, marker.y) == (60, 50)

    def test_drag_waypoint(self, manager, controller):
        waypoint = manager.add_waypoint(20, 20, "landmark")
        drag(controller, (20, 20), (40, 30))
        assert (waypoint.x, waypoint.y) == (40, 30)

    def test_drag_in_scaled_container(self, manager):
        # 200x100 image shown at 2x in a 400x200 container
        controller = InteractionController(manager, 400, 200)
        marker = manager.add_marker(50, 50)
        controller.pointer_down(100, 100)
        controller.pointer_move(140, 120, buttons=1)
        assert (marker.x, marker.y) == (70, 60)


class TestStateUpkeep:

    def test_undo_drops_stale_references(self, manager, controller):
        keep = manager.add_marker(20, 20)
        gone = manager.add_marker(50, 50)
        controller.click(20, 20)
        controller.pointer_move(50, 50)
        assert controller.state.hover == MarkerRef(gone.id)

        manager.undo()
        assert controller.state.hover is None
        assert controller.state.selected == MarkerRef(keep.id)

    def test_undo_removes_selected(self, manager, controller):
        marker = manager.add_marker(50, 50)
        controller.click(50, 50)
        assert controller.state.selected == MarkerRef(marker.id)
        manager.undo()
        assert controller.state.selected is None

    def test_restore_resets_state(self, manager, controller):
        manager.add_marker(50, 50)
        controller.pointer_down(50, 50)
        manager.replace_all(manager.image, [], [], Settings())
        assert controller.state == InteractionState()

    def test_clear_resets_state(self, manager, controller):
        manager.add_marker(50, 50)
        controller.click(50, 50)
        manager.clear_annotations()
        assert controller.state == InteractionState()

    def test_new_image_resets_state(self, manager, controller):
        manager.add_marker(50, 50)
        controller.click(50, 50)
        manager.load_image(manager.image)
        assert controller.state == InteractionState()
