"""
Interaction Controller - pointer state machine for the annotation canvas.

States:
    Idle                      nothing under the pointer
    Hovering(target)          pointer over a marker or waypoint
    Dragging(target, offset)  primary button held on a target

Selection lives alongside these states: pressing on a target selects it and
the selection survives drag release and hover leaving.

All pointer coordinates are screen coordinates. They are converted with a
contain-fit transform rebuilt from the current container and image sizes on
every event.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional, Tuple

from linkmap.annotation_manager import (
    CHANGE_CLEAR,
    CHANGE_IMAGE,
    CHANGE_RESTORE,
    CHANGE_SETTINGS,
    CHANGE_UNDO,
    AnnotationManager,
)
from linkmap.constants import PICK_RADIUS
from linkmap.geometry import ContainTransform, hit_test, screen_to_image
from linkmap.models import Target, WaypointRef

logger = logging.getLogger(__name__)

IDLE = "idle"
HOVERING = "hovering"
DRAGGING = "dragging"


@dataclass(frozen=True)
class DragState:
    """An in-progress drag. grab_dx/grab_dy = press point - target position (image space)."""
    target: Target
    grab_dx: float
    grab_dy: float
    press_x: float = 0.0
    press_y: float = 0.0
    moved: bool = False


@dataclass(frozen=True)
class InteractionState:
    """Immutable snapshot of pointer state."""
    hover: Target = None
    selected: Target = None
    drag: Optional[DragState] = None
    just_dragged: bool = False

    @property
    def phase(self) -> str:
        if self.drag is not None:
            return DRAGGING
        if self.hover is not None:
            return HOVERING
        return IDLE

    @property
    def dragging(self) -> Target:
        return self.drag.target if self.drag else None


class InteractionController:
    """Resolves pointer events into hover, selection, drag and creation."""

    def __init__(self, manager: AnnotationManager, container_width: float,
                 container_height: float, origin: Tuple[float, float] = (0.0, 0.0),
                 pick_radius: float = PICK_RADIUS):
        self.manager = manager
        self.container_width = container_width
        self.container_height = container_height
        self.origin = origin
        self.pick_radius = pick_radius
        self._state = InteractionState()
        self._on_state_change: Optional[Callable[[InteractionState], None]] = None
        manager.on_change(self._on_manager_change)

    @property
    def state(self) -> InteractionState:
        return self._state

    def set_on_state_change(self, callback: Callable[[InteractionState], None]):
        self._on_state_change = callback

    def _set_state(self, state: InteractionState) -> InteractionState:
        if state != self._state:
            self._state = state
            if self._on_state_change:
                self._on_state_change(state)
        return self._state

    # --- Geometry ---

    def set_container_size(self, width: float, height: float) -> None:
        self.container_width = width
        self.container_height = height

    def transform(self) -> Optional[ContainTransform]:
        """Contain-fit transform for the current container and image."""
        size = self.manager.image_size
        if size is None:
            return None
        return ContainTransform.fit(self.container_width, self.container_height, size[0], size[1])

    def target_at(self, sx: float, sy: float) -> Target:
        """
        Hit-test a screen point.

        Points outside the drawn image hit nothing, and hidden waypoints
        cannot be picked.
        """
        transform = self.transform()
        if screen_to_image(transform, sx, sy, self.origin) is None:
            return None
        waypoints = self.manager.waypoints if self.manager.settings.show_waypoints else []
        return hit_test(transform, sx - self.origin[0], sy - self.origin[1],
                        self.manager.markers, waypoints, self.pick_radius)

    # --- Pointer events ---

    def pointer_move(self, sx: float, sy: float, buttons: Optional[int] = None) -> InteractionState:
        """
        Handle a pointer move.

        Args:
            sx, sy: Screen position
            buttons: Pressed-button bitmask if known. A drag whose primary
                button is no longer held is released first.
        """
        state = self._state
        if state.drag is not None and buttons is not None and not (buttons & 1):
            state = self.pointer_up()

        if state.drag is None:
            return self._set_state(replace(state, hover=self.target_at(sx, sy)))

        transform = self.transform()
        item = self.manager.resolve(state.drag.target)
        if transform is None or item is None:
            return self._set_state(replace(state, drag=None, hover=None))

        px, py = transform.screen_to_image_unbounded(sx - self.origin[0], sy - self.origin[1])
        self.manager.move(state.drag.target, px - state.drag.grab_dx, py - state.drag.grab_dy)
        if not state.drag.moved and (sx, sy) != (state.drag.press_x, state.drag.press_y):
            state = replace(state, drag=replace(state.drag, moved=True))
        return self._set_state(state)

    def pointer_down(self, sx: float, sy: float, button: int = 0) -> InteractionState:
        """Start dragging the target under the pointer (primary button only)."""
        if button != 0 or self._state.drag is not None:
            return self._state
        state = replace(self._state, just_dragged=False)

        target = self.target_at(sx, sy)
        item = self.manager.resolve(target)
        if item is None:
            return self._set_state(state)

        px, py = self.transform().screen_to_image_unbounded(sx - self.origin[0], sy - self.origin[1])
        drag = DragState(target=target, grab_dx=px - item.x, grab_dy=py - item.y,
                         press_x=sx, press_y=sy)
        logger.debug(f"Drag start on {target}")
        return self._set_state(replace(state, hover=target, selected=target, drag=drag))

    def pointer_up(self) -> InteractionState:
        """Release a drag. A drag that moved suppresses the next click."""
        drag = self._state.drag
        if drag is None:
            return self._state
        return self._set_state(replace(self._state, drag=None, hover=None, just_dragged=drag.moved))

    def pointer_leave(self) -> InteractionState:
        return self._set_state(replace(self._state, hover=None))

    def click(self, sx: float, sy: float):
        """
        Handle a click.

        - Right after a drag that moved: consume the suppression flag, do nothing
        - On a target: select it
        - On empty image space: create an annotation with the active tool
          (ignored when placing markers and the marker cap is reached)

        Returns:
            The created Marker or Waypoint, or None
        """
        if self._state.just_dragged:
            self._set_state(replace(self._state, just_dragged=False))
            return None

        point = screen_to_image(self.transform(), sx, sy, self.origin)
        if point is None:
            return None

        target = self.target_at(sx, sy)
        if target is not None:
            self._set_state(replace(self._state, selected=target))
            return None

        created = self.manager.add_with_tool(*point)
        if created is None:
            return None
        self._set_state(replace(self._state, selected=None))
        return created

    def clear_selection(self) -> InteractionState:
        return self._set_state(replace(self._state, selected=None))

    def reset(self) -> InteractionState:
        """Forget hover, selection and drag state."""
        return self._set_state(InteractionState())

    # --- State upkeep ---

    def _on_manager_change(self, reason: str) -> None:
        if reason in (CHANGE_RESTORE, CHANGE_CLEAR, CHANGE_IMAGE):
            self.reset()
        elif reason in (CHANGE_UNDO, CHANGE_SETTINGS):
            reachable = self._reachable
            state = self._state
            self._set_state(InteractionState(
                hover=state.hover if reachable(state.hover) else None,
                selected=state.selected if reachable(state.selected) else None,
                drag=state.drag if state.drag and reachable(state.drag.target) else None,
                just_dragged=state.just_dragged,
            ))

    def _reachable(self, target: Target) -> bool:
        """A target still exists and is visible."""
        if isinstance(target, WaypointRef) and not self.manager.settings.show_waypoints:
            return False
        return self.manager.resolve(target) is not None
