"""
AnnotationManager - single source of truth for a live LinkMap session.

Owns the loaded image, the ordered marker and waypoint lists and the
settings. Every committed mutation is announced to listeners with a reason
string so the interaction controller can drop stale references and the
session store can schedule an autosave.

Insertion order of markers is the canonical index used for display numbering
and by the connectivity engine; it is never re-sorted.
"""

import logging
from typing import Callable, List, Optional, Tuple

from linkmap.connectivity import GraphResult, compute_graph
from linkmap.constants import MAX_DEGREE, MAX_MARKERS, THRESHOLD_CHOICES, TOOLS, WAYPOINT_KINDS
from linkmap.imaging import LoadedImage
from linkmap.models import (
    Marker,
    MarkerRef,
    Settings,
    Target,
    Waypoint,
    WaypointRef,
    is_number,
    new_id,
)

logger = logging.getLogger(__name__)

# Change reasons passed to listeners
CHANGE_IMAGE = "image"
CHANGE_ADD = "add"
CHANGE_MOVE = "move"
CHANGE_EDIT = "edit"
CHANGE_UNDO = "undo"
CHANGE_CLEAR = "clear"
CHANGE_SETTINGS = "settings"
CHANGE_RESTORE = "restore"

DISPLAY_TOGGLES = ("show_edges", "show_labels", "show_ranges", "show_degree", "show_waypoints")

# Image load status
STATUS_EMPTY = "empty"
STATUS_LOADING = "loading"
STATUS_READY = "ready"
STATUS_ERROR = "error"


class AnnotationManager:
    """Holds and mutates image, markers, waypoints and settings."""

    def __init__(self, max_markers: int = MAX_MARKERS, max_degree: int = MAX_DEGREE):
        self.max_markers = max_markers
        self.max_degree = max_degree
        self.image: Optional[LoadedImage] = None
        self.image_status: str = STATUS_EMPTY
        self.image_error: Optional[str] = None
        self.markers: List[Marker] = []
        self.waypoints: List[Waypoint] = []
        self.settings = Settings()
        self._load_generation = 0
        self._listeners: List[Callable[[str], None]] = []

    # --- Listeners ---

    def on_change(self, callback: Callable[[str], None]) -> None:
        """Register a callback called as callback(reason) after each committed mutation."""
        self._listeners.append(callback)

    def _notify(self, reason: str) -> None:
        for callback in list(self._listeners):
            callback(reason)

    # --- Derived values ---

    @property
    def has_image(self) -> bool:
        return self.image is not None and self.image_status == STATUS_READY

    @property
    def awaiting_image(self) -> bool:
        """No image is loaded and none is being decoded."""
        return self.image is None and self.image_status != STATUS_LOADING

    @property
    def image_size(self) -> Optional[Tuple[int, int]]:
        if self.image is None:
            return None
        return self.image.width, self.image.height

    @property
    def markers_full(self) -> bool:
        return len(self.markers) >= self.max_markers

    def graph(self) -> GraphResult:
        """Recompute the proximity graph from the current markers and scale."""
        return compute_graph(self.markers, self.settings.meters_per_pixel, self.max_degree)

    def marker_index(self, marker_id: str) -> Optional[int]:
        for i, marker in enumerate(self.markers):
            if marker.id == marker_id:
                return i
        return None

    def get_marker(self, marker_id: str) -> Optional[Marker]:
        index = self.marker_index(marker_id)
        return None if index is None else self.markers[index]

    def get_waypoint(self, waypoint_id: str) -> Optional[Waypoint]:
        for waypoint in self.waypoints:
            if waypoint.id == waypoint_id:
                return waypoint
        return None

    def resolve(self, target: Target):
        """Return the Marker or Waypoint a target refers to, or None."""
        if isinstance(target, MarkerRef):
            return self.get_marker(target.id)
        if isinstance(target, WaypointRef):
            return self.get_waypoint(target.id)
        return None

    def clamp(self, x: float, y: float) -> Tuple[float, float]:
        """Clamp a position into image bounds (unchanged when no image is loaded)."""
        if self.image is None:
            return float(x), float(y)
        return (min(max(float(x), 0.0), float(self.image.width)),
                min(max(float(y), 0.0), float(self.image.height)))

    # --- Annotation mutations ---

    def add_marker(self, x: float, y: float, threshold: Optional[int] = None) -> Optional[Marker]:
        """
        Append a marker with the given (or the default) threshold.

        Returns:
            The new marker, or None when the marker cap is reached
        """
        if self.markers_full:
            return None
        if threshold is None:
            threshold = self.settings.default_threshold
        if threshold not in THRESHOLD_CHOICES:
            raise ValueError(f"Threshold must be one of {THRESHOLD_CHOICES}, got {threshold!r}")
        x, y = self.clamp(x, y)
        marker = Marker(id=new_id(), x=x, y=y, threshold=int(threshold))
        self.markers.append(marker)
        self._notify(CHANGE_ADD)
        return marker

    def add_waypoint(self, x: float, y: float, kind: str) -> Waypoint:
        if kind not in WAYPOINT_KINDS:
            raise ValueError(f"Unknown waypoint kind {kind!r}")
        x, y = self.clamp(x, y)
        waypoint = Waypoint(id=new_id(), x=x, y=y, kind=kind)
        self.waypoints.append(waypoint)
        self._notify(CHANGE_ADD)
        return waypoint

    def add_with_tool(self, x: float, y: float):
        """Create an annotation of the active tool's kind."""
        if self.settings.tool in WAYPOINT_KINDS:
            return self.add_waypoint(x, y, self.settings.tool)
        return self.add_marker(x, y)

    def move(self, target: Target, x: float, y: float) -> bool:
        """Move a marker or waypoint, clamped to image bounds."""
        item = self.resolve(target)
        if item is None:
            return False
        x, y = self.clamp(x, y)
        if (item.x, item.y) == (x, y):
            return False
        item.x, item.y = x, y
        self._notify(CHANGE_MOVE)
        return True

    def set_marker_threshold(self, marker_id: str, threshold: int) -> bool:
        if threshold not in THRESHOLD_CHOICES:
            raise ValueError(f"Threshold must be one of {THRESHOLD_CHOICES}, got {threshold!r}")
        marker = self.get_marker(marker_id)
        if marker is None or marker.threshold == threshold:
            return False
        marker.threshold = int(threshold)
        self._notify(CHANGE_EDIT)
        return True

    def undo(self):
        """
        Remove the newest marker; only when there are no markers left,
        remove the newest waypoint instead.

        Returns:
            The removed Marker or Waypoint, or None if both lists are empty
        """
        if self.markers:
            removed = self.markers.pop()
        elif self.waypoints:
            removed = self.waypoints.pop()
        else:
            return None
        self._notify(CHANGE_UNDO)
        return removed

    def clear_annotations(self) -> None:
        """Remove all markers and waypoints."""
        if not self.markers and not self.waypoints:
            return
        self.markers = []
        self.waypoints = []
        self._notify(CHANGE_CLEAR)

    # --- Settings ---

    def set_tool(self, tool: str) -> None:
        if tool not in TOOLS:
            raise ValueError(f"Unknown tool {tool!r}")
        if self.settings.tool != tool:
            self.settings.tool = tool
            self._notify(CHANGE_SETTINGS)

    def set_default_threshold(self, threshold: int) -> None:
        if threshold not in THRESHOLD_CHOICES:
            raise ValueError(f"Threshold must be one of {THRESHOLD_CHOICES}, got {threshold!r}")
        if self.settings.default_threshold != threshold:
            self.settings.default_threshold = int(threshold)
            self._notify(CHANGE_SETTINGS)

    def set_meters_per_pixel(self, value: float) -> bool:
        """
        Change the image scale.

        Returns:
            False when the scale is locked for the loaded image
        """
        if not is_number(value) or not 0 < value < float("inf"):
            raise ValueError(f"Scale must be a finite positive number, got {value!r}")
        if self.settings.scale_locked and self.image is not None:
            return False
        if self.settings.meters_per_pixel != value:
            self.settings.meters_per_pixel = float(value)
            self._notify(CHANGE_SETTINGS)
        return True

    def set_scale_locked(self, locked: bool) -> None:
        if self.settings.scale_locked != bool(locked):
            self.settings.scale_locked = bool(locked)
            self._notify(CHANGE_SETTINGS)

    def set_display(self, name: str, value: bool) -> None:
        if name not in DISPLAY_TOGGLES:
            raise ValueError(f"Unknown display toggle {name!r}")
        if getattr(self.settings, name) != bool(value):
            setattr(self.settings, name, bool(value))
            self._notify(CHANGE_SETTINGS)

    # --- Image loading ---

    def begin_image_load(self) -> int:
        """
        Mark an image load as in flight.

        Returns:
            Generation number to pass to finish_image_load; a later
            begin_image_load (or a restore) supersedes it.
        """
        self._load_generation += 1
        self.image_status = STATUS_LOADING
        self.image_error = None
        return self._load_generation

    def finish_image_load(self, generation: int, image: Optional[LoadedImage],
                          error: Optional[str] = None) -> bool:
        """
        Complete an image load started with begin_image_load.

        A failed load leaves the previous image and annotations untouched.
        A successful load replaces the image and starts with no annotations.

        Returns:
            True if the new image was installed
        """
        if generation != self._load_generation:
            logger.debug(f"Ignoring superseded image load {generation}")
            return False
        if image is None:
            self.image_status = STATUS_READY if self.image is not None else STATUS_ERROR
            self.image_error = error or "Image could not be decoded"
            logger.warning(f"Image load failed: {self.image_error}")
            return False
        self.image = image
        self.image_status = STATUS_READY
        self.image_error = None
        self.markers = []
        self.waypoints = []
        logger.info(f"Loaded image {image.name} ({image.width}x{image.height})")
        self._notify(CHANGE_IMAGE)
        return True

    def load_image(self, image: LoadedImage) -> bool:
        """Install an already decoded image."""
        return self.finish_image_load(self.begin_image_load(), image)

    def replace_all(self, image: LoadedImage, markers: List[Marker],
                    waypoints: List[Waypoint], settings: Settings) -> None:
        """Replace the whole state at once (session restore)."""
        self._load_generation += 1
        self.image = image
        self.image_status = STATUS_READY
        self.image_error = None
        self.markers = list(markers)[:self.max_markers]
        self.waypoints = list(waypoints)
        for item in self.markers + self.waypoints:
            item.x, item.y = self.clamp(item.x, item.y)
        self.settings = settings
        self._notify(CHANGE_RESTORE)
