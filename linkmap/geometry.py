"""
Image-space geometry for LinkMap.

The image is drawn "contain"-fitted into the canvas container: uniformly
scaled to fit both dimensions and centered, leaving letterbox bars on one
axis. ContainTransform is that affine mapping. It is cheap and is rebuilt
from the current container and image sizes on every resize and every
render rather than cached.

Hit-testing happens in screen space against a fixed pick radius so that
markers are equally easy to grab at every zoom level.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from linkmap.constants import PICK_RADIUS
from linkmap.models import Marker, MarkerRef, Target, Waypoint, WaypointRef


@dataclass(frozen=True)
class ContainTransform:
    """Forward mapping image -> screen: screen = image * scale + offset."""
    scale: float
    offset_x: float
    offset_y: float
    image_width: float
    image_height: float

    @classmethod
    def fit(cls, container_width: float, container_height: float,
            image_width: float, image_height: float) -> Optional["ContainTransform"]:
        """
        Compute the contain-fit transform.

        Returns:
            The transform, or None when any dimension is not positive
        """
        if min(container_width, container_height, image_width, image_height) <= 0:
            return None
        scale = min(container_width / image_width, container_height / image_height)
        return cls(
            scale=scale,
            offset_x=(container_width - image_width * scale) / 2,
            offset_y=(container_height - image_height * scale) / 2,
            image_width=image_width,
            image_height=image_height,
        )

    @property
    def drawn_rect(self) -> Tuple[float, float, float, float]:
        """(left, top, width, height) of the drawn image in container coordinates."""
        return (self.offset_x, self.offset_y,
                self.image_width * self.scale, self.image_height * self.scale)

    def image_to_screen(self, x: float, y: float) -> Tuple[float, float]:
        return x * self.scale + self.offset_x, y * self.scale + self.offset_y

    def screen_to_image_unbounded(self, sx: float, sy: float) -> Tuple[float, float]:
        """Invert the transform without rejecting points outside the image."""
        return (sx - self.offset_x) / self.scale, (sy - self.offset_y) / self.scale

    def contains_screen(self, sx: float, sy: float) -> bool:
        left, top, width, height = self.drawn_rect
        return left <= sx <= left + width and top <= sy <= top + height

    def clamp_to_image(self, x: float, y: float) -> Tuple[float, float]:
        return (min(max(x, 0.0), float(self.image_width)),
                min(max(y, 0.0), float(self.image_height)))


def screen_to_image(transform: Optional[ContainTransform], sx: float, sy: float,
                    origin: Tuple[float, float] = (0.0, 0.0)) -> Optional[Tuple[float, float]]:
    """
    Convert a screen point to image-pixel coordinates.

    Args:
        transform: Current contain-fit transform (None means no image)
        sx, sy: Pointer position in screen coordinates
        origin: Screen position of the container's top-left corner

    Returns:
        (x, y) in image pixels, or None if the point is outside the drawn image
    """
    if transform is None:
        return None
    cx, cy = sx - origin[0], sy - origin[1]
    if not transform.contains_screen(cx, cy):
        return None
    return transform.screen_to_image_unbounded(cx, cy)


def image_to_screen(transform: ContainTransform, x: float, y: float,
                    origin: Tuple[float, float] = (0.0, 0.0)) -> Tuple[float, float]:
    sx, sy = transform.image_to_screen(x, y)
    return sx + origin[0], sy + origin[1]


def hit_test(transform: Optional[ContainTransform], sx: float, sy: float,
             markers: Sequence[Marker], waypoints: Sequence[Waypoint],
             pick_radius: float = PICK_RADIUS) -> Target:
    """
    Find the annotation under a container-relative screen point.

    Markers are tested before waypoints. Within each list the newest item is
    tested first, since it is drawn on top.

    Returns:
        MarkerRef, WaypointRef, or None if nothing is within the pick radius
    """
    if transform is None:
        return None

    def within(item) -> bool:
        px, py = transform.image_to_screen(item.x, item.y)
        return math.hypot(sx - px, sy - py) <= pick_radius

    for marker in reversed(markers):
        if within(marker):
            return MarkerRef(marker.id)
    for waypoint in reversed(waypoints):
        if within(waypoint):
            return WaypointRef(waypoint.id)
    return None
