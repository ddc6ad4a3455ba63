"""
Annotation data model for LinkMap.

Markers connect to each other through the proximity graph; waypoints are
categorized points that never take part in connectivity. Positions are
always in image-pixel coordinates.

Selection, hover and drag targets are a tagged union:
    Target = MarkerRef | WaypointRef | None
so a target can never reference a marker and a waypoint at the same time.
"""

import math
import uuid
from dataclasses import asdict, dataclass, fields
from numbers import Real
from typing import Any, Dict, Optional, Union

from linkmap.constants import (
    DEFAULT_METERS_PER_PIXEL,
    DEFAULT_THRESHOLD,
    MARKER_TOOL,
    THRESHOLD_CHOICES,
    TOOLS,
    WAYPOINT_KINDS,
)


def new_id() -> str:
    return str(uuid.uuid4())


def is_number(value: Any) -> bool:
    """True for real numbers, excluding bools."""
    return isinstance(value, Real) and not isinstance(value, bool)


def is_finite_number(value: Any) -> bool:
    """True for real numbers other than bools, NaN and infinities."""
    return is_number(value) and math.isfinite(value)


@dataclass
class Marker:
    """A connecting point with a connection threshold in meters."""
    id: str
    x: float
    y: float
    threshold: int = DEFAULT_THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Marker"]:
        """Build a marker from a record entry, or None if it has no usable position."""
        if not isinstance(data, dict):
            return None
        x, y = data.get("x"), data.get("y")
        if not (is_finite_number(x) and is_finite_number(y)):
            return None
        threshold = data.get("threshold")
        if threshold not in THRESHOLD_CHOICES or isinstance(threshold, bool):
            threshold = DEFAULT_THRESHOLD
        marker_id = data.get("id")
        return cls(
            id=marker_id if isinstance(marker_id, str) and marker_id else new_id(),
            x=float(x),
            y=float(y),
            threshold=int(threshold),
        )


@dataclass
class Waypoint:
    """A non-connecting point from a fixed set of categories."""
    id: str
    x: float
    y: float
    kind: str = WAYPOINT_KINDS[0]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Waypoint"]:
        if not isinstance(data, dict):
            return None
        x, y = data.get("x"), data.get("y")
        if not (is_finite_number(x) and is_finite_number(y)):
            return None
        kind = data.get("kind")
        if kind not in WAYPOINT_KINDS:
            kind = WAYPOINT_KINDS[0]
        waypoint_id = data.get("id")
        return cls(
            id=waypoint_id if isinstance(waypoint_id, str) and waypoint_id else new_id(),
            x=float(x),
            y=float(y),
            kind=kind,
        )


@dataclass(frozen=True)
class MarkerRef:
    id: str


@dataclass(frozen=True)
class WaypointRef:
    id: str


Target = Optional[Union[MarkerRef, WaypointRef]]


@dataclass
class Settings:
    """Flat settings snapshot persisted with the session."""
    tool: str = MARKER_TOOL
    default_threshold: int = DEFAULT_THRESHOLD
    meters_per_pixel: float = DEFAULT_METERS_PER_PIXEL
    scale_locked: bool = True
    show_edges: bool = True
    show_labels: bool = True
    show_ranges: bool = False
    show_degree: bool = False
    show_waypoints: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        """
        Build settings from a snapshot. Missing or invalid fields fall back
        to the defaults rather than leaving undefined state.
        """
        settings = cls()
        if not isinstance(data, dict):
            return settings

        tool = data.get("tool")
        if tool in TOOLS:
            settings.tool = tool

        threshold = data.get("default_threshold")
        if threshold in THRESHOLD_CHOICES and not isinstance(threshold, bool):
            settings.default_threshold = int(threshold)

        scale = data.get("meters_per_pixel")
        if is_number(scale) and 0 < scale < float("inf"):
            settings.meters_per_pixel = float(scale)

        for f in fields(cls):
            if f.type is bool:
                value = data.get(f.name)
                if isinstance(value, bool):
                    setattr(settings, f.name, value)
        return settings
