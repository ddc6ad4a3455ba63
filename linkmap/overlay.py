"""
SVG overlay for the annotation canvas.

Builds the markup drawn over the letterboxed image by ui.interactive_image:
edges, optional threshold circles, markers with their display numbers and
waypoints. Everything is in container (screen) coordinates so markers keep
a constant on-screen size. The overlay only reads state.
"""

from typing import Dict, List, Optional

from linkmap.annotation_manager import AnnotationManager
from linkmap.connectivity import GraphResult
from linkmap.constants import MARKER_RADIUS
from linkmap.geometry import ContainTransform
from linkmap.interaction import InteractionState
from linkmap.models import MarkerRef, Target, WaypointRef

EDGE_STYLE = {"color": "#facc15", "width": 2, "opacity": 0.9}
RANGE_STYLE = {"color": "#38bdf8", "opacity": 0.12}

MARKER_FILL = {300: "#ef4444", 350: "#a855f7"}
HOVER_STROKE = "#ffffff"
SELECTED_STROKE = "#22c55e"
DEFAULT_STROKE = "#0f172a"

WAYPOINT_FILL = {
    "objective": "#f97316",
    "hazard": "#dc2626",
    "supply": "#14b8a6",
    "landmark": "#64748b",
}


def _stroke_for(target: Target, state: InteractionState) -> tuple:
    if target is not None and target in (state.selected, state.dragging):
        return SELECTED_STROKE, 3
    if target is not None and target == state.hover:
        return HOVER_STROKE, 3
    return DEFAULT_STROKE, 1.5


def _waypoint_shape(kind: str, x: float, y: float, r: float, fill: str, stroke: str, width: float) -> str:
    common = f'fill="{fill}" stroke="{stroke}" stroke-width="{width}"'
    if kind == "hazard":
        points = f"{x},{y - r} {x + r},{y + r * 0.8} {x - r},{y + r * 0.8}"
        return f'<polygon points="{points}" {common} />'
    if kind == "supply":
        return f'<rect x="{x - r * 0.8}" y="{y - r * 0.8}" width="{r * 1.6}" height="{r * 1.6}" {common} />'
    if kind == "landmark":
        points = f"{x},{y - r} {x + r},{y} {x},{y + r} {x - r},{y}"
        return f'<polygon points="{points}" {common} />'
    return f'<circle cx="{x}" cy="{y}" r="{r * 0.8}" {common} />'


def build_overlay_svg(manager: AnnotationManager, transform: Optional[ContainTransform],
                      state: InteractionState, graph: Optional[GraphResult] = None,
                      radius: float = MARKER_RADIUS) -> str:
    """
    Build the SVG overlay content.

    Args:
        manager: Annotation state to draw
        transform: Current contain-fit transform (None draws nothing)
        state: Interaction snapshot for hover/selection/drag highlighting
        graph: Precomputed graph (computed from the manager when None)
        radius: Marker radius in screen pixels

    Returns:
        SVG element markup (without the outer <svg>)
    """
    if transform is None:
        return ""
    settings = manager.settings
    if graph is None:
        graph = manager.graph()

    screen = [transform.image_to_screen(m.x, m.y) for m in manager.markers]
    parts: List[str] = []

    if settings.show_ranges:
        for marker, (sx, sy) in zip(manager.markers, screen):
            r = marker.threshold / settings.meters_per_pixel * transform.scale
            parts.append(
                f'<circle cx="{sx}" cy="{sy}" r="{r}" fill="{RANGE_STYLE["color"]}" '
                f'fill-opacity="{RANGE_STYLE["opacity"]}" stroke="{RANGE_STYLE["color"]}" '
                f'stroke-dasharray="4 4" pointer-events="none" />'
            )

    if settings.show_edges:
        for i, j in graph.edges:
            (x1, y1), (x2, y2) = screen[i], screen[j]
            parts.append(
                f'<line x1="{x1}" y1="{y1}" x2="{x2}" y2="{y2}" stroke="{EDGE_STYLE["color"]}" '
                f'stroke-width="{EDGE_STYLE["width"]}" stroke-opacity="{EDGE_STYLE["opacity"]}" '
                f'pointer-events="none" />'
            )

    if settings.show_waypoints:
        for waypoint in manager.waypoints:
            sx, sy = transform.image_to_screen(waypoint.x, waypoint.y)
            stroke, width = _stroke_for(WaypointRef(waypoint.id), state)
            fill = WAYPOINT_FILL.get(waypoint.kind, "#94a3b8")
            parts.append(_waypoint_shape(waypoint.kind, sx, sy, radius, fill, stroke, width))

    for index, (marker, (sx, sy)) in enumerate(zip(manager.markers, screen)):
        stroke, width = _stroke_for(MarkerRef(marker.id), state)
        fill = MARKER_FILL.get(marker.threshold, "#ef4444")
        parts.append(
            f'<circle cx="{sx}" cy="{sy}" r="{radius}" fill="{fill}" '
            f'stroke="{stroke}" stroke-width="{width}" />'
        )
        label = _marker_label(index, graph.degree, settings.show_labels, settings.show_degree)
        if label:
            parts.append(
                f'<text x="{sx}" y="{sy}" text-anchor="middle" dominant-baseline="central" '
                f'font-size="{radius}" font-weight="bold" fill="#ffffff" '
                f'pointer-events="none">{label}</text>'
            )

    return "".join(parts)


def _marker_label(index: int, degree: List[int], show_labels: bool, show_degree: bool) -> str:
    """Display number is the 1-based insertion index."""
    if show_labels and show_degree:
        return f"{index + 1}:{degree[index]}"
    if show_labels:
        return str(index + 1)
    if show_degree:
        return str(degree[index])
    return ""


def legend_entries() -> Dict[str, str]:
    """Colors keyed by annotation type, for the toolbar legend."""
    entries = {f"{t} m": color for t, color in MARKER_FILL.items()}
    entries.update(WAYPOINT_FILL)
    return entries
