"""
Shared constants for LinkMap.

These values are used by the connectivity engine, the interaction
controller, the overlay renderer and the session store. Keep them in sync!
"""

# Markers (connecting points)
MAX_MARKERS = 50
MAX_DEGREE = 4
THRESHOLD_CHOICES = (300, 350)  # meters
DEFAULT_THRESHOLD = 300

# Radius in screen pixels of a drawn marker; picking is a bit more generous
MARKER_RADIUS = 10
PICK_RADIUS = MARKER_RADIUS * 1.25

# Waypoints (non-connecting points), a closed set of categories
WAYPOINT_KINDS = ("objective", "hazard", "supply", "landmark")

# Tools: marker placement or one of the waypoint kinds
MARKER_TOOL = "marker"
TOOLS = (MARKER_TOOL,) + WAYPOINT_KINDS

# Scale (meters per image pixel)
DEFAULT_METERS_PER_PIXEL = 1.0

# Session persistence
SESSION_VERSION = 1
SESSION_KEY = "linkmap.session"
MIN_IMAGE_PAYLOAD_LENGTH = 32
AUTOSAVE_DELAY_MS = 600
