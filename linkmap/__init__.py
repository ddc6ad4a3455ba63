"""
LinkMap - point annotations over a raster image with an automatic
proximity graph between connecting markers.
"""

__version__ = "1.0.0"
