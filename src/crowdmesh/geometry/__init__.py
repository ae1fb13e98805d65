"""
Geometry Module
===============

Pure geometric predicates (orientation, segment crossing, containment,
point-to-segment distance). No state.
"""

from crowdmesh.geometry.kernel import (
    distance_point_to_segment,
    orientation,
    point_in_axis_aligned_bounds_of_quad,
    point_in_convex_polygon,
    point_in_triangle,
    segments_cross,
)

__all__ = [
    "orientation",
    "segments_cross",
    "point_in_triangle",
    "point_in_axis_aligned_bounds_of_quad",
    "point_in_convex_polygon",
    "distance_point_to_segment",
]
