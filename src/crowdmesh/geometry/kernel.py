"""
Geometry Kernel
===============

Pure 2D predicates and measures used by the mesh engine.

Every function here is side-effect free and borrows its points by value.
Degenerate inputs (zero-area triangles, zero-length segments) never
raise: they simply fail the predicate.

Conventions:
    - Orientation is the z-component of (p1 - p0) x (p2 - p0); its sign
      gives the turn direction, its magnitude is twice the triangle area.
    - Collinearity is exact (orientation == 0), no epsilon.
    - Segment crossing is PROPER crossing only: touching, collinear overlap
      and shared endpoints all count as not crossing.

Example:
    from crowdmesh.geometry.kernel import orientation, segments_cross

    segments_cross(a, b, c, d)  # True only for an X-shaped intersection
"""

import math
from typing import Protocol, Sequence


class PointLike(Protocol):
    """Anything with ``x`` and ``y`` attributes."""

    x: float
    y: float


def orientation(p0: PointLike, p1: PointLike, p2: PointLike) -> float:
    """
    Signed double area of triangle (p0, p1, p2).

    Returns:
        Positive for a counter-clockwise turn (in y-up axes), negative for
        clockwise, zero when collinear.
    """
    return (p1.x - p0.x) * (p2.y - p0.y) - (p1.y - p0.y) * (p2.x - p0.x)


def same_point(p: PointLike, q: PointLike) -> bool:
    return p.x == q.x and p.y == q.y


def segments_cross(
    a1: PointLike,
    b1: PointLike,
    a2: PointLike,
    b2: PointLike,
) -> bool:
    """
    Check whether segment a1-b1 properly crosses segment a2-b2.

    Segments sharing an endpoint never cross, even if the interior of one
    contains the other's endpoint.

    Args:
        a1, b1: Endpoints of the first segment
        a2, b2: Endpoints of the second segment

    Returns:
        True if the segments intersect at a single interior point
    """
    if (
        same_point(a1, a2) or same_point(a1, b2)
        or same_point(b1, a2) or same_point(b1, b2)
    ):
        return False

    d1 = orientation(a1, b1, a2) * orientation(a1, b1, b2)
    d2 = orientation(a2, b2, a1) * orientation(a2, b2, b1)
    return d1 < 0 and d2 < 0


def point_in_triangle(
    p: PointLike,
    v0: PointLike,
    v1: PointLike,
    v2: PointLike,
) -> bool:
    """
    Closed point-in-triangle test using barycentric coordinates.

    Points on an edge or at a corner count as inside. A degenerate
    (zero-area) triangle contains nothing.
    """
    denom = (v1.y - v2.y) * (v0.x - v2.x) + (v2.x - v1.x) * (v0.y - v2.y)
    if denom == 0:
        return False

    a = ((v1.y - v2.y) * (p.x - v2.x) + (v2.x - v1.x) * (p.y - v2.y)) / denom
    b = ((v2.y - v0.y) * (p.x - v2.x) + (v0.x - v2.x) * (p.y - v2.y)) / denom
    c = 1 - a - b
    return 0 <= a <= 1 and 0 <= b <= 1 and 0 <= c <= 1


def point_in_axis_aligned_bounds_of_quad(p: PointLike, quad: Sequence[PointLike]) -> bool:
    """
    Strict point-in-bounding-box test over the quad's extent.

    Exact only for axis-aligned rectangles; a rotated quad is
    over-approximated by its enclosing box.
    """
    xs = [q.x for q in quad]
    ys = [q.y for q in quad]
    return min(xs) < p.x < max(xs) and min(ys) < p.y < max(ys)


def point_in_convex_polygon(p: PointLike, polygon: Sequence[PointLike]) -> bool:
    """
    Strict point-in-convex-polygon test.

    The polygon may be wound either way. Points on the boundary are
    outside.
    """
    sign = 0
    n = len(polygon)
    for i in range(n):
        turn = orientation(polygon[i], polygon[(i + 1) % n], p)
        if turn == 0:
            return False
        current = 1 if turn > 0 else -1
        if sign == 0:
            sign = current
        elif current != sign:
            return False
    return sign != 0


def distance(p: PointLike, q: PointLike) -> float:
    return math.hypot(p.x - q.x, p.y - q.y)


def distance_point_to_segment(p: PointLike, a: PointLike, b: PointLike) -> float:
    """
    Euclidean distance from ``p`` to the closed segment a-b.

    The projection of ``p`` onto the supporting line is clamped to the
    segment. A zero-length segment degenerates to point distance.
    """
    cx = b.x - a.x
    cy = b.y - a.y
    length_sq = cx * cx + cy * cy

    t = -1.0
    if length_sq != 0:
        t = ((p.x - a.x) * cx + (p.y - a.y) * cy) / length_sq

    if t < 0:
        nx, ny = a.x, a.y
    elif t > 1:
        nx, ny = b.x, b.y
    else:
        nx, ny = a.x + t * cx, a.y + t * cy

    return math.hypot(p.x - nx, p.y - ny)
