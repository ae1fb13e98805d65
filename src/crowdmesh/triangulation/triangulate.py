"""
Triangulation
=============

Constraint-only triangle enumeration over the current vertex set.

Every combination of 3 distinct vertices is examined in ascending
(i, j, k) id order. A combination is a valid triangle iff:

    (a) the 3 points are not collinear,
    (b) none of its edges is banned for this pass,
    (c) each of its edges is already known (explicit, or accepted earlier
        in this pass) or, if it would be synthesised, crosses no known edge,
    (d) its centroid is not inside the obstacle,
    (e) no other vertex lies inside or on it (closed test).

Accepted triangles feed their edges back into the working edge set, so
later combinations see them. The result is deterministic but order
dependent; it is not a canonical triangulation.

Complexity is O(V^3 * E), which is fine for tens of vertices.
"""

import itertools
import logging
from typing import Iterable, Set

from crowdmesh.geometry import kernel
from crowdmesh.mesh.store import TopologyStore
from crowdmesh.models.geometry import Point
from crowdmesh.models.mesh import (
    EdgeKey,
    Triangle,
    TriangulationResult,
    edge_key,
    triangle_key,
)


logger = logging.getLogger(__name__)


def triangulate(
    store: TopologyStore,
    banned_edges: Iterable[EdgeKey] = (),
) -> TriangulationResult:
    """
    Enumerate the triangles of the current mesh.

    The store is only read; commit the result with
    ``TopologyStore.commit_triangulation``.

    Args:
        store: Topology store to triangulate
        banned_edges: Edges that no triangle may use in this pass

    Returns:
        TriangulationResult with triangles and synthesised edges
    """
    banned: Set[EdgeKey] = {edge_key(a, b) for a, b in banned_edges}
    explicit: Set[EdgeKey] = set(store.edges)
    known: Set[EdgeKey] = set(explicit)
    obstacle = store.obstacle_points()
    vertices = store.vertices

    result = TriangulationResult()
    synthesised = []

    for v0, v1, v2 in itertools.combinations(vertices, 3):
        result.combinations_checked += 1
        if not _is_valid_triangle(store, v0, v1, v2, vertices, known, banned, obstacle):
            continue

        key = triangle_key(v0.id, v1.id, v2.id)
        tri = Triangle(key=key)
        result.triangles.append(tri)
        for e in tri.edges():
            if e not in known:
                known.add(e)
                synthesised.append(e)

    result.implicit_edges = synthesised

    logger.debug(
        f"Triangulation: vertices={len(vertices)}, "
        f"triangles={len(result.triangles)}, implicit_edges={len(synthesised)}, "
        f"banned={len(banned)}"
    )
    return result


def _is_valid_triangle(store, v0, v1, v2, vertices, known, banned, obstacle) -> bool:
    if kernel.orientation(v0, v1, v2) == 0:
        return False

    sides = [edge_key(v0.id, v1.id), edge_key(v1.id, v2.id), edge_key(v0.id, v2.id)]
    if any(side in banned for side in sides):
        return False

    for side in sides:
        if side not in known and store.crosses_any(side[0], side[1], known):
            return False

    if obstacle:
        centroid = Point(x=(v0.x + v1.x + v2.x) / 3, y=(v0.y + v1.y + v2.y) / 3)
        if kernel.point_in_convex_polygon(centroid, obstacle):
            return False

    for other in vertices:
        if other.id in (v0.id, v1.id, v2.id):
            continue
        if kernel.point_in_triangle(other, v0, v1, v2):
            return False

    return True
