"""
Picking
=======

Nearest-item queries used to turn a pointer position into a selection.

Each query returns the closest item strictly within its pick radius, or
None. ``hit_test`` resolves in priority order:
vertex -> person -> edge -> obstacle -> triangle -> nothing.
"""

from typing import Optional

from crowdmesh.geometry import kernel
from crowdmesh.geometry.kernel import PointLike
from crowdmesh.mesh.store import TopologyStore
from crowdmesh.models.mesh import EdgeKey
from crowdmesh.models.output import Selection
from crowdmesh.triangulation.density import locate_containing_triangle


def find_vertex_at(store: TopologyStore, p: PointLike, radius: float = 15.0) -> Optional[int]:
    best, best_dist = None, radius
    for v in store.vertices:
        d = kernel.distance(v, p)
        if d < best_dist:
            best, best_dist = v.id, d
    return best


def find_person_at(store: TopologyStore, p: PointLike, radius: float = 10.0) -> Optional[int]:
    best, best_dist = None, radius
    for person in store.people:
        d = kernel.distance(person, p)
        if d < best_dist:
            best, best_dist = person.id, d
    return best


def find_edge_at(store: TopologyStore, p: PointLike, radius: float = 10.0) -> Optional[EdgeKey]:
    """Closest explicit or implicit edge by clamped point-to-segment distance."""
    best, best_dist = None, radius
    for key in store.mesh_edges():
        a, b = store.vertex(key[0]), store.vertex(key[1])
        d = kernel.distance_point_to_segment(p, a, b)
        if d < best_dist:
            best, best_dist = key, d
    return best


def is_too_close_to_edges(store: TopologyStore, p: PointLike, buffer: float) -> bool:
    """Check whether ``p`` is within ``buffer`` of any explicit edge."""
    for a, b in store.edges:
        if kernel.distance_point_to_segment(p, store.vertex(a), store.vertex(b)) < buffer:
            return True
    return False


def hit_test(
    store: TopologyStore,
    p: PointLike,
    vertex_radius: float = 15.0,
    person_radius: float = 10.0,
    edge_radius: float = 10.0,
) -> Selection:
    vertex_id = find_vertex_at(store, p, vertex_radius)
    if vertex_id is not None:
        return Selection(kind="vertex", vertex_id=vertex_id)

    person_id = find_person_at(store, p, person_radius)
    if person_id is not None:
        return Selection(kind="person", person_id=person_id)

    edge = find_edge_at(store, p, edge_radius)
    if edge is not None:
        return Selection(kind="edge", edge=edge)

    if store.point_inside_obstacle(p):
        return Selection(kind="obstacle")

    tri = locate_containing_triangle(store, p)
    if tri is not None:
        return Selection(kind="triangle", triangle=tri.key)

    return Selection()
