"""
Topology Store
==============

Single owner of the mesh state: vertices, explicit edges, the obstacle,
the derived triangles (with their implicit edges) and the people.

This module handles:
    - Loading a fresh configuration with sequential ids
    - Stable vertex/person ids (id -> record mapping, never renumbered)
    - Edge identity, provenance and protection rules
    - Geometric queries that need store context (edge crossings by id,
      obstacle containment, line of sight, boundary bounds)

The store does not decide WHEN to re-derive anything; that is the job of
``crowdmesh.engine.MeshEngine``. It only guarantees that each mutator
leaves its own records consistent.

Example:
    from crowdmesh.mesh import TopologyStore

    store = TopologyStore(containment="exact")
    store.reset(boundary, interior, obstacle_definition)

    store.has_edge(0, 1)           # True: boundary loop
    store.point_inside_obstacle(p) # strict containment test
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from crowdmesh.geometry import kernel
from crowdmesh.geometry.kernel import PointLike
from crowdmesh.models.geometry import ObstacleDefinition, Point
from crowdmesh.models.mesh import (
    EdgeKey,
    EdgeKind,
    Obstacle,
    Person,
    Triangle,
    TriangleKey,
    TriangulationResult,
    Vertex,
    VertexRole,
    edge_key,
)


logger = logging.getLogger(__name__)


BBOX_POINT_COUNT = 4
OBSTACLE_POINT_COUNT = 4

CONTAINMENT_MODES = ("exact", "bounding_box")


class TopologyStore:
    """
    Owner of vertices, edges, obstacle, triangles and people.

    Attributes:
        containment: Obstacle containment mode, "exact" (strict convex
            polygon test) or "bounding_box" (axis-aligned approximation)
        obstacle: Current obstacle record, None before the first reset
        triangles: Triangles of the last committed triangulation
    """

    def __init__(self, containment: str = "exact") -> None:
        if containment not in CONTAINMENT_MODES:
            raise ValueError(
                f"containment must be one of {CONTAINMENT_MODES}, got {containment!r}"
            )

        self.containment = containment
        self.obstacle: Optional[Obstacle] = None
        self.triangles: List[Triangle] = []

        self._vertices: Dict[int, Vertex] = {}
        self._edges: Dict[EdgeKey, EdgeKind] = {}
        self._implicit_edges: List[EdgeKey] = []
        self._people: Dict[int, Person] = {}
        self._next_vertex_id: int = 0
        self._next_person_id: int = 0

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def reset(
        self,
        boundary: Sequence[PointLike],
        interior: Sequence[PointLike],
        obstacle: ObstacleDefinition,
        people: Sequence[PointLike] = (),
    ) -> None:
        """
        Replace the whole mesh with a fresh configuration.

        Ids are assigned sequentially from 0: boundary corners first, then
        interior points, then the 4 obstacle corners. Constraint edges
        (boundary loop and obstacle loop) are installed; triangles are
        cleared until the next triangulation is committed.

        Args:
            boundary: Exactly 4 outer corners in loop order
            interior: Free interior points
            obstacle: Untransformed obstacle rectangle
            people: Initial people positions

        Raises:
            ValueError: If the configuration is structurally invalid
        """
        if len(boundary) != BBOX_POINT_COUNT:
            raise ValueError(
                f"Boundary must have exactly {BBOX_POINT_COUNT} corners, got {len(boundary)}"
            )

        xs = [p.x for p in boundary]
        ys = [p.y for p in boundary]
        if max(xs) - min(xs) <= 0 or max(ys) - min(ys) <= 0:
            raise ValueError("Boundary must enclose a non-empty area")

        corners = obstacle.corners()

        # Build the new state aside so a failed validation leaves the store untouched
        vertices: Dict[int, Vertex] = {}
        next_id = 0
        for p in boundary:
            vertices[next_id] = Vertex(next_id, float(p.x), float(p.y), VertexRole.BOUNDARY, fixed=True)
            next_id += 1
        for p in interior:
            vertices[next_id] = Vertex(next_id, float(p.x), float(p.y), VertexRole.INTERIOR)
            next_id += 1
        obstacle_ids = []
        for p in corners:
            vertices[next_id] = Vertex(next_id, p.x, p.y, VertexRole.OBSTACLE)
            obstacle_ids.append(next_id)
            next_id += 1

        bounds = (min(xs), min(ys), max(xs), max(ys))
        for corner in corners:
            if not _within(corner, bounds):
                raise ValueError(f"Obstacle corner ({corner.x}, {corner.y}) lies outside the boundary")

        for v in vertices.values():
            if v.role != VertexRole.INTERIOR:
                continue
            if not _within(v, bounds):
                raise ValueError(f"Interior point {v.id} ({v.x}, {v.y}) lies outside the boundary")
            if kernel.point_in_convex_polygon(v, corners):
                raise ValueError(f"Interior point {v.id} ({v.x}, {v.y}) lies inside the obstacle")

        for p in people:
            if not _within(p, bounds) or kernel.point_in_convex_polygon(p, corners):
                raise ValueError(f"Person at ({p.x}, {p.y}) must be inside the boundary and outside the obstacle")

        self._vertices = vertices
        self._next_vertex_id = next_id
        self.obstacle = Obstacle(
            vertex_ids=tuple(obstacle_ids),
            cx=obstacle.center.x,
            cy=obstacle.center.y,
            width=obstacle.width,
            height=obstacle.height,
        )

        self._edges = {}
        for key in self.constraint_edges():
            self._edges[key] = EdgeKind.CONSTRAINT
        self._implicit_edges = []
        self.triangles = []

        self._people = {}
        self._next_person_id = 0
        for p in people:
            self.add_person(p.x, p.y)

        logger.info(
            f"Topology reset: vertices={len(self._vertices)}, "
            f"interior={len(interior)}, people={len(self._people)}"
        )

    # -------------------------------------------------------------------------
    # Vertices
    # -------------------------------------------------------------------------

    @property
    def vertices(self) -> List[Vertex]:
        """All vertices in ascending id order."""
        return [self._vertices[i] for i in sorted(self._vertices)]

    @property
    def vertex_ids(self) -> List[int]:
        return sorted(self._vertices)

    def has_vertex(self, vertex_id: int) -> bool:
        return vertex_id in self._vertices

    def vertex(self, vertex_id: int) -> Vertex:
        """
        Look up a vertex by id.

        Raises:
            KeyError: If the id is unknown
        """
        return self._vertices[vertex_id]

    def ids_with_role(self, role: VertexRole) -> List[int]:
        return [v.id for v in self.vertices if v.role == role]

    def move_vertex(self, vertex_id: int, x: float, y: float) -> None:
        vertex = self._vertices[vertex_id]
        vertex.x = x
        vertex.y = y

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    @property
    def edges(self) -> List[EdgeKey]:
        """Explicit edges in insertion order."""
        return list(self._edges)

    @property
    def implicit_edges(self) -> List[EdgeKey]:
        """Edges synthesised by the last triangulation."""
        return list(self._implicit_edges)

    def mesh_edges(self) -> List[EdgeKey]:
        """Explicit and implicit edges together."""
        return self.edges + self.implicit_edges

    def edge_kind(self, a: int, b: int) -> Optional[EdgeKind]:
        return self._edges.get(edge_key(a, b))

    def has_edge(self, a: int, b: int) -> bool:
        return edge_key(a, b) in self._edges

    def is_implicit_edge(self, a: int, b: int) -> bool:
        return edge_key(a, b) in self._implicit_edges

    def add_edge(self, a: int, b: int, kind: EdgeKind = EdgeKind.MANUAL) -> EdgeKey:
        """Append an explicit edge. Validation is the caller's job."""
        key = edge_key(a, b)
        self._edges[key] = kind
        return key

    def discard_edge(self, a: int, b: int) -> None:
        self._edges.pop(edge_key(a, b), None)

    def replace_edges(self, edges: Dict[EdgeKey, EdgeKind]) -> None:
        """Install a whole new explicit edge set (constraint edges are kept)."""
        new_edges: Dict[EdgeKey, EdgeKind] = {
            key: EdgeKind.CONSTRAINT for key in self.constraint_edges()
        }
        for key, kind in edges.items():
            new_edges.setdefault(key, kind)
        self._edges = new_edges

    def boundary_loop_edges(self) -> List[EdgeKey]:
        ids = self.ids_with_role(VertexRole.BOUNDARY)
        return [edge_key(ids[i], ids[(i + 1) % len(ids)]) for i in range(len(ids))]

    def obstacle_loop_edges(self) -> List[EdgeKey]:
        if self.obstacle is None:
            return []
        return self.obstacle.loop_edges()

    def constraint_edges(self) -> List[EdgeKey]:
        """Boundary loop followed by the obstacle loop."""
        return self.boundary_loop_edges() + self.obstacle_loop_edges()

    def is_boundary_edge(self, a: int, b: int) -> bool:
        return (
            self._vertices[a].role == VertexRole.BOUNDARY
            and self._vertices[b].role == VertexRole.BOUNDARY
        )

    def is_obstacle_edge(self, a: int, b: int) -> bool:
        return (
            self._vertices[a].role == VertexRole.OBSTACLE
            and self._vertices[b].role == VertexRole.OBSTACLE
        )

    def is_protected_edge(self, a: int, b: int) -> bool:
        return self.is_boundary_edge(a, b) or self.is_obstacle_edge(a, b)

    def edge_length(self, key: EdgeKey) -> float:
        return kernel.distance(self._vertices[key[0]], self._vertices[key[1]])

    def edges_cross(self, e1: EdgeKey, e2: EdgeKey) -> bool:
        """Proper crossing test by vertex id; shared endpoints never cross."""
        a1, b1 = e1
        a2, b2 = e2
        if a1 == a2 or a1 == b2 or b1 == a2 or b1 == b2:
            return False
        v = self._vertices
        return kernel.segments_cross(v[a1], v[b1], v[a2], v[b2])

    def crosses_any(self, a: int, b: int, edges: Iterable[EdgeKey]) -> bool:
        candidate = (a, b)
        return any(self.edges_cross(candidate, other) for other in edges)

    def crosses_obstacle(self, a: int, b: int) -> bool:
        """Check whether segment a-b crosses any obstacle loop edge."""
        return self.crosses_any(a, b, self.obstacle_loop_edges())

    def has_line_of_sight(self, a: int, b: int) -> bool:
        """
        Check that segment a-b neither crosses an obstacle edge nor runs
        through the obstacle interior (e.g. a diagonal between corners).
        """
        if self.crosses_obstacle(a, b):
            return False
        va, vb = self._vertices[a], self._vertices[b]
        midpoint = Point(x=(va.x + vb.x) / 2, y=(va.y + vb.y) / 2)
        return not kernel.point_in_convex_polygon(midpoint, self.obstacle_points())

    # -------------------------------------------------------------------------
    # Obstacle and boundary
    # -------------------------------------------------------------------------

    def obstacle_points(self) -> List[Vertex]:
        if self.obstacle is None:
            return []
        return [self._vertices[i] for i in self.obstacle.vertex_ids]

    def point_inside_obstacle(self, p: PointLike) -> bool:
        """Strict containment test, using the configured containment mode."""
        quad = self.obstacle_points()
        if not quad:
            return False
        return self.point_inside_quad(p, quad)

    def point_inside_quad(self, p: PointLike, quad: Sequence[PointLike]) -> bool:
        """Containment in an arbitrary obstacle-shaped quad (configured mode)."""
        if self.containment == "bounding_box":
            return kernel.point_in_axis_aligned_bounds_of_quad(p, quad)
        return kernel.point_in_convex_polygon(p, quad)

    def set_obstacle_points(self, points: Sequence[Tuple[float, float]]) -> None:
        """Move the obstacle corners in place, in loop order."""
        for vertex_id, (x, y) in zip(self.obstacle.vertex_ids, points):
            self.move_vertex(vertex_id, float(x), float(y))

    def bounds(self) -> Tuple[float, float, float, float]:
        """Boundary extent as (min_x, min_y, max_x, max_y)."""
        corners = [self._vertices[i] for i in self.ids_with_role(VertexRole.BOUNDARY)]
        xs = [c.x for c in corners]
        ys = [c.y for c in corners]
        return min(xs), min(ys), max(xs), max(ys)

    def point_within_boundary(self, p: PointLike) -> bool:
        """Closed containment in the boundary rectangle."""
        return _within(p, self.bounds())

    # -------------------------------------------------------------------------
    # Triangles
    # -------------------------------------------------------------------------

    def commit_triangulation(self, result: TriangulationResult) -> None:
        """Swap in a finished triangulation in one step."""
        self.triangles = list(result.triangles)
        self._implicit_edges = list(result.implicit_edges)

    def triangle(self, key: TriangleKey) -> Optional[Triangle]:
        for tri in self.triangles:
            if tri.key == key:
                return tri
        return None

    def triangle_points(self, tri: Triangle) -> List[Vertex]:
        return [self._vertices[i] for i in tri.key]

    # -------------------------------------------------------------------------
    # People
    # -------------------------------------------------------------------------

    @property
    def people(self) -> List[Person]:
        """People in ascending id (creation) order."""
        return [self._people[i] for i in sorted(self._people)]

    def has_person(self, person_id: int) -> bool:
        return person_id in self._people

    def person(self, person_id: int) -> Person:
        return self._people[person_id]

    def add_person(self, x: float, y: float) -> Person:
        person = Person(self._next_person_id, float(x), float(y))
        self._people[person.id] = person
        self._next_person_id += 1
        return person

    def remove_person(self, person_id: int) -> Person:
        return self._people.pop(person_id)

    def clear_people(self) -> int:
        count = len(self._people)
        self._people = {}
        return count

    def remove_people_inside_obstacle(self) -> int:
        """Drop every person now inside the obstacle; returns how many."""
        inside = [p.id for p in self._people.values() if self.point_inside_obstacle(p)]
        for person_id in inside:
            del self._people[person_id]
        return len(inside)


def _within(p: PointLike, bounds: Tuple[float, float, float, float]) -> bool:
    min_x, min_y, max_x, max_y = bounds
    return min_x <= p.x <= max_x and min_y <= p.y <= max_y
