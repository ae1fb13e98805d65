"""
Mesh Models
===========

Internal records owned by the topology store.

These are plain dataclasses rather than pydantic models: they are created
and mutated in the hot loops of edge generation and triangulation, and
they never cross the service boundary directly (see ``models.output``
for the serialised views).

Identity:
    - Vertices and people carry stable integer ids, assigned sequentially
      per configuration and never reused within it.
    - Edges are identified by their sorted vertex-id pair (``EdgeKey``).
    - Triangles are identified by their sorted vertex-id triple
      (``TriangleKey``); no counter-based id survives re-triangulation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


EdgeKey = Tuple[int, int]
TriangleKey = Tuple[int, int, int]


def edge_key(a: int, b: int) -> EdgeKey:
    """Undirected identity of the edge between ``a`` and ``b``."""
    return (a, b) if a < b else (b, a)


def triangle_key(a: int, b: int, c: int) -> TriangleKey:
    """Order-independent identity of a triangle."""
    i, j, k = sorted((a, b, c))
    return (i, j, k)


class VertexRole(str, Enum):
    """
    Role of a vertex in the scene.

    Attributes:
        BOUNDARY: One of the 4 fixed outer corners
        INTERIOR: Free point, may be dragged
        OBSTACLE: Obstacle corner, moves only with the obstacle
    """

    BOUNDARY = "boundary"
    INTERIOR = "interior"
    OBSTACLE = "obstacle"


class EdgeKind(str, Enum):
    """
    Provenance of an explicit edge.

    Attributes:
        CONSTRAINT: Boundary or obstacle loop edge, never removable
        GENERATED: Produced by shortest-first edge generation
        MANUAL: Added by the user
    """

    CONSTRAINT = "constraint"
    GENERATED = "generated"
    MANUAL = "manual"


class DensityClass(str, Enum):
    """
    Occupancy classification of a triangle against the target density.

    Attributes:
        UNDER: Fewer occupants than the target
        OPTIMAL: Exactly the target
        OVER: More occupants than the target
    """

    UNDER = "UNDER"
    OPTIMAL = "OPTIMAL"
    OVER = "OVER"


@dataclass(slots=True)
class Vertex:
    """
    Mesh vertex. Position is mutated in place when dragged.

    Attributes:
        id: Stable vertex id
        x: Horizontal coordinate
        y: Vertical coordinate
        role: Boundary, interior or obstacle
        fixed: Pinned vertices cannot be relocated by a move
    """

    id: int
    x: float
    y: float
    role: VertexRole
    fixed: bool = False


@dataclass(slots=True)
class Triangle:
    """
    Derived triangle with its occupancy-based classification.

    Attributes:
        key: Sorted vertex-id triple
        occupancy: Number of people assigned to this triangle
        density_class: Classification of ``occupancy``
    """

    key: TriangleKey
    occupancy: int = 0
    density_class: DensityClass = DensityClass.UNDER

    @property
    def vertex_ids(self) -> TriangleKey:
        return self.key

    def edges(self) -> List[EdgeKey]:
        a, b, c = self.key
        return [edge_key(a, b), edge_key(b, c), edge_key(a, c)]


@dataclass(slots=True)
class Person:
    """
    A person marker dropped on the mesh.

    Attributes:
        id: Stable person id
        x: Horizontal coordinate
        y: Vertical coordinate
        triangle: Key of the containing triangle, None if unassigned
    """

    id: int
    x: float
    y: float
    triangle: Optional[TriangleKey] = None


@dataclass(slots=True)
class Obstacle:
    """
    Convex obstacle polygon (a rectangle in practice).

    Corner positions live on the obstacle vertices in the store; this
    record tracks the loop order and the cumulative transform.

    Attributes:
        vertex_ids: The 4 corner vertex ids in loop order
        cx: Center x (rotation/scale pivot)
        cy: Center y
        width: Untransformed width
        height: Untransformed height
        rotation_degrees: Cumulative rotation, normalised to [0, 360)
        scale_factor: Cumulative scale factor
    """

    vertex_ids: Tuple[int, int, int, int]
    cx: float
    cy: float
    width: float
    height: float
    rotation_degrees: float = 0.0
    scale_factor: float = 1.0

    def loop_edges(self) -> List[EdgeKey]:
        ids = self.vertex_ids
        return [edge_key(ids[i], ids[(i + 1) % len(ids)]) for i in range(len(ids))]


@dataclass(slots=True)
class TriangulationResult:
    """
    Outcome of one triangulation pass.

    Attributes:
        triangles: Accepted triangles in enumeration order
        implicit_edges: Edges synthesised by the pass (not in the explicit set)
        combinations_checked: Number of vertex triples examined
    """

    triangles: List[Triangle] = field(default_factory=list)
    implicit_edges: List[EdgeKey] = field(default_factory=list)
    combinations_checked: int = 0
