"""
Engine Output Models
====================

The output contract consumed by a rendering collaborator.

Output Contract:
    {
        "vertices": [{"id": 0, "x": 40.0, "y": 40.0, "fixed": true, "role": "boundary"}, ...],
        "edges": [{"a": 0, "b": 1, "kind": "constraint"}, ...],
        "implicit_edges": [[4, 9], ...],
        "triangles": [{"vertices": [0, 4, 5], "occupancy": 2, "density_class": "UNDER"}, ...],
        "people": [{"id": 0, "x": 120.0, "y": 90.0, "triangle": [0, 4, 5]}, ...],
        "obstacle": {"center": {...}, "width": 100, "height": 70, ...},
        "target_density": 4,
        "status": "Edge removed."
    }

Design Rules:
    - Views are immutable snapshots; mutating them never touches the mesh
    - ``status`` is human-readable, ``EditResult.reason`` is machine-readable
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from crowdmesh.models.geometry import Point
from crowdmesh.models.mesh import DensityClass, EdgeKind, VertexRole
from crowdmesh.models.reason_codes import RejectionReason


class VertexView(BaseModel):
    """Rendered vertex."""

    id: int
    x: float
    y: float
    fixed: bool
    role: VertexRole


class EdgeView(BaseModel):
    """Rendered explicit edge."""

    a: int
    b: int
    kind: EdgeKind


class TriangleView(BaseModel):
    """Rendered triangle with its classification."""

    vertices: Tuple[int, int, int]
    occupancy: int = Field(..., ge=0)
    density_class: DensityClass


class PersonView(BaseModel):
    """Rendered person marker."""

    id: int
    x: float
    y: float
    triangle: Optional[Tuple[int, int, int]] = Field(
        default=None,
        description="Containing triangle, None if unassigned",
    )


class ObstacleView(BaseModel):
    """Rendered obstacle polygon and its cumulative transform."""

    vertex_ids: Tuple[int, int, int, int]
    points: List[Point]
    center: Point
    width: float
    height: float
    rotation_degrees: float
    scale_factor: float


class MeshSnapshot(BaseModel):
    """
    Complete state of the mesh at a Stable point.

    Attributes:
        vertices: All vertices
        edges: Explicit edges (constraint, generated and manual)
        implicit_edges: Edges synthesised by triangulation only
        triangles: Current triangles in enumeration order
        people: All people and their containing triangle
        obstacle: Obstacle polygon
        target_density: Current classification target
        status: Outcome of the last edit
    """

    vertices: List[VertexView]
    edges: List[EdgeView]
    implicit_edges: List[Tuple[int, int]]
    triangles: List[TriangleView]
    people: List[PersonView]
    obstacle: ObstacleView
    target_density: int = Field(..., ge=0)
    status: str = ""

    @property
    def counts(self) -> dict:
        return {
            "vertices": len(self.vertices),
            "edges": len(self.edges),
            "triangles": len(self.triangles),
            "people": len(self.people),
        }


class EditResult(BaseModel):
    """
    Outcome of a single edit command.

    Attributes:
        accepted: Whether the edit was applied
        reason: Rejection reason, None when accepted
        status: Human-readable outcome
        removed_people: People dropped because the obstacle covered them
        removed_edges: Edges deleted by crossing repair
    """

    accepted: bool
    reason: Optional[RejectionReason] = None
    status: str = ""
    removed_people: int = Field(default=0, ge=0)
    removed_edges: int = Field(default=0, ge=0)

    @classmethod
    def ok(cls, status: str, **kwargs) -> "EditResult":
        return cls(accepted=True, status=status, **kwargs)

    @classmethod
    def rejected(cls, reason: RejectionReason, status: str) -> "EditResult":
        return cls(accepted=False, reason=reason, status=status)


class Selection(BaseModel):
    """
    Result of a hit test at a canvas position.

    Attributes:
        kind: "vertex", "person", "edge", "obstacle", "triangle" or None
        vertex_id: Picked vertex
        person_id: Picked person
        edge: Picked explicit or implicit edge
        triangle: Picked triangle key
    """

    kind: Optional[str] = None
    vertex_id: Optional[int] = None
    person_id: Optional[int] = None
    edge: Optional[Tuple[int, int]] = None
    triangle: Optional[Tuple[int, int, int]] = None
