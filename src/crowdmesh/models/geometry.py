"""
Geometry Models
===============

Input geometry for a crowd mesh scene.

Design Philosophy:
    A scene is EXPLICITLY DECLARED: the outer boundary, the interior points,
    the obstacle rectangle and (optionally) the people and edges are all
    supplied by the caller. The mesh engine derives everything else
    (generated edges, triangles, occupancy) from this definition.

Example Scene:
    {
        "boundary": [
            {"x": 40, "y": 40}, {"x": 760, "y": 40},
            {"x": 760, "y": 560}, {"x": 40, "y": 560}
        ],
        "interior": [{"x": 200, "y": 150}, ...],
        "obstacle": {
            "center": {"x": 400, "y": 300},
            "width": 100,
            "height": 70
        },
        "people": [{"x": 120, "y": 90}, ...],
        "generate_edges": true
    }

Note:
    All coordinates are in CANVAS SPACE (pixels), origin at top-left,
    y increasing downward.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


class Point(BaseModel):
    """
    2D point in canvas coordinates.

    Attributes:
        x: Horizontal coordinate (pixels)
        y: Vertical coordinate (pixels)
    """

    x: float = Field(
        ...,
        description="Horizontal coordinate (pixels from left)",
    )

    y: float = Field(
        ...,
        description="Vertical coordinate (pixels from top)",
    )


class ObstacleDefinition(BaseModel):
    """
    Axis-aligned obstacle rectangle as initially placed.

    Rotation and scaling are applied later through the engine; the
    definition always describes the untransformed rectangle.

    Attributes:
        center: Center of the rectangle
        width: Horizontal extent (pixels)
        height: Vertical extent (pixels)
    """

    center: Point = Field(
        ...,
        description="Center of the obstacle rectangle",
    )

    width: float = Field(
        ...,
        gt=0,
        description="Obstacle width in pixels",
    )

    height: float = Field(
        ...,
        gt=0,
        description="Obstacle height in pixels",
    )

    def corners(self) -> List[Point]:
        """Corners in loop order: top-left, top-right, bottom-right, bottom-left."""
        left = self.center.x - self.width / 2
        top = self.center.y - self.height / 2
        return [
            Point(x=left, y=top),
            Point(x=left + self.width, y=top),
            Point(x=left + self.width, y=top + self.height),
            Point(x=left, y=top + self.height),
        ]


class MeshDefinition(BaseModel):
    """
    Complete scene definition consumed by ``MeshEngine.reset``.

    Attributes:
        boundary: The 4 outer corners, in loop order
        interior: Free interior points
        obstacle: The obstacle rectangle
        people: Initial people positions
        edges: Optional explicit edges, as pairs of vertex ids. Ids are
            assigned sequentially: boundary first, then interior, then
            the 4 obstacle corners.
        generate_edges: Run shortest-first edge generation on top of the
            constraint edges (boundary and obstacle loops)
    """

    boundary: List[Point] = Field(
        ...,
        description="Outer boundary corners in loop order (exactly 4)",
    )

    interior: List[Point] = Field(
        default_factory=list,
        description="Interior points",
    )

    obstacle: ObstacleDefinition = Field(
        ...,
        description="Obstacle rectangle",
    )

    people: List[Point] = Field(
        default_factory=list,
        description="Initial people positions",
    )

    edges: Optional[List[Tuple[int, int]]] = Field(
        default=None,
        description="Explicit edges between vertex ids",
    )

    generate_edges: bool = Field(
        default=True,
        description="Generate supplementary edges shortest-first",
    )

    @field_validator("boundary")
    @classmethod
    def validate_boundary(cls, v: List[Point]) -> List[Point]:
        """Ensure the boundary is a quadrilateral."""
        if len(v) != 4:
            raise ValueError(f"Boundary must have exactly 4 corners, got {len(v)}")
        return v
