"""
Edit Request Schemas
====================

Pydantic bodies for the edit commands accepted by the HTTP adapter.

Each command maps one-to-one onto a ``MeshEngine`` operation:

    AddEdgeRequest        -> add_edge(a, b)
    PositionRequest       -> move_vertex / add_person / move_person
    RotateObstacleRequest -> rotate_obstacle(delta_degrees)
    ScaleObstacleRequest  -> scale_obstacle(delta)
    TargetDensityRequest  -> set_target_density(value)
"""

from typing import Optional

from pydantic import BaseModel, Field


class AddEdgeRequest(BaseModel):
    """Connect two vertices."""

    a: int = Field(..., ge=0, description="First vertex id")
    b: int = Field(..., ge=0, description="Second vertex id")


class PositionRequest(BaseModel):
    """Target position for a move or placement."""

    x: float = Field(..., description="Horizontal coordinate (pixels)")
    y: float = Field(..., description="Vertical coordinate (pixels)")


class RotateObstacleRequest(BaseModel):
    """Rotate the obstacle about its center."""

    delta_degrees: Optional[float] = Field(
        default=None,
        description="Rotation in degrees (defaults to the configured step)",
    )


class ScaleObstacleRequest(BaseModel):
    """Change the cumulative obstacle scale factor."""

    delta: Optional[float] = Field(
        default=None,
        description="Amount added to the cumulative scale factor (defaults to the configured step)",
    )


class TargetDensityRequest(BaseModel):
    """New occupancy target used for classification."""

    value: int = Field(..., description="Target people per triangle")
