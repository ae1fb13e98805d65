"""
Data Models
===========

Models for the crowd mesh engine.

This module re-exports all data models for convenient access.

Models:
    Geometry (input):
        - Point, ObstacleDefinition, MeshDefinition

    Mesh (internal records):
        - Vertex, Triangle, Person, Obstacle
        - VertexRole, EdgeKind, DensityClass

    Output:
        - MeshSnapshot: Complete renderable state
        - EditResult: Outcome of an edit command
        - Selection: Hit-test result

    Reason codes:
        - RejectionReason
"""

from crowdmesh.models.geometry import MeshDefinition, ObstacleDefinition, Point
from crowdmesh.models.mesh import (
    DensityClass,
    EdgeKind,
    Obstacle,
    Person,
    Triangle,
    Vertex,
    VertexRole,
)
from crowdmesh.models.output import EditResult, MeshSnapshot, Selection
from crowdmesh.models.reason_codes import RejectionReason

__all__ = [
    # Geometry
    "Point",
    "ObstacleDefinition",
    "MeshDefinition",
    # Mesh
    "Vertex",
    "Triangle",
    "Person",
    "Obstacle",
    "VertexRole",
    "EdgeKind",
    "DensityClass",
    # Output
    "MeshSnapshot",
    "EditResult",
    "Selection",
    # Reason codes
    "RejectionReason",
]
