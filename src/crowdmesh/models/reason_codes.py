"""
Reason Codes
============

Fixed set of machine-readable rejection reasons for mesh edits.

Every rejected edit carries exactly ONE reason code. A rejected edit
never changes the mesh.
"""

from enum import Enum


class RejectionReason(str, Enum):
    """
    Machine-readable explanation of why an edit was refused.

    Attributes:
        SAME_VERTEX: Edge endpoints are the same vertex
        UNKNOWN_VERTEX: Vertex id does not exist
        EDGE_EXISTS: Edge is already in the edge set
        EDGE_CROSSES_OBSTACLE: Edge has no line of sight past the obstacle
        EDGE_CROSSES_EDGE: Edge would cross an existing edge
        EDGE_NOT_FOUND: Edge to remove is not part of the mesh
        BOUNDARY_EDGE_PROTECTED: Outer boundary edges cannot be removed
        OBSTACLE_EDGE_PROTECTED: Obstacle edges cannot be removed
        VERTEX_FIXED: Vertex is pinned in place
        OBSTACLE_VERTEX: Obstacle corners move only with the obstacle
        INSIDE_OBSTACLE: Target position lies inside the obstacle
        OUTSIDE_BOUNDARY: Target position lies outside the boundary
        SCALE_OUT_OF_RANGE: Cumulative scale would leave its bounds
        OBSTACLE_WOULD_COVER_VERTEX: Transform would swallow a vertex
        OBSTACLE_OUTSIDE_BOUNDARY: Transform would push a corner outside
        UNKNOWN_PERSON: Person id does not exist
        NO_PEOPLE: Nothing to remove
        NO_FREE_POSITION: Random placement found no valid position
        INVALID_TARGET_DENSITY: Target density must be non-negative
        NO_SCENE: No scene has been loaded yet
    """

    # Edge edits
    SAME_VERTEX = "SAME_VERTEX"
    UNKNOWN_VERTEX = "UNKNOWN_VERTEX"
    EDGE_EXISTS = "EDGE_EXISTS"
    EDGE_CROSSES_OBSTACLE = "EDGE_CROSSES_OBSTACLE"
    EDGE_CROSSES_EDGE = "EDGE_CROSSES_EDGE"
    EDGE_NOT_FOUND = "EDGE_NOT_FOUND"
    BOUNDARY_EDGE_PROTECTED = "BOUNDARY_EDGE_PROTECTED"
    OBSTACLE_EDGE_PROTECTED = "OBSTACLE_EDGE_PROTECTED"

    # Vertex and person moves
    VERTEX_FIXED = "VERTEX_FIXED"
    OBSTACLE_VERTEX = "OBSTACLE_VERTEX"
    INSIDE_OBSTACLE = "INSIDE_OBSTACLE"
    OUTSIDE_BOUNDARY = "OUTSIDE_BOUNDARY"

    # Obstacle transforms
    SCALE_OUT_OF_RANGE = "SCALE_OUT_OF_RANGE"
    OBSTACLE_WOULD_COVER_VERTEX = "OBSTACLE_WOULD_COVER_VERTEX"
    OBSTACLE_OUTSIDE_BOUNDARY = "OBSTACLE_OUTSIDE_BOUNDARY"

    # People
    UNKNOWN_PERSON = "UNKNOWN_PERSON"
    NO_PEOPLE = "NO_PEOPLE"
    NO_FREE_POSITION = "NO_FREE_POSITION"

    # Classification
    INVALID_TARGET_DENSITY = "INVALID_TARGET_DENSITY"

    # Engine state
    NO_SCENE = "NO_SCENE"
