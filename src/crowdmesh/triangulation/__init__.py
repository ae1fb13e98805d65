"""
Triangulation Module
====================

Derivation of the mesh from the topology store.

This module provides:
    - generate_edges: Shortest-first supplementary edge generation
    - resolve_crossing_edges: Crossing repair after obstacle transforms
    - triangulate: Constraint-only triangle enumeration
    - DensityClassifier: Person assignment and density classification
"""

from crowdmesh.triangulation.edges import (
    find_crossing_pairs,
    generate_edges,
    resolve_crossing_edges,
)
from crowdmesh.triangulation.triangulate import triangulate
from crowdmesh.triangulation.density import (
    DensityClassifier,
    locate_containing_triangle,
)

__all__ = [
    "generate_edges",
    "resolve_crossing_edges",
    "find_crossing_pairs",
    "triangulate",
    "DensityClassifier",
    "locate_containing_triangle",
]
