"""
Mesh Module
===========

State ownership and store-level queries.

This module provides:
    - TopologyStore: Owner of vertices, edges, obstacle, triangles, people
    - picking: Nearest vertex / edge / person queries and hit testing
"""

from crowdmesh.mesh.store import TopologyStore

__all__ = [
    "TopologyStore",
]
