"""
crowdmesh
=========

Planar mesh engine for crowd density editing.

A user places points, connects them with edges and drops people markers;
the engine derives a triangulation around a movable obstacle and
classifies every triangle by how many people it holds.

Components:
    - geometry: Pure geometric predicates
    - mesh: Topology store and picking queries
    - triangulation: Edge generation, triangulation, density classification
    - engine: MeshEngine, the single edit/query façade
    - main: FastAPI adapter for a rendering client

Example:
    from crowdmesh.engine import MeshEngine

    engine = MeshEngine(seed=1)
    engine.init_simulation()
    print(engine.snapshot().counts)
"""

__version__ = "0.1.0"
__author__ = "CrowdMesh Project"

__all__ = [
    "__version__",
]
