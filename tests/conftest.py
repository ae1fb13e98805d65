"""
Test Configuration
==================

Pytest fixtures and test configuration for CrowdMesh.
"""

import itertools

import pytest


@pytest.fixture
def sample_scene():
    """
    Provide a sample scene definition for testing.

    Vertex ids: boundary 0-3, interior 4-9, obstacle corners 10-13
    (180,130) (220,130) (220,170) (180,170).
    """
    return {
        "boundary": [
            {"x": 0, "y": 0},
            {"x": 400, "y": 0},
            {"x": 400, "y": 300},
            {"x": 0, "y": 300},
        ],
        "interior": [
            {"x": 100, "y": 80},
            {"x": 310, "y": 70},
            {"x": 290, "y": 230},
            {"x": 95, "y": 220},
            {"x": 205, "y": 45},
            {"x": 195, "y": 255},
        ],
        "obstacle": {
            "center": {"x": 200, "y": 150},
            "width": 40,
            "height": 40,
        },
        "people": [
            {"x": 60, "y": 40},
            {"x": 120, "y": 100},
            {"x": 340, "y": 260},
            {"x": 250, "y": 150},
        ],
    }


@pytest.fixture
def sample_definition(sample_scene):
    """Provide the sample scene as a MeshDefinition."""
    from crowdmesh.models.geometry import MeshDefinition

    return MeshDefinition.model_validate(sample_scene)


@pytest.fixture
def engine(sample_definition):
    """Provide an engine loaded with the sample scene."""
    from crowdmesh.engine import MeshEngine

    mesh_engine = MeshEngine(target_density=4, seed=7)
    mesh_engine.reset(sample_definition)
    return mesh_engine


@pytest.fixture
def random_engine():
    """Provide an engine loaded with a small seeded random scene."""
    from crowdmesh.engine import MeshEngine, SimulationLayout

    mesh_engine = MeshEngine(target_density=4, seed=7)
    mesh_engine.init_simulation(SimulationLayout(inner_point_count=8, people_count=10))
    return mesh_engine


@pytest.fixture
def check_invariants():
    """Provide a callable asserting the structural invariants of a mesh."""
    from crowdmesh.geometry import kernel
    from crowdmesh.models.geometry import Point
    from crowdmesh.models.mesh import DensityClass
    from crowdmesh.triangulation import find_crossing_pairs, locate_containing_triangle

    def _check(mesh_engine):
        store = mesh_engine.store

        # Constraint edges always present
        for a, b in store.constraint_edges():
            assert store.has_edge(a, b)

        # No two explicit or implicit edges cross
        assert find_crossing_pairs(store) == []
        for e1, e2 in itertools.combinations(store.mesh_edges(), 2):
            assert not store.edges_cross(e1, e2), f"{e1} crosses {e2}"

        mesh_edges = set(store.mesh_edges())
        obstacle = store.obstacle_points()
        for tri in store.triangles:
            v0, v1, v2 = store.triangle_points(tri)
            assert kernel.orientation(v0, v1, v2) != 0
            for side in tri.edges():
                assert side in mesh_edges
            for other in store.vertices:
                if other.id not in tri.key:
                    assert not kernel.point_in_triangle(other, v0, v1, v2)
            centroid = Point(x=(v0.x + v1.x + v2.x) / 3, y=(v0.y + v1.y + v2.y) / 3)
            assert not kernel.point_in_convex_polygon(centroid, obstacle)

        # Assignment and classification agree with the geometry
        counts = {}
        for person in store.people:
            assert not store.point_inside_obstacle(person)
            located = locate_containing_triangle(store, person)
            assert person.triangle == (located.key if located else None)
            if person.triangle is not None:
                counts[person.triangle] = counts.get(person.triangle, 0) + 1

        target = mesh_engine.target_density
        for tri in store.triangles:
            assert tri.occupancy == counts.get(tri.key, 0)
            if tri.occupancy < target:
                assert tri.density_class == DensityClass.UNDER
            elif tri.occupancy == target:
                assert tri.density_class == DensityClass.OPTIMAL
            else:
                assert tri.density_class == DensityClass.OVER

    return _check
