"""
Mesh Engine Tests
=================

Tests for the edit commands, their rejection reasons and the invariants
that must hold after every command.
"""

import itertools

import pytest

from crowdmesh.engine import MeshEngine, SimulationLayout
from crowdmesh.models.geometry import MeshDefinition
from crowdmesh.models.mesh import DensityClass, EdgeKind
from crowdmesh.models.reason_codes import RejectionReason


def _state(mesh_engine):
    """Everything observable about the mesh except the status line."""
    snapshot = mesh_engine.snapshot().model_dump()
    snapshot.pop("status")
    return snapshot


class TestScene:
    """Tests for reset and random initialisation."""

    def test_reset_counts(self, engine, check_invariants):
        snapshot = engine.snapshot()
        assert snapshot.counts["vertices"] == 14
        assert snapshot.counts["people"] == 4
        assert snapshot.counts["triangles"] > 0
        check_invariants(engine)

    def test_reset_without_generation(self, sample_scene, check_invariants):
        sample_scene["generate_edges"] = False
        mesh_engine = MeshEngine()
        mesh_engine.reset(MeshDefinition.model_validate(sample_scene))
        assert len(mesh_engine.store.edges) == 8
        check_invariants(mesh_engine)

    def test_reset_with_explicit_edges(self, sample_scene, check_invariants):
        sample_scene["edges"] = [[1, 4]]
        sample_scene["generate_edges"] = False
        mesh_engine = MeshEngine()
        mesh_engine.reset(MeshDefinition.model_validate(sample_scene))
        assert mesh_engine.store.edge_kind(1, 4) == EdgeKind.MANUAL
        check_invariants(mesh_engine)

    def test_reset_rejects_edge_through_obstacle(self, sample_scene):
        sample_scene["edges"] = [[4, 6]]
        with pytest.raises(ValueError, match="obstacle"):
            MeshEngine().reset(MeshDefinition.model_validate(sample_scene))

    def test_failed_reset_keeps_current_mesh(self, engine, sample_scene):
        before = _state(engine)
        sample_scene["edges"] = [[4, 6]]
        with pytest.raises(ValueError):
            engine.reset(MeshDefinition.model_validate(sample_scene))
        assert _state(engine) == before

    def test_failed_random_scene_keeps_current_mesh(self, random_engine):
        """People that cannot be placed leave the previous mesh in place."""
        before = _state(random_engine)
        random_engine.person_edge_buffer = 10_000

        with pytest.raises(ValueError):
            random_engine.init_simulation(SimulationLayout(inner_point_count=8, people_count=10))

        assert _state(random_engine) == before
        assert len(random_engine.store.triangles) > 0

    def test_random_scene(self, random_engine, check_invariants):
        snapshot = random_engine.snapshot()
        assert snapshot.counts["vertices"] == 4 + 8 + 4
        assert snapshot.counts["people"] == 10
        assert snapshot.status.startswith("Random layout generated")
        check_invariants(random_engine)

    def test_random_scene_is_seeded(self):
        layout = SimulationLayout(inner_point_count=6, people_count=5)
        first = MeshEngine(seed=11)
        second = MeshEngine(seed=11)
        first.init_simulation(layout)
        second.init_simulation(layout)
        assert _state(first) == _state(second)

    def test_random_interior_respects_margin(self, random_engine):
        from crowdmesh.models.mesh import VertexRole

        for v in random_engine.store.vertices:
            if v.role == VertexRole.INTERIOR:
                assert 90 <= v.x <= 710
                assert 90 <= v.y <= 510

    def test_invalid_scale_bounds(self):
        with pytest.raises(ValueError):
            MeshEngine(min_scale_factor=1.2, max_scale_factor=1.5)


class TestEmptyEngine:
    """Tests for an engine that has not loaded a scene."""

    def test_obstacle_transforms_rejected(self):
        mesh_engine = MeshEngine()
        assert mesh_engine.rotate_obstacle(15).reason == RejectionReason.NO_SCENE
        assert mesh_engine.scale_obstacle(0.1).reason == RejectionReason.NO_SCENE
        assert mesh_engine.status == "No scene loaded."

    def test_people_edits_rejected(self):
        mesh_engine = MeshEngine()
        assert mesh_engine.add_person(10, 10).reason == RejectionReason.NO_SCENE
        assert mesh_engine.add_random_person().reason == RejectionReason.NO_SCENE
        assert mesh_engine.remove_person().reason == RejectionReason.NO_PEOPLE
        assert mesh_engine.move_person(0, 10, 10).reason == RejectionReason.UNKNOWN_PERSON

    def test_vertex_edits_rejected(self):
        mesh_engine = MeshEngine()
        assert mesh_engine.add_edge(0, 1).reason == RejectionReason.UNKNOWN_VERTEX
        assert mesh_engine.remove_edge(0, 1).reason == RejectionReason.UNKNOWN_VERTEX
        assert mesh_engine.move_vertex(4, 10, 10).reason == RejectionReason.UNKNOWN_VERTEX

    def test_snapshot_raises(self):
        with pytest.raises(RuntimeError, match="No scene loaded"):
            MeshEngine().snapshot()

    def test_hit_test_selects_nothing(self):
        assert MeshEngine().hit_test(10, 10).kind is None


class TestAddEdge:
    """Tests for explicit edge insertion."""

    def test_unknown_vertex(self, engine):
        result = engine.add_edge(0, 999)
        assert result.reason == RejectionReason.UNKNOWN_VERTEX

    def test_same_vertex(self, engine):
        result = engine.add_edge(4, 4)
        assert not result.accepted
        assert result.reason == RejectionReason.SAME_VERTEX
        assert result.status == "Cannot add edge to same vertex."

    def test_existing_edge(self, engine):
        result = engine.add_edge(1, 0)
        assert result.reason == RejectionReason.EDGE_EXISTS

    def test_obstacle_diagonal(self, engine):
        before = _state(engine)
        result = engine.add_edge(10, 12)
        assert result.reason == RejectionReason.EDGE_CROSSES_OBSTACLE
        assert _state(engine) == before

    def test_edge_through_obstacle(self, engine):
        result = engine.add_edge(4, 6)
        assert result.reason == RejectionReason.EDGE_CROSSES_OBSTACLE

    def test_edge_crossing_explicit_edge(self, engine):
        """Find a pair with line of sight that crosses a generated edge."""
        store = engine.store
        pair = next(
            (a, b)
            for a, b in itertools.combinations(store.vertex_ids, 2)
            if not store.has_edge(a, b)
            and store.has_line_of_sight(a, b)
            and store.crosses_any(a, b, store.edges)
        )
        before = _state(engine)

        result = engine.add_edge(*pair)

        assert result.reason == RejectionReason.EDGE_CROSSES_EDGE
        assert result.status == "New edge would intersect existing edge."
        assert _state(engine) == before

    def test_add_changes_triangulation(self, sample_scene, check_invariants):
        """An edge crossing a synthesised triangle side reshapes the mesh."""
        sample_scene["generate_edges"] = False
        mesh_engine = MeshEngine()
        mesh_engine.reset(MeshDefinition.model_validate(sample_scene))
        store = mesh_engine.store

        pair = next(
            (a, b)
            for a, b in itertools.combinations(store.vertex_ids, 2)
            if not store.has_edge(a, b)
            and not store.is_implicit_edge(a, b)
            and store.has_line_of_sight(a, b)
            and not store.crosses_any(a, b, store.edges)
            and store.crosses_any(a, b, store.implicit_edges)
        )
        edges_before = len(store.edges)
        triangles_before = [t.key for t in store.triangles]

        result = mesh_engine.add_edge(*pair)

        assert result.accepted
        assert result.status == f"Edge added between vertex {pair[0]} and vertex {pair[1]}."
        assert len(store.edges) == edges_before + 1
        assert store.edge_kind(*pair) == EdgeKind.MANUAL
        assert [t.key for t in store.triangles] != triangles_before
        check_invariants(mesh_engine)


class TestRemoveEdge:
    """Tests for edge removal."""

    def test_boundary_edge_protected(self, engine):
        before = _state(engine)
        result = engine.remove_edge(0, 1)
        assert not result.accepted
        assert result.reason == RejectionReason.BOUNDARY_EDGE_PROTECTED
        assert _state(engine) == before

    def test_obstacle_edge_protected(self, engine):
        result = engine.remove_edge(11, 10)
        assert result.reason == RejectionReason.OBSTACLE_EDGE_PROTECTED

    def test_unknown_and_missing(self, engine):
        assert engine.remove_edge(0, 999).reason == RejectionReason.UNKNOWN_VERTEX
        assert engine.remove_edge(4, 4).reason == RejectionReason.EDGE_NOT_FOUND

    def test_remove_generated_edge(self, engine, check_invariants):
        store = engine.store
        key = next(k for k in store.edges if store.edge_kind(*k) == EdgeKind.GENERATED)

        result = engine.remove_edge(*key)

        assert result.accepted
        assert result.status == "Edge removed."
        assert not store.has_edge(*key)
        assert not store.is_implicit_edge(*key)
        assert all(key not in tri.edges() for tri in store.triangles)
        check_invariants(engine)

    def test_remove_implicit_edge(self, sample_scene, check_invariants):
        sample_scene["generate_edges"] = False
        mesh_engine = MeshEngine()
        mesh_engine.reset(MeshDefinition.model_validate(sample_scene))
        store = mesh_engine.store
        key = next(k for k in store.implicit_edges if not store.is_protected_edge(*k))

        result = mesh_engine.remove_edge(*key)

        assert result.accepted
        assert all(key not in tri.edges() for tri in store.triangles)
        check_invariants(mesh_engine)


class TestMoveVertex:
    """Tests for vertex relocation."""

    def test_fixed_vertex(self, engine):
        result = engine.move_vertex(0, 10, 10)
        assert result.reason == RejectionReason.VERTEX_FIXED
        assert result.status == "This vertex is fixed and cannot be moved."

    def test_obstacle_vertex(self, engine):
        assert engine.move_vertex(10, 100, 100).reason == RejectionReason.OBSTACLE_VERTEX

    def test_into_obstacle(self, engine):
        before = _state(engine)
        assert engine.move_vertex(4, 200, 150).reason == RejectionReason.INSIDE_OBSTACLE
        assert _state(engine) == before

    def test_outside_boundary(self, engine):
        assert engine.move_vertex(4, -10, 5).reason == RejectionReason.OUTSIDE_BOUNDARY

    def test_move_regenerates_edges(self, sample_scene, check_invariants):
        """A move rebuilds the explicit edges from scratch, dropping manual ones."""
        sample_scene["generate_edges"] = False
        mesh_engine = MeshEngine()
        mesh_engine.reset(MeshDefinition.model_validate(sample_scene))
        store = mesh_engine.store
        assert mesh_engine.add_edge(1, 4).accepted
        assert store.edge_kind(1, 4) == EdgeKind.MANUAL

        result = mesh_engine.move_vertex(4, 110, 90)

        assert result.accepted
        assert result.status == "Moved vertex 4."
        assert (store.vertex(4).x, store.vertex(4).y) == (110, 90)
        kinds = [store.edge_kind(*k) for k in store.edges]
        assert EdgeKind.MANUAL not in kinds
        assert EdgeKind.GENERATED in kinds
        assert len(store.triangles) > 0
        check_invariants(mesh_engine)


class TestPeople:
    """Tests for person placement and assignment."""

    def test_add_person(self, engine, check_invariants):
        result = engine.add_person(50, 250)
        assert result.accepted
        assert result.status == "Added a person. Total: 5"
        check_invariants(engine)

    def test_add_person_inside_obstacle(self, engine):
        assert engine.add_person(200, 150).reason == RejectionReason.INSIDE_OBSTACLE

    def test_add_person_outside_boundary(self, engine):
        assert engine.add_person(500, 10).reason == RejectionReason.OUTSIDE_BOUNDARY

    def test_add_random_person(self, engine, check_invariants):
        from crowdmesh.mesh import picking

        result = engine.add_random_person()
        assert result.accepted
        person = engine.store.people[-1]
        assert not picking.is_too_close_to_edges(engine.store, person, engine.person_edge_buffer)
        check_invariants(engine)

    def test_remove_last_person(self, engine):
        result = engine.remove_person()
        assert result.accepted
        assert [p.id for p in engine.store.people] == [0, 1, 2]

    def test_remove_person_by_id(self, engine, check_invariants):
        assert engine.remove_person(1).accepted
        assert [p.id for p in engine.store.people] == [0, 2, 3]
        check_invariants(engine)

    def test_remove_unknown_person(self, engine):
        assert engine.remove_person(42).reason == RejectionReason.UNKNOWN_PERSON

    def test_remove_from_empty(self, engine):
        engine.clear_people()
        assert engine.remove_person().reason == RejectionReason.NO_PEOPLE

    def test_move_person_into_obstacle(self, engine):
        before = _state(engine)
        result = engine.move_person(0, 200, 150)
        assert not result.accepted
        assert result.reason == RejectionReason.INSIDE_OBSTACLE
        assert (engine.store.person(0).x, engine.store.person(0).y) == (60, 40)
        assert _state(engine) == before

    def test_move_person(self, engine, check_invariants):
        result = engine.move_person(0, 350, 40)
        assert result.accepted
        assert engine.store.person(0).x == 350
        check_invariants(engine)

    def test_move_unknown_person(self, engine):
        assert engine.move_person(42, 10, 10).reason == RejectionReason.UNKNOWN_PERSON

    def test_clear_people(self, engine):
        engine.clear_people()
        assert engine.store.people == []
        assert all(t.occupancy == 0 for t in engine.store.triangles)


class TestDensity:
    """Tests for occupancy classification through the engine."""

    def test_optimal_then_over(self, random_engine, check_invariants):
        engine = random_engine
        engine.clear_people()

        tri = engine.store.triangles[0]
        points = engine.store.triangle_points(tri)
        cx = sum(v.x for v in points) / 3
        cy = sum(v.y for v in points) / 3
        positions = [(cx, cy)] + [
            (cx + 0.5 * (v.x - cx), cy + 0.5 * (v.y - cy)) for v in points
        ]

        for x, y in positions[:4]:
            assert engine.add_person(x, y).accepted

        tri = engine.store.triangle(tri.key)
        assert tri.occupancy == 4
        assert tri.density_class == DensityClass.OPTIMAL
        others = [t for t in engine.store.triangles if t.key != tri.key]
        assert all(t.density_class == DensityClass.UNDER for t in others)
        check_invariants(engine)

        v0 = points[0]
        engine.add_person(cx + 0.25 * (v0.x - cx), cy + 0.25 * (v0.y - cy))
        assert engine.store.triangle(tri.key).density_class == DensityClass.OVER

    def test_set_target_density(self, engine, check_invariants):
        result = engine.set_target_density(0)
        assert result.accepted
        assert engine.target_density == 0
        check_invariants(engine)

    def test_negative_target(self, engine):
        result = engine.set_target_density(-1)
        assert result.reason == RejectionReason.INVALID_TARGET_DENSITY
        assert engine.target_density == 4

    def test_refresh_is_idempotent(self, random_engine):
        random_engine.refresh_densities()
        first = _state(random_engine)
        random_engine.refresh_densities()
        assert _state(random_engine) == first

    def test_locate_containing_triangle(self, engine):
        person = engine.store.person(0)
        assert engine.locate_containing_triangle(person.x, person.y) == person.triangle
        assert engine.locate_containing_triangle(200, 150) is None


class TestObstacleTransforms:
    """Tests for obstacle rotation and scaling."""

    def test_scale_up_to_limit(self, sample_scene, check_invariants):
        sample_scene["people"].append({"x": 225, "y": 150})
        mesh_engine = MeshEngine()
        mesh_engine.reset(MeshDefinition.model_validate(sample_scene))

        removed = []
        for _ in range(5):
            result = mesh_engine.scale_obstacle(0.1)
            assert result.accepted
            removed.append(result.removed_people)
            check_invariants(mesh_engine)

        assert removed == [0, 0, 1, 0, 0]
        assert mesh_engine.store.obstacle.scale_factor == pytest.approx(1.5)
        assert len(mesh_engine.store.people) == 4

        before = _state(mesh_engine)
        result = mesh_engine.scale_obstacle(0.1)
        assert not result.accepted
        assert result.reason == RejectionReason.SCALE_OUT_OF_RANGE
        assert _state(mesh_engine) == before

    def test_scale_status(self, engine):
        result = engine.scale_obstacle(0.1)
        assert result.status == "Obstacle scaled to 110%"

    def test_scale_down_to_limit(self, engine):
        for _ in range(5):
            assert engine.scale_obstacle(-0.1).accepted
        assert engine.store.obstacle.scale_factor == pytest.approx(0.5)
        assert engine.scale_obstacle(-0.1).reason == RejectionReason.SCALE_OUT_OF_RANGE

    def test_scale_keeps_center(self, engine):
        engine.scale_obstacle(0.5)
        corners = [(v.x, v.y) for v in engine.store.obstacle_points()]
        assert corners[0] == pytest.approx((170, 120))
        assert corners[2] == pytest.approx((230, 180))

    def test_rotate(self, engine, check_invariants):
        result = engine.rotate_obstacle(45)
        assert result.accepted
        assert result.status.startswith("Obstacle rotated by 45")
        assert engine.store.obstacle.rotation_degrees == pytest.approx(45)
        top_left = engine.store.obstacle_points()[0]
        assert (top_left.x, top_left.y) == pytest.approx((200, 150 - 20 * 2 ** 0.5))
        check_invariants(engine)

    def test_rotate_default_step(self, engine):
        engine.rotate_obstacle()
        assert engine.store.obstacle.rotation_degrees == pytest.approx(15)

    def test_rotation_is_normalised(self, engine):
        engine.rotate_obstacle(-90)
        assert engine.store.obstacle.rotation_degrees == pytest.approx(270)

    def test_rotate_would_cover_vertex(self, sample_scene):
        sample_scene["interior"].append({"x": 225, "y": 150})
        mesh_engine = MeshEngine()
        mesh_engine.reset(MeshDefinition.model_validate(sample_scene))
        before = _state(mesh_engine)

        result = mesh_engine.rotate_obstacle(45)

        assert result.reason == RejectionReason.OBSTACLE_WOULD_COVER_VERTEX
        assert _state(mesh_engine) == before

    def test_scale_outside_boundary(self, sample_scene):
        sample_scene["obstacle"]["center"] = {"x": 25, "y": 150}
        sample_scene["people"] = []
        mesh_engine = MeshEngine()
        mesh_engine.reset(MeshDefinition.model_validate(sample_scene))

        result = mesh_engine.scale_obstacle(0.5)

        assert result.reason == RejectionReason.OBSTACLE_OUTSIDE_BOUNDARY
        assert mesh_engine.store.obstacle.scale_factor == 1.0

    def test_rotation_removes_covered_people(self, engine, check_invariants):
        engine.store.add_person(200, 125)
        engine.refresh_densities()
        result = engine.rotate_obstacle(45)
        assert result.removed_people == 1
        assert "Removed 1 person(s) that entered obstacle." in result.status
        check_invariants(engine)

