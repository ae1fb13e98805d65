"""
Mesh Engine
===========

Single consolidated façade over the topology store, the triangulation
and the density classifier.

Every public edit runs to completion before returning:

    Stable -> edit request -> Recomputing -> Stable

A rejected edit returns an ``EditResult`` carrying a ``RejectionReason``
and leaves the mesh untouched. Accepted structural edits re-derive the
triangles (and, where stated, the explicit edges) from scratch, then
reassign every person and refresh every triangle's density class.

Edit Commands:
    - reset / init_simulation: Load an explicit or a random scene
    - add_edge / remove_edge: Explicit edge edits (with re-triangulation)
    - move_vertex: Relocate a free vertex, regenerating all edges
    - add_person / add_random_person / remove_person / move_person /
      clear_people: People edits (reassignment only)
    - rotate_obstacle / scale_obstacle: Rigid obstacle transforms
    - set_target_density: Re-classify against a new target

Example:
    from crowdmesh.engine import MeshEngine

    engine = MeshEngine(target_density=4, seed=7)
    engine.init_simulation()

    result = engine.remove_edge(0, 1)
    assert not result.accepted  # boundary edges are protected

    snapshot = engine.snapshot()
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from crowdmesh.geometry import kernel
from crowdmesh.mesh import picking
from crowdmesh.mesh.store import TopologyStore
from crowdmesh.models.geometry import MeshDefinition, ObstacleDefinition, Point
from crowdmesh.models.mesh import EdgeKey, EdgeKind, TriangleKey, VertexRole, edge_key
from crowdmesh.models.output import (
    EdgeView,
    EditResult,
    MeshSnapshot,
    ObstacleView,
    PersonView,
    Selection,
    TriangleView,
    VertexView,
)
from crowdmesh.models.reason_codes import RejectionReason
from crowdmesh.triangulation import (
    DensityClassifier,
    generate_edges,
    locate_containing_triangle,
    resolve_crossing_edges,
    triangulate,
)


logger = logging.getLogger(__name__)


# Tolerance on the cumulative scale bounds, so 1.0 + 5 * 0.1 counts as 1.5
SCALE_TOLERANCE = 1e-9


@dataclass
class SimulationLayout:
    """
    Parameters of a random scene.

    The boundary is the canvas inset by ``padding``; the obstacle is
    centred in it. Interior points keep ``interior_margin`` from the
    boundary, people keep ``placement_margin``.
    """

    canvas_width: float = 800.0
    canvas_height: float = 600.0
    padding: float = 40.0
    inner_point_count: int = 12
    interior_margin: float = 50.0
    obstacle_width: float = 100.0
    obstacle_height: float = 70.0
    people_count: int = 20


class MeshEngine:
    """
    Planar mesh engine for the crowd density editor.

    Attributes:
        store: Topology store owning all mesh state
        classifier: Density classifier (holds the target density)
        status: Human-readable outcome of the last edit
    """

    def __init__(
        self,
        target_density: int = 4,
        min_scale_factor: float = 0.5,
        max_scale_factor: float = 1.5,
        rotation_step_degrees: float = 15.0,
        containment: str = "exact",
        person_edge_buffer: float = 5.0,
        placement_margin: float = 20.0,
        max_placement_attempts: int = 1000,
        vertex_pick_radius: float = 15.0,
        edge_pick_radius: float = 10.0,
        person_pick_radius: float = 10.0,
        seed: Optional[int] = None,
    ) -> None:
        """
        Initialize an empty engine. Load a scene with ``reset`` or
        ``init_simulation`` before editing.

        Args:
            target_density: Optimal people per triangle
            min_scale_factor: Lower bound of the cumulative obstacle scale
            max_scale_factor: Upper bound of the cumulative obstacle scale
            rotation_step_degrees: Default rotation per rotate command
            containment: "exact" or "bounding_box" obstacle containment
            person_edge_buffer: Minimum distance of random people from edges
            placement_margin: Inset of random people from the boundary
            max_placement_attempts: Tries per random placement
            vertex_pick_radius: Hit-test radius for vertices
            edge_pick_radius: Hit-test radius for edges
            person_pick_radius: Hit-test radius for people
            seed: Seed for random layouts (None for nondeterministic)
        """
        if not 0 < min_scale_factor <= 1.0 <= max_scale_factor:
            raise ValueError("Scale bounds must satisfy 0 < min <= 1 <= max")
        if max_placement_attempts < 1:
            raise ValueError("max_placement_attempts must be positive")

        self.store = TopologyStore(containment=containment)
        self.classifier = DensityClassifier(target_density=target_density)
        self.min_scale_factor = min_scale_factor
        self.max_scale_factor = max_scale_factor
        self.rotation_step_degrees = rotation_step_degrees
        self.person_edge_buffer = person_edge_buffer
        self.placement_margin = placement_margin
        self.max_placement_attempts = max_placement_attempts
        self.vertex_pick_radius = vertex_pick_radius
        self.edge_pick_radius = edge_pick_radius
        self.person_pick_radius = person_pick_radius
        self.status: str = ""

        self._rng = np.random.default_rng(seed)

        logger.info(
            f"MeshEngine initialized: target_density={target_density}, "
            f"scale=[{min_scale_factor}, {max_scale_factor}], "
            f"containment={containment}"
        )

    @property
    def target_density(self) -> int:
        return self.classifier.target_density

    # =========================================================================
    # Scene loading
    # =========================================================================

    def reset(self, definition: MeshDefinition) -> EditResult:
        """
        Replace the whole mesh with an explicit scene.

        Explicit edges are installed on top of the constraint edges; if
        ``generate_edges`` is set, shortest-first generation then fills in
        around them.

        The scene is loaded into a fresh store, so an invalid definition
        leaves the current mesh untouched.

        Raises:
            ValueError: If the scene or its explicit edges are invalid
        """
        store = TopologyStore(containment=self.store.containment)
        store.reset(
            definition.boundary,
            definition.interior,
            definition.obstacle,
            definition.people,
        )

        if definition.edges:
            _install_explicit_edges(store, definition.edges)

        if definition.generate_edges:
            base = {key: store.edge_kind(*key) for key in store.edges}
            store.replace_edges(generate_edges(store, base=base))

        self.store = store
        self._rebuild()
        return self._accept(
            f"Mesh reset: {len(self.store.vertices)} vertices, "
            f"{len(self.store.triangles)} triangles."
        )

    def init_simulation(self, layout: Optional[SimulationLayout] = None) -> EditResult:
        """
        Load a random scene: fixed boundary, centred obstacle, random
        interior points and random people.

        Raises:
            ValueError: If no free position can be found for a point; the
                current mesh is left untouched
        """
        layout = layout or SimulationLayout()

        width = layout.canvas_width - 2 * layout.padding
        height = layout.canvas_height - 2 * layout.padding
        if width <= 0 or height <= 0:
            raise ValueError("Canvas is too small for the requested padding")

        left, top = layout.padding, layout.padding
        boundary = [
            Point(x=left, y=top),
            Point(x=left + width, y=top),
            Point(x=left + width, y=top + height),
            Point(x=left, y=top + height),
        ]
        obstacle = ObstacleDefinition(
            center=Point(x=left + width / 2, y=top + height / 2),
            width=layout.obstacle_width,
            height=layout.obstacle_height,
        )
        corners = obstacle.corners()

        interior = []
        for _ in range(layout.inner_point_count):
            point = self._sample_position(
                (left, top, left + width, top + height),
                layout.interior_margin,
                lambda p: not kernel.point_in_convex_polygon(p, corners),
            )
            if point is None:
                raise ValueError("Could not place an interior point outside the obstacle")
            interior.append(point)

        store = TopologyStore(containment=self.store.containment)
        store.reset(boundary, interior, obstacle)
        store.replace_edges(generate_edges(store))

        for _ in range(layout.people_count):
            point = self._random_person_position(store)
            if point is None:
                raise ValueError("Could not place a person away from the obstacle and edges")
            store.add_person(point.x, point.y)

        self.store = store
        self._rebuild()
        return self._accept(
            f"Random layout generated: {len(self.store.vertices)} points, "
            f"{len(self.store.triangles)} triangles"
        )

    # =========================================================================
    # Edge edits
    # =========================================================================

    def add_edge(self, a: int, b: int) -> EditResult:
        """
        Connect vertices ``a`` and ``b`` and re-triangulate.

        Rejected if either vertex is unknown, ``a == b``, the edge exists,
        it has no line of sight past the obstacle, or it crosses an
        explicit edge.
        """
        store = self.store

        if not (store.has_vertex(a) and store.has_vertex(b)):
            return self._reject(RejectionReason.UNKNOWN_VERTEX, "Unknown vertex.")
        if a == b:
            return self._reject(RejectionReason.SAME_VERTEX, "Cannot add edge to same vertex.")
        if store.has_edge(a, b):
            return self._reject(RejectionReason.EDGE_EXISTS, "Edge already exists.")
        if not store.has_line_of_sight(a, b):
            return self._reject(
                RejectionReason.EDGE_CROSSES_OBSTACLE, "Edge crosses obstacle, cannot add."
            )
        if store.crosses_any(a, b, store.edges):
            return self._reject(
                RejectionReason.EDGE_CROSSES_EDGE, "New edge would intersect existing edge."
            )

        store.add_edge(a, b, EdgeKind.MANUAL)
        self._rebuild()
        return self._accept(f"Edge added between vertex {a} and vertex {b}.")

    def remove_edge(self, a: int, b: int) -> EditResult:
        """
        Remove the edge a-b and re-triangulate with it banned.

        Implicit edges (synthesised by triangulation) can be removed too;
        the ban keeps the same pass from recreating them. Boundary and
        obstacle edges are protected.
        """
        store = self.store

        if not (store.has_vertex(a) and store.has_vertex(b)):
            return self._reject(RejectionReason.UNKNOWN_VERTEX, "Unknown vertex.")
        if a == b:
            return self._reject(RejectionReason.EDGE_NOT_FOUND, "Edge not found.")
        if store.is_boundary_edge(a, b):
            return self._reject(
                RejectionReason.BOUNDARY_EDGE_PROTECTED, "Cannot remove a boundary edge."
            )
        if store.is_obstacle_edge(a, b):
            return self._reject(
                RejectionReason.OBSTACLE_EDGE_PROTECTED, "Cannot remove an obstacle edge."
            )
        if not (store.has_edge(a, b) or store.is_implicit_edge(a, b)):
            return self._reject(RejectionReason.EDGE_NOT_FOUND, "Edge not found.")

        store.discard_edge(a, b)
        self._rebuild(banned_edges=[edge_key(a, b)])
        return self._accept("Edge removed.")

    # =========================================================================
    # Vertex edits
    # =========================================================================

    def move_vertex(self, vertex_id: int, x: float, y: float) -> EditResult:
        """
        Move a free vertex, then regenerate all edges and re-triangulate.

        Manually added edges do not survive a move: the explicit edge set
        is rebuilt from the constraint edges.
        """
        store = self.store

        if not store.has_vertex(vertex_id):
            return self._reject(RejectionReason.UNKNOWN_VERTEX, "Unknown vertex.")

        vertex = store.vertex(vertex_id)
        if vertex.role == VertexRole.OBSTACLE:
            return self._reject(
                RejectionReason.OBSTACLE_VERTEX,
                "Obstacle vertices move only with the obstacle.",
            )
        if vertex.fixed:
            return self._reject(
                RejectionReason.VERTEX_FIXED, "This vertex is fixed and cannot be moved."
            )

        target = Point(x=x, y=y)
        if store.point_inside_obstacle(target):
            return self._reject(
                RejectionReason.INSIDE_OBSTACLE, "Cannot move a vertex into the obstacle."
            )
        if not store.point_within_boundary(target):
            return self._reject(
                RejectionReason.OUTSIDE_BOUNDARY, "Cannot move a vertex outside the boundary."
            )

        store.move_vertex(vertex_id, float(x), float(y))
        store.replace_edges(generate_edges(store))
        self._rebuild()
        return self._accept(f"Moved vertex {vertex_id}.")

    # =========================================================================
    # People edits
    # =========================================================================

    def add_person(self, x: float, y: float) -> EditResult:
        rejection = self._check_scene()
        if rejection is not None:
            return rejection

        rejection = self._check_person_position(Point(x=x, y=y))
        if rejection is not None:
            return rejection

        person = self.store.add_person(x, y)
        self.classifier.assign(self.store, person.id)
        self.refresh_densities()
        return self._accept(f"Added a person. Total: {len(self.store.people)}")

    def add_random_person(self) -> EditResult:
        """Place a person at a random free spot, away from the obstacle and edges."""
        rejection = self._check_scene()
        if rejection is not None:
            return rejection

        point = self._random_person_position()
        if point is None:
            return self._reject(
                RejectionReason.NO_FREE_POSITION, "Could not find a free position for a person."
            )

        person = self.store.add_person(point.x, point.y)
        self.classifier.assign(self.store, person.id)
        self.refresh_densities()
        return self._accept(f"Added a person. Total: {len(self.store.people)}")

    def remove_person(self, person_id: Optional[int] = None) -> EditResult:
        """Remove a person by id, or the most recently added one."""
        people = self.store.people
        if not people:
            return self._reject(RejectionReason.NO_PEOPLE, "No people to remove.")

        if person_id is None:
            person_id = people[-1].id
        elif not self.store.has_person(person_id):
            return self._reject(RejectionReason.UNKNOWN_PERSON, "Unknown person.")

        self.store.remove_person(person_id)
        self.refresh_densities()
        return self._accept(f"Removed a person. Total: {len(self.store.people)}")

    def move_person(self, person_id: int, x: float, y: float) -> EditResult:
        """
        Move a person and reassign its triangle.

        Moves into the obstacle or outside the boundary are rejected. A
        move to a spot no triangle covers is accepted and leaves the person
        unassigned.
        """
        if not self.store.has_person(person_id):
            return self._reject(RejectionReason.UNKNOWN_PERSON, "Unknown person.")

        rejection = self._check_person_position(Point(x=x, y=y))
        if rejection is not None:
            return rejection

        person = self.store.person(person_id)
        person.x = float(x)
        person.y = float(y)
        triangle = self.classifier.assign(self.store, person_id)
        self.refresh_densities()

        if triangle is None:
            return self._accept(f"Moved person {person_id} (outside all triangles).")
        return self._accept(f"Moved person {person_id}.")

    def clear_people(self) -> EditResult:
        self.store.clear_people()
        self.refresh_densities()
        return self._accept("All people cleared.")

    def _check_scene(self) -> Optional[EditResult]:
        if self.store.obstacle is None:
            return self._reject(RejectionReason.NO_SCENE, "No scene loaded.")
        return None

    def _check_person_position(self, p: Point) -> Optional[EditResult]:
        if not self.store.point_within_boundary(p):
            return self._reject(
                RejectionReason.OUTSIDE_BOUNDARY, "A person must stay inside the boundary."
            )
        if self.store.point_inside_obstacle(p):
            return self._reject(
                RejectionReason.INSIDE_OBSTACLE, "A person cannot be placed inside the obstacle."
            )
        return None

    # =========================================================================
    # Obstacle transforms
    # =========================================================================

    def rotate_obstacle(self, delta_degrees: Optional[float] = None) -> EditResult:
        """Rotate the obstacle about its center (default: the configured step)."""
        rejection = self._check_scene()
        if rejection is not None:
            return rejection

        if delta_degrees is None:
            delta_degrees = self.rotation_step_degrees

        obstacle = self.store.obstacle
        theta = math.radians(delta_degrees)
        rotation = np.array([
            [math.cos(theta), -math.sin(theta)],
            [math.sin(theta), math.cos(theta)],
        ])
        center = np.array([obstacle.cx, obstacle.cy])
        points = self._obstacle_array()
        new_points = (points - center) @ rotation.T + center

        result = self._apply_obstacle_transform(new_points)
        if not result.accepted:
            return result

        obstacle.rotation_degrees = (obstacle.rotation_degrees + delta_degrees) % 360.0

        status = f"Obstacle rotated by {delta_degrees:g}°."
        if result.removed_people > 0:
            status += f" Removed {result.removed_people} person(s) that entered obstacle."
        return self._accept(
            status,
            removed_people=result.removed_people,
            removed_edges=result.removed_edges,
        )

    def scale_obstacle(self, delta: float) -> EditResult:
        """
        Add ``delta`` to the cumulative scale factor and rescale the
        obstacle about its center.

        Rejected, with the geometry unchanged, if the new factor would
        leave [min_scale_factor, max_scale_factor].
        """
        rejection = self._check_scene()
        if rejection is not None:
            return rejection

        obstacle = self.store.obstacle
        new_scale = obstacle.scale_factor + delta

        if (
            new_scale > self.max_scale_factor + SCALE_TOLERANCE
            or new_scale < self.min_scale_factor - SCALE_TOLERANCE
        ):
            return self._reject(
                RejectionReason.SCALE_OUT_OF_RANGE,
                f"Obstacle scale must stay within "
                f"{self.min_scale_factor:g}x-{self.max_scale_factor:g}x.",
            )
        new_scale = round(new_scale, 9)

        ratio = new_scale / obstacle.scale_factor
        center = np.array([obstacle.cx, obstacle.cy])
        new_points = center + (self._obstacle_array() - center) * ratio

        result = self._apply_obstacle_transform(new_points)
        if not result.accepted:
            return result

        obstacle.scale_factor = new_scale

        status = f"Obstacle scaled to {round(new_scale * 100)}%"
        if result.removed_people > 0:
            status += f" | Removed {result.removed_people} person(s) that entered obstacle."
        return self._accept(
            status,
            removed_people=result.removed_people,
            removed_edges=result.removed_edges,
        )

    def _obstacle_array(self) -> np.ndarray:
        return np.array([[v.x, v.y] for v in self.store.obstacle_points()], dtype=float)

    def _apply_obstacle_transform(self, new_points: np.ndarray) -> EditResult:
        """
        Validate and commit new obstacle corner positions, then regenerate
        edges, repair crossings, drop covered people and re-triangulate.
        """
        store = self.store
        quad = [Point(x=float(x), y=float(y)) for x, y in new_points]

        if not all(store.point_within_boundary(p) for p in quad):
            return self._reject(
                RejectionReason.OBSTACLE_OUTSIDE_BOUNDARY,
                "Obstacle would extend beyond the boundary.",
            )
        for vertex in store.vertices:
            if vertex.role != VertexRole.OBSTACLE and store.point_inside_quad(vertex, quad):
                return self._reject(
                    RejectionReason.OBSTACLE_WOULD_COVER_VERTEX,
                    f"Obstacle would cover vertex {vertex.id}.",
                )

        store.set_obstacle_points([(p.x, p.y) for p in quad])
        store.replace_edges(generate_edges(store))
        removed_edges = resolve_crossing_edges(store)
        removed_people = store.remove_people_inside_obstacle()
        self._rebuild()

        return EditResult.ok("", removed_people=removed_people, removed_edges=removed_edges)

    # =========================================================================
    # Classification
    # =========================================================================

    def set_target_density(self, value: int) -> EditResult:
        if value < 0:
            return self._reject(
                RejectionReason.INVALID_TARGET_DENSITY, "Target density must be non-negative."
            )

        self.classifier.target_density = value
        self.refresh_densities()
        return self._accept(f"Target density set to {value}.")

    def refresh_densities(self) -> None:
        """Recompute occupancy and density class of every triangle."""
        self.classifier.refresh(self.store)

    def locate_containing_triangle(self, x: float, y: float) -> Optional[TriangleKey]:
        tri = locate_containing_triangle(self.store, Point(x=x, y=y))
        return tri.key if tri else None

    # =========================================================================
    # Queries
    # =========================================================================

    def hit_test(self, x: float, y: float) -> Selection:
        return picking.hit_test(
            self.store,
            Point(x=x, y=y),
            vertex_radius=self.vertex_pick_radius,
            person_radius=self.person_pick_radius,
            edge_radius=self.edge_pick_radius,
        )

    def snapshot(self) -> MeshSnapshot:
        """
        Serialisable view of the whole mesh for a renderer.

        Raises:
            RuntimeError: If no scene has been loaded yet
        """
        store = self.store
        if store.obstacle is None:
            raise RuntimeError("No scene loaded: call reset or init_simulation first")
        obstacle = store.obstacle

        return MeshSnapshot(
            vertices=[
                VertexView(id=v.id, x=v.x, y=v.y, fixed=v.fixed, role=v.role)
                for v in store.vertices
            ],
            edges=[
                EdgeView(a=a, b=b, kind=store.edge_kind(a, b))
                for a, b in store.edges
            ],
            implicit_edges=store.implicit_edges,
            triangles=[
                TriangleView(
                    vertices=tri.key,
                    occupancy=tri.occupancy,
                    density_class=tri.density_class,
                )
                for tri in store.triangles
            ],
            people=[
                PersonView(id=p.id, x=p.x, y=p.y, triangle=p.triangle)
                for p in store.people
            ],
            obstacle=ObstacleView(
                vertex_ids=obstacle.vertex_ids,
                points=[Point(x=v.x, y=v.y) for v in store.obstacle_points()],
                center=Point(x=obstacle.cx, y=obstacle.cy),
                width=obstacle.width,
                height=obstacle.height,
                rotation_degrees=obstacle.rotation_degrees,
                scale_factor=obstacle.scale_factor,
            ),
            target_density=self.target_density,
            status=self.status,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _rebuild(self, banned_edges: Sequence[EdgeKey] = ()) -> None:
        """Re-triangulate, reassign everyone and refresh densities."""
        result = triangulate(self.store, banned_edges=banned_edges)
        self.store.commit_triangulation(result)
        unassigned = self.classifier.reassign(self.store)
        self.refresh_densities()

        logger.debug(
            f"Rebuilt mesh: edges={len(self.store.edges)}, "
            f"triangles={len(self.store.triangles)}, unassigned_people={unassigned}, "
            f"classes={self.classifier.summary(self.store)}"
        )

    def _random_person_position(self, store: Optional[TopologyStore] = None) -> Optional[Point]:
        store = store or self.store
        return self._sample_position(
            store.bounds(),
            self.placement_margin,
            lambda p: not store.point_inside_obstacle(p)
            and not picking.is_too_close_to_edges(store, p, self.person_edge_buffer),
        )

    def _sample_position(self, bounds, margin, accept) -> Optional[Point]:
        min_x, min_y, max_x, max_y = bounds
        for _ in range(self.max_placement_attempts):
            point = Point(
                x=float(self._rng.uniform(min_x + margin, max_x - margin)),
                y=float(self._rng.uniform(min_y + margin, max_y - margin)),
            )
            if accept(point):
                return point
        return None

    def _accept(self, status: str, **kwargs) -> EditResult:
        self.status = status
        logger.info(f"Edit accepted: {status}")
        return EditResult.ok(status, **kwargs)

    def _reject(self, reason: RejectionReason, status: str) -> EditResult:
        self.status = status
        logger.info(f"Edit rejected [{reason.value}]: {status}")
        return EditResult.rejected(reason, status)


def _install_explicit_edges(store: TopologyStore, edges: Iterable[Tuple[int, int]]) -> None:
    for a, b in edges:
        if not (store.has_vertex(a) and store.has_vertex(b)):
            raise ValueError(f"Edge ({a}, {b}) references an unknown vertex")
        if a == b:
            raise ValueError(f"Edge ({a}, {b}) connects a vertex to itself")
        if store.has_edge(a, b):
            continue
        if not store.has_line_of_sight(a, b):
            raise ValueError(f"Edge ({a}, {b}) crosses the obstacle")
        if store.crosses_any(a, b, store.edges):
            raise ValueError(f"Edge ({a}, {b}) crosses another edge")
        store.add_edge(a, b, EdgeKind.MANUAL)
