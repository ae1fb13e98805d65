"""
Density Classifier
==================

Routes people to the triangle that contains them and classifies each
triangle's occupancy against a target density.

This classifier:
    - Locates the containing triangle of a point (first match in the
      current triangle order, closed point-in-triangle test)
    - Reassigns every person after a structural change or a move
    - Recomputes occupancy and density class for every triangle

Classification:
    occupancy <  target -> UNDER
    occupancy == target -> OPTIMAL
    occupancy >  target -> OVER

A person lying exactly on an edge shared by two triangles satisfies the
closed test for both and goes to whichever comes first.
"""

import logging
from typing import Dict, Optional

from crowdmesh.geometry import kernel
from crowdmesh.geometry.kernel import PointLike
from crowdmesh.mesh.store import TopologyStore
from crowdmesh.models.mesh import DensityClass, Triangle, TriangleKey


logger = logging.getLogger(__name__)


def locate_containing_triangle(
    store: TopologyStore,
    point: PointLike,
) -> Optional[Triangle]:
    """
    Find the first triangle whose closed interior contains ``point``.

    Args:
        store: Topology store holding the current triangles
        point: Query position

    Returns:
        Containing triangle, or None if the point is outside all triangles
    """
    for tri in store.triangles:
        v0, v1, v2 = store.triangle_points(tri)
        if kernel.point_in_triangle(point, v0, v1, v2):
            return tri
    return None


class DensityClassifier:
    """
    Occupancy bookkeeping for the triangles of a mesh.

    Attributes:
        target_density: Number of people per triangle considered optimal

    Example:
        classifier = DensityClassifier(target_density=4)

        classifier.reassign(store)
        classifier.refresh(store)
        print(classifier.summary(store))
    """

    def __init__(self, target_density: int = 4) -> None:
        """
        Initialize the classifier.

        Args:
            target_density: Optimal occupancy, must be non-negative
        """
        if target_density < 0:
            raise ValueError("target_density must be non-negative")

        self.target_density = target_density

        logger.info(f"DensityClassifier initialized: target_density={target_density}")

    def classify(self, occupancy: int) -> DensityClass:
        if occupancy < self.target_density:
            return DensityClass.UNDER
        if occupancy == self.target_density:
            return DensityClass.OPTIMAL
        return DensityClass.OVER

    def reassign(self, store: TopologyStore) -> int:
        """
        Point every person at its containing triangle.

        Returns:
            Number of people left unassigned
        """
        unassigned = 0
        for person in store.people:
            tri = locate_containing_triangle(store, person)
            person.triangle = tri.key if tri else None
            if tri is None:
                unassigned += 1
        return unassigned

    def assign(self, store: TopologyStore, person_id: int) -> Optional[TriangleKey]:
        """Reassign a single person; returns its new triangle key."""
        person = store.person(person_id)
        tri = locate_containing_triangle(store, person)
        person.triangle = tri.key if tri else None
        return person.triangle

    def refresh(self, store: TopologyStore) -> None:
        """
        Recompute occupancy and density class for every triangle.

        Occupancy counts people whose stored triangle reference equals the
        triangle's key; running it twice without an edit is a no-op.
        """
        counts: Dict[TriangleKey, int] = {}
        for person in store.people:
            if person.triangle is not None:
                counts[person.triangle] = counts.get(person.triangle, 0) + 1

        for tri in store.triangles:
            tri.occupancy = counts.get(tri.key, 0)
            tri.density_class = self.classify(tri.occupancy)

    def summary(self, store: TopologyStore) -> Dict[str, int]:
        """Triangle count per density class, for logging."""
        totals = {cls.value: 0 for cls in DensityClass}
        for tri in store.triangles:
            totals[tri.density_class.value] += 1
        return totals
