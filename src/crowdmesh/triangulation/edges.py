"""
Edge Generation and Repair
==========================

Derives the supplementary explicit edge set from the constraint edges,
and repairs crossings left behind by an obstacle transform.

Generation (shortest-first greedy):
    1. Candidates: boundary <-> interior, interior <-> interior and
       obstacle <-> interior vertex pairs
    2. Sort candidates by ascending Euclidean length (stable)
    3. Accept a candidate iff it
         - does not cross the obstacle boundary,
         - does not cross any edge accepted so far,
         - and, when anchored on an obstacle corner, that corner has fewer
           than ``MAX_OBSTACLE_CONNECTIONS`` accepted edges and a clear
           line of sight to the target
       Rejected candidates are dropped for the rest of the pass.

    This approximates a well-shaped mesh without Delaunay optimality.

Repair:
    For every crossing pair of edges the longer one is removed. Passes
    repeat until no crossing pair remains. Constraint edges are never
    removed.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from crowdmesh.mesh.store import TopologyStore
from crowdmesh.models.mesh import EdgeKey, EdgeKind, VertexRole, edge_key


logger = logging.getLogger(__name__)


MAX_OBSTACLE_CONNECTIONS = 3


@dataclass(frozen=True, slots=True)
class CandidateEdge:
    """Edge considered during generation. ``source`` is the obstacle side, if any."""

    source: int
    target: int
    length: float


def _candidates(store: TopologyStore) -> List[CandidateEdge]:
    boundary = store.ids_with_role(VertexRole.BOUNDARY)
    interior = store.ids_with_role(VertexRole.INTERIOR)
    obstacle = store.ids_with_role(VertexRole.OBSTACLE)

    pairs = []
    pairs.extend(itertools.product(boundary, interior))
    pairs.extend(itertools.combinations(interior, 2))
    pairs.extend(itertools.product(obstacle, interior))

    return [
        CandidateEdge(source=a, target=b, length=store.edge_length((a, b)))
        for a, b in pairs
    ]


def generate_edges(
    store: TopologyStore,
    base: Optional[Dict[EdgeKey, EdgeKind]] = None,
) -> Dict[EdgeKey, EdgeKind]:
    """
    Generate the explicit edge set.

    Args:
        store: Topology store with vertices and obstacle in place
        base: Mandatory edges to start from. Defaults to the constraint
            edges alone, i.e. generation from scratch.

    Returns:
        Ordered mapping of edge key to provenance: the base edges first,
        then accepted candidates in acceptance order
    """
    if base is None:
        base = {key: EdgeKind.CONSTRAINT for key in store.constraint_edges()}
    accepted: Dict[EdgeKey, EdgeKind] = dict(base)
    obstacle_connections: Dict[int, int] = {}

    candidates = sorted(_candidates(store), key=lambda c: c.length)

    for cand in candidates:
        a, b = cand.source, cand.target
        if store.crosses_obstacle(a, b):
            continue
        if store.crosses_any(a, b, accepted):
            continue

        if store.vertex(a).role == VertexRole.OBSTACLE:
            if obstacle_connections.get(a, 0) >= MAX_OBSTACLE_CONNECTIONS:
                continue
            if not store.has_line_of_sight(a, b):
                continue
            obstacle_connections[a] = obstacle_connections.get(a, 0) + 1

        accepted.setdefault(edge_key(a, b), EdgeKind.GENERATED)

    logger.debug(
        f"Edge generation: candidates={len(candidates)}, "
        f"accepted={len(accepted)} (incl. constraints)"
    )
    return accepted


def find_crossing_pairs(store: TopologyStore) -> List[Tuple[EdgeKey, EdgeKey]]:
    """All unordered pairs of explicit edges that properly cross."""
    return [
        (e1, e2)
        for e1, e2 in itertools.combinations(store.edges, 2)
        if store.edges_cross(e1, e2)
    ]


def resolve_crossing_edges(store: TopologyStore) -> int:
    """
    Remove crossing edges until the explicit edge set is crossing-free.

    Within a pass, pairs are visited in edge order and the longer edge of
    each crossing pair is deleted (an edge deleted earlier in the pass is
    skipped). A protected edge is never deleted; if both edges of a pair
    are protected the pair is logged and left alone.

    Args:
        store: Topology store whose explicit edges are repaired in place

    Returns:
        Number of edges removed
    """
    removed_total = 0

    while True:
        removed: set = set()
        for e1, e2 in itertools.combinations(store.edges, 2):
            if e1 in removed or e2 in removed:
                continue
            if not store.edges_cross(e1, e2):
                continue

            victim = _pick_victim(store, e1, e2)
            if victim is None:
                logger.warning(f"Protected edges {e1} and {e2} cross; leaving both")
                continue

            removed.add(victim)
            logger.debug(f"Crossing {e1} x {e2}: removing {victim}")

        if not removed:
            break

        for key in removed:
            store.discard_edge(*key)
        removed_total += len(removed)

    if removed_total:
        logger.info(f"Crossing repair removed {removed_total} edge(s)")
    return removed_total


def _pick_victim(store: TopologyStore, e1: EdgeKey, e2: EdgeKey) -> Optional[EdgeKey]:
    protected1 = store.is_protected_edge(*e1)
    protected2 = store.is_protected_edge(*e2)
    if protected1 and protected2:
        return None
    if protected1:
        return e2
    if protected2:
        return e1
    return e1 if store.edge_length(e1) > store.edge_length(e2) else e2
