"""
Mesh Simplifier
===============

Reduces the facet count of an indexed mesh by edge collapse, only ever
removing vertices that sit in locally flat regions so the visible shape
does not change.

The algorithm is:
  find a vertex where all facets have the same normal;
  search each vertex of each attached facet for one where all its facets
  also have the same normal and which can move without flipping anything;
  merge that second vertex into the first.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .evaluation import Anomaly, verify_mesh
from .geometry import facet_normal, points_differ, same_orientation
from .mesh import Mesh


logger = logging.getLogger(__name__)


@dataclass
class SimplifyResult:
    """Summary of one simplification pass."""
    initial_facets: int
    final_facets: int
    vertices: int
    merges: int = 0
    removed_facets: int = 0
    anomalies: List[Anomaly] = field(default_factory=list)

    @property
    def reduction_ratio(self) -> float:
        if self.initial_facets == 0:
            return 1.0
        return self.final_facets / self.initial_facets


def run_cursor(count: int, try_merge: Callable[[int], bool]) -> int:
    """
    Drive a cursor over ``range(count)``.

    At each position ``try_merge(cursor)`` is called. A successful merge
    keeps the cursor where it is, since the vertex there may have gained
    new neighbours; a failed one advances it. There is a single forward
    pass, so earlier positions are never revisited.

    Returns:
        Number of successful merges
    """
    cursor = 0
    merges = 0

    while cursor < count:
        if try_merge(cursor):
            merges += 1
        else:
            cursor += 1

    return merges


class MeshSimplifier:
    """
    Topology-preserving flat-region simplifier.

    Works in place on a ``Mesh`` and respects its valence bound.
    """

    def __init__(self, preserve_boundaries: bool = False):
        """
        Args:
            preserve_boundaries: Never remove vertices on an open boundary
                (an edge with a single facet). Closed meshes are unaffected.
        """
        self.preserve_boundaries = preserve_boundaries
        self._collapse_history: List[Dict[str, int]] = []

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def is_candidate(self, mesh: Mesh, vertex: int) -> bool:
        """True if every facet on ``vertex`` shares one orientation."""
        facets = mesh.incident(vertex)

        for prev, cur in zip(facets, facets[1:]):
            if not same_orientation(prev.n, cur.n):
                return False

        if self.preserve_boundaries and self._on_boundary(mesh, vertex):
            return False

        return True

    def _on_boundary(self, mesh: Mesh, vertex: int) -> bool:
        """Does ``vertex`` lie on an edge used by only one facet."""
        edge_count = Counter()
        for facet in mesh.incident(vertex):
            for other in facet.i:
                if other != vertex:
                    edge_count[other] += 1
        return any(count == 1 for count in edge_count.values())

    def merged_valence(self, mesh: Mesh, a: int, b: int) -> int:
        """
        Valence of ``a`` after merging ``b`` into it.

        Facets on both vertices are counted twice and disappear.
        """
        fa = mesh.p[a].facets
        fb = mesh.p[b].facets
        shared = len(set(fa) & set(fb))
        return len(fa) + len(fb) - 2 * shared

    def check_move_safe(self, mesh: Mesh, from_vertex: int, to_vertex: int) -> bool:
        """
        Can ``from_vertex`` move onto ``to_vertex`` without distortion.

        Every facet on ``from_vertex`` must either keep its orientation,
        or collapse onto a doubled edge (two coincident corners).
        """
        target = mesh.p[to_vertex].pnt

        for facet in mesh.incident(from_vertex):
            corner = facet.corner_of(from_vertex)
            if corner is None:
                logger.error("none of facet %d's vertices are vertex %d",
                             facet.handle, from_vertex)
                return False

            v = [facet.v[0], facet.v[1], facet.v[2]]
            v[corner] = target
            normal, degenerate = facet_normal(v[0], v[1], v[2])

            if degenerate:
                # only allow creation of degenerate facets with common vertices
                if (points_differ(v[0], v[1]) and points_differ(v[1], v[2])
                        and points_differ(v[2], v[0])):
                    return False
            elif not same_orientation(normal, facet.n):
                return False

        return True

    def find_merge_target(self, mesh: Mesh, vertex: int) -> Optional[int]:
        """
        First neighbour of ``vertex`` that can be merged into it.

        Neighbours are visited in incidence order, then corner order. A
        neighbour qualifies if it is itself a candidate, the merge keeps
        ``vertex`` between one facet and the valence bound, and moving
        the neighbour onto ``vertex`` is safe.
        """
        for facet in mesh.incident(vertex):
            for neighbour in facet.i:
                if neighbour == vertex:
                    continue

                if not self.is_candidate(mesh, neighbour):
                    continue

                # cannot merge edge vertices if it makes the mesh too
                # complicated to represent
                if (mesh.p[vertex].valence + mesh.p[neighbour].valence - 2
                        > mesh.max_valence):
                    continue

                # nor if it would strip the vertex of every facet
                if self.merged_valence(mesh, vertex, neighbour) < 1:
                    continue

                if not self.check_move_safe(mesh, neighbour, vertex):
                    continue

                return neighbour

        return None

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def merge_edge(self, mesh: Mesh, start: int, end: int) -> int:
        """
        Merge an edge by moving every facet on ``end`` to ``start``.

        Facets already on ``start`` would become degenerate and are
        removed instead. Removals happen before moves so ``start`` never
        holds more facets than it will once the merge is done.

        Returns:
            Number of facets removed
        """
        if mesh.dump is not None:
            mesh.dump.dump(mesh, start, end, removing=True)

        handles = list(mesh.p[end].facets)
        shared = [h for h in handles if h in mesh.p[start]]
        moving = [h for h in handles if h not in mesh.p[start]]

        removed = 0
        for handle in shared:
            mesh.remove_facet(mesh.facet(handle))
            removed += 1

        for handle in moving:
            mesh.move_facet_corner(mesh.facet(handle), end, start)

        leftover = list(mesh.p[end].facets)
        if leftover:
            logger.error("vertex %d kept %d facets after merge into %d, removing them",
                         end, len(leftover), start)
            for handle in leftover:
                mesh.remove_facet(mesh.facet(handle))
                removed += 1

        if mesh.dump is not None:
            mesh.dump.dump(mesh, start, end, removing=False)

        logger.debug("merged vertex %d into %d, removed %d facets", end, start, removed)
        self._collapse_history.append({
            'start': start,
            'end': end,
            'removed': removed,
        })

        return removed

    def _try_merge(self, mesh: Mesh, vertex: int) -> bool:
        if not self.is_candidate(mesh, vertex):
            return False

        target = self.find_merge_target(mesh, vertex)
        if target is None:
            return False

        self.merge_edge(mesh, vertex, target)
        return True

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def simplify(self, mesh: Mesh,
                 complexity: Optional[int] = None) -> Optional[SimplifyResult]:
        """
        Simplify a mesh in place.

        Args:
            mesh: Mesh to simplify; indexed first if it is still soup
            complexity: Deduplication filter sizing used when indexing;
                defaults to the mesh's own

        Returns:
            Counts for the pass and any structural anomalies left behind,
            or None if the soup could not be indexed
        """
        # ensure index tables are up to date
        if not mesh.is_indexed and mesh.build_index(complexity) is None:
            logger.error("mesh could not be indexed, nothing simplified")
            return None

        result = SimplifyResult(initial_facets=mesh.fcount,
                                final_facets=mesh.fcount,
                                vertices=mesh.pcount)
        history_start = len(self._collapse_history)

        if mesh.dump is not None:
            mesh.dump.begin_simplify(mesh)

        result.merges = run_cursor(mesh.pcount,
                                   lambda vertex: self._try_merge(mesh, vertex))

        if mesh.dump is not None:
            mesh.dump.end_simplify()

        result.final_facets = mesh.fcount
        result.removed_facets = sum(
            record['removed'] for record in self._collapse_history[history_start:])
        result.anomalies = verify_mesh(mesh)

        logger.info("Simplification complete: %d -> %d facets, %d merges",
                    result.initial_facets, result.final_facets, result.merges)

        return result

    def get_collapse_history(self) -> List[Dict[str, int]]:
        """Get the history of edge merges performed."""
        return self._collapse_history.copy()


def simplify_mesh(mesh: Mesh, complexity: Optional[int] = None,
                  preserve_boundaries: bool = False) -> Optional[SimplifyResult]:
    """Simplify ``mesh`` in place with a fresh ``MeshSimplifier``."""
    return MeshSimplifier(preserve_boundaries=preserve_boundaries).simplify(mesh, complexity)
