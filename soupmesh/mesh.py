"""
Indexed Mesh Store
==================

Owns the facets and vertices of a surface mesh.

A mesh starts life as a triangle soup: facets appended one at a time with
their corner coordinates spelled out. ``build_index`` then collapses
repeated coordinates into shared vertices, after which the mesh can be
simplified in place.

Facets live in a dense array; the first ``fcount`` entries are live.
Removal moves the last live facet into the freed slot, so a facet's
position (``slot``) is not stable. Vertices refer to facets by ``handle``,
which never changes for the lifetime of the facet.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from .debug_dump import SvgDump
from .geometry import as_point, facet_normal, is_zero
from .point_index import DEFAULT_COMPLEXITY, DedupStats, PointIndex


logger = logging.getLogger(__name__)

# Maximum number of facets incident on a single vertex
FACETPNT_CNT = 32

# Facet array capacity grows by this many entries at a time
FACET_ALLOC_CHUNK = 1000


class MeshError(Exception):
    """Raised when the mesh is used out of order."""


class ValenceError(MeshError):
    """Raised when a vertex would exceed its facet bound."""


class Facet:
    """
    A triangle.

    Attributes:
        v: (3, 3) corner coordinates, kept in sync with the vertices
        i: Corner vertex indices (-1 until the mesh is indexed)
        n: Cached unnormalized normal; the zero vector iff degenerate
        handle: Stable identity
        slot: Current position in the mesh's dense facet array
    """

    __slots__ = ("v", "i", "n", "handle", "slot")

    def __init__(self, corners: np.ndarray, handle: int, slot: int):
        self.v = corners
        self.i = [-1, -1, -1]
        self.n, _ = facet_normal(corners[0], corners[1], corners[2])
        self.handle = handle
        self.slot = slot

    def corner_of(self, vertex: int) -> Optional[int]:
        """Which of the three corners references ``vertex``, if any."""
        for corner in range(3):
            if self.i[corner] == vertex:
                return corner
        return None

    def recompute_normal(self) -> bool:
        """Refresh the cached normal; returns True if now degenerate."""
        self.n, degenerate = facet_normal(self.v[0], self.v[1], self.v[2])
        return degenerate

    def __repr__(self):
        return f"Facet(handle={self.handle}, slot={self.slot}, i={self.i})"


class Vertex:
    """A unique point plus the handles of every facet touching it."""

    __slots__ = ("pnt", "facets", "max_valence")

    def __init__(self, pnt: np.ndarray, max_valence: int = FACETPNT_CNT):
        self.pnt = pnt
        self.facets: List[int] = []
        self.max_valence = max_valence

    @property
    def valence(self) -> int:
        return len(self.facets)

    def attach(self, handle: int):
        """Record an incident facet; refuses to grow past the bound."""
        if len(self.facets) >= self.max_valence:
            raise ValenceError(
                "vertex at (%g, %g, %g) already has %d facets"
                % (self.pnt[0], self.pnt[1], self.pnt[2], self.max_valence))
        self.facets.append(handle)

    def detach(self, handle: int) -> bool:
        """Forget an incident facet, keeping the order of the rest."""
        try:
            self.facets.remove(handle)
        except ValueError:
            return False
        return True

    def __contains__(self, handle: int) -> bool:
        return handle in self.facets

    def __repr__(self):
        return f"Vertex(pnt={tuple(self.pnt)}, valence={self.valence})"


class Mesh:
    """
    Triangle mesh that is built as soup, indexed once, then simplified.

    Usable as a context manager; leaving the block closes any debug dump.
    """

    def __init__(self, max_valence: int = FACETPNT_CNT,
                 dump_path: Optional[str] = None,
                 complexity: int = DEFAULT_COMPLEXITY):
        """
        Create an empty mesh.

        Args:
            max_valence: Bound on the number of facets per vertex
            dump_path: Optional path of an HTML debug dump to write
            complexity: Deduplication filter sizing used when indexing
                without an explicit value
        """
        if max_valence < 3:
            raise ValueError("max_valence must be at least 3")
        if complexity < 1:
            raise ValueError("complexity must be at least 1")

        self.max_valence = max_valence
        self.complexity = complexity

        self._facets: List[Optional[Facet]] = []
        self.fcount = 0
        self._by_handle: Dict[int, Facet] = {}
        self._next_handle = 0

        self.p: List[Vertex] = []
        self._indexed = False
        self.dedup_stats: Optional[DedupStats] = None

        self.dump: Optional[SvgDump] = None
        if dump_path is not None:
            self.open_dump(dump_path)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def falloc(self) -> int:
        """Allocated facet capacity."""
        return len(self._facets)

    @property
    def pcount(self) -> int:
        return len(self.p)

    @property
    def is_indexed(self) -> bool:
        return self._indexed

    @property
    def facets(self) -> List[Facet]:
        """Snapshot of the live facets in array order."""
        return self._facets[:self.fcount]

    @property
    def vertices(self) -> List[Vertex]:
        return self.p

    def facet_at(self, slot: int) -> Facet:
        if not 0 <= slot < self.fcount:
            raise IndexError(f"facet slot {slot} out of range")
        return self._facets[slot]

    def facet(self, handle: int) -> Facet:
        """Resolve a stable handle to its live facet."""
        return self._by_handle[handle]

    def incident(self, vertex: int) -> List[Facet]:
        """Live facets on a vertex, in incidence order."""
        return [self._by_handle[h] for h in self.p[vertex].facets]

    def faces_array(self) -> np.ndarray:
        """(fcount, 3) corner indices of the live facets."""
        if self.fcount == 0:
            return np.zeros((0, 3), dtype=int)
        return np.array([f.i for f in self.facets], dtype=int)

    def vertices_array(self) -> np.ndarray:
        """(pcount, 3) vertex coordinates, dead slots included."""
        if not self.p:
            return np.zeros((0, 3))
        return np.array([v.pnt for v in self.p])

    def triangles(self) -> np.ndarray:
        """(fcount, 3, 3) corner coordinates of the live facets."""
        if self.fcount == 0:
            return np.zeros((0, 3, 3))
        return np.array([f.v for f in self.facets])

    # ------------------------------------------------------------------
    # Soup construction
    # ------------------------------------------------------------------

    def append_facet(self,
                     vx0: float, vy0: float, vz0: float,
                     vx1: float, vy1: float, vz1: float,
                     vx2: float, vy2: float, vz2: float) -> bool:
        """
        Append a triangle to the soup.

        Degenerate triangles are not added.

        Returns:
            True if the triangle was degenerate (and therefore dropped)
        """
        if self._indexed:
            raise MeshError("cannot append facets to an indexed mesh")

        corners = np.array([
            as_point(vx0, vy0, vz0),
            as_point(vx1, vy1, vz1),
            as_point(vx2, vy2, vz2),
        ])

        facet = Facet(corners, self._next_handle, self.fcount)
        if is_zero(facet.n):
            return True

        if self.fcount + 1 > len(self._facets):
            # array needs extending
            self._facets.extend([None] * FACET_ALLOC_CHUNK)

        self._facets[self.fcount] = facet
        self._by_handle[facet.handle] = facet
        self._next_handle += 1
        self.fcount += 1

        return False

    def append_triangle(self, v0, v1, v2) -> bool:
        """Same as ``append_facet`` with the corners given as 3-sequences."""
        return self.append_facet(*v0, *v1, *v2)

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def build_index(self, complexity: Optional[int] = None) -> Optional[DedupStats]:
        """
        Turn the soup into an indexed mesh.

        Every corner coordinate is resolved to a shared vertex, and each
        facet is recorded on its three vertices. Nothing is committed until
        every vertex is known to fit within ``max_valence``.

        Args:
            complexity: Deduplication filter sizing factor; defaults to the
                mesh's own ``complexity``

        Returns:
            Deduplication statistics for this run, or None if some vertex
            would exceed the valence bound (the mesh is left as soup)
        """
        if self._indexed:
            raise MeshError("mesh is already indexed")

        if complexity is None:
            complexity = self.complexity

        index = PointIndex(self.fcount, complexity)
        corners: List[List[int]] = []
        valence: List[int] = []

        for facet in self.facets:
            slots = []
            for corner in range(3):
                vidx = index.lookup_or_add(facet.v[corner])
                if vidx == len(valence):
                    valence.append(0)
                valence[vidx] += 1
                slots.append(vidx)
            corners.append(slots)

        crowded = [vidx for vidx, count in enumerate(valence) if count > self.max_valence]
        if crowded:
            pnt = index.points[crowded[0]]
            logger.error("cannot index mesh: %d vertices exceed %d facets, "
                         "first at (%g, %g, %g) with %d",
                         len(crowded), self.max_valence,
                         pnt[0], pnt[1], pnt[2], valence[crowded[0]])
            return None

        self.p = [Vertex(pnt.copy(), self.max_valence) for pnt in index.points]
        for facet, slots in zip(self.facets, corners):
            for corner, vidx in enumerate(slots):
                facet.i[corner] = vidx
                facet.v[corner] = self.p[vidx].pnt
                self.p[vidx].attach(facet.handle)

        self._indexed = True
        self.dedup_stats = index.stats
        self._log_index_stats(index.stats)

        return index.stats

    def _log_index_stats(self, stats: DedupStats):
        logger.info("bloom saved %d (%.0f%%) of %d linear searches",
                    stats.saved, stats.saved_percent, stats.lookups)
        logger.info("bloom failed to stop %d (%.0f%%) linear searches out of %d",
                    stats.false_positives, stats.false_positive_percent,
                    stats.scans)
        logger.info("Average linear search cost %.1f", stats.average_scan_cost)
        logger.info("final number of vertices indexed %d", self.pcount)

    # ------------------------------------------------------------------
    # Topology edits
    # ------------------------------------------------------------------

    def remove_facet(self, facet: Facet) -> bool:
        """
        Remove a live facet.

        The last live facet is moved into the freed slot. Handles held by
        vertices stay valid; only the moved facet's ``slot`` changes.

        Returns:
            False if the facet was not live or was missing from one of its
            vertices' incidence lists
        """
        if not (0 <= facet.slot < self.fcount and self._facets[facet.slot] is facet):
            logger.error("facet %d is not live, cannot remove", facet.handle)
            return False

        ok = True
        if self._indexed:
            for vidx in facet.i:
                if not self.p[vidx].detach(facet.handle):
                    logger.error("failed to remove facet %d from vertex %d",
                                 facet.handle, vidx)
                    ok = False

        self.fcount -= 1
        last = self._facets[self.fcount]
        if last is not facet:
            self._facets[facet.slot] = last
            last.slot = facet.slot
        self._facets[self.fcount] = None

        del self._by_handle[facet.handle]
        facet.slot = -1

        return ok

    def move_facet_corner(self, facet: Facet, from_vertex: int, to_vertex: int) -> bool:
        """
        Retarget the corner of ``facet`` on ``from_vertex`` to ``to_vertex``.

        Returns:
            False if ``from_vertex`` was not a corner, if ``to_vertex`` is
            full, if the facet could not be detached from ``from_vertex``,
            or if the moved facet is degenerate
        """
        corner = facet.corner_of(from_vertex)
        if corner is None:
            logger.error("none of facet %d's vertices are vertex %d",
                         facet.handle, from_vertex)
            return False

        try:
            self.p[to_vertex].attach(facet.handle)
        except ValenceError as e:
            logger.error("cannot move facet %d: %s", facet.handle, e)
            return False

        facet.i[corner] = to_vertex
        facet.v[corner] = self.p[to_vertex].pnt

        if not self.p[from_vertex].detach(facet.handle):
            logger.error("failed to remove facet %d from vertex %d",
                         facet.handle, from_vertex)
            return False

        if facet.recompute_normal():
            logger.warning("Degenerate facet %d on vertex move", facet.slot)
            return False

        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open_dump(self, path: str):
        """Start writing an HTML debug dump of simplification."""
        if self.dump is not None:
            self.dump.close(self)
        self.dump = SvgDump(path)

    def close(self):
        """Finish any debug dump and release the geometry."""
        if self.dump is not None:
            self.dump.close(self)
            self.dump = None

        self._facets = []
        self._by_handle = {}
        self.fcount = 0
        self.p = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def __repr__(self):
        return (f"Mesh(fcount={self.fcount}, pcount={self.pcount}, "
                f"indexed={self._indexed})")
