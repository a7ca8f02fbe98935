"""
Flat-Region Mesh Simplification
===============================

Turns a triangle soup into an indexed mesh, deduplicating shared corners
with a Bloom-filter-assisted point index, then removes vertices that lie
in flat regions by edge collapse without changing the visible shape.
"""

from .mesh import Mesh, Facet, Vertex, MeshError, ValenceError, FACETPNT_CNT
from .point_index import PointIndex, BloomFilter, DedupStats, DEFAULT_COMPLEXITY
from .simplify import MeshSimplifier, SimplifyResult, simplify_mesh, run_cursor
from .evaluation import MeshEvaluator, verify_mesh
from .generators import GridConfig, Finish, build_from_grid

__version__ = "1.0.0"
__all__ = [
    "Mesh", "Facet", "Vertex", "MeshError", "ValenceError", "FACETPNT_CNT",
    "PointIndex", "BloomFilter", "DedupStats", "DEFAULT_COMPLEXITY",
    "MeshSimplifier", "SimplifyResult", "simplify_mesh", "run_cursor",
    "MeshEvaluator", "verify_mesh",
    "GridConfig", "Finish", "build_from_grid",
]
