"""
Grid Driver
===========

Builds a triangle soup from a 2D intensity grid by asking a face source
which cube faces are exposed at each cell and level, then handing the
cell to a mesh generator that appends the triangles.

Grid convention: ``grid[y, x]`` is an intensity in [0, 1] (booleans are
fine). With ``levels`` layers, cell (x, y, z) is solid when
``grid[y, x] * levels > z``. Row ``y`` is placed at world ``-y`` so the
image is not mirrored.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from .mesh import Mesh
from .point_index import DEFAULT_COMPLEXITY


logger = logging.getLogger(__name__)

# Cube face bits
FACE_XMIN = 1 << 0
FACE_XMAX = 1 << 1
FACE_YMIN = 1 << 2
FACE_YMAX = 1 << 3
FACE_ZMIN = 1 << 4
FACE_ZMAX = 1 << 5
FACE_ALL = 0x3f


class Finish(Enum):
    SMOOTH = "smooth"
    BLOCKY = "blocky"


@dataclass
class GridConfig:
    """Options for turning a grid into soup."""
    finish: Finish = Finish.BLOCKY
    levels: int = 1
    complexity: int = DEFAULT_COMPLEXITY

    def __post_init__(self):
        if self.levels < 1:
            raise ValueError("levels must be at least 1")
        if self.complexity < 1:
            raise ValueError("complexity must be at least 1")


FaceSource = Callable[[np.ndarray, int, int, int, GridConfig], int]
MeshGenerator = Callable[[Mesh, float, float, float, float, float, float, int], None]


def is_solid(grid: np.ndarray, x: int, y: int, z: int, config: GridConfig) -> bool:
    """Is cell (x, y, z) inside the solid; anything off the grid is empty."""
    height, width = grid.shape
    if not (0 <= x < width and 0 <= y < height and 0 <= z < config.levels):
        return False
    return float(grid[y, x]) * config.levels > z


def occupancy_faces(grid: np.ndarray, x: int, y: int, z: int, config: GridConfig) -> int:
    """
    Bitmask of the faces of cell (x, y, z) that border empty space.

    World +y is grid row ``y - 1`` because rows are laid out at ``-y``.
    """
    if not is_solid(grid, x, y, z, config):
        return 0

    faces = 0
    if not is_solid(grid, x - 1, y, z, config):
        faces |= FACE_XMIN
    if not is_solid(grid, x + 1, y, z, config):
        faces |= FACE_XMAX
    if not is_solid(grid, x, y + 1, z, config):
        faces |= FACE_YMIN
    if not is_solid(grid, x, y - 1, z, config):
        faces |= FACE_YMAX
    if not is_solid(grid, x, y, z - 1, config):
        faces |= FACE_ZMIN
    if not is_solid(grid, x, y, z + 1, config):
        faces |= FACE_ZMAX

    return faces


def cube_generator(mesh: Mesh, x: float, y: float, z: float,
                   w: float, h: float, d: float, faces: int):
    """
    Append the selected faces of an axis-aligned box, two triangles each.

    All triangles wind counter-clockwise seen from outside the box.
    """
    def c(i, j, k):
        return (x + i * w, y + j * h, z + k * d)

    quads = (
        (FACE_XMIN, (c(0, 0, 0), c(0, 0, 1), c(0, 1, 1), c(0, 1, 0))),
        (FACE_XMAX, (c(1, 0, 0), c(1, 1, 0), c(1, 1, 1), c(1, 0, 1))),
        (FACE_YMIN, (c(0, 0, 0), c(1, 0, 0), c(1, 0, 1), c(0, 0, 1))),
        (FACE_YMAX, (c(0, 1, 0), c(0, 1, 1), c(1, 1, 1), c(1, 1, 0))),
        (FACE_ZMIN, (c(0, 0, 0), c(0, 1, 0), c(1, 1, 0), c(1, 0, 0))),
        (FACE_ZMAX, (c(0, 0, 1), c(1, 0, 1), c(1, 1, 1), c(0, 1, 1))),
    )

    for bit, (q0, q1, q2, q3) in quads:
        if faces & bit:
            mesh.append_triangle(q0, q1, q2)
            mesh.append_triangle(q0, q2, q3)


def select_generator(config: GridConfig,
                     smooth: Optional[MeshGenerator] = None) -> MeshGenerator:
    """
    Pick the generator for a configuration.

    A smooth finish only applies to a single level; every other
    combination is built from cubes.
    """
    if config.finish == Finish.SMOOTH and config.levels == 1:
        if smooth is None:
            raise ValueError("smooth finish requires a smooth mesh generator")
        return smooth
    return cube_generator


def build_from_grid(mesh: Mesh, grid, config: GridConfig,
                    face_source: FaceSource = occupancy_faces,
                    smooth: Optional[MeshGenerator] = None) -> bool:
    """
    Fill ``mesh`` with the soup for every cell of ``grid``.

    Args:
        mesh: Mesh to append to (must not be indexed yet)
        grid: 2D array of intensities, indexed [y, x]
        config: Grid options; its complexity becomes the mesh's default
            for indexing
        face_source: Returns the face bitmask of a cell
        smooth: Generator used for a single-level smooth finish

    Returns:
        True once every cell has been visited
    """
    grid = np.asarray(grid)
    if grid.ndim != 2:
        raise ValueError(f"grid must be 2D, got shape {grid.shape}")

    generator = select_generator(config, smooth)
    height, width = grid.shape
    mesh.complexity = config.complexity

    for z in range(config.levels):
        for y in range(height):
            for x in range(width):
                faces = face_source(grid, x, y, z, config)
                generator(mesh, x, -float(y), z, 1, 1, 1, faces)

    logger.info("built %d facets from %dx%d grid with %d levels",
                mesh.fcount, width, height, config.levels)
    return True
