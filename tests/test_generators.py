from collections import Counter

import numpy as np
import pytest

import soupmesh.mesh as mesh_module
from soupmesh.generators import (
    FACE_ALL, FACE_XMAX, FACE_XMIN, FACE_YMAX, FACE_YMIN, FACE_ZMAX, FACE_ZMIN,
    Finish, GridConfig, build_from_grid, cube_generator, is_solid, occupancy_faces,
    select_generator,
)
from soupmesh.mesh import Mesh
from soupmesh.utils import create_voxel_grid


def outward(mesh, centres):
    """Every facet's normal points away from the nearest cube centre."""
    for facet in mesh.facets:
        centroid = facet.v.mean(axis=0)
        centre = min(centres, key=lambda c: np.linalg.norm(centroid - c))
        if np.dot(facet.n, centroid - centre) <= 0:
            return False
    return True


def test_single_cube_is_closed_and_outward():
    mesh = Mesh()
    cube_generator(mesh, 0, 0, 0, 1, 1, 1, FACE_ALL)

    assert mesh.fcount == 12
    assert outward(mesh, [np.array([0.5, 0.5, 0.5])])

    mesh.build_index()
    assert mesh.pcount == 8


def test_face_bits_select_faces():
    mesh = Mesh()
    cube_generator(mesh, 0, 0, 0, 2, 3, 4, FACE_ZMAX | FACE_XMIN)

    assert mesh.fcount == 4
    normals = {tuple(np.sign(f.n)) for f in mesh.facets}
    assert normals == {(0, 0, 1), (-1, 0, 0)}


def test_single_cell_grid():
    mesh = Mesh()
    assert build_from_grid(mesh, [[1]], GridConfig())
    assert mesh.fcount == 12


def test_neighbouring_cells_hide_shared_face():
    mesh = Mesh()
    build_from_grid(mesh, [[1, 1]], GridConfig())
    assert mesh.fcount == 20


def test_grid_rows_run_down_the_y_axis():
    grid = np.array([[1], [1]])
    config = GridConfig()

    # row 1 sits below row 0, so it is row 0's -y neighbour
    assert occupancy_faces(grid, 0, 0, 0, config) & FACE_YMIN == 0
    assert occupancy_faces(grid, 0, 0, 0, config) & FACE_YMAX
    assert occupancy_faces(grid, 0, 1, 0, config) & FACE_YMAX == 0

    mesh = Mesh()
    build_from_grid(mesh, grid, config)
    points = mesh.triangles().reshape(-1, 3)
    assert points[:, 1].min() == -1
    assert points[:, 1].max() == 1


def test_levels_follow_intensity():
    grid = np.array([[1.0, 0.5]])
    config = GridConfig(levels=2)

    assert is_solid(grid, 0, 0, 1, config)
    assert is_solid(grid, 1, 0, 0, config)
    assert not is_solid(grid, 1, 0, 1, config)
    assert not is_solid(grid, 2, 0, 0, config)

    mesh = Mesh()
    build_from_grid(mesh, grid, config)
    # three cubes in an L, each hiding the faces they share
    assert mesh.fcount == 2 * (4 + 5 + 5)


def test_empty_cells_have_no_faces():
    grid = np.zeros((2, 2))
    assert occupancy_faces(grid, 0, 0, 0, GridConfig()) == 0

    mesh = Mesh()
    build_from_grid(mesh, grid, GridConfig())
    assert mesh.fcount == 0


def test_grid_must_be_2d():
    with pytest.raises(ValueError):
        build_from_grid(Mesh(), np.ones((2, 2, 2)), GridConfig())


def test_config_validation():
    with pytest.raises(ValueError):
        GridConfig(levels=0)
    with pytest.raises(ValueError):
        GridConfig(complexity=0)


def test_generator_selection():
    def smooth(mesh, x, y, z, w, h, d, faces):
        pass

    assert select_generator(GridConfig(finish=Finish.BLOCKY)) is cube_generator
    assert select_generator(GridConfig(finish=Finish.SMOOTH, levels=3)) is cube_generator
    assert select_generator(GridConfig(finish=Finish.SMOOTH), smooth) is smooth

    with pytest.raises(ValueError):
        select_generator(GridConfig(finish=Finish.SMOOTH))


def test_custom_face_source():
    seen = []

    def top_only(grid, x, y, z, config):
        seen.append((x, y, z))
        return FACE_ZMAX if grid[y, x] else 0

    mesh = Mesh()
    build_from_grid(mesh, [[1, 0], [1, 1]], GridConfig(), face_source=top_only)

    assert len(seen) == 4
    assert mesh.fcount == 6


@pytest.mark.parametrize("kind", ["slab", "ring", "disc"])
def test_sample_grids_build_closed_solids(kind):
    mesh = Mesh()
    build_from_grid(mesh, create_voxel_grid(kind, 6), GridConfig())
    mesh.build_index()

    edges = Counter()
    for i0, i1, i2 in mesh.faces_array():
        for a, b in ((i0, i1), (i1, i2), (i2, i0)):
            edges[(min(a, b), max(a, b))] += 1

    assert edges
    assert set(edges.values()) == {2}


def test_face_bits_are_distinct():
    bits = [FACE_XMIN, FACE_XMAX, FACE_YMIN, FACE_YMAX, FACE_ZMIN, FACE_ZMAX]
    assert len(set(bits)) == 6
    assert sum(bits) == FACE_ALL


def test_grid_complexity_sizes_the_index(monkeypatch):
    seen = []
    real = mesh_module.PointIndex

    def recording(expected_points, complexity):
        seen.append(complexity)
        return real(expected_points, complexity)

    monkeypatch.setattr(mesh_module, "PointIndex", recording)

    mesh = Mesh()
    build_from_grid(mesh, [[1, 1]], GridConfig(complexity=4))
    assert mesh.complexity == 4

    mesh.build_index()
    assert seen == [4]
