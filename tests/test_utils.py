import logging

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pytest
import trimesh

from soupmesh.logging_config import setup_logging
from soupmesh.mesh import Mesh
from soupmesh.simplify import MeshSimplifier
from soupmesh.utils import (
    create_plane_soup, create_voxel_grid, get_mesh_info, load_soup, soup_from_trimesh,
    to_trimesh,
)
from soupmesh.visualization import MeshVisualizer


def test_to_trimesh_drops_dead_vertices(square):
    MeshSimplifier().simplify(square)

    tm = to_trimesh(square)

    assert len(tm.faces) == 1
    assert len(tm.vertices) == 3
    assert tm.area == pytest.approx(0.5)


def test_to_trimesh_of_soup():
    tm = to_trimesh(create_plane_soup(1, 2))

    assert len(tm.faces) == 4
    assert len(tm.vertices) == 12


def test_box_has_nothing_to_simplify():
    mesh = soup_from_trimesh(trimesh.creation.box())
    assert mesh.fcount == 12

    result = MeshSimplifier().simplify(mesh)

    assert mesh.pcount == 8
    assert result.merges == 0
    assert result.final_facets == 12


def test_load_soup_from_file(tmp_path):
    path = tmp_path / "box.stl"
    trimesh.creation.box(extents=(2, 2, 2)).export(str(path))

    mesh = load_soup(str(path))
    mesh.build_index()

    assert mesh.fcount == 12
    assert mesh.pcount == 8


def test_sample_grids():
    assert create_voxel_grid("slab", 4).sum() == 16
    ring = create_voxel_grid("ring", 6)
    assert ring[0, 0] == 1 and ring[3, 3] == 0
    steps = create_voxel_grid("steps", 4)
    assert steps[0, -1] == 1.0 and steps[0, 0] == pytest.approx(0.25)
    disc = create_voxel_grid("disc", 8)
    assert disc[4, 4] == 1 and disc[0, 0] == 0

    with pytest.raises(ValueError):
        create_voxel_grid("torus")


def test_mesh_info(square):
    info = get_mesh_info(square)

    assert info['facets'] == 2
    assert info['indexed']
    assert info['vertices'] == 4
    assert info['live_vertices'] == 4
    assert info['max_valence'] == 2
    assert info['area'] == pytest.approx(1.0)
    assert info['bounds'] == [[0, 0, 0], [1, 1, 0]]
    assert 'dedup_saved_percent' in info


def test_mesh_info_empty():
    info = get_mesh_info(Mesh())
    assert info['bounds'] is None
    assert info['area'] == 0.0


def test_plots_are_saved(tmp_path, plane):
    original = to_trimesh(plane)
    result = MeshSimplifier().simplify(plane)
    simplified = to_trimesh(plane)
    visualizer = MeshVisualizer(figsize=(8, 4))

    comparison = tmp_path / "comparison.png"
    fig = visualizer.plot_mesh_comparison(original, simplified, save_path=str(comparison))
    plt.close(fig)

    stats = tmp_path / "stats.png"
    fig = visualizer.plot_statistics(result, live_vertices=len(simplified.vertices),
                                     save_path=str(stats))
    plt.close(fig)

    assert comparison.stat().st_size > 0
    assert stats.stat().st_size > 0


def test_face_colors_are_shaded():
    triangles = np.array([
        [[0, 0, 0], [1, 0, 0], [0, 1, 0]],
        [[0, 0, 0], [0, 1, 0], [1, 0, 0]],
    ], dtype=float)

    colors = MeshVisualizer()._compute_face_colors(triangles)

    assert colors.shape == (2, 4)
    assert colors[0, 2] > colors[1, 2]
    assert np.all(colors[:, 3] == 1.0)


def test_setup_logging_replaces_handlers(tmp_path):
    log_file = tmp_path / "run.log"
    try:
        logger = setup_logging(logging.DEBUG)
        logger = setup_logging(logging.DEBUG, log_file=str(log_file))
        assert len(logger.handlers) == 2
        assert logger.level == logging.DEBUG

        logging.getLogger("soupmesh.mesh").info("indexed")
        for handler in logger.handlers:
            handler.flush()
        assert "soupmesh.mesh - INFO - indexed" in log_file.read_text(encoding="utf-8")
    finally:
        logger = logging.getLogger("soupmesh")
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
