"""
Utility Functions
=================

trimesh interop, sample soups and mesh summaries.
"""

from typing import Optional

import numpy as np
import trimesh

from .mesh import Mesh


def to_trimesh(mesh: Mesh) -> trimesh.Trimesh:
    """
    Convert an indexed mesh to a trimesh object.

    Only live facets are kept and vertices no facet references are
    dropped. trimesh processing is disabled so nothing gets merged behind
    our back.
    """
    if not mesh.is_indexed:
        # soup: every facet brings its own corners
        triangles = mesh.triangles()
        vertices = triangles.reshape(-1, 3)
        faces = np.arange(len(vertices)).reshape(-1, 3)
        return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)

    faces = mesh.faces_array()
    used = np.unique(faces) if len(faces) else np.zeros(0, dtype=int)

    remap = np.full(mesh.pcount, -1, dtype=int)
    remap[used] = np.arange(len(used))

    vertices = mesh.vertices_array()[used] if len(used) else np.zeros((0, 3))
    faces = remap[faces] if len(faces) else np.zeros((0, 3), dtype=int)

    return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)


def soup_from_trimesh(tm: trimesh.Trimesh, mesh: Optional[Mesh] = None) -> Mesh:
    """
    Append every triangle of a trimesh to a soup mesh.

    Degenerate triangles are dropped by ``Mesh.append_facet``.
    """
    if mesh is None:
        mesh = Mesh()

    for tri in tm.triangles:
        mesh.append_triangle(tri[0], tri[1], tri[2])

    return mesh


def load_soup(path: str, mesh: Optional[Mesh] = None) -> Mesh:
    """
    Load a model file as triangle soup.

    Supports: OBJ, PLY, STL, OFF, and other formats supported by trimesh.
    """
    tm = trimesh.load(path, force='mesh')

    if isinstance(tm, trimesh.Scene):
        meshes = [g for g in tm.geometry.values() if isinstance(g, trimesh.Trimesh)]
        if not meshes:
            raise ValueError("No valid meshes found in file")
        tm = trimesh.util.concatenate(meshes)

    return soup_from_trimesh(tm, mesh)


def create_plane_soup(rows: int = 4, cols: int = 4, mesh: Optional[Mesh] = None) -> Mesh:
    """
    Flat open grid of unit squares in the z = 0 plane, two triangles each.

    Args:
        rows: Number of squares along y
        cols: Number of squares along x
    """
    if mesh is None:
        mesh = Mesh()

    for i in range(rows):
        for j in range(cols):
            v00 = (j, i, 0)
            v10 = (j + 1, i, 0)
            v11 = (j + 1, i + 1, 0)
            v01 = (j, i + 1, 0)
            mesh.append_triangle(v00, v10, v11)
            mesh.append_triangle(v00, v11, v01)

    return mesh


def create_voxel_grid(kind: str = "slab", size: int = 8) -> np.ndarray:
    """
    Create a sample intensity grid for ``build_from_grid``.

    Args:
        kind: Type of grid to create:
            - "slab": Solid square
            - "ring": Square with a hole in the middle
            - "steps": Ramp of intensities, for multi-level builds
            - "disc": Filled circle
        size: Edge length in cells
    """
    if kind == "slab":
        grid = np.ones((size, size))
    elif kind == "ring":
        grid = np.ones((size, size))
        lo, hi = size // 3, size - size // 3
        grid[lo:hi, lo:hi] = 0.0
    elif kind == "steps":
        grid = np.tile(np.linspace(1.0 / size, 1.0, size), (size, 1))
    elif kind == "disc":
        yy, xx = np.mgrid[0:size, 0:size]
        centre = (size - 1) / 2
        grid = (((xx - centre) ** 2 + (yy - centre) ** 2) <= (size / 2) ** 2).astype(float)
    else:
        raise ValueError(f"Unknown grid kind: {kind}")

    return grid


def get_mesh_info(mesh: Mesh) -> dict:
    """
    Get comprehensive information about a mesh.

    Returns:
        Dictionary of mesh properties
    """
    info = {
        'facets': mesh.fcount,
        'indexed': mesh.is_indexed,
        'vertices': mesh.pcount,
        'live_vertices': sum(1 for v in mesh.p if v.valence > 0),
        'max_valence': max((v.valence for v in mesh.p), default=0),
    }

    triangles = mesh.triangles()
    if len(triangles):
        points = triangles.reshape(-1, 3)
        info['bounds'] = [points.min(axis=0).tolist(), points.max(axis=0).tolist()]
        normals = np.cross(triangles[:, 1] - triangles[:, 0], triangles[:, 2] - triangles[:, 0])
        info['area'] = float(0.5 * np.linalg.norm(normals, axis=1).sum())
    else:
        info['bounds'] = None
        info['area'] = 0.0

    if mesh.dedup_stats is not None:
        info['dedup_saved_percent'] = mesh.dedup_stats.saved_percent
        info['dedup_false_positives'] = mesh.dedup_stats.false_positives

    return info


def print_mesh_info(mesh: Mesh, name: str = "Mesh"):
    """
    Print mesh information to console.

    Args:
        mesh: Input mesh
        name: Name to display
    """
    info = get_mesh_info(mesh)

    print(f"\n{name} Information:")
    print("-" * 40)
    print(f"  Facets:          {info['facets']}")
    print(f"  Indexed:         {info['indexed']}")
    print(f"  Vertices:        {info['vertices']} ({info['live_vertices']} live)")
    print(f"  Max Valence:     {info['max_valence']}")
    print(f"  Surface Area:    {info['area']:.4f}")
    print(f"  Bounds:          {info['bounds']}")
    if 'dedup_saved_percent' in info:
        print(f"  Scans Avoided:   {info['dedup_saved_percent']:.1f}%")
        print(f"  False Positives: {info['dedup_false_positives']}")
