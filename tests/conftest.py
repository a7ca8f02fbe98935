from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure repo root is importable when running pytest from any CWD.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from soupmesh.mesh import Mesh  # noqa: E402
from soupmesh.utils import create_plane_soup  # noqa: E402


def _check_incidence(mesh: Mesh):
    """Assert the vertex/facet back-references agree in both directions."""
    for slot, facet in enumerate(mesh.facets):
        assert facet.slot == slot
        assert mesh.facet(facet.handle) is facet
        for vidx in facet.i:
            assert facet.handle in mesh.p[vidx]

    for vidx, vertex in enumerate(mesh.p):
        assert len(set(vertex.facets)) == len(vertex.facets)
        for handle in vertex.facets:
            facet = mesh.facet(handle)
            assert 0 <= facet.slot < mesh.fcount
            assert mesh.facet_at(facet.slot) is facet
            assert vidx in facet.i


@pytest.fixture
def check_incidence():
    return _check_incidence


@pytest.fixture
def square():
    """Unit square from two triangles sharing the (0,0)-(1,1) diagonal."""
    mesh = create_plane_soup(1, 1)
    mesh.build_index()
    return mesh


@pytest.fixture
def plane():
    mesh = create_plane_soup(3, 3)
    mesh.build_index()
    return mesh
