"""
HTML/SVG debug dump of mesh simplification.

Writes one diagram per edge merge showing every facet that shares the
orientation of the vertex being worked on, the vertex itself and the edge
it is merging along. Purely an aid to following the simplifier by eye.
"""

import logging
from typing import Optional, TextIO, Tuple

import numpy as np

from .geometry import same_orientation


logger = logging.getLogger(__name__)

DUMP_SVG_SIZE = 500


class SvgDump:
    """
    Debug sink owned by a mesh.

    Every method is a no-op once the sink is closed, or when the file
    could not be opened.
    """

    def __init__(self, path: str):
        self.path = path
        self.dumpno = 0
        self._frame: Optional[Tuple[float, float, float]] = None
        self._fh: Optional[TextIO] = None

        try:
            self._fh = open(path, "w", encoding="utf-8")
        except OSError as e:
            logger.error("cannot open debug dump %s: %s", path, e)
            return

        self._fh.write("<html>\n<body>")

    @property
    def active(self) -> bool:
        return self._fh is not None

    def _set_frame(self, mesh):
        """Fit the xy extent of the vertices to the diagram size."""
        points = mesh.vertices_array()
        if len(points) == 0:
            points = mesh.triangles().reshape(-1, 3)
        if len(points) == 0:
            self._frame = (1.0, 0.0, 0.0)
            return

        xmin, ymin = points[:, 0].min(), points[:, 1].min()
        xmax, ymax = points[:, 0].max(), points[:, 1].max()
        extent = max(xmax - xmin, ymax - ymin) or 1.0
        self._frame = (DUMP_SVG_SIZE / extent, float(xmin), float(ymax))

    def _xy(self, mesh, p: np.ndarray) -> Tuple[float, float]:
        if self._frame is None:
            self._set_frame(mesh)
        scale, xmin, ymax = self._frame
        return (p[0] - xmin) * scale, (ymax - p[1]) * scale

    def _write_facets(self, mesh, reference: np.ndarray):
        """Polygons for every live facet oriented like ``reference``."""
        for facet in mesh.facets:
            if not same_orientation(facet.n, reference):
                continue

            corners = [self._xy(mesh, facet.v[c]) for c in range(3)]
            points = " ".join(f"{x:.1f},{y:.1f}" for x, y in corners)
            self._fh.write(
                f'<polygon points="{points}" '
                'style="fill:lime;stroke:black;stroke-width=1"/>\n')

            # label facet at centroid
            cx = sum(x for x, _ in corners) / 3
            cy = sum(y for _, y in corners) / 3
            self._fh.write(
                f'<text x="{cx:.1f}" y="{cy:.1f}" fill="blue">{facet.slot}</text>\n')

    def _open_svg(self):
        self._fh.write(
            f'<svg width="{DUMP_SVG_SIZE}" height="{DUMP_SVG_SIZE}" '
            'xmlns="http://www.w3.org/2000/svg" version="1.1">\n')

    def begin_simplify(self, mesh):
        if not self.active:
            return

        self._set_frame(mesh)
        self._fh.write(
            f"<h2>Mesh Simplify</h2><p>Starting with {mesh.fcount} facets "
            f"and {mesh.pcount} vertexes.\n")
        self._fh.write("<table><tr>\n")

    def dump(self, mesh, start: int, end: int, removing: bool):
        """
        One diagram of the neighbourhood of ``start``.

        Called with ``removing`` before a merge (opens a table row) and
        without it afterwards (closes the row).
        """
        if not self.active:
            return

        v0 = mesh.p[start]

        if removing:
            self._fh.write(
                f"<tr><th>Operation {self.dumpno} Removing {start}->{end}</th>")
            self.dumpno += 1

        self._fh.write("<td>")
        self._open_svg()

        if v0.facets:
            self._write_facets(mesh, mesh.facet(v0.facets[0]).n)

        sx, sy = self._xy(mesh, v0.pnt)
        if removing:
            ex, ey = self._xy(mesh, mesh.p[end].pnt)
            self._fh.write(
                f'<line x1="{sx:.1f}" y1="{sy:.1f}" x2="{ex:.1f}" y2="{ey:.1f}" '
                'style="stroke:red;stroke-width:5"/>\n')
            self._fh.write(
                f'<text x="{ex + 5:.1f}" y="{ey + 5:.1f}" fill="black">{end}</text>\n')

        self._fh.write(f'<circle cx="{sx:.1f}" cy="{sy:.1f}" r="10" fill="blue"/>\n')
        self._fh.write(
            f'<text x="{sx + 10:.1f}" y="{sy + 5:.1f}" fill="black">{start}</text>\n')
        self._fh.write("</svg></td>")

        if not removing:
            self._fh.write("</tr>")

    def end_simplify(self):
        if not self.active:
            return
        self._fh.write("</table>")

    def close(self, mesh):
        """Write the final mesh summary and close the file."""
        if not self.active:
            return

        try:
            self._fh.write("<h2>Final mesh</h2>")
            self._fh.write(
                f"<p>Final mesh had {mesh.fcount} facets and "
                f"{mesh.pcount} vertexes.</p>\n")

            if mesh.fcount > 0:
                self._fh.write("<p>Mesh of all facets with common normal</p>\n")
                self._open_svg()
                self._write_facets(mesh, mesh.facet_at(0).n)
                self._fh.write("</svg>\n")

            self._fh.write("</body>\n</html>\n")
        finally:
            self._fh.close()
            self._fh = None
