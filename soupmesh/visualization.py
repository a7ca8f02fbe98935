"""
Mesh Visualization Module
=========================

matplotlib views of a mesh before and after simplification.
"""

from typing import Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt
from mpl_toolkits.mplot3d import Axes3D
from mpl_toolkits.mplot3d.art3d import Poly3DCollection
import trimesh

from .simplify import SimplifyResult


class MeshVisualizer:
    """
    Visualization tools for simplification results.

    Provides:
    - Side-by-side original/simplified comparison with wireframe
    - Facet and vertex count summary
    """

    def __init__(self, figsize: Tuple[int, int] = (14, 7)):
        """
        Args:
            figsize: Default figure size for plots
        """
        self.figsize = figsize

    def plot_mesh_comparison(self, original: trimesh.Trimesh,
                             simplified: trimesh.Trimesh,
                             title: str = "Mesh Comparison",
                             show_wireframe: bool = True,
                             save_path: Optional[str] = None) -> plt.Figure:
        """
        Create side-by-side comparison of original and simplified meshes.

        Args:
            original: Mesh before simplification
            simplified: Mesh after simplification
            title: Plot title
            show_wireframe: Whether to draw facet edges
            save_path: Optional path to save the figure

        Returns:
            Matplotlib figure object
        """
        fig, axes = plt.subplots(1, 2, figsize=self.figsize,
                                 subplot_kw={'projection': '3d'})

        self._plot_single_mesh(axes[0], original,
                               f"Original\n({len(original.faces)} facets, {len(original.vertices)} vertices)",
                               show_wireframe)
        self._plot_single_mesh(axes[1], simplified,
                               f"Simplified\n({len(simplified.faces)} facets, {len(simplified.vertices)} vertices)",
                               show_wireframe)

        fig.suptitle(title, fontsize=14, fontweight='bold')
        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')
            print(f"Saved comparison to {save_path}")

        return fig

    def _plot_single_mesh(self, ax: Axes3D, mesh: trimesh.Trimesh,
                          title: str, show_wireframe: bool):
        """Plot a single mesh on a 3D axis."""
        vertices = np.asarray(mesh.vertices)
        faces = np.asarray(mesh.faces)

        ax.set_title(title, fontsize=10)
        ax.set_xlabel('X')
        ax.set_ylabel('Y')
        ax.set_zlabel('Z')

        if len(faces) == 0:
            return

        # Normalize to unit cube centered at origin
        center = vertices.mean(axis=0)
        scale = np.max(np.abs(vertices - center)) or 1.0
        triangles = (vertices - center)[faces] / scale

        poly = Poly3DCollection(triangles,
                                facecolors=self._compute_face_colors(triangles),
                                edgecolors='black' if show_wireframe else 'none',
                                linewidths=0.3 if show_wireframe else 0,
                                alpha=0.9)
        ax.add_collection3d(poly)

        ax.set_xlim(-1, 1)
        ax.set_ylim(-1, 1)
        ax.set_zlim(-1, 1)
        ax.set_box_aspect([1, 1, 1])

    def _compute_face_colors(self, triangles: np.ndarray) -> np.ndarray:
        """Compute face colors based on normals for shading."""
        light_dir = np.array([1, 1, 2])
        light_dir = light_dir / np.linalg.norm(light_dir)

        normals = np.cross(triangles[:, 1] - triangles[:, 0],
                           triangles[:, 2] - triangles[:, 0])
        lengths = np.linalg.norm(normals, axis=1, keepdims=True)
        normals = normals / np.where(lengths > 1e-10, lengths, 1.0)

        intensity = np.clip(normals @ light_dir, 0.2, 1.0)

        colors = np.zeros((len(triangles), 4))
        colors[:, 0] = 0.3 + 0.4 * intensity  # R
        colors[:, 1] = 0.4 + 0.4 * intensity  # G
        colors[:, 2] = 0.6 + 0.3 * intensity  # B
        colors[:, 3] = 1.0                     # A

        return colors

    def plot_statistics(self, result: SimplifyResult,
                        live_vertices: Optional[int] = None,
                        save_path: Optional[str] = None) -> plt.Figure:
        """
        Bar charts of facet and vertex counts before and after.

        Args:
            result: Outcome of a simplification pass
            live_vertices: Vertices still referenced after simplification
            save_path: Optional path to save the figure
        """
        n_plots = 2 if live_vertices is not None else 1
        fig, axes = plt.subplots(1, n_plots, figsize=(5 * n_plots, 4))
        if n_plots == 1:
            axes = [axes]

        axes[0].bar([0, 1], [result.initial_facets, result.final_facets],
                    color=['steelblue', 'forestgreen'])
        axes[0].set_xticks([0, 1])
        axes[0].set_xticklabels(['Original', 'Simplified'])
        axes[0].set_ylabel('Facet Count')
        axes[0].set_title(f'Facets ({result.reduction_ratio*100:.1f}% kept)')

        if live_vertices is not None:
            axes[1].bar([0, 1], [result.vertices, live_vertices],
                        color=['steelblue', 'forestgreen'])
            axes[1].set_xticks([0, 1])
            axes[1].set_xticklabels(['Indexed', 'Live'])
            axes[1].set_ylabel('Vertex Count')
            axes[1].set_title(f'Vertices ({result.merges} merges)')

        plt.suptitle('Simplification Statistics', fontsize=14, fontweight='bold')
        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')
            print(f"Saved statistics to {save_path}")

        return fig
