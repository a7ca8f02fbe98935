"""
Mesh Evaluation Module
======================

Checks the result of a simplification pass:
- Structural verification of the indexed mesh (reported, never repaired)
- Before/after geometric comparison (area, volume, bounds)
- Hausdorff and Chamfer distances over sampled surface points
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
import trimesh
from scipy.spatial import cKDTree

from .geometry import points_equal


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Anomaly:
    """A structural problem found on a live facet."""
    slot: int
    kind: str
    message: str


NO_AREA = "no_area"
INDEXED_DEGENERATE = "indexed_degenerate"
DEGENERATE = "degenerate"


def verify_mesh(mesh) -> List[Anomaly]:
    """
    Scan every live facet for degeneracy.

    Flags facets whose corner indices are all equal, whose corner indices
    are not pairwise distinct, or whose corner coordinates are not
    pairwise distinct. Anomalies are logged and returned; the mesh is left
    untouched.
    """
    anomalies = []

    for facet in mesh.facets:
        i0, i1, i2 = facet.i
        v0, v1, v2 = facet.v

        if i0 == i1 and i1 == i2:
            anomalies.append(Anomaly(facet.slot, NO_AREA,
                                     f"Indexed facet {facet.slot} has no surface area"))

        if i0 == i1 or i1 == i2 or i2 == i0:
            anomalies.append(Anomaly(facet.slot, INDEXED_DEGENERATE,
                                     f"Indexed facet {facet.slot} is degenerate"))

        if points_equal(v0, v1) or points_equal(v1, v2) or points_equal(v2, v0):
            anomalies.append(Anomaly(facet.slot, DEGENERATE,
                                     f"Facet {facet.slot} is degenerate"))

    for anomaly in anomalies:
        logger.warning(anomaly.message)

    return anomalies


class MeshEvaluator:
    """
    Compares an original mesh against its simplified version.

    Flat-region simplification should leave the surface unchanged, so
    area, volume and bounds errors are expected to be zero and distance
    metrics limited to sampling noise.
    """

    def __init__(self, sample_points: int = 10000):
        """
        Args:
            sample_points: Number of points to sample for distance metrics
        """
        self.sample_points = sample_points

    def compute_all_metrics(self, original: trimesh.Trimesh,
                            simplified: trimesh.Trimesh) -> Dict[str, float]:
        """
        Compute all available metrics.

        Args:
            original: Mesh before simplification
            simplified: Mesh after simplification

        Returns:
            Dictionary of metric names to values
        """
        metrics = {}

        # Count statistics
        metrics['original_faces'] = len(original.faces)
        metrics['simplified_faces'] = len(simplified.faces)
        metrics['original_vertices'] = len(original.vertices)
        metrics['simplified_vertices'] = len(simplified.vertices)
        metrics['face_reduction_ratio'] = len(simplified.faces) / max(len(original.faces), 1)
        metrics['vertex_reduction_ratio'] = len(simplified.vertices) / max(len(original.vertices), 1)

        # Surface area
        metrics['original_area'] = float(original.area)
        metrics['simplified_area'] = float(simplified.area)
        metrics['area_error'] = abs(metrics['simplified_area'] - metrics['original_area']) / \
                                max(metrics['original_area'], 1e-10)

        # Volume (only meaningful for watertight meshes)
        metrics['original_volume'] = float(original.volume) if original.is_watertight else np.nan
        metrics['simplified_volume'] = float(simplified.volume) if simplified.is_watertight else np.nan

        if not np.isnan(metrics['original_volume']) and not np.isnan(metrics['simplified_volume']):
            metrics['volume_error'] = abs(metrics['simplified_volume'] - metrics['original_volume']) / \
                                      max(abs(metrics['original_volume']), 1e-10)
        else:
            metrics['volume_error'] = np.nan

        metrics['bounds_change'] = self.bounds_change(original, simplified)

        # Geometric metrics
        if len(original.faces) and len(simplified.faces):
            hausdorff, forward, backward = self.hausdorff_distance(original, simplified)
            metrics['hausdorff_distance'] = hausdorff
            metrics['hausdorff_forward'] = forward
            metrics['hausdorff_backward'] = backward
            metrics['chamfer_distance'] = self.chamfer_distance(original, simplified)
        else:
            metrics['hausdorff_distance'] = np.nan
            metrics['hausdorff_forward'] = np.nan
            metrics['hausdorff_backward'] = np.nan
            metrics['chamfer_distance'] = np.nan

        metrics['original_is_watertight'] = int(original.is_watertight)
        metrics['simplified_is_watertight'] = int(simplified.is_watertight)

        return metrics

    def bounds_change(self, original: trimesh.Trimesh,
                      simplified: trimesh.Trimesh) -> float:
        """Largest absolute difference between the two bounding boxes."""
        if len(original.vertices) == 0 or len(simplified.vertices) == 0:
            return np.nan
        return float(np.max(np.abs(original.bounds - simplified.bounds)))

    def _sample(self, mesh: trimesh.Trimesh) -> np.ndarray:
        try:
            return mesh.sample(self.sample_points)
        except Exception:
            # Fallback to vertices if sampling fails
            return mesh.vertices

    def hausdorff_distance(self, mesh1: trimesh.Trimesh,
                           mesh2: trimesh.Trimesh) -> Tuple[float, float, float]:
        """
        Compute symmetric Hausdorff distance between two meshes.

        Uses point sampling on the mesh surfaces.

        Returns:
            Tuple of (symmetric_hausdorff, forward, backward) distances
        """
        points1 = self._sample(mesh1)
        points2 = self._sample(mesh2)

        tree1 = cKDTree(points1)
        tree2 = cKDTree(points2)

        distances_forward, _ = tree2.query(points1)
        hausdorff_forward = float(np.max(distances_forward))

        distances_backward, _ = tree1.query(points2)
        hausdorff_backward = float(np.max(distances_backward))

        return max(hausdorff_forward, hausdorff_backward), hausdorff_forward, hausdorff_backward

    def chamfer_distance(self, mesh1: trimesh.Trimesh,
                         mesh2: trimesh.Trimesh) -> float:
        """
        Compute symmetric Chamfer distance between two meshes.

        Chamfer distance is the sum of the mean squared nearest-neighbour
        distances in both directions.
        """
        points1 = self._sample(mesh1)
        points2 = self._sample(mesh2)

        tree1 = cKDTree(points1)
        tree2 = cKDTree(points2)

        distances_forward, _ = tree2.query(points1)
        distances_backward, _ = tree1.query(points2)

        return float(np.mean(distances_forward ** 2)) + float(np.mean(distances_backward ** 2))

    def generate_report(self, metrics: Dict[str, float],
                        title: str = "Flat-region simplification") -> str:
        """
        Generate a human-readable evaluation report.

        Args:
            metrics: Dictionary of metric values
            title: Report heading

        Returns:
            Formatted report string
        """
        lines = [
            "=" * 60,
            f"Mesh Simplification Report - {title}",
            "=" * 60,
            "",
            "MESH STATISTICS",
            "-" * 40,
            f"  Original:    {metrics.get('original_faces', 'N/A'):>8} faces, "
            f"{metrics.get('original_vertices', 'N/A'):>8} vertices",
            f"  Simplified:  {metrics.get('simplified_faces', 'N/A'):>8} faces, "
            f"{metrics.get('simplified_vertices', 'N/A'):>8} vertices",
            f"  Reduction:   {metrics.get('face_reduction_ratio', 0)*100:>7.2f}% of original faces",
            "",
            "GEOMETRIC ACCURACY",
            "-" * 40,
            f"  Hausdorff Distance:    {metrics.get('hausdorff_distance', np.nan):>12.6f}",
            f"  Chamfer Distance:      {metrics.get('chamfer_distance', np.nan):>12.6f}",
            f"  Area Error:            {metrics.get('area_error', 0)*100:>11.4f}%",
            f"  Bounds Change:         {metrics.get('bounds_change', np.nan):>12.6f}",
        ]

        vol_error = metrics.get('volume_error', np.nan)
        if not np.isnan(vol_error):
            lines.append(f"  Volume Error:          {vol_error*100:>11.4f}%")
        else:
            lines.append("  Volume Error:          N/A (non-watertight)")

        lines.extend([
            "",
            "TOPOLOGY",
            "-" * 40,
            f"  Original Watertight:   {'Yes' if metrics.get('original_is_watertight') else 'No'}",
            f"  Simplified Watertight: {'Yes' if metrics.get('simplified_is_watertight') else 'No'}",
            "",
            "=" * 60,
        ])

        if 'runtime' in metrics:
            lines.insert(-1, f"  Runtime:               {metrics['runtime']:>11.4f} seconds")

        return "\n".join(lines)

    def print_report(self, metrics: Dict[str, float], title: str = "Flat-region simplification"):
        """Print the evaluation report to console."""
        print(self.generate_report(metrics, title))
