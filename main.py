"""
Flat-Region Mesh Simplification - Demo
======================================

This script:
1. Builds a triangle soup from a sample grid or loads a model file
2. Indexes it, reporting how much work the point filter saved
3. Simplifies flat regions by edge collapse
4. Computes before/after metrics and plots a comparison
"""

import argparse
import logging
import time
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from soupmesh.evaluation import MeshEvaluator
from soupmesh.generators import Finish, GridConfig, build_from_grid
from soupmesh.logging_config import setup_logging
from soupmesh.mesh import FACETPNT_CNT, Mesh
from soupmesh.simplify import MeshSimplifier
from soupmesh.utils import create_voxel_grid, load_soup, print_mesh_info, to_trimesh
from soupmesh.visualization import MeshVisualizer


def main():
    """Main demo entry point."""
    parser = argparse.ArgumentParser(
        description="Flat-region mesh simplification demo"
    )
    parser.add_argument(
        "--mesh", "-m", type=str, default=None,
        help="Path to input mesh file. If not provided, builds a sample grid."
    )
    parser.add_argument(
        "--grid", "-g", type=str, default="ring",
        choices=["slab", "ring", "steps", "disc"],
        help="Sample grid to build when no mesh is given (default: ring)"
    )
    parser.add_argument(
        "--size", "-s", type=int, default=12,
        help="Sample grid edge length in cells (default: 12)"
    )
    parser.add_argument(
        "--levels", "-l", type=int, default=1,
        help="Number of levels to build from the grid (default: 1)"
    )
    parser.add_argument(
        "--complexity", "-c", type=int, default=10,
        help="Point filter complexity (default: 10)"
    )
    parser.add_argument(
        "--max-valence", type=int, default=FACETPNT_CNT,
        help=f"Maximum facets per vertex (default: {FACETPNT_CNT})"
    )
    parser.add_argument(
        "--preserve-boundaries", action="store_true",
        help="Never remove vertices on open boundaries"
    )
    parser.add_argument(
        "--dump", type=str, default=None,
        help="Write an HTML debug dump of every merge to this path"
    )
    parser.add_argument(
        "--output", "-o", type=str, default="output",
        help="Output directory for results"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log every merge"
    )

    args = parser.parse_args()

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    print("=" * 60)
    print("FLAT-REGION MESH SIMPLIFICATION")
    print("=" * 60)

    with Mesh(max_valence=args.max_valence, dump_path=args.dump,
              complexity=args.complexity) as mesh:
        if args.mesh:
            print(f"\nLoading mesh from: {args.mesh}")
            load_soup(args.mesh, mesh)
            mesh_name = Path(args.mesh).stem
        else:
            print(f"\nBuilding {args.grid} grid ({args.size}x{args.size}, {args.levels} levels)...")
            config = GridConfig(finish=Finish.BLOCKY, levels=args.levels,
                                complexity=args.complexity)
            build_from_grid(mesh, create_voxel_grid(args.grid, args.size), config)
            mesh_name = f"sample_{args.grid}"

        print_mesh_info(mesh, "Soup")

        start_time = time.time()
        if mesh.build_index() is None:
            print(f"\nCannot index mesh: some vertex has more than {args.max_valence} facets."
                  " Try a larger --max-valence.")
            return
        original = to_trimesh(mesh)
        print_mesh_info(mesh, "Indexed")

        simplifier = MeshSimplifier(preserve_boundaries=args.preserve_boundaries)
        result = simplifier.simplify(mesh)
        runtime = time.time() - start_time

        print_mesh_info(mesh, "Simplified")
        simplified = to_trimesh(mesh)

        evaluator = MeshEvaluator()
        metrics = evaluator.compute_all_metrics(original, simplified)
        metrics['runtime'] = runtime
        print()
        evaluator.print_report(metrics, mesh_name)

        if result.anomalies:
            print(f"\n{len(result.anomalies)} structural anomalies left in the mesh")

        visualizer = MeshVisualizer()
        fig = visualizer.plot_mesh_comparison(
            original, simplified,
            title=f"{mesh_name} - Original vs Simplified",
            save_path=str(output_dir / f"{mesh_name}_comparison.png")
        )
        plt.close(fig)

        live = sum(1 for v in mesh.p if v.valence > 0)
        fig = visualizer.plot_statistics(
            result, live_vertices=live,
            save_path=str(output_dir / f"{mesh_name}_statistics.png")
        )
        plt.close(fig)

        output_path = output_dir / f"{mesh_name}_simplified.ply"
        simplified.export(str(output_path))
        print(f"Saved: {output_path}")

    print("\n" + "=" * 60)
    print("DEMO COMPLETE")
    print(f"Results saved to: {output_dir.absolute()}")
    print("=" * 60)


if __name__ == "__main__":
    main()
