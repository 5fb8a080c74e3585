from __future__ import annotations
import logging
from pathlib import Path
import numpy as np

from immersed_layers.core.grid import CartesianGrid
from immersed_layers.core.bodies import BodyList, Circle, Square, RigidTransform, RigidTransformList
from immersed_layers.algorithm.neumann import NeumannPoissonCache, solve, added_mass
from immersed_layers.diagnostics import save_npz, plot_field


def main() -> None:
    """
    Circle of radius 0.25 translating inside a square of half side 1: zero
    normal derivative on both sides of the square, vn+ = n_x on the circle.
    """
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    outdir = Path("outputs") / "two_bodies"

    h = 0.02
    grid = CartesianGrid.from_limits((-2.0, 2.0), (-2.0, 2.0), h)
    ds = 1.4 * h
    bl = BodyList([Square(1.0, ds), Circle(0.25, ds)])

    tl = RigidTransformList([RigidTransform((0.0, 0.0), 0.0), RigidTransform((0.0, 0.0), 0.0)])
    bl = tl(bl)

    cache = NeumannPoissonCache.from_bodies(grid, bl)
    nrm = cache.ops.normals()

    vnplus = cache.ops.zeros_surface()
    vnminus = cache.ops.zeros_surface()
    cache.surface.copyto(vnplus, nrm[:, 0], 1)

    f, df, s, dpsi = solve(vnplus, vnminus, cache)
    M = added_mass(df, cache, body=1)

    # free-space value for comparison
    a = 0.25
    metrics = {
        "added_mass_x": float(M[0]),
        "added_mass_y": float(M[1]),
        "free_space_x": float(np.pi * a * a),
    }

    save_npz(outdir / "fields" / "solution.npz", f=f, df=df, s=s, ds=dpsi)
    plot_field(grid, f, cache.surface, title="phi", path=outdir / "figs" / "phi.png", show=False)
    plot_field(grid, s, cache.surface, title="psi", path=outdir / "figs" / "psi.png", show=False)
    save_npz(outdir / "metrics.npz", **{k: np.array(v) for k, v in metrics.items()})
    print(metrics)


if __name__ == "__main__":
    main()
