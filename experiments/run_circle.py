from __future__ import annotations
import logging
from pathlib import Path
import numpy as np

from immersed_layers.core.grid import CartesianGrid
from immersed_layers.core.bodies import BodyList, Circle
from immersed_layers.core.config import ProblemConfig
from immersed_layers.algorithm.neumann import NeumannPoissonCache, solve, added_mass, schur_residual
from immersed_layers.diagnostics import save_npz, plot_field, plot_surface


def run_case(grid: CartesianGrid, vnplus_is_nx: bool, outdir: Path, config: ProblemConfig) -> dict[str, float]:
    """
    Unit circle with vn = n_x on one side and zero on the other: the exterior
    case is the unit potential of a translating circle, the interior case the
    flow inside a translating circle.
    """
    outdir.mkdir(parents=True, exist_ok=True)

    bodies = BodyList([Circle(1.0, 1.4 * grid.h)])
    cache = NeumannPoissonCache.from_bodies(grid, bodies, config)
    nrm = cache.ops.normals()

    vnplus = cache.ops.zeros_surface()
    vnminus = cache.ops.zeros_surface()
    if vnplus_is_nx:
        vnplus[:] = nrm[:, 0]
    else:
        vnminus[:] = nrm[:, 0]

    f, df, s, ds = solve(vnplus, vnminus, cache)
    M = added_mass(df, cache)

    metrics = {
        "n_points": float(cache.surface.n_points),
        "schur_cond": float(cache.schur.condition or np.nan),
        "added_mass_x": float(M[0]),
        "added_mass_y": float(M[1]),
        "schur_rel_residual": schur_residual(vnplus, vnminus, df, cache)["||r||2/||f||2"],
    }

    save_npz(outdir / "fields" / "solution.npz", f=f, df=df, s=s, ds=ds)
    plot_field(grid, f, cache.surface, title="phi", path=outdir / "figs" / "phi.png", show=False)
    plot_field(grid, s, cache.surface, title="psi", path=outdir / "figs" / "psi.png", show=False)
    plot_surface(df, cache.surface, title="[phi]", path=outdir / "figs" / "dphi.png", show=False)

    save_npz(outdir / "metrics.npz", **{k: np.array(v) for k, v in metrics.items()})
    return metrics


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    base_out = Path("outputs") / "circle"

    grid = CartesianGrid.from_limits((-2.0, 2.0), (-2.0, 2.0), 0.02)
    config = ProblemConfig()

    for name, exterior in (("exterior", True), ("interior", False)):
        metrics = run_case(grid, exterior, base_out / name, config)
        print(name, metrics)
    print("exact exterior added mass (x):", np.pi)


if __name__ == "__main__":
    main()
