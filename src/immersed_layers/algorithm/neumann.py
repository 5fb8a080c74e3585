"""
Neumann Poisson problem with double-valued boundary data on immersed surfaces.

Given the exterior and interior normal derivatives vn+ and vn- on every
surface point, find the potential f (cells), its surface jump df = f+ - f-,
the conjugate streamfunction s (nodes) and its surface jump ds.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from immersed_layers.core.bodies import Body, SurfacePoints
from immersed_layers.core.config import ProblemConfig
from immersed_layers.core.errors import DimensionMismatch, NumericalFailure
from immersed_layers.core.grid import CartesianGrid
from immersed_layers.operators.schur import SchurComplement, build_schur_complement
from immersed_layers.operators.solve import check_finite, residual_norms
from immersed_layers.operators.surface import GridOperators

log = logging.getLogger(__name__)


def _readonly_view(a: np.ndarray) -> np.ndarray:
    v = a.view()
    v.setflags(write=False)
    return v


class NeumannPoissonCache:
    """
    Everything a solve needs for one fixed geometry: the operator provider, the
    Schur complement and scratch space (vn, dvn on the surface, f* on cells,
    s* on nodes). Scratch is zeroed at the start of every solve.

    A cache is not safe to share between concurrent solves.
    """

    def __init__(self, ops: GridOperators, schur: SchurComplement) -> None:
        self._ops = ops
        self._schur = schur
        self._vn = ops.zeros_surface()
        self._dvn = ops.zeros_surface()
        self._fstar = ops.zeros_grid()
        self._sstar = ops.zeros_gridcurl()

    @classmethod
    def from_bodies(
        cls,
        grid: CartesianGrid,
        bodies: Sequence[Body],
        config: ProblemConfig = ProblemConfig(),
    ) -> "NeumannPoissonCache":
        surface = SurfacePoints.from_bodies(bodies)
        ops = GridOperators(grid, surface, config)
        return cls(ops, build_schur_complement(ops, config))

    @property
    def ops(self) -> GridOperators:
        return self._ops

    @property
    def schur(self) -> SchurComplement:
        return self._schur

    @property
    def grid(self) -> CartesianGrid:
        return self._ops.grid

    @property
    def surface(self) -> SurfacePoints:
        return self._ops.surface

    @property
    def fstar(self) -> np.ndarray:
        """f* = L^-1 R dvn from the last solve (read-only)."""
        return _readonly_view(self._fstar)

    @property
    def sstar(self) -> np.ndarray:
        """s* = Cs df from the last solve (read-only)."""
        return _readonly_view(self._sstar)

    def _reset(self) -> None:
        for a in (self._vn, self._dvn, self._fstar, self._sstar):
            a.fill(0.0)


def _check_surface_data(q: np.ndarray, n: int, name: str) -> np.ndarray:
    q = np.asarray(q, dtype=float)
    if q.shape != (n,):
        raise DimensionMismatch(f"{name} has shape {q.shape}, expected ({n},)")
    if not np.all(np.isfinite(q)):
        raise NumericalFailure(f"{name} contains non-finite values")
    return q


def _eliminate(
    vnplus: np.ndarray,
    vnminus: np.ndarray,
    ops: GridOperators,
    schur: SchurComplement,
    vn: np.ndarray,
    dvn: np.ndarray,
    fstar: np.ndarray,
    sstar: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Block elimination of the saddle-point system

        [ L    Ds    ] [ f  ]   [ R dvn ]
        [ Gs  -RnTRn ] [ df ] = [ vn    ]

    followed by the streamfunction. Writes vn, dvn, fstar and sstar; returns
    freshly allocated (f, df, s, ds).
    """
    np.add(vnplus, vnminus, out=vn)
    vn *= 0.5
    np.subtract(vnplus, vnminus, out=dvn)

    ops.inverse_laplacian(ops.regularize(dvn), out=fstar)

    df = -schur.solve(vn - ops.surface_grad(fstar))
    f = fstar + ops.inverse_laplacian(ops.surface_divergence(df))

    ops.surface_curl(df, out=sstar)
    ds = schur.solve(ops.surface_grad_cross(fstar))

    # n x z = -t, hence the sign flip
    s = sstar - ops.surface_curl_cross(ds)
    s = ops.inverse_laplacian_nodes(s)

    return f, df, s, ds


def solve(
    vnplus: np.ndarray,
    vnminus: np.ndarray,
    cache: NeumannPoissonCache,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Solve the Neumann problem for exterior/interior normal derivatives
    (vnplus, vnminus).

    Returns
    -------
    f : (nx, ny) potential on cells
    df : (N,) jump f+ - f- on the surface
    s : (nx+1, ny+1) streamfunction on nodes
    ds : (N,) jump of s on the surface

    Raises DimensionMismatch if the data does not match the cached surface and
    NumericalFailure for non-finite data or a failed linear solve. The inputs are
    not modified.
    """
    n = cache.surface.n_points
    vnplus = _check_surface_data(vnplus, n, "vnplus")
    vnminus = _check_surface_data(vnminus, n, "vnminus")

    cache._reset()
    f, df, s, ds = _eliminate(
        vnplus, vnminus, cache.ops, cache.schur,
        cache._vn, cache._dvn, cache._fstar, cache._sstar,
    )

    check_finite(f, "potential")
    check_finite(s, "streamfunction")
    log.debug(
        "solve: |vn|=%.3e |dvn|=%.3e |f|=%.3e |df|=%.3e |s|=%.3e |ds|=%.3e",
        np.linalg.norm(cache._vn), np.linalg.norm(cache._dvn), np.linalg.norm(f),
        np.linalg.norm(df), np.linalg.norm(s), np.linalg.norm(ds),
    )
    return f, df, s, ds


# -----------------------------
# Post-processing
# -----------------------------

def normal_derivative_limits(
    f: np.ndarray, df: np.ndarray, cache: NeumannPoissonCache
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Recover (vn+, vn-) from a solution (f, df).

    The average is Gs f - Rn^T Rn df. The jump [vn] solves
    E R [vn] = E (L f - Ds df) in the least-squares sense, with E the
    interpolation to the surface.
    """
    ops = cache.ops
    df = np.asarray(df, dtype=float)

    avg = ops.surface_grad(f) - ops.surface_normal_product(df)

    A = (ops.interpolation_matrix @ ops.regularization_matrix).toarray()
    b = ops.interpolate(ops.laplacian(f) - ops.surface_divergence(df))
    jump, *_ = np.linalg.lstsq(A, b, rcond=None)

    return avg + 0.5 * jump, avg - 0.5 * jump


def added_mass(df: np.ndarray, cache: NeumannPoissonCache, body: Optional[int] = None) -> np.ndarray:
    """
    M = -int df n ds over one body (or all of them).

    With vn+ = n_x on the body and zero elsewhere, M is the x-column of the
    added-mass tensor (per unit density).
    """
    surface = cache.surface
    df = np.asarray(df, dtype=float)
    if df.shape != (surface.n_points,):
        raise DimensionMismatch(f"df has shape {df.shape}, expected ({surface.n_points},)")
    return -surface.integrate(df[:, None] * surface.normals, body=body)


def schur_residual(
    vnplus: np.ndarray, vnminus: np.ndarray, df: np.ndarray, cache: NeumannPoissonCache
) -> Dict[str, float]:
    """
    Residual norms of the reduced system S (-df) = vn - Gs f* for a jump
    returned by `solve` with the same data.
    """
    ops = cache.ops
    n = cache.surface.n_points
    vnplus = _check_surface_data(vnplus, n, "vnplus")
    vnminus = _check_surface_data(vnminus, n, "vnminus")
    df = _check_surface_data(df, n, "df")

    fstar = ops.inverse_laplacian(ops.regularize(vnplus - vnminus))
    rhs = 0.5 * (vnplus + vnminus) - ops.surface_grad(fstar)
    return residual_norms(cache.schur.operator, -df, rhs)
