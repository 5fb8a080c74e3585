# operators/schur.py
from __future__ import annotations

import logging
import time
from typing import Optional, Tuple

import numpy as np
import scipy.linalg as sla
import scipy.sparse.linalg as spla

from immersed_layers.core.config import ProblemConfig
from immersed_layers.core.errors import ConfigurationError, DimensionMismatch, NumericalFailure
from immersed_layers.operators.solve import check_finite
from immersed_layers.operators.surface import GridOperators

log = logging.getLogger(__name__)

# condition numbers above this (and below max_condition) are logged as warnings
WARN_CONDITION = 1e10


def _schur_columns(ops: GridOperators, j0: int, j1: int) -> np.ndarray:
    """Columns j0:j1 of S = Rn^T Rn - Gs L^-1 Ds, as an (N, j1 - j0) array."""
    Ds = ops.surface_divergence_matrix
    Gs = ops.surface_grad_matrix
    k = j1 - j0
    rhs = Ds[:, j0:j1].toarray().T.reshape((k,) + ops.grid.shape("cells"))
    sol = ops.laplacian_inverse.solve(rhs).reshape(k, -1)
    return ops.normal_product_matrix[:, j0:j1].toarray() - np.asarray(Gs @ sol.T)


def assemble_schur_matrix(ops: GridOperators, block_size: int = 16) -> np.ndarray:
    """
    Dense S, one block of columns per batched Laplacian solve.
    """
    n = ops.n_points
    S = np.empty((n, n))
    for j0 in range(0, n, int(block_size)):
        j1 = min(j0 + int(block_size), n)
        S[:, j0:j1] = _schur_columns(ops, j0, j1)
    return check_finite(S, "Schur complement assembly")


class SchurComplement:
    """
    Surface operator S = Rn^T Rn - Gs L^-1 Ds for one geometry.

    `apply` maps a jump density to S q; `solve` returns S^-1 r. With method
    "direct" S is dense and LU-factorized once; with "gmres" it is applied
    matrix-free and each solve runs restarted GMRES.
    """

    def __init__(
        self,
        ops: GridOperators,
        method: str = "direct",
        matrix: Optional[np.ndarray] = None,
        condition: Optional[float] = None,
        config: ProblemConfig = ProblemConfig(),
    ) -> None:
        self.ops = ops
        self.method = method
        self.condition = condition
        self.config = config
        self._matrix = matrix
        self._lu = None

        n = ops.n_points
        if method == "direct":
            if matrix is None:
                raise ConfigurationError("direct Schur complement needs an assembled matrix")
            self._lu = sla.lu_factor(matrix, check_finite=False)
        elif method != "gmres":
            raise ConfigurationError(f"Unknown schur_method '{method}'")

        self._operator = spla.LinearOperator((n, n), matvec=self._matvec, dtype=float)

    @property
    def operator(self) -> spla.LinearOperator:
        """Matrix-free S, usable with `@` whatever the method."""
        return self._operator

    @property
    def shape(self) -> Tuple[int, int]:
        n = self.ops.n_points
        return (n, n)

    @property
    def matrix(self) -> np.ndarray:
        """Dense S (assembled on first access for "gmres")."""
        if self._matrix is None:
            self._matrix = assemble_schur_matrix(self.ops, self.config.block_size)
        return self._matrix

    def _matvec(self, q: np.ndarray) -> np.ndarray:
        q = np.asarray(q, dtype=float).reshape(-1)
        ops = self.ops
        u = ops.inverse_laplacian(ops.surface_divergence(q))
        return ops.surface_normal_product(q) - ops.surface_grad(u)

    def _check(self, q: np.ndarray, name: str) -> np.ndarray:
        q = np.asarray(q, dtype=float)
        if q.shape != (self.ops.n_points,):
            raise DimensionMismatch(f"{name} has shape {q.shape}, expected ({self.ops.n_points},)")
        return q

    def apply(self, q: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        q = self._check(q, "q")
        value = self._matrix @ q if self._matrix is not None else self._matvec(q)
        if out is None:
            return value
        out[...] = value
        return out

    def solve(self, r: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        r = check_finite(self._check(r, "r"), "Schur right-hand side")
        if self._lu is not None:
            x = sla.lu_solve(self._lu, r, check_finite=False)
        else:
            cfg = self.config
            x, info = spla.gmres(
                self._operator,
                r,
                rtol=cfg.gmres_rtol,
                atol=0.0,
                restart=cfg.gmres_restart,
                maxiter=cfg.gmres_maxiter,
            )
            if info > 0:
                raise NumericalFailure(f"GMRES did not converge in {info} iterations")
            if info < 0:
                raise NumericalFailure(f"GMRES failed (info={info})")
        check_finite(x, "Schur solve")
        if out is None:
            return x
        out[...] = x
        return out


def build_schur_complement(
    ops: GridOperators, config: Optional[ProblemConfig] = None
) -> SchurComplement:
    """
    Build S for the geometry held by `ops`.

    Raises ConfigurationError for an empty surface or a singular (or non-finite)
    S, e.g. coincident bodies.
    """
    config = ops.config if config is None else config
    n = ops.n_points
    if n == 0:
        raise ConfigurationError("no surface points: the body list is empty")

    t0 = time.perf_counter()
    if config.schur_method == "gmres":
        schur = SchurComplement(ops, method="gmres", config=config)
        log.info(
            "Schur complement: %d points in %d bodies, gmres (matrix-free), %.2fs",
            n, ops.surface.n_bodies, time.perf_counter() - t0,
        )
        return schur

    try:
        S = assemble_schur_matrix(ops, config.block_size)
    except NumericalFailure as exc:
        raise ConfigurationError(f"Schur complement is not finite: {exc}") from exc

    cond = float(np.linalg.cond(S))
    if not np.isfinite(cond) or cond > config.max_condition:
        raise ConfigurationError(
            f"Schur complement is singular (condition number {cond:.3e} > "
            f"{config.max_condition:.1e}); check for coincident or overlapping bodies"
        )
    if cond > WARN_CONDITION:
        log.warning("Schur complement is ill-conditioned (condition number %.3e)", cond)

    schur = SchurComplement(ops, method="direct", matrix=S, condition=cond, config=config)
    log.info(
        "Schur complement: %d points in %d bodies, direct, cond=%.3e, %.2fs",
        n, ops.surface.n_bodies, cond, time.perf_counter() - t0,
    )
    return schur
