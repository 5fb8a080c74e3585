# operators/solve.py
from __future__ import annotations

import logging
from typing import Dict, Tuple

import numpy as np
import scipy.sparse as sp
import scipy.sparse.linalg as spla
from scipy.fft import irfft2, next_fast_len, rfft2

from immersed_layers.core.errors import ConfigurationError, DimensionMismatch, NumericalFailure
from immersed_layers.core.grid import CartesianGrid
from immersed_layers.operators.assemble import laplacian_matrix
from immersed_layers.operators.lgf import lgf_kernel

log = logging.getLogger(__name__)


# ============================
# Residual diagnostics
# ============================

def compute_residual(A, u: np.ndarray, f: np.ndarray) -> np.ndarray:
    """
    r = f - A u
    """
    return f - A @ u


def residual_norms(A, u: np.ndarray, f: np.ndarray) -> Dict[str, float]:
    """
    Common residual diagnostics.
    """
    r = compute_residual(A, u, f)
    fn = float(np.linalg.norm(f))
    rn = float(np.linalg.norm(r))
    return {
        "||r||2": rn,
        "||f||2": fn,
        "||r||2/||f||2": rn / fn if fn > 0 else np.nan,
        "||u||2": float(np.linalg.norm(u)),
        "||r||inf": float(np.max(np.abs(r))) if r.size else 0.0,
    }


def check_finite(a: np.ndarray, what: str) -> np.ndarray:
    if not np.all(np.isfinite(a)):
        raise NumericalFailure(f"{what} produced non-finite values")
    return a


# ============================
# Laplacian inverses
# ============================

class LaplacianInverse:
    """
    5-point Laplacian L on one grid location, with `apply` (L x) and `solve` (L^-1 x).

    Both accept a single field shaped like the window or a batch (..., mx, my).
    """

    def __init__(self, shape: Tuple[int, int], h: float) -> None:
        self.shape = (int(shape[0]), int(shape[1]))
        self.h = float(h)
        self._matrix = laplacian_matrix(self.shape, self.h)

    @property
    def matrix(self) -> sp.csr_matrix:
        return self._matrix

    @property
    def size(self) -> int:
        return self.shape[0] * self.shape[1]

    def _as_batch(self, a: np.ndarray, name: str) -> Tuple[np.ndarray, Tuple[int, ...]]:
        a = np.asarray(a, dtype=float)
        if a.ndim < 2 or a.shape[-2:] != self.shape:
            raise DimensionMismatch(f"{name} has shape {a.shape}, expected (..., {self.shape})")
        return a.reshape(-1, self.size), a.shape

    def apply(self, f: np.ndarray) -> np.ndarray:
        batch, shape = self._as_batch(f, "f")
        return np.asarray(self._matrix @ batch.T).T.reshape(shape)

    def solve(self, q: np.ndarray) -> np.ndarray:
        batch, shape = self._as_batch(q, "q")
        check_finite(batch, "Laplacian right-hand side")
        out = self._solve(batch)
        return check_finite(out, f"{type(self).__name__}.solve").reshape(shape)

    def _solve(self, batch: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class DirichletLaplacianInverse(LaplacianInverse):
    """
    Zero values one spacing outside the window; sparse LU factorized once.
    """

    def __init__(self, shape: Tuple[int, int], h: float) -> None:
        super().__init__(shape, h)
        try:
            self._lu = spla.splu(self._matrix.tocsc())
        except RuntimeError as exc:
            raise NumericalFailure(f"LU factorization of the Laplacian failed: {exc}") from exc

    def _solve(self, batch: np.ndarray) -> np.ndarray:
        return np.asarray(self._lu.solve(np.ascontiguousarray(batch.T))).T


class UnboundedLaplacianInverse(LaplacianInverse):
    """
    Free-space inverse: convolution with the lattice Green's function (scaled by h^2).

    Sources outside the window are zero; the result is the exact lattice solution
    restricted to the window. Kernel FFT is computed once.
    """

    def __init__(self, shape: Tuple[int, int], h: float) -> None:
        super().__init__(shape, h)
        mx, my = self.shape
        self._fft_shape = (next_fast_len(3 * mx - 2, real=True), next_fast_len(3 * my - 2, real=True))
        kernel = (self.h * self.h) * lgf_kernel(self.shape)
        self._kernel_hat = rfft2(kernel, s=self._fft_shape)

    def _solve(self, batch: np.ndarray) -> np.ndarray:
        mx, my = self.shape
        q = batch.reshape(-1, mx, my)
        full = irfft2(rfft2(q, s=self._fft_shape) * self._kernel_hat, s=self._fft_shape)
        return full[:, mx - 1 : 2 * mx - 1, my - 1 : 2 * my - 1].reshape(batch.shape)


def make_laplacian_inverse(grid: CartesianGrid, kind: str, boundary: str) -> LaplacianInverse:
    shape = grid.shape(kind)
    if boundary == "unbounded":
        inv = UnboundedLaplacianInverse(shape, grid.h)
    elif boundary == "dirichlet":
        inv = DirichletLaplacianInverse(shape, grid.h)
    else:
        raise ConfigurationError(f"Unknown boundary '{boundary}'")
    log.debug("Laplacian inverse on %s %s (%s)", kind, shape, boundary)
    return inv
