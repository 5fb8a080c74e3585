# operators/assemble.py
from __future__ import annotations

from typing import Tuple

import numpy as np
import scipy.sparse as sp

from immersed_layers.core.errors import ConfigurationError
from immersed_layers.core.grid import CartesianGrid
from immersed_layers.operators.kernels import get_kernel


# ============================
# 1D building blocks
# ============================

def _forward_difference(n: int, h: float) -> sp.csr_matrix:
    """(n, n+1): (u[k+1] - u[k]) / h."""
    return sp.diags([-np.ones(n), np.ones(n)], [0, 1], shape=(n, n + 1), format="csr") / h


def _padded_difference(n: int, h: float) -> sp.csr_matrix:
    """(n+1, n): (f[k] - f[k-1]) / h with f = 0 outside [0, n)."""
    return sp.diags([np.ones(n), -np.ones(n)], [0, -1], shape=(n + 1, n), format="csr") / h


def _second_difference(n: int, h: float) -> sp.csr_matrix:
    return sp.diags(
        [np.ones(n - 1), -2.0 * np.ones(n), np.ones(n - 1)], [-1, 0, 1], shape=(n, n), format="csr"
    ) / (h * h)


# ============================
# Grid difference operators
# ============================

def gradient_matrix(grid: CartesianGrid) -> sp.csr_matrix:
    """
    G: cells -> edges (x-edges stacked before y-edges).

    Boundary edges see a zero value one cell outside the grid.
    """
    nx, ny, h = int(grid.nx), int(grid.ny), float(grid.h)
    gx = sp.kron(_padded_difference(nx, h), sp.identity(ny), format="csr")
    gy = sp.kron(sp.identity(nx), _padded_difference(ny, h), format="csr")
    return sp.vstack([gx, gy], format="csr")


def divergence_matrix(grid: CartesianGrid) -> sp.csr_matrix:
    """D: edges -> cells, D = -G^T."""
    return (-gradient_matrix(grid).T).tocsr()


def rot_matrix(grid: CartesianGrid) -> sp.csr_matrix:
    """
    Rotated gradient, nodes -> edges: (u, v) = (ds/dy, -ds/dx).

    This is the velocity generated by a streamfunction s.
    """
    nx, ny, h = int(grid.nx), int(grid.ny), float(grid.h)
    ru = sp.kron(sp.identity(nx + 1), _forward_difference(ny, h), format="csr")
    rv = -sp.kron(_forward_difference(nx, h), sp.identity(ny + 1), format="csr")
    return sp.vstack([ru, rv], format="csr")


def curl_matrix(grid: CartesianGrid) -> sp.csr_matrix:
    """C: edges -> nodes, dv/dx - du/dy, C = rot^T (so C G = 0 at interior nodes)."""
    return rot_matrix(grid).T.tocsr()


def laplacian_matrix(shape: Tuple[int, int], h: float) -> sp.csr_matrix:
    """
    5-point Laplacian on an (mx, my) window, with zero values outside the window.
    """
    mx, my = int(shape[0]), int(shape[1])
    return (
        sp.kron(_second_difference(mx, h), sp.identity(my))
        + sp.kron(sp.identity(mx), _second_difference(my, h))
    ).tocsr()


# ============================
# Grid <-> surface transfer
# ============================

def interpolation_matrix(
    grid: CartesianGrid,
    kind: str,
    x: np.ndarray,
    y: np.ndarray,
    ddf: str = "yang3",
) -> sp.csr_matrix:
    """
    E: grid values at location `kind` -> values at points (x, y).

    E[k, g] = phi((x_g - x_k)/h) * phi((y_g - y_k)/h), with phi the discrete delta.
    Rows sum to one for points away from the boundary.

    Raises ConfigurationError if a stencil reaches outside the grid.
    """
    kernel, support = get_kernel(ddf)
    x = np.asarray(x, dtype=float).reshape(-1)
    y = np.asarray(y, dtype=float).reshape(-1)
    if x.shape != y.shape:
        raise ValueError(f"x and y differ in size: {x.size} vs {y.size}")

    mx, my = grid.shape(kind)
    n = x.size
    if n == 0:
        return sp.csr_matrix((0, mx * my))

    x0, y0 = grid.origin(kind)
    h = float(grid.h)
    xi = (x - x0) / h
    yi = (y - y0) / h

    w = int(np.ceil(support))
    offs = np.arange(-w, w + 2)
    ii = np.floor(xi).astype(int)[:, None] + offs[None, :]
    jj = np.floor(yi).astype(int)[:, None] + offs[None, :]

    wx = kernel(ii - xi[:, None])
    wy = kernel(jj - yi[:, None])
    weights = wx[:, :, None] * wy[:, None, :]

    I = np.broadcast_to(ii[:, :, None], weights.shape)
    J = np.broadcast_to(jj[:, None, :], weights.shape)
    nonzero = weights != 0.0
    inside = (I >= 0) & (I < mx) & (J >= 0) & (J < my)
    if np.any(nonzero & ~inside):
        raise ConfigurationError(
            f"Regularization stencil of {int(np.any(nonzero & ~inside, axis=(1, 2)).sum())} "
            f"point(s) leaves the grid ({kind}); move bodies away from the boundary "
            "or enlarge the grid."
        )

    keep = nonzero & inside
    rows = np.broadcast_to(np.arange(n)[:, None, None], weights.shape)[keep]
    cols = (I * my + J)[keep]
    return sp.csr_matrix((weights[keep], (rows, cols)), shape=(n, mx * my))
