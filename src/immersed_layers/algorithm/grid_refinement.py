from __future__ import annotations

from typing import Optional

import numpy as np

from immersed_layers.core.bodies import SurfacePoints
from immersed_layers.core.grid import CartesianGrid


def refine_grid(grid: CartesianGrid, r: int = 2) -> CartesianGrid:
    """
    Refine a grid by integer factor r while keeping the same physical box.

    Every coarse cell is split into r x r fine cells:
        nx_f = nx_c * r,  h_f = h_c / r
    """
    if not isinstance(r, int) or r < 2:
        raise ValueError("refine_grid: r must be an integer >= 2")
    return CartesianGrid(
        nx=grid.nx * r,
        ny=grid.ny * r,
        h=grid.h / r,
        x_min=grid.x_min,
        y_min=grid.y_min,
    )


def surface_l2_norm(q: np.ndarray, surface: SurfacePoints, body: Optional[int] = None) -> float:
    """
    Arc-length weighted L2 norm:
        ||q||_2 = sqrt( sum |q_k|^2 ds_k )
    """
    return float(np.sqrt(surface.integrate(np.abs(np.asarray(q, dtype=float)) ** 2, body=body)))


def surface_l2_rel_error(
    q: np.ndarray,
    ref: np.ndarray,
    surface: SurfacePoints,
    body: Optional[int] = None,
    eps: float = 1e-30,
) -> float:
    """Relative L2 error on the surface: ||q - ref|| / (||ref|| + eps)."""
    diff = np.asarray(q, dtype=float) - np.asarray(ref, dtype=float)
    return surface_l2_norm(diff, surface, body) / (surface_l2_norm(ref, surface, body) + eps)


def grid_l2_norm(u: np.ndarray, grid: CartesianGrid) -> float:
    """
    Weighted discrete L2 norm of a grid field:
        ||u||_2 = sqrt( sum |u_ij|^2 * h^2 )
    """
    return float(np.sqrt(np.sum(np.abs(np.asarray(u, dtype=float)) ** 2) * grid.h * grid.h))
