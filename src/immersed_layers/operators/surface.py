# operators/surface.py
from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np
import scipy.sparse as sp

from immersed_layers.core.bodies import SurfacePoints
from immersed_layers.core.config import ProblemConfig
from immersed_layers.core.errors import ConfigurationError, DimensionMismatch
from immersed_layers.core.grid import CartesianGrid
from immersed_layers.operators.assemble import (
    curl_matrix,
    divergence_matrix,
    gradient_matrix,
    interpolation_matrix,
    rot_matrix,
)
from immersed_layers.operators.solve import make_laplacian_inverse

log = logging.getLogger(__name__)


def _assign(out: Optional[np.ndarray], value: np.ndarray) -> np.ndarray:
    if out is None:
        return value
    out[...] = value.reshape(out.shape)
    return out


class GridOperators:
    """
    Grid and surface primitives for one fixed grid + surface geometry.

    Grid scaling: regularization spreads q*ds through a discrete delta of area h^2;
    interpolation is its adjoint under the h^2-weighted grid and ds-weighted
    surface inner products. With Rn spreading n*q onto the edges:

      Gs  = n . E G        (surface_grad)          cells -> surface
      Ds  = D Rn           (surface_divergence)    surface -> cells
      Cs  = C Rn           (surface_curl)          surface -> nodes
      Gx  = (z x n) . E G  (surface_grad_cross)    cells -> surface
      Cx  = C R(n x z)     (surface_curl_cross)    surface -> nodes
      RnTRn = n . E Rn     (surface_normal_product)

    Every method accepts an optional `out` array that receives the result.
    """

    def __init__(
        self,
        grid: CartesianGrid,
        surface: SurfacePoints,
        config: ProblemConfig = ProblemConfig(),
    ) -> None:
        self.grid = grid
        self.surface = surface
        self.config = config
        if surface.n_points == 0:
            raise ConfigurationError("no surface points: the body list is empty")

        h2 = float(grid.h) ** 2
        x, y = surface.x, surface.y
        nx, ny, ds = surface.nx, surface.ny, surface.ds

        Ec = interpolation_matrix(grid, "cells", x, y, config.ddf)
        Eu = interpolation_matrix(grid, "xedges", x, y, config.ddf)
        Ev = interpolation_matrix(grid, "yedges", x, y, config.ddf)

        G = gradient_matrix(grid)
        D = divergence_matrix(grid)
        C = curl_matrix(grid)
        self._grad = G
        self._rot = rot_matrix(grid)
        self._Ec = Ec

        def spread(cx: np.ndarray, cy: np.ndarray) -> sp.csr_matrix:
            return sp.vstack(
                [Eu.T @ sp.diags(ds * cx), Ev.T @ sp.diags(ds * cy)], format="csr"
            ) / h2

        def project(cx: np.ndarray, cy: np.ndarray) -> sp.csr_matrix:
            return sp.hstack([sp.diags(cx) @ Eu, sp.diags(cy) @ Ev], format="csr")

        Rn = spread(nx, ny)
        Rx = spread(ny, -nx)
        Nn = project(nx, ny)
        Nt = project(-ny, nx)

        self._R = (Ec.T @ sp.diags(ds)).tocsr() / h2
        self._Gs = (Nn @ G).tocsr()
        self._Ds = (D @ Rn).tocsr()
        self._Cs = (C @ Rn).tocsr()
        self._Gx = (Nt @ G).tocsr()
        self._Cx = (C @ Rx).tocsr()
        self._RnTRn = (Nn @ Rn).tocsr()

        self._Linv = make_laplacian_inverse(grid, "cells", config.boundary)
        self._Linv_nodes = make_laplacian_inverse(grid, "nodes", config.boundary)

        log.debug(
            "GridOperators: grid %dx%d h=%.4g, %d surface points in %d bodies",
            grid.nx, grid.ny, grid.h, surface.n_points, surface.n_bodies,
        )

    # -----------------------------
    # Shapes and allocation
    # -----------------------------

    @property
    def n_points(self) -> int:
        return self.surface.n_points

    @property
    def regularization_matrix(self) -> sp.csr_matrix:
        return self._R

    @property
    def interpolation_matrix(self) -> sp.csr_matrix:
        return self._Ec

    @property
    def surface_divergence_matrix(self) -> sp.csr_matrix:
        return self._Ds

    @property
    def surface_grad_matrix(self) -> sp.csr_matrix:
        return self._Gs

    @property
    def normal_product_matrix(self) -> sp.csr_matrix:
        return self._RnTRn

    @property
    def laplacian_inverse(self):
        return self._Linv

    def zeros_grid(self) -> np.ndarray:
        return np.zeros(self.grid.shape("cells"))

    def zeros_gridcurl(self) -> np.ndarray:
        return np.zeros(self.grid.shape("nodes"))

    def zeros_surface(self) -> np.ndarray:
        return np.zeros(self.n_points)

    def normals(self) -> np.ndarray:
        return self.surface.normals

    def _cells(self, f: np.ndarray, name: str = "f") -> np.ndarray:
        f = np.asarray(f, dtype=float)
        if f.shape != self.grid.shape("cells"):
            raise DimensionMismatch(f"{name} has shape {f.shape}, expected {self.grid.shape('cells')}")
        return f.reshape(-1)

    def _nodes(self, s: np.ndarray, name: str = "s") -> np.ndarray:
        s = np.asarray(s, dtype=float)
        if s.shape != self.grid.shape("nodes"):
            raise DimensionMismatch(f"{name} has shape {s.shape}, expected {self.grid.shape('nodes')}")
        return s.reshape(-1)

    def _surface(self, q: np.ndarray, name: str = "q") -> np.ndarray:
        q = np.asarray(q, dtype=float)
        if q.shape != (self.n_points,):
            raise DimensionMismatch(f"{name} has shape {q.shape}, expected ({self.n_points},)")
        return q

    # -----------------------------
    # Grid operators
    # -----------------------------

    def inverse_laplacian(self, f: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        self._cells(f)
        return _assign(out, self._Linv.solve(f))

    def inverse_laplacian_nodes(self, s: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        self._nodes(s)
        return _assign(out, self._Linv_nodes.solve(s))

    def laplacian(self, f: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        self._cells(f)
        return _assign(out, self._Linv.apply(f))

    def laplacian_nodes(self, s: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        self._nodes(s)
        return _assign(out, self._Linv_nodes.apply(s))

    def _split_edges(self, e: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        nu = self.grid.size("xedges")
        return e[:nu].reshape(self.grid.shape("xedges")), e[nu:].reshape(self.grid.shape("yedges"))

    def grad(self, f: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Edge components (u on x-edges, v on y-edges) of grad f."""
        return self._split_edges(self._grad @ self._cells(f))

    def rot(self, s: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Edge components of the velocity (ds/dy, -ds/dx) of a streamfunction."""
        return self._split_edges(self._rot @ self._nodes(s))

    # -----------------------------
    # Surface <-> grid
    # -----------------------------

    def regularize(self, q: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        q = self._surface(q)
        return _assign(out, (self._R @ q).reshape(self.grid.shape("cells")))

    def interpolate(self, f: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        return _assign(out, self._Ec @ self._cells(f))

    def interpolate_at(
        self, field: np.ndarray, x: np.ndarray, y: np.ndarray, kind: str = "cells"
    ) -> np.ndarray:
        """Kernel interpolation of a grid field at arbitrary points."""
        field = np.asarray(field, dtype=float)
        if field.shape != self.grid.shape(kind):
            raise DimensionMismatch(f"field has shape {field.shape}, expected {self.grid.shape(kind)}")
        E = interpolation_matrix(self.grid, kind, x, y, self.config.ddf)
        return (E @ field.reshape(-1)).reshape(np.shape(x))

    def surface_grad(self, f: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        return _assign(out, self._Gs @ self._cells(f))

    def surface_divergence(self, q: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        q = self._surface(q)
        return _assign(out, (self._Ds @ q).reshape(self.grid.shape("cells")))

    def surface_curl(self, q: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        q = self._surface(q)
        return _assign(out, (self._Cs @ q).reshape(self.grid.shape("nodes")))

    def surface_grad_cross(self, f: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        return _assign(out, self._Gx @ self._cells(f))

    def surface_curl_cross(self, q: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        q = self._surface(q)
        return _assign(out, (self._Cx @ q).reshape(self.grid.shape("nodes")))

    def surface_normal_product(self, q: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
        q = self._surface(q)
        return _assign(out, self._RnTRn @ q)
