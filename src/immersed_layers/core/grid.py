# core/grid.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np


GRID_KINDS = ("cells", "xedges", "yedges", "nodes")


@dataclass(frozen=True)
class CartesianGrid:
    """
    Uniform staggered (MAC) grid of nx x ny square cells of side h.

    Locations (indexing="ij", flat index i*ny_kind + j):
      cells  (nx,   ny)   : x_min + (i+1/2)h, y_min + (j+1/2)h
      xedges (nx+1, ny)   : x_min + i h,      y_min + (j+1/2)h
      yedges (nx,   ny+1) : x_min + (i+1/2)h, y_min + j h
      nodes  (nx+1, ny+1) : x_min + i h,      y_min + j h

    The potential lives on cells, the streamfunction on nodes and the
    gradient of either on the edges.
    """
    nx: int
    ny: int
    h: float
    x_min: float = 0.0
    y_min: float = 0.0

    def __post_init__(self) -> None:
        if int(self.nx) < 2 or int(self.ny) < 2:
            raise ValueError("CartesianGrid requires nx, ny >= 2.")
        if float(self.h) <= 0.0:
            raise ValueError("CartesianGrid requires h > 0.")

    @classmethod
    def from_limits(
        cls,
        xlim: Tuple[float, float],
        ylim: Tuple[float, float],
        h: float,
    ) -> "CartesianGrid":
        """
        Grid covering the box xlim x ylim with spacing h (box rounded to whole cells).
        """
        h = float(h)
        if h <= 0.0:
            raise ValueError("h must be positive.")
        lx = float(xlim[1]) - float(xlim[0])
        ly = float(ylim[1]) - float(ylim[0])
        if lx <= 0.0 or ly <= 0.0:
            raise ValueError("xlim and ylim must be increasing.")
        nx = int(round(lx / h))
        ny = int(round(ly / h))
        return cls(nx=nx, ny=ny, h=h, x_min=float(xlim[0]), y_min=float(ylim[0]))

    @property
    def lx(self) -> float:
        return float(self.nx) * float(self.h)

    @property
    def ly(self) -> float:
        return float(self.ny) * float(self.h)

    @property
    def x_max(self) -> float:
        return float(self.x_min) + self.lx

    @property
    def y_max(self) -> float:
        return float(self.y_min) + self.ly

    def shape(self, kind: str = "cells") -> Tuple[int, int]:
        nx, ny = int(self.nx), int(self.ny)
        shapes: Dict[str, Tuple[int, int]] = {
            "cells": (nx, ny),
            "xedges": (nx + 1, ny),
            "yedges": (nx, ny + 1),
            "nodes": (nx + 1, ny + 1),
        }
        if kind not in shapes:
            raise ValueError(f"Unknown grid location '{kind}'. Use one of {GRID_KINDS}.")
        return shapes[kind]

    def size(self, kind: str = "cells") -> int:
        mx, my = self.shape(kind)
        return mx * my

    @property
    def n_edges(self) -> int:
        return self.size("xedges") + self.size("yedges")

    def origin(self, kind: str = "cells") -> Tuple[float, float]:
        """Coordinates of entry (0, 0) for the given location."""
        half = 0.5 * float(self.h)
        x0, y0 = float(self.x_min), float(self.y_min)
        offsets = {
            "cells": (half, half),
            "xedges": (0.0, half),
            "yedges": (half, 0.0),
            "nodes": (0.0, 0.0),
        }
        self.shape(kind)
        dx, dy = offsets[kind]
        return x0 + dx, y0 + dy

    def coordinates(self, kind: str = "cells") -> Tuple[np.ndarray, np.ndarray]:
        mx, my = self.shape(kind)
        x0, y0 = self.origin(kind)
        return x0 + self.h * np.arange(mx), y0 + self.h * np.arange(my)

    def mesh(self, kind: str = "cells") -> Tuple[np.ndarray, np.ndarray]:
        x, y = self.coordinates(kind)
        return np.meshgrid(x, y, indexing="ij")

