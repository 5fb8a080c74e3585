# diagnostics.py
from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import matplotlib.pyplot as plt

from immersed_layers.core.bodies import SurfacePoints
from immersed_layers.core.grid import GRID_KINDS, CartesianGrid


# -----------------------------
# I/O helpers
# -----------------------------

def save_npz(path: Path, **arrays: np.ndarray) -> None:
    """Save compressed .npz (creates parent dirs)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(path, **arrays)


# -----------------------------
# Core array utilities
# -----------------------------

def _field_kind(grid: CartesianGrid, field: np.ndarray) -> str:
    """Grid location whose shape matches the field."""
    for kind in GRID_KINDS:
        if field.shape == grid.shape(kind):
            return kind
    raise ValueError(
        f"field has shape {field.shape}; expected one of "
        f"{[grid.shape(k) for k in GRID_KINDS]}."
    )


def _finish(fig, path: Optional[Path], show: bool, close: bool) -> None:
    fig.tight_layout()

    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=200)

    if show:
        plt.show()

    if close:
        plt.close(fig)


def _draw_outlines(ax, surface: SurfacePoints, **kwargs) -> None:
    """Closed outline of every body."""
    for b in range(surface.n_bodies):
        sl = surface.body_slice(b)
        x = np.append(surface.x[sl], surface.x[sl][:1])
        y = np.append(surface.y[sl], surface.y[sl][:1])
        ax.plot(x, y, **kwargs)


# -----------------------------
# Plotting
# -----------------------------

def plot_field(
    grid: CartesianGrid,
    field: np.ndarray,
    surface: Optional[SurfacePoints] = None,
    *,
    title: str = "",
    path: Optional[Path] = None,
    levels: int = 30,
    cmap: str | None = None,
    figsize: Tuple[float, float] = (6.0, 5.0),
    show: bool = True,
    close: bool = True,
):
    """
    Filled contours of a cell or node field in physical coordinates, with body
    outlines if `surface` is given.

    Parameters
    ----------
    path:
        If provided, saves the figure to this path (parent dirs created).
    show:
        If True, calls plt.show() so notebooks display inline.
    close:
        If True, closes figure (avoid piling up in long notebook runs).

    Returns the figure.
    """
    field = np.asarray(field, dtype=float)
    X, Y = grid.mesh(_field_kind(grid, field))

    fig, ax = plt.subplots(figsize=figsize)
    cs = ax.contourf(X, Y, field, levels=levels, cmap=cmap)
    ax.contour(X, Y, field, levels=levels, colors="k", linewidths=0.3)
    fig.colorbar(cs, ax=ax)

    if surface is not None:
        _draw_outlines(ax, surface, color="k", lw=1.5)

    ax.set_aspect("equal")
    ax.set_xlim(grid.x_min, grid.x_max)
    ax.set_ylim(grid.y_min, grid.y_max)
    ax.set_title(title)
    ax.set_xlabel("x")
    ax.set_ylabel("y")

    _finish(fig, path, show, close)
    return fig


def plot_surface(
    q: np.ndarray,
    surface: SurfacePoints,
    body: Optional[int] = None,
    *,
    title: str = "",
    ylabel: str = "",
    path: Optional[Path] = None,
    show: bool = True,
    close: bool = True,
):
    """
    Plot a surface field against point index (one line per body).
    """
    q = np.asarray(q, dtype=float)
    if q.shape != (surface.n_points,):
        raise ValueError(f"q has shape {q.shape}, expected ({surface.n_points},).")

    bodies = range(surface.n_bodies) if body is None else [body]

    fig, ax = plt.subplots()
    for b in bodies:
        sl = surface.body_slice(b)
        ax.plot(np.arange(sl.start, sl.stop), q[sl], label=f"body {b}")
    if surface.n_bodies > 1:
        ax.legend()
    ax.set_title(title)
    ax.set_xlabel("surface point")
    ax.set_ylabel(ylabel)

    _finish(fig, path, show, close)
    return fig
