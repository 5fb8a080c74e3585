import numpy as np
import pytest

from immersed_layers.core.grid import CartesianGrid
from immersed_layers.core.bodies import BodyList, Circle
from immersed_layers.algorithm.grid_refinement import (
    grid_l2_norm,
    refine_grid,
    surface_l2_norm,
    surface_l2_rel_error,
)
from immersed_layers.diagnostics import plot_field, plot_surface, save_npz


def test_refine_grid_keeps_box():
    grid = CartesianGrid.from_limits((-2.0, 2.0), (-1.0, 1.0), 0.1)
    fine = refine_grid(grid, 2)
    assert (fine.nx, fine.ny) == (2 * grid.nx, 2 * grid.ny)
    assert fine.h == pytest.approx(0.05)
    assert fine.x_max == pytest.approx(grid.x_max)
    assert fine.y_max == pytest.approx(grid.y_max)
    with pytest.raises(ValueError):
        refine_grid(grid, 1)


def test_norms():
    grid = CartesianGrid.from_limits((0.0, 2.0), (0.0, 3.0), 0.1)
    assert grid_l2_norm(np.ones(grid.shape("cells")), grid) == pytest.approx(np.sqrt(6.0))

    surface = BodyList([Circle(1.0, 0.05), Circle(0.5, 0.05, center=(3.0, 0.0))]).surface()
    ones = np.ones(surface.n_points)
    assert surface_l2_norm(ones, surface, body=0) == pytest.approx(np.sqrt(2.0 * np.pi))
    assert surface_l2_norm(ones, surface) == pytest.approx(np.sqrt(3.0 * np.pi))
    assert surface_l2_rel_error(1.1 * ones, ones, surface) == pytest.approx(0.1)


def test_save_npz(tmp_path):
    path = tmp_path / "out" / "fields.npz"
    save_npz(path, f=np.arange(4.0), s=np.eye(2))
    data = np.load(path)
    assert np.array_equal(data["f"], np.arange(4.0))


def test_plot_field_and_surface(tmp_path):
    grid = CartesianGrid.from_limits((-2.0, 2.0), (-2.0, 2.0), 0.1)
    surface = BodyList([Circle(1.0, 0.14)]).surface()

    X, Y = grid.mesh("cells")
    plot_field(grid, X * Y, surface, title="cells", path=tmp_path / "f.png", show=False)
    Xn, Yn = grid.mesh("nodes")
    plot_field(grid, Xn - Yn, path=tmp_path / "s.png", show=False)
    plot_surface(surface.nx, surface, title="nx", path=tmp_path / "q.png", show=False)

    assert (tmp_path / "f.png").exists()
    assert (tmp_path / "s.png").exists()
    assert (tmp_path / "q.png").exists()

    with pytest.raises(ValueError):
        plot_field(grid, np.zeros((3, 3)), show=False)
    with pytest.raises(ValueError):
        plot_surface(np.zeros(3), surface, show=False)
