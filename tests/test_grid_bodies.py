import numpy as np
import pytest

from immersed_layers.core.grid import CartesianGrid
from immersed_layers.core.bodies import (
    BodyList,
    Circle,
    Ellipse,
    Polygon,
    Rectangle,
    RigidTransform,
    RigidTransformList,
    Square,
    SurfacePoints,
)
from immersed_layers.core.config import ProblemConfig
from immersed_layers.core.errors import ConfigurationError, DimensionMismatch


def test_grid_shapes_and_origins():
    grid = CartesianGrid(nx=4, ny=3, h=0.5, x_min=-1.0, y_min=0.0)
    assert grid.shape("cells") == (4, 3)
    assert grid.shape("xedges") == (5, 3)
    assert grid.shape("yedges") == (4, 4)
    assert grid.shape("nodes") == (5, 4)
    assert grid.n_edges == 15 + 16
    assert grid.origin("cells") == (-0.75, 0.25)
    assert grid.origin("nodes") == (-1.0, 0.0)
    x, y = grid.coordinates("nodes")
    assert x[-1] == pytest.approx(grid.x_max)
    assert y[-1] == pytest.approx(grid.y_max)
    with pytest.raises(ValueError):
        grid.shape("faces")


def test_grid_from_limits():
    grid = CartesianGrid.from_limits((-2.0, 2.0), (-1.0, 1.0), 0.1)
    assert (grid.nx, grid.ny) == (40, 20)
    assert grid.lx == pytest.approx(4.0)
    with pytest.raises(ValueError):
        CartesianGrid.from_limits((1.0, 0.0), (0.0, 1.0), 0.1)


def test_circle_points():
    xy, normals, ds = Circle(1.0, 0.1, center=(0.5, -0.5)).points()
    r = np.hypot(xy[:, 0] - 0.5, xy[:, 1] + 0.5)
    assert np.allclose(r, 1.0)
    assert np.allclose(np.hypot(normals[:, 0], normals[:, 1]), 1.0)
    assert ds.sum() == pytest.approx(2.0 * np.pi)
    assert np.all(ds <= 0.1)


@pytest.mark.parametrize(
    "body, area",
    [
        (Square(1.0, 0.05), 4.0),
        (Rectangle(1.0, 0.5, 0.05, angle=0.3), 2.0),
        (Ellipse(1.0, 0.5, 0.02), np.pi * 0.5),
        (Polygon([(0.0, 0.0), (0.0, 1.0), (1.0, 0.0)], 0.02), 0.5),
    ],
)
def test_normals_point_outward(body, area):
    # int x . n ds = 2 * area for a closed curve with outward normals
    xy, normals, ds = body.points()
    c = np.asarray(body.center)
    flux = np.sum(np.sum((xy - c) * normals, axis=1) * ds)
    assert flux == pytest.approx(2.0 * area, rel=1e-2)


def test_rigid_transform_places_bodies():
    bl = BodyList([Circle(0.5, 0.1), Square(0.25, 0.05)])
    tl = RigidTransformList([RigidTransform((1.0, 0.0), 0.0), RigidTransform((0.0, 2.0), np.pi / 4)])
    placed = tl(bl)
    assert isinstance(placed, BodyList)
    assert placed[0].center == (1.0, 0.0)
    assert placed[1].angle == pytest.approx(np.pi / 4)
    xy, _, _ = placed[0].points()
    assert xy[:, 0].mean() == pytest.approx(1.0)
    with pytest.raises(ValueError):
        RigidTransformList([RigidTransform()])(bl)


def test_surface_points_blocks():
    bl = BodyList([Circle(0.5, 0.1), Circle(0.25, 0.1, center=(2.0, 0.0))])
    surface = bl.surface()
    n0 = Circle(0.5, 0.1).points()[2].size
    assert surface.n_bodies == 2
    assert surface.body_slice(0) == slice(0, n0)
    assert len(surface) == surface.n_points
    with pytest.raises(IndexError):
        surface.body_slice(2)
    with pytest.raises(ValueError):
        surface.x[0] = 1.0


def test_surface_copyto_and_integrate():
    bl = BodyList([Circle(1.0, 0.1), Circle(0.5, 0.1, center=(3.0, 0.0))])
    surface = bl.surface()
    dest = surface.zeros()
    surface.copyto(dest, surface.nx, 1)
    sl0, sl1 = surface.body_slice(0), surface.body_slice(1)
    assert np.all(dest[sl0] == 0.0)
    assert np.array_equal(dest[sl1], surface.nx[sl1])

    block = np.ones(sl1.stop - sl1.start)
    surface.copyto(dest, block, 1)
    assert np.all(dest[sl1] == 1.0)
    with pytest.raises(DimensionMismatch):
        surface.copyto(dest, np.ones(3), 1)
    with pytest.raises(DimensionMismatch):
        surface.copyto(dest, 1.0, 0)
    with pytest.raises(DimensionMismatch):
        surface.copyto(dest, np.ones((surface.n_points, 2, 2)), 0)

    assert surface.integrate(np.ones(surface.n_points), body=0) == pytest.approx(2.0 * np.pi)
    assert surface.integrate(np.ones(surface.n_points)) == pytest.approx(3.0 * np.pi)
    nn = surface.integrate(surface.normals * surface.nx[:, None], body=1)
    assert nn.shape == (2,)
    assert nn[0] == pytest.approx(0.5 * np.pi)
    assert nn[1] == pytest.approx(0.0, abs=1e-12)


def test_empty_surface():
    surface = SurfacePoints.from_bodies(BodyList())
    assert surface.n_points == 0
    assert surface.n_bodies == 0


def test_problem_config_validation():
    assert ProblemConfig().block_size == 16
    assert ProblemConfig().ddf == "yang3"
    with pytest.raises(ConfigurationError):
        ProblemConfig(ddf="hat")
    with pytest.raises(ConfigurationError):
        ProblemConfig(boundary="periodic")
    with pytest.raises(ConfigurationError):
        ProblemConfig(schur_method="cg")
    with pytest.raises(ConfigurationError):
        ProblemConfig(block_size=0)
