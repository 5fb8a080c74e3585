import logging

import numpy as np
import pytest

from immersed_layers.core.bodies import BodyList, Circle
from immersed_layers.core.config import ProblemConfig
from immersed_layers.core.errors import ConfigurationError, DimensionMismatch, NumericalFailure
from immersed_layers.operators.schur import SchurComplement, build_schur_complement
from immersed_layers.operators.surface import GridOperators


def test_direct_schur_is_symmetric_and_solves(circle_ops, caplog):
    with caplog.at_level(logging.INFO, logger="immersed_layers.operators.schur"):
        schur = build_schur_complement(circle_ops)
    assert "Schur complement" in caplog.text
    assert schur.method == "direct"
    assert schur.shape == (circle_ops.n_points, circle_ops.n_points)
    assert np.isfinite(schur.condition)

    S = schur.matrix
    assert np.allclose(S, S.T, atol=1e-8 * np.abs(S).max())

    r = circle_ops.normals()[:, 0]
    x = schur.solve(r)
    assert np.allclose(schur.apply(x), r, atol=1e-8)


def test_block_size_does_not_change_matrix(circle_ops):
    a = build_schur_complement(circle_ops, ProblemConfig(block_size=5)).matrix
    b = build_schur_complement(circle_ops, ProblemConfig(block_size=64)).matrix
    assert np.allclose(a, b, atol=1e-12 * np.abs(a).max())


def test_gmres_matches_direct(circle_ops):
    direct = build_schur_complement(circle_ops)
    gmres = build_schur_complement(circle_ops, ProblemConfig(schur_method="gmres"))
    assert isinstance(gmres, SchurComplement)
    assert gmres.method == "gmres"
    assert gmres.condition is None

    rng = np.random.default_rng(4)
    q = rng.standard_normal(circle_ops.n_points)
    assert np.allclose(gmres.apply(q), direct.apply(q), atol=1e-9 * np.abs(direct.apply(q)).max())
    assert np.allclose(gmres.matrix, direct.matrix, atol=1e-9 * np.abs(direct.matrix).max())

    r = circle_ops.normals()[:, 0]
    xd = direct.solve(r)
    xg = gmres.solve(r)
    assert np.allclose(xg - xg.mean(), xd - xd.mean(), atol=1e-6 * np.abs(xd).max())


def test_coincident_bodies_are_singular(grid):
    bl = BodyList([Circle(1.0, 1.4 * grid.h), Circle(1.0, 1.4 * grid.h)])
    ops = GridOperators(grid, bl.surface())
    with pytest.raises(ConfigurationError):
        build_schur_complement(ops)


def test_solve_errors(circle_ops):
    schur = build_schur_complement(circle_ops)
    with pytest.raises(DimensionMismatch):
        schur.solve(np.ones(circle_ops.n_points - 1))
    r = np.ones(circle_ops.n_points)
    r[0] = np.inf
    with pytest.raises(NumericalFailure):
        schur.solve(r)


def test_gmres_non_convergence_raises(circle_ops):
    cfg = ProblemConfig(schur_method="gmres", gmres_rtol=1e-14, gmres_restart=2, gmres_maxiter=1)
    schur = build_schur_complement(circle_ops, cfg)
    rng = np.random.default_rng(5)
    with pytest.raises(NumericalFailure):
        schur.solve(rng.standard_normal(circle_ops.n_points))
