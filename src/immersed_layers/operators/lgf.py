"""
Lattice Green's function of the 5-point Laplacian on the unbounded unit lattice.

G solves  G(m+1,n) + G(m-1,n) + G(m,n+1) + G(m,n-1) - 4 G(m,n) = delta(m,n),
normalized so that G(0,0) = 0. Near the origin it is evaluated from the 1D
integral representation

    G(m,n) = -1/(2 pi) int_0^pi (exp(-|m| s) cos(n x) - 1) / sinh(s) dx,
    cosh(s) = 2 - cos(x),

and far away from its asymptotic expansion

    G(m,n) ~ (ln r + gamma + 3/2 ln 2) / (2 pi) - cos(4 theta) / (24 pi r^2).
"""
from __future__ import annotations

from functools import lru_cache

import numpy as np
from scipy.integrate import quad


EULER_GAMMA = 0.5772156649015329

# max(|m|, |n|) below which the integral representation is used
NEAR_FIELD = 16


def lgf_integral(m: int, n: int) -> float:
    m, n = abs(int(m)), abs(int(n))
    if m == 0 and n == 0:
        return 0.0

    # sinh(s/2) = sin(x/2) keeps s accurate as x -> 0
    def integrand(x: float) -> float:
        half = np.sin(0.5 * x)
        s = 2.0 * np.arcsinh(half)
        sinh_s = 2.0 * half * np.sqrt(1.0 + half * half)
        return (np.exp(-m * s) * np.cos(n * x) - 1.0) / sinh_s

    val, _ = quad(integrand, 0.0, np.pi, limit=400, epsabs=1e-12, epsrel=1e-12)
    return -val / (2.0 * np.pi)


def lgf_asymptotic(m: np.ndarray, n: np.ndarray) -> np.ndarray:
    m = np.asarray(m, dtype=float)
    n = np.asarray(n, dtype=float)
    r2 = m * m + n * n
    with np.errstate(divide="ignore", invalid="ignore"):
        cos4 = (m**4 - 6.0 * m * m * n * n + n**4) / (r2 * r2)
        g = (0.5 * np.log(r2) + EULER_GAMMA + 1.5 * np.log(2.0)) / (2.0 * np.pi) - cos4 / (
            24.0 * np.pi * r2
        )
    return np.where(r2 > 0.0, g, 0.0)


@lru_cache(maxsize=16)
def lgf_table(m_max: int, n_max: int) -> np.ndarray:
    """
    G(m, n) for 0 <= m <= m_max, 0 <= n <= n_max (read-only array).
    """
    m_max, n_max = int(m_max), int(n_max)
    M, N = np.meshgrid(np.arange(m_max + 1), np.arange(n_max + 1), indexing="ij")
    table = lgf_asymptotic(M, N)

    near = NEAR_FIELD
    values = {}
    for m in range(min(m_max, near) + 1):
        for n in range(min(n_max, near) + 1):
            key = (min(m, n), max(m, n))
            if key not in values:
                values[key] = lgf_integral(*key)
            table[m, n] = values[key]

    table.setflags(write=False)
    return table


def lgf_kernel(shape) -> np.ndarray:
    """
    Full convolution kernel K[m + mx - 1, n + my - 1] = G(m, n) for an (mx, my) window.
    """
    mx, my = int(shape[0]), int(shape[1])
    table = lgf_table(mx - 1, my - 1)
    im = np.abs(np.arange(-(mx - 1), mx))
    jn = np.abs(np.arange(-(my - 1), my))
    return table[im[:, None], jn[None, :]]
