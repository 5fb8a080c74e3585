# operators/kernels.py
from __future__ import annotations

from typing import Callable, Dict, Tuple

import numpy as np

from immersed_layers.core.errors import ConfigurationError


Kernel = Callable[[np.ndarray], np.ndarray]


def roma(r: np.ndarray) -> np.ndarray:
    """
    Roma et al. (1999) 3-point discrete delta, support |r| < 1.5 (r in cell units).

    Satisfies the zeroth and first moment conditions, so interpolation with it
    is exact for linear fields.
    """
    r = np.abs(np.asarray(r, dtype=float))
    inner = (1.0 + np.sqrt(np.clip(1.0 - 3.0 * r**2, 0.0, None))) / 3.0
    outer = (5.0 - 3.0 * r - np.sqrt(np.clip(1.0 - 3.0 * (1.0 - r) ** 2, 0.0, None))) / 6.0
    return np.where(r <= 0.5, inner, np.where(r <= 1.5, outer, 0.0))


def peskin4(r: np.ndarray) -> np.ndarray:
    """Peskin's 4-point cosine delta, support |r| < 2."""
    r = np.abs(np.asarray(r, dtype=float))
    return np.where(r < 2.0, 0.25 * (1.0 + np.cos(0.5 * np.pi * r)), 0.0)


def yang3(r: np.ndarray) -> np.ndarray:
    """
    Yang et al. (2009) smoothed 3-point delta, support |r| < 2.

    The Roma kernel averaged over one cell width: same zeroth and first
    moments as `roma`, with a continuous first derivative.
    """
    r = np.abs(np.asarray(r, dtype=float))
    s3 = np.sqrt(3.0)
    inner = (
        17.0 / 48.0 + s3 * np.pi / 108.0 + r / 4.0 - r**2 / 4.0
        + (1.0 - 2.0 * r) / 16.0 * np.sqrt(np.clip(-12.0 * r**2 + 12.0 * r + 1.0, 0.0, None))
        - s3 / 12.0 * np.arcsin(np.clip(0.5 * s3 * (2.0 * r - 1.0), -1.0, 1.0))
    )
    outer = (
        55.0 / 48.0 - s3 * np.pi / 108.0 - 13.0 * r / 12.0 + r**2 / 4.0
        + (2.0 * r - 3.0) / 48.0 * np.sqrt(np.clip(-12.0 * r**2 + 36.0 * r - 23.0, 0.0, None))
        + s3 / 36.0 * np.arcsin(np.clip(0.5 * s3 * (2.0 * r - 3.0), -1.0, 1.0))
    )
    return np.where(r <= 1.0, inner, np.where(r < 2.0, outer, 0.0))


_KERNELS: Dict[str, Tuple[Kernel, float]] = {
    "roma": (roma, 1.5),
    "peskin4": (peskin4, 2.0),
    "yang3": (yang3, 2.0),
}


def get_kernel(name: str) -> Tuple[Kernel, float]:
    """Return (kernel, support radius in cells)."""
    try:
        return _KERNELS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown regularization kernel '{name}'. Use one of {tuple(_KERNELS)}."
        ) from None
