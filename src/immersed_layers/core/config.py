from __future__ import annotations

from dataclasses import dataclass

from .errors import ConfigurationError


DDF_CHOICES = ("yang3", "roma", "peskin4")
BOUNDARY_CHOICES = ("unbounded", "dirichlet")
SCHUR_METHODS = ("direct", "gmres")


@dataclass(frozen=True)
class ProblemConfig:
    """
    Numerical options shared by the operator provider and the Schur builder.

    ddf:
        regularization kernel ("yang3" smoothed 3-point, "roma" 3-point or
        "peskin4" 4-point cosine)
    boundary:
        "unbounded" (lattice Green's function) or "dirichlet" (zero one
        spacing outside the grid, sparse LU)
    schur_method:
        "direct" (dense S, LU) or "gmres" (matrix-free S)
    block_size:
        number of Schur columns assembled per batched Laplacian solve
    max_condition:
        direct S with a larger condition number is rejected as singular
    """
    ddf: str = "yang3"
    boundary: str = "unbounded"
    schur_method: str = "direct"
    block_size: int = 16
    max_condition: float = 1e14
    gmres_rtol: float = 1e-10
    gmres_restart: int = 200
    gmres_maxiter: int = 1000

    def __post_init__(self) -> None:
        if self.ddf not in DDF_CHOICES:
            raise ConfigurationError(f"Unknown ddf '{self.ddf}'. Use one of {DDF_CHOICES}.")
        if self.boundary not in BOUNDARY_CHOICES:
            raise ConfigurationError(
                f"Unknown boundary '{self.boundary}'. Use one of {BOUNDARY_CHOICES}."
            )
        if self.schur_method not in SCHUR_METHODS:
            raise ConfigurationError(
                f"Unknown schur_method '{self.schur_method}'. Use one of {SCHUR_METHODS}."
            )
        if int(self.block_size) < 1:
            raise ConfigurationError("block_size must be >= 1.")
        if not (float(self.max_condition) > 1.0):
            raise ConfigurationError("max_condition must be > 1.")
        if not (0.0 < float(self.gmres_rtol) < 1.0):
            raise ConfigurationError("gmres_rtol must be in (0, 1).")
        if int(self.gmres_restart) < 1 or int(self.gmres_maxiter) < 1:
            raise ConfigurationError("gmres_restart and gmres_maxiter must be >= 1.")
