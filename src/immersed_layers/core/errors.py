"""
Error types raised at component boundaries (cache construction, solve entry).
"""


class ImmersedLayersError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(ImmersedLayersError, ValueError):
    """Degenerate geometry or operator setup detected while building a cache."""


class DimensionMismatch(ImmersedLayersError, ValueError):
    """Surface or grid data incompatible with the cached geometry."""


class NumericalFailure(ImmersedLayersError, RuntimeError):
    """A linear solve failed to converge or produced non-finite values."""
