"""
Error types raised by the impact simulator.

Configuration problems surface as ``InvalidParameter`` before any random
draws are made. ``DistributionDomainError`` guards the arithmetic inside the
engine, and ``CacheIOError`` is raised by simulation stores and handled by the
cache layer itself.
"""

from typing import Optional


class ImpactSimulatorError(Exception):
    """Base class for all simulator errors."""


class InvalidParameter(ImpactSimulatorError, ValueError):
    """A configuration value lies outside its domain."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class DistributionDomainError(ImpactSimulatorError, ArithmeticError):
    """A distribution parameter or draw argument is non-finite or invalid."""


class CacheIOError(ImpactSimulatorError, OSError):
    """Reading or writing a persisted simulation output failed."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message if path is None else f"{message} ({path})")
