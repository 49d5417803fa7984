"""Adaptive explicit Runge-Kutta integration with dense output."""

from .configs import _SolverConfig as SolverConfig
from .rk import AdaptiveRK, Dopri5, dopri5_step, integrate
from .types import IntegrationResult, IntegrationStats, IntegrationStatus

__all__ = [
    "AdaptiveRK",
    "Dopri5",
    "IntegrationResult",
    "IntegrationStats",
    "IntegrationStatus",
    "SolverConfig",
    "dopri5_step",
    "integrate",
]
