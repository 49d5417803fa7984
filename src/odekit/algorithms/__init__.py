""" Public API for the :mod:`~odekit.algorithms` package.
"""

from .dynamics import (LogisticSystem, RHSSystem, create_logistic_system,
                       create_rhs_system, logistic_solution)
from .integrators import (AdaptiveRK, Dopri5, IntegrationResult,
                          IntegrationStats, IntegrationStatus, SolverConfig,
                          integrate)

__all__ = [
    "AdaptiveRK",
    "Dopri5",
    "IntegrationResult",
    "IntegrationStats",
    "IntegrationStatus",
    "LogisticSystem",
    "RHSSystem",
    "SolverConfig",
    "create_logistic_system",
    "create_rhs_system",
    "integrate",
    "logistic_solution",
]
