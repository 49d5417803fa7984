"""odekit: adaptive Dormand-Prince integration of ordinary differential equations."""

from .algorithms import (AdaptiveRK, Dopri5, IntegrationResult,
                         IntegrationStats, IntegrationStatus, LogisticSystem,
                         RHSSystem, SolverConfig, create_logistic_system,
                         create_rhs_system, integrate, logistic_solution)
from .algorithms.utils.exceptions import (EvaluationLimitError,
                                          IntegrationError,
                                          InvalidConfigurationError,
                                          NonFiniteError, OdekitError,
                                          StepUnderflowError)

__version__ = "0.1.0"

__all__ = [
    "AdaptiveRK",
    "Dopri5",
    "EvaluationLimitError",
    "IntegrationError",
    "IntegrationResult",
    "IntegrationStats",
    "IntegrationStatus",
    "InvalidConfigurationError",
    "LogisticSystem",
    "NonFiniteError",
    "OdekitError",
    "RHSSystem",
    "SolverConfig",
    "StepUnderflowError",
    "create_logistic_system",
    "create_rhs_system",
    "integrate",
    "logistic_solution",
]
