"""Right-hand sides consumed by :mod:`odekit.algorithms.integrators`."""

from .base import _DynamicalSystem, _DynamicalSystemProtocol
from .logistic import LogisticSystem, create_logistic_system, logistic_solution
from .rhs import RHSSystem, create_rhs_system

__all__ = [
    "_DynamicalSystem",
    "_DynamicalSystemProtocol",
    "LogisticSystem",
    "RHSSystem",
    "create_logistic_system",
    "create_rhs_system",
    "logistic_solution",
]
