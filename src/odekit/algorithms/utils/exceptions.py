"""
Custom exceptions for the odekit package.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from odekit.algorithms.integrators.types import IntegrationResult


class OdekitError(Exception):
    """Base exception for odekit errors.

    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class InvalidConfigurationError(OdekitError, ValueError):
    """Raised before integration starts when the problem or solver options are invalid.

    Parameters
    ----------
    message : str
        The error message.
    """

    def __init__(self, message: str):
        super().__init__(message)


class IntegrationError(OdekitError):
    """Raised when a finished integration ended in a failure state.

    Parameters
    ----------
    message : str
        The error message.
    result : :class:`~odekit.algorithms.integrators.types.IntegrationResult`
        The failed result, holding the partial output and the statistics.
    """

    def __init__(self, message: str, result: "IntegrationResult"):
        super().__init__(message)
        self.result = result


class StepUnderflowError(IntegrationError):
    """The step size fell below the minimum allowed step."""


class NonFiniteError(IntegrationError):
    """The derivative or the propagated state became NaN or infinite."""


class EvaluationLimitError(IntegrationError):
    """The ceiling on derivative evaluations was reached."""
