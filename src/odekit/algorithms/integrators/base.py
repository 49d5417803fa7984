"""Provide abstract interfaces for numerical time integration.

References
----------
Hairer, E., Norsett, S. P., & Wanner, G. (1993). "Solving Ordinary
Differential Equations I: Non-stiff Problems".
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

import numpy as np

from odekit.algorithms.dynamics.base import _DynamicalSystemProtocol
from odekit.algorithms.integrators.types import IntegrationResult
from odekit.algorithms.utils.exceptions import InvalidConfigurationError


class _Integrator(ABC):
    """Define the minimal interface that every concrete integrator must satisfy.

    Parameters
    ----------
    name : str
        Human-readable identifier of the method.
    """

    def __init__(self, name: str):
        self.name = name

    @property
    @abstractmethod
    def order(self) -> Optional[int]:
        """Order of accuracy of the integrator.

        Returns
        -------
        int or None
            Order of the method, or None if not applicable
        """
        pass

    @abstractmethod
    def integrate(
        self,
        system: _DynamicalSystemProtocol,
        y0: np.ndarray,
        t_span: Tuple[float, float],
        dt_out: float,
        **kwargs
    ) -> IntegrationResult:
        """Integrate the dynamical system from initial conditions.

        Parameters
        ----------
        system : _DynamicalSystemProtocol
            The dynamical system to integrate.
        y0 : numpy.ndarray
            Initial state vector, shape (system.dim,).
        t_span : tuple of float
            ``(t_start, t_end)`` with ``t_end > t_start``.
        dt_out : float
            Stride of the output grid.
        **kwargs
            Additional integration options.

        Returns
        -------
        :class:`~odekit.algorithms.integrators.types.IntegrationResult`
            Sampled trajectory and statistics.

        Raises
        ------
        :class:`~odekit.algorithms.utils.exceptions.InvalidConfigurationError`
            If the inputs do not describe a valid integration task.
        """
        pass

    def validate_system(self, system: _DynamicalSystemProtocol) -> None:
        """Check that *system* exposes an ``rhs`` callable and a dimension.

        Raises
        ------
        :class:`~odekit.algorithms.utils.exceptions.InvalidConfigurationError`
            If ``rhs`` or ``dim`` is missing.
        """
        if not hasattr(system, 'rhs') or not callable(system.rhs):
            raise InvalidConfigurationError(f"System must implement 'rhs' method for {self.name}")
        if not hasattr(system, 'dim'):
            raise InvalidConfigurationError(f"System must expose 'dim' for {self.name}")

    def validate_inputs(
        self,
        system: _DynamicalSystemProtocol,
        y0: np.ndarray,
        t_span: Tuple[float, float],
        dt_out: float,
    ) -> None:
        """Validate that the input arguments form a consistent integration task.

        Raises
        ------
        :class:`~odekit.algorithms.utils.exceptions.InvalidConfigurationError`
            If any of the following conditions holds:
            - ``y0`` is empty, not one-dimensional or not finite.
            - ``len(y0)`` differs from ``system.dim``.
            - the bounds are not finite or ``t_end <= t_start``.
            - ``dt_out`` is not a positive finite number.
        """
        self.validate_system(system)

        if y0.ndim != 1 or y0.size == 0:
            raise InvalidConfigurationError(f"Initial state must be a non-empty vector, got shape {y0.shape}")
        if len(y0) != system.dim:
            raise InvalidConfigurationError(
                f"Initial state dimension {len(y0)} != system dimension {system.dim}"
            )
        if not np.all(np.isfinite(y0)):
            raise InvalidConfigurationError("Initial state must be finite")

        if len(t_span) != 2:
            raise InvalidConfigurationError("t_span must be a pair (t_start, t_end)")
        t_start, t_end = t_span
        if not (np.isfinite(t_start) and np.isfinite(t_end)):
            raise InvalidConfigurationError(f"Integration bounds must be finite, got {t_span}")
        if t_end <= t_start:
            raise InvalidConfigurationError(f"t_end ({t_end}) must be greater than t_start ({t_start})")

        if not (np.isfinite(dt_out) and dt_out > 0.0):
            raise InvalidConfigurationError(f"Output stride must be positive, got {dt_out}")

    def __str__(self):
        return f"odekit-{self.name}"

    def __repr__(self):
        return f"{self.__class__.__name__}(name='{self.name}')"
