"""Logistic population growth model.

The model reads

    dy/dt = r * y * (1 - y / k)

with growth rate *r* and carrying capacity *k*. It admits the closed form
solution

    y(t) = k * y0 / (y0 + (k - y0) * exp(-r * (t - t0)))

which is used as a reference when validating the integrators.
"""

from typing import Callable, Union

import numpy as np
from numba import njit

from odekit.algorithms.dynamics.base import _DynamicalSystem
from odekit.algorithms.utils.config import FASTMATH


@njit(cache=False, fastmath=FASTMATH)
def _logistic_rhs(y: np.ndarray, r: float, k: float) -> np.ndarray:
    out = np.empty_like(y)
    for i in range(y.size):
        out[i] = r * y[i] * (1.0 - y[i] / k)
    return out


class LogisticSystem(_DynamicalSystem):
    """Logistic growth of a single population.

    Parameters
    ----------
    r : float
        Growth rate. Any finite real; ``r = 0`` gives a constant trajectory.
    k : float
        Carrying capacity, strictly positive.

    Raises
    ------
    ValueError
        If *r* is not finite or *k* is not a positive finite number.
    """

    def __init__(self, r: float, k: float):
        super().__init__(dim=1)
        if not np.isfinite(r):
            raise ValueError(f"Growth rate must be finite, got {r}")
        if not np.isfinite(k) or k <= 0.0:
            raise ValueError(f"Carrying capacity must be positive, got {k}")
        self.r = float(r)
        self.k = float(k)
        self.name = "Logistic"

    @property
    def rhs(self) -> Callable[[float, np.ndarray], np.ndarray]:
        r = self.r
        k = self.k

        def _rhs(t: float, y: np.ndarray) -> np.ndarray:
            return _logistic_rhs(np.asarray(y, dtype=np.float64), r, k)

        return _rhs

    def solution(self, t: Union[float, np.ndarray], y0: float, t0: float = 0.0) -> np.ndarray:
        """Closed-form trajectory through ``(t0, y0)``; see :func:`logistic_solution`."""
        return logistic_solution(t, y0, self.r, self.k, t0)

    def __repr__(self) -> str:
        return f"LogisticSystem(r={self.r}, k={self.k})"


def create_logistic_system(r: float, k: float) -> LogisticSystem:
    return LogisticSystem(r, k)


def logistic_solution(t: Union[float, np.ndarray], y0: float, r: float, k: float, t0: float = 0.0) -> np.ndarray:
    """Evaluate the analytic solution of the logistic equation.

    Parameters
    ----------
    t : float or array_like
        Time(s) at which to evaluate the solution.
    y0 : float
        Population at *t0*.
    r, k : float
        Growth rate and carrying capacity.
    t0 : float, default 0.0
        Reference time of *y0*.

    Returns
    -------
    numpy.ndarray
        Population at each requested time, same shape as *t*.
    """
    t = np.asarray(t, dtype=np.float64)
    decay = np.exp(-r * (t - t0))
    return k * y0 / (y0 + (k - y0) * decay)
