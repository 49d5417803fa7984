"""Local error norm and step-size control for embedded Runge-Kutta pairs.

The controller follows Hairer, Norsett & Wanner (1993), section II.4: a step
is accepted when the scaled root-mean-square error is at most one, and the
next step is predicted from the error with a safety factor and bounded
growth and shrinkage.
"""

from typing import NamedTuple

import numba
import numpy as np

from odekit.algorithms.integrators.coefficients.dopri5 import \
    ERROR_ESTIMATOR_ORDER
from odekit.algorithms.utils.config import (FASTMATH, MAX_FACTOR, MIN_FACTOR,
                                            SAFETY)
from odekit.algorithms.utils.exceptions import InvalidConfigurationError


@numba.njit(cache=False, fastmath=FASTMATH)
def _error_norm_jit(err, y, y_new, rtol, atol):
    n = err.size
    acc = 0.0
    for i in range(n):
        sc = atol[i] + rtol[i] * max(abs(y[i]), abs(y_new[i]))
        r = err[i] / sc
        acc += r * r
    return np.sqrt(acc / n)


def _broadcast_tolerance(tol, dim: int, name: str) -> np.ndarray:
    arr = np.asarray(tol, dtype=np.float64)
    if arr.ndim == 0:
        arr = np.full(dim, float(arr), dtype=np.float64)
    elif arr.ndim != 1 or arr.size != dim:
        raise InvalidConfigurationError(
            f"{name} must be a scalar or have one entry per state component "
            f"({dim}), got shape {arr.shape}"
        )
    else:
        arr = arr.copy()
    if not np.all(np.isfinite(arr)) or np.any(arr <= 0.0):
        raise InvalidConfigurationError(f"{name} must be strictly positive, got {tol}")
    return arr


class _ControlDecision(NamedTuple):
    accepted: bool
    h_next: float
    err_norm: float


class _StepSizeController:
    """Accept/reject decision and step-size prediction.

    Parameters
    ----------
    rtol, atol : float or array_like
        Tolerances, scalars or one entry per component.
    dim : int
        State dimension the tolerances are broadcast to.
    order : int, default 4
        Order used in the exponent ``-1 / (order + 1)``; the lower order of
        the embedded pair.
    safety, min_factor, max_factor : float
        Safety factor and bounds on the step-size ratio ``h_next / h``.
    beta : float, default 0.0
        PI stabilisation exponent (Gustafsson; Hairer II.4). ``0`` gives the
        plain I-controller.

    Notes
    -----
    After a rejected step, the step following it is not allowed to grow.
    The controller keeps a little memory (previous error, last rejection),
    so one instance belongs to exactly one integration run.
    """

    def __init__(self,
                 rtol,
                 atol,
                 dim: int,
                 order: int = ERROR_ESTIMATOR_ORDER,
                 safety: float = SAFETY,
                 min_factor: float = MIN_FACTOR,
                 max_factor: float = MAX_FACTOR,
                 beta: float = 0.0):
        self.rtol = _broadcast_tolerance(rtol, dim, "rtol")
        self.atol = _broadcast_tolerance(atol, dim, "atol")
        self.order = order
        self.safety = safety
        self.min_factor = min_factor
        self.max_factor = max_factor
        self.beta = beta
        self._err_exp = 1.0 / (order + 1)
        self.reset()

    def reset(self) -> None:
        self._err_prev = 1e-4
        self._last_rejected = False

    def error_norm(self, err: np.ndarray, y: np.ndarray, y_new: np.ndarray) -> float:
        """Scaled RMS norm of the local error estimate *err*."""
        return float(_error_norm_jit(err, y, y_new, self.rtol, self.atol))

    def factor(self, err_norm: float) -> float:
        """Step-size ratio for an error norm, clamped to ``[min_factor, max_factor]``."""
        if err_norm == 0.0:
            return self.max_factor
        fac = self.safety * err_norm ** (-self._err_exp)
        return min(self.max_factor, max(self.min_factor, fac))

    def control(self, err: np.ndarray, y: np.ndarray, y_new: np.ndarray, h: float) -> _ControlDecision:
        """Decide whether the step of size *h* is accepted and predict the next step.

        Parameters
        ----------
        err : numpy.ndarray
            Local error estimate ``y_high - y_low``.
        y, y_new : numpy.ndarray
            State at the beginning of the step and proposed state at its end.
        h : float
            Size of the step that produced *err*.

        Returns
        -------
        _ControlDecision
            ``accepted`` is True iff the error norm is at most one; ``h_next``
            is the next trial step (strictly smaller than *h* on rejection).
        """
        err_norm = self.error_norm(err, y, y_new)

        if err_norm <= 1.0:
            if self.beta > 0.0 and err_norm > 0.0:
                expo = self._err_exp - 0.75 * self.beta
                fac = self.safety * err_norm ** (-expo) * self._err_prev ** self.beta
                fac = min(self.max_factor, max(self.min_factor, fac))
            else:
                fac = self.factor(err_norm)
            if self._last_rejected:
                fac = min(fac, 1.0)
            self._err_prev = max(err_norm, 1e-4)
            self._last_rejected = False
            return _ControlDecision(True, h * fac, err_norm)

        self._last_rejected = True
        return _ControlDecision(False, h * self.factor(err_norm), err_norm)
