"""Dense output: sampling an adaptive trajectory on a fixed output grid.

The adaptive driver chooses its own step boundaries. The caller, on the other
hand, asks for states at ``t_start, t_start + dt_out, ...``. Each accepted step
hands its stage derivatives to :class:`_DenseSampler`, which evaluates a
continuous extension of the step at every grid time the step has passed.
The sampler only reads the step; it never feeds back into step-size control.
"""

import math
from typing import List

import numba
import numpy as np

from odekit.algorithms.integrators.coefficients.dopri5 import P as DOPRI5_P
from odekit.algorithms.utils.config import FASTMATH


@numba.njit(cache=False, fastmath=FASTMATH)
def _dopri_dense_jit(y_old, h, Q, theta):
    """Evaluate ``y_old + h * sum_c Q[:, c] * theta**(c + 1)``."""
    n = y_old.size
    out = y_old.copy()
    p = theta
    for c in range(Q.shape[1]):
        for d in range(n):
            out[d] += h * Q[d, c] * p
        p *= theta
    return out


@numba.njit(cache=False, fastmath=FASTMATH)
def _hermite_dense_jit(y_old, f_old, y_new, f_new, h, theta):
    """Cubic Hermite interpolant between two step endpoints."""
    s2 = theta * theta
    s3 = s2 * theta
    h00 = 2.0 * s3 - 3.0 * s2 + 1.0
    h10 = s3 - 2.0 * s2 + theta
    h01 = -2.0 * s3 + 3.0 * s2
    h11 = s3 - s2
    return h00 * y_old + h10 * h * f_old + h01 * y_new + h11 * h * f_new


def _output_grid(t_start: float, t_end: float, dt_out: float) -> np.ndarray:
    """Return ``t_start + i * dt_out`` for every grid time not beyond *t_end*.

    A grid time within a few ulps of *t_end* is snapped onto *t_end* so that a
    stride dividing the interval always produces a final sample at *t_end*.
    """
    span = t_end - t_start
    snap = 64.0 * np.finfo(float).eps * max(abs(t_end), abs(t_start), dt_out)
    n = int(math.floor(span / dt_out))
    # floor() can land one short or one long of the exact count
    if t_start + (n + 1) * dt_out <= t_end + snap:
        n += 1
    while n > 0 and t_start + n * dt_out > t_end + snap:
        n -= 1
    grid = t_start + dt_out * np.arange(n + 1, dtype=np.float64)
    if abs(grid[-1] - t_end) <= snap:
        grid[-1] = t_end
    return grid


class _DenseSampler:
    """Append-only output buffer filled from accepted steps.

    Parameters
    ----------
    t_start, t_end : float
        Integration interval, ``t_end > t_start``.
    dt_out : float
        Output stride, strictly positive.
    interpolant : {'dopri', 'hermite'}, default 'dopri'
        ``'dopri'`` uses the fourth-order continuous extension of the
        Dormand-Prince step built from all seven stages. ``'hermite'`` uses
        the endpoint states and derivatives only (one order less accurate).
    include_end : bool, default False
        When *t_end* is not on the grid, :meth:`finish` appends a final
        sample at *t_end*.
    """

    def __init__(self, t_start: float, t_end: float, dt_out: float,
                 interpolant: str = "dopri", include_end: bool = False):
        if interpolant not in ("dopri", "hermite"):
            raise ValueError(f"Unknown interpolant '{interpolant}'")
        self.t_start = float(t_start)
        self.t_end = float(t_end)
        self.dt_out = float(dt_out)
        self.interpolant = interpolant
        self.include_end = include_end

        self._grid = _output_grid(self.t_start, self.t_end, self.dt_out)
        self._next = 0
        self._times: List[float] = []
        self._states: List[np.ndarray] = []

    @property
    def grid(self) -> np.ndarray:
        return self._grid.copy()

    @property
    def pending(self) -> int:
        """Number of grid times not emitted yet."""
        return self._grid.size - self._next

    def __len__(self):
        return len(self._times)

    def _emit(self, t: float, y: np.ndarray) -> None:
        self._times.append(t)
        self._states.append(np.array(y, dtype=np.float64, copy=True))

    def start(self, y0: np.ndarray) -> None:
        """Record the initial sample ``(t_start, y0)``."""
        if self._times:
            raise RuntimeError("Sampler already started")
        self._emit(self._grid[0], y0)
        self._next = 1

    def consume(self, t0: float, t1: float, y0: np.ndarray, y1: np.ndarray, K: np.ndarray, h: float) -> int:
        """Emit every pending grid time in ``(t0, t1]`` from an accepted step.

        Parameters
        ----------
        t0, t1 : float
            Boundaries of the accepted step.
        y0, y1 : numpy.ndarray
            States at *t0* and *t1*.
        K : numpy.ndarray of shape (7, dim)
            Stage derivatives of the step; ``K[0] = f(t0, y0)`` and
            ``K[6] = f(t1, y1)``.
        h : float
            Step size used to compute *K*.

        Returns
        -------
        int
            Number of samples emitted.
        """
        emitted = 0
        Q = None
        while self._next < self._grid.size and self._grid[self._next] <= t1:
            t_out = self._grid[self._next]
            if t_out == t1:
                y_out = y1
            else:
                theta = (t_out - t0) / h
                if self.interpolant == "dopri":
                    if Q is None:
                        Q = np.ascontiguousarray(K.T @ DOPRI5_P)
                    y_out = _dopri_dense_jit(y0, h, Q, theta)
                else:
                    y_out = _hermite_dense_jit(y0, K[0], y1, K[-1], h, theta)
            self._emit(t_out, y_out)
            self._next += 1
            emitted += 1
        return emitted

    def finish(self, t_end: float, y_end: np.ndarray) -> None:
        """Close the buffer once integration reached *t_end*."""
        if self.include_end and self._times and self._times[-1] < t_end:
            self._emit(t_end, y_end)

    def times(self) -> np.ndarray:
        return np.asarray(self._times, dtype=np.float64)

    def states(self, dim: int) -> np.ndarray:
        if not self._states:
            return np.empty((0, dim), dtype=np.float64)
        return np.vstack(self._states)
