from dataclasses import dataclass
from typing import Literal, Optional, Sequence, Union

import numpy as np

from odekit.algorithms.utils.config import (MAX_EVALS, MAX_FACTOR, MIN_FACTOR,
                                            SAFETY, TOL)
from odekit.algorithms.utils.exceptions import InvalidConfigurationError

_Tolerance = Union[float, Sequence[float], np.ndarray]


@dataclass(frozen=True)
class _SolverConfig:
    """Options of the adaptive Dormand-Prince integrator.

    Parameters
    ----------
    rtol, atol : float or sequence of float, default :data:`~odekit.algorithms.utils.config.TOL`
        Relative and absolute tolerances. Either scalars or one entry per
        state component; every entry must be strictly positive.
    h_min : float or None, default None
        Lower bound on the step size. A rejection that would need a smaller
        step ends the run with ``STEP_UNDERFLOW``.
        When *None* the bound is ten units in the last place of the current
        time.
    h_max : float or None, default None
        Largest step. Defaults to the length of the integration interval.
    first_step : float or None, default None
        Initial trial step. When *None* it is chosen with the starting-step
        heuristic of Hairer, Norsett & Wanner (one extra evaluation).
    max_evals : int, default :data:`~odekit.algorithms.utils.config.MAX_EVALS`
        Ceiling on derivative evaluations for one run.
    safety, min_factor, max_factor : float
        Step-size controller constants.
    beta : float, default 0.0
        PI stabilisation exponent. ``0`` selects the plain controller.
    interpolant : {'dopri', 'hermite'}, default 'dopri'
        Continuous extension used for dense output.
    include_end : bool, default False
        Append a final sample at ``t_end`` when it does not fall on the
        output grid.
    """

    rtol: _Tolerance = TOL
    atol: _Tolerance = TOL
    h_min: Optional[float] = None
    h_max: Optional[float] = None
    first_step: Optional[float] = None
    max_evals: int = MAX_EVALS
    safety: float = SAFETY
    min_factor: float = MIN_FACTOR
    max_factor: float = MAX_FACTOR
    beta: float = 0.0
    interpolant: Literal["dopri", "hermite"] = "dopri"
    include_end: bool = False

    def validate(self) -> None:
        """Raise :class:`~odekit.algorithms.utils.exceptions.InvalidConfigurationError` on inconsistent options."""
        for name in ("rtol", "atol"):
            tol = np.asarray(getattr(self, name), dtype=np.float64)
            if tol.ndim > 1 or tol.size == 0:
                raise InvalidConfigurationError(f"{name} must be a scalar or a 1-D sequence")
            if not np.all(np.isfinite(tol)) or np.any(tol <= 0.0):
                raise InvalidConfigurationError(f"{name} must be strictly positive, got {getattr(self, name)}")
        if self.h_min is not None and not (np.isfinite(self.h_min) and self.h_min > 0.0):
            raise InvalidConfigurationError(f"h_min must be positive, got {self.h_min}")
        if self.h_max is not None and not self.h_max > 0.0:
            raise InvalidConfigurationError(f"h_max must be positive, got {self.h_max}")
        if self.h_min is not None and self.h_max is not None and self.h_min > self.h_max:
            raise InvalidConfigurationError(f"h_min ({self.h_min}) exceeds h_max ({self.h_max})")
        if self.first_step is not None and not (np.isfinite(self.first_step) and self.first_step > 0.0):
            raise InvalidConfigurationError(f"first_step must be positive, got {self.first_step}")
        if int(self.max_evals) < 1:
            raise InvalidConfigurationError(f"max_evals must be at least 1, got {self.max_evals}")
        if not 0.0 < self.safety < 1.0:
            raise InvalidConfigurationError(f"safety must lie in (0, 1), got {self.safety}")
        if not 0.0 < self.min_factor < 1.0 < self.max_factor:
            raise InvalidConfigurationError(
                f"Step factors must satisfy 0 < min_factor < 1 < max_factor, got "
                f"({self.min_factor}, {self.max_factor})"
            )
        if self.beta < 0.0 or self.beta > 0.2:
            raise InvalidConfigurationError(f"beta must lie in [0, 0.2], got {self.beta}")
        if self.interpolant not in ("dopri", "hermite"):
            raise InvalidConfigurationError(f"Unknown interpolant '{self.interpolant}'")
