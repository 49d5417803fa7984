"""Result containers returned by the integrators."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

import numpy as np

from odekit.algorithms.utils.exceptions import (EvaluationLimitError,
                                                NonFiniteError,
                                                StepUnderflowError)


class IntegrationStatus(Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    STEP_UNDERFLOW = "step_underflow"
    NON_FINITE = "non_finite"
    EVALUATION_LIMIT_EXCEEDED = "evaluation_limit_exceeded"

    @property
    def is_terminal(self) -> bool:
        return self is not IntegrationStatus.RUNNING


_ERRORS = {
    IntegrationStatus.STEP_UNDERFLOW: StepUnderflowError,
    IntegrationStatus.NON_FINITE: NonFiniteError,
    IntegrationStatus.EVALUATION_LIMIT_EXCEEDED: EvaluationLimitError,
}


@dataclass(frozen=True)
class IntegrationStats:
    """Diagnostics of one integration run.

    Attributes
    ----------
    n_evals : int
        Total number of derivative evaluations, including the one spent on
        initial step selection.
    n_accepted, n_rejected : int
        Number of accepted and rejected steps.
    status : :class:`IntegrationStatus`
        Terminal state of the run.
    """

    n_evals: int
    n_accepted: int
    n_rejected: int
    status: IntegrationStatus

    @property
    def n_steps(self) -> int:
        return self.n_accepted + self.n_rejected

    def __str__(self):
        return (f"Stats(status={self.status.value}, num_eval={self.n_evals}, "
                f"accepted_steps={self.n_accepted}, rejected_steps={self.n_rejected})")


@dataclass(frozen=True)
class IntegrationResult:
    """Output buffer and diagnostics of one integration run.

    Attributes
    ----------
    times : numpy.ndarray
        Sample times, shape (n_samples,), strictly increasing.
    states : numpy.ndarray
        Sampled states, shape (n_samples, dim).
    stats : :class:`IntegrationStats`
        Step and evaluation counters with the terminal status.
    message : str
        Human-readable description of the terminal status.
    t_reached : float
        Time of the last accepted step. Equals ``t_end`` on success.
    """

    times: np.ndarray
    states: np.ndarray
    stats: IntegrationStats
    message: str = ""
    t_reached: float = field(default=np.nan)

    def __post_init__(self):
        if len(self.times) != len(self.states):
            raise ValueError(
                f"Times and states must have same length: "
                f"{len(self.times)} != {len(self.states)}"
            )
        self.times.setflags(write=False)
        self.states.setflags(write=False)

    @property
    def status(self) -> IntegrationStatus:
        return self.stats.status

    @property
    def succeeded(self) -> bool:
        return self.stats.status is IntegrationStatus.SUCCEEDED

    @property
    def dim(self) -> int:
        return self.states.shape[1]

    @property
    def x_out(self) -> np.ndarray:
        return self.times

    @property
    def y_out(self) -> np.ndarray:
        """States flattened to shape (n_samples,) for scalar problems, unchanged otherwise."""
        if self.states.shape[1] == 1:
            return self.states[:, 0]
        return self.states

    def pairs(self) -> List[Tuple[float, np.ndarray]]:
        """Return the buffer as a list of ``(time, state)`` pairs."""
        return [(float(t), y.copy()) for t, y in zip(self.times, self.states)]

    def raise_for_status(self) -> "IntegrationResult":
        """Raise the matching :class:`~odekit.algorithms.utils.exceptions.IntegrationError` if the run failed.

        Returns
        -------
        IntegrationResult
            *self*, when the run succeeded.
        """
        error_cls = _ERRORS.get(self.stats.status)
        if error_cls is not None:
            raise error_cls(self.message, self)
        return self

    def __len__(self):
        return len(self.times)
