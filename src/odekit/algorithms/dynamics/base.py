"""Provide the interface shared by every right-hand side fed to the integrators.

The integrators only need two things from a system: the dimension of its
state space and a callable ``rhs(t, y)`` returning ``dy/dt``.
"""

from abc import ABC, abstractmethod
from typing import Callable, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class _DynamicalSystemProtocol(Protocol):
    """Protocol defining the interface for dynamical systems.

    This protocol specifies the minimum interface that any dynamical system
    must implement to be compatible with the integrator framework.
    """

    @property
    def dim(self) -> int:
        """Dimension of the state space."""
        ...

    @property
    def rhs(self) -> Callable[[float, np.ndarray], np.ndarray]:
        ...


class _DynamicalSystem(ABC):
    """Abstract base class for dynamical systems.

    Parameters
    ----------
    dim : int
        Dimension of the state space.

    Raises
    ------
    ValueError
        If *dim* is not positive.
    """

    def __init__(self, dim: int):
        if dim <= 0:
            raise ValueError(f"Dimension must be positive, got {dim}")
        self._dim = dim

    @property
    def dim(self) -> int:
        """Dimension of the state space."""
        return self._dim

    @property
    @abstractmethod
    def rhs(self) -> Callable[[float, np.ndarray], np.ndarray]:
        pass

    def validate_state(self, y: np.ndarray) -> None:
        """Validate that a state vector has the correct dimension.

        Parameters
        ----------
        y : numpy.ndarray
            State vector to validate.

        Raises
        ------
        ValueError
            If the state vector has incorrect dimension.
        """
        if len(y) != self.dim:
            raise ValueError(f"State vector dimension {len(y)} != system dimension {self.dim}")


class _CountingRHS:
    """Wrap a ``(t, y)`` callable and count how many times it is evaluated.

    The wrapper is owned by a single integration run, so the counter is never
    shared between concurrent runs.
    """

    def __init__(self, rhs: Callable[[float, np.ndarray], np.ndarray]):
        self._rhs = rhs
        self.n_calls = 0

    def __call__(self, t: float, y: np.ndarray) -> np.ndarray:
        self.n_calls += 1
        return np.asarray(self._rhs(t, y), dtype=np.float64)

    def __repr__(self):
        return f"_CountingRHS(rhs={self._rhs!r}, n_calls={self.n_calls})"
