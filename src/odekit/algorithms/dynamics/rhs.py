import inspect
from typing import Callable

import numpy as np

from odekit.algorithms.dynamics.base import _DynamicalSystem


class RHSSystem(_DynamicalSystem):
    """Wrap an arbitrary ``(t, y)`` callable into a :class:`~odekit.algorithms.dynamics.base._DynamicalSystem`.

    Parameters
    ----------
    rhs_func : callable
        Function ``rhs_func(t, y)`` returning ``dy/dt`` as an array-like of
        length *dim*.
    dim : int
        Dimension of the state space.
    name : str, default "Generic RHS"
        Human-readable identifier used in logs and ``repr``.
    """

    def __init__(self, rhs_func: Callable[[float, np.ndarray], np.ndarray], dim: int, name: str = "Generic RHS"):
        super().__init__(dim)

        try:
            sig = inspect.signature(rhs_func)
        except (TypeError, ValueError):
            sig = None
        if sig is not None:
            params = list(sig.parameters.values())
            variadic = any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params)
            if not variadic and len(params) < 2:
                raise ValueError("rhs_func must have signature (t, y)")

        self._rhs_func = rhs_func
        self.name = name

    @property
    def rhs(self) -> Callable[[float, np.ndarray], np.ndarray]:
        rhs_func = self._rhs_func

        def _rhs(t: float, y: np.ndarray) -> np.ndarray:
            return np.asarray(rhs_func(t, y), dtype=np.float64).reshape(-1)

        return _rhs

    def __repr__(self) -> str:
        return f"RHSSystem(name='{self.name}', dim={self.dim})"


def create_rhs_system(rhs_func: Callable[[float, np.ndarray], np.ndarray], dim: int, name: str = "Generic RHS"):
    return RHSSystem(rhs_func, dim, name)
