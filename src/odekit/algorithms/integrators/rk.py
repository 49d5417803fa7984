"""Provide the adaptive Dormand-Prince 5(4) integrator.

The module contains the single-step kernel (:func:`dopri5_step`), which
evaluates the seven stages of one step and returns the fifth-order solution
together with the embedded error estimate, and the driver
(:class:`Dopri5`) which advances the solution from ``t_start`` to ``t_end``
under step-size control and samples it on a fixed output grid.

References
----------
Hairer, E.; Norsett, S.; Wanner, G. (1993). "Solving Ordinary Differential
Equations I".

Dormand, J. R.; Prince, P. J. (1980). "A family of embedded Runge-Kutta
formulae".
"""

import inspect
from dataclasses import replace
from typing import Callable, NamedTuple, Optional, Tuple, Union

import numpy as np

from odekit.algorithms.dynamics.base import (_CountingRHS,
                                             _DynamicalSystemProtocol)
from odekit.algorithms.dynamics.rhs import RHSSystem
from odekit.algorithms.integrators.base import _Integrator
from odekit.algorithms.integrators.coefficients.dopri5 import A as DOPRI5_A
from odekit.algorithms.integrators.coefficients.dopri5 import B as DOPRI5_B
from odekit.algorithms.integrators.coefficients.dopri5 import C as DOPRI5_C
from odekit.algorithms.integrators.coefficients.dopri5 import E as DOPRI5_E
from odekit.algorithms.integrators.coefficients.dopri5 import \
    ERROR_ESTIMATOR_ORDER as DOPRI5_ERROR_ESTIMATOR_ORDER
from odekit.algorithms.integrators.coefficients.dopri5 import \
    N_STAGES as DOPRI5_N_STAGES
from odekit.algorithms.integrators.coefficients.dopri5 import \
    ORDER as DOPRI5_ORDER
from odekit.algorithms.integrators.configs import _SolverConfig
from odekit.algorithms.integrators.control import _StepSizeController
from odekit.algorithms.integrators.dense import _DenseSampler
from odekit.algorithms.integrators.types import (IntegrationResult,
                                                 IntegrationStats,
                                                 IntegrationStatus)
from odekit.algorithms.utils.config import TOL
from odekit.algorithms.utils.exceptions import InvalidConfigurationError
from odekit.utils.log_config import logger


class _StepResult(NamedTuple):
    y_high: np.ndarray
    y_low: np.ndarray
    err: np.ndarray
    K: np.ndarray
    n_evals: int


def dopri5_step(f: Callable[[float, np.ndarray], np.ndarray],
                t: float,
                y: np.ndarray,
                h: float,
                k1: Optional[np.ndarray] = None) -> _StepResult:
    """Advance one Dormand-Prince step of size *h* from ``(t, y)``.

    Parameters
    ----------
    f : callable
        Right-hand side ``f(t, y)``.
    t : float
        Time at the beginning of the step.
    y : numpy.ndarray
        State at *t*. Not modified.
    h : float
        Step size.
    k1 : numpy.ndarray, optional
        ``f(t, y)`` if already known. The last stage of an accepted step is
        the derivative at its end point, so the driver passes it on to the
        next step instead of evaluating it again.

    Returns
    -------
    _StepResult
        ``y_high`` (fifth order), ``y_low`` (embedded fourth order),
        ``err = y_high - y_low``, the stage matrix ``K`` of shape (7, dim)
        and the number of evaluations of *f* spent.
    """
    return _embedded_rk_step(f, t, y, h, k1, DOPRI5_A, DOPRI5_B, DOPRI5_C, DOPRI5_E)


def _embedded_rk_step(f, t, y, h, k1, A, B, C, E) -> _StepResult:
    """Evaluate the stages of an explicit FSAL pair with tableau ``(A, B, C, E)``.

    ``B`` holds the ``s`` high order weights; ``A`` and ``C`` carry one extra
    row for the FSAL stage, evaluated at the new state.
    """
    s = B.size
    K = np.empty((s + 1, y.size), dtype=np.float64)
    n_evals = 0

    if k1 is None:
        K[0] = f(t, y)
        n_evals += 1
    else:
        K[0] = k1

    for i in range(1, s):
        dy = h * (A[i, :i] @ K[:i])
        K[i] = f(t + C[i] * h, y + dy)
        n_evals += 1

    y_high = y + h * (B @ K[:s])
    K[s] = f(t + h, y_high)
    n_evals += 1

    err = h * (E @ K)
    y_low = y_high - err
    return _StepResult(y_high, y_low, err, K, n_evals)


def _ulp(x: float) -> float:
    return abs(float(np.nextafter(x, np.inf)) - x)


def _rms(x: np.ndarray) -> float:
    return float(np.linalg.norm(x) / np.sqrt(x.size))


class _RungeKuttaBase(_Integrator):
    """Provide shared functionality of explicit Runge-Kutta schemes.

    Attributes
    ----------
    _A : numpy.ndarray of shape (s, s)
        Strictly lower triangular array of stage coefficients a_ij.
    _B_HIGH : numpy.ndarray of shape (s,)
        Weights of the high order solution.
    _C : numpy.ndarray of shape (s,)
        Nodes c_i measured in units of the step size.
    _E : numpy.ndarray
        Error weights ``b_high - b_low``.
    _p : int
        Formal order of accuracy of the high order scheme.
    """

    _A: np.ndarray = None
    _B_HIGH: np.ndarray = None
    _C: np.ndarray = None
    _E: np.ndarray = None
    _p: int = 0

    @property
    def order(self) -> int:
        return self._p


class Dopri5(_RungeKuttaBase):
    """Implement the Dormand-Prince 5(4) adaptive Runge-Kutta method with dense output.

    Parameters
    ----------
    config : :class:`~odekit.algorithms.integrators.configs._SolverConfig`, optional
        Solver options. Keyword arguments override its fields.
    **opts
        Fields of :class:`~odekit.algorithms.integrators.configs._SolverConfig`
        (``rtol``, ``atol``, ``h_min``, ``h_max``, ``first_step``,
        ``max_evals``, ...).

    Raises
    ------
    :class:`~odekit.algorithms.utils.exceptions.InvalidConfigurationError`
        If the options are inconsistent.

    Examples
    --------
    >>> from odekit import Dopri5, create_logistic_system
    >>> sol = Dopri5(rtol=1e-10, atol=1e-10).integrate(
    ...     create_logistic_system(0.1, 1000.0), [100.0], (0.0, 100.0), 10.0)
    >>> sol.times
    array([  0.,  10.,  20.,  30.,  40.,  50.,  60.,  70.,  80.,  90., 100.])
    """

    _A = DOPRI5_A
    _B_HIGH = DOPRI5_B
    _C = DOPRI5_C
    _E = DOPRI5_E
    _p = DOPRI5_ORDER
    _N_STAGES = DOPRI5_N_STAGES

    def __init__(self, config: Optional[_SolverConfig] = None, **opts):
        if config is None:
            config = _SolverConfig(**opts)
        elif opts:
            config = replace(config, **opts)
        config.validate()
        super().__init__("Dopri5")
        self.config = config

    def __repr__(self):
        return f"{self.__class__.__name__}(config={self.config})"

    def _rk_embedded_step(self, f, t, y, h, k1=None):
        return _embedded_rk_step(f, t, y, h, k1, self._A, self._B_HIGH, self._C, self._E)

    def _min_step(self, t: float) -> float:
        if self.config.h_min is not None:
            return self.config.h_min
        return 10.0 * _ulp(t)

    def _select_initial_step(self, f, t0, y0, f0, span, controller, h_max):
        """Starting step heuristic of Hairer, Norsett & Wanner (II.4)."""
        scale = controller.atol + controller.rtol * np.abs(y0)
        d0 = _rms(y0 / scale)
        d1 = _rms(f0 / scale)
        if d0 < 1e-5 or d1 < 1e-5:
            h0 = 1e-6
        else:
            h0 = 0.01 * d0 / d1
        h0 = min(h0, span, h_max)

        y1 = y0 + h0 * f0
        f1 = f(t0 + h0, y1)
        if not np.all(np.isfinite(f1)):
            return h0
        d2 = _rms((f1 - f0) / scale) / h0

        if d1 <= 1e-15 and d2 <= 1e-15:
            h1 = max(1e-6, h0 * 1e-3)
        else:
            h1 = (0.01 / max(d1, d2)) ** (1.0 / (DOPRI5_ERROR_ESTIMATOR_ORDER + 1))

        return min(100.0 * h0, h1, span, h_max)

    def integrate(
        self,
        system: Union[_DynamicalSystemProtocol, Callable[[float, np.ndarray], np.ndarray]],
        y0: np.ndarray,
        t_span: Tuple[float, float],
        dt_out: float,
        **kwargs,
    ) -> IntegrationResult:
        """Integrate *system* over *t_span* and sample the solution every *dt_out*.

        Parameters
        ----------
        system : _DynamicalSystemProtocol or callable
            System exposing ``dim`` and ``rhs``, or a bare ``f(t, y)`` whose
            dimension is taken from *y0*.
        y0 : array_like
            Initial state; its length fixes the state dimension of the run.
        t_span : tuple of float
            ``(t_start, t_end)`` with ``t_end > t_start``.
        dt_out : float
            Output stride. Samples are produced at ``t_start + i * dt_out``
            up to ``t_end``.

        Returns
        -------
        :class:`~odekit.algorithms.integrators.types.IntegrationResult`
            Output buffer and statistics. A failed run keeps the samples
            produced before the failure.

        Raises
        ------
        :class:`~odekit.algorithms.utils.exceptions.InvalidConfigurationError`
            If the problem is invalid. Nothing is evaluated in that case.
        TypeError
            If unknown keyword arguments are passed; solver options belong to
            the constructor.
        """
        if kwargs:
            raise TypeError(f"integrate() got unexpected keyword arguments: {sorted(kwargs)}")
        y0 = np.atleast_1d(np.asarray(y0, dtype=np.float64))
        system = _as_system(system, y0)
        self.validate_inputs(system, y0, t_span, dt_out)

        cfg = self.config
        t_start, t_end = float(t_span[0]), float(t_span[1])
        span = t_end - t_start
        dim = y0.size

        h_max = span if cfg.h_max is None else float(cfg.h_max)
        if cfg.h_min is not None and cfg.h_min > h_max:
            raise InvalidConfigurationError(f"h_min ({cfg.h_min}) exceeds h_max ({h_max})")

        controller = _StepSizeController(
            cfg.rtol, cfg.atol, dim,
            order=DOPRI5_ERROR_ESTIMATOR_ORDER,
            safety=cfg.safety,
            min_factor=cfg.min_factor,
            max_factor=cfg.max_factor,
            beta=cfg.beta,
        )
        sampler = _DenseSampler(t_start, t_end, float(dt_out), cfg.interpolant, cfg.include_end)
        f = _CountingRHS(_build_rhs_wrapper(system))

        t = t_start
        y = y0.copy()
        sampler.start(y)
        n_accepted = 0
        n_rejected = 0
        status = IntegrationStatus.RUNNING
        message = ""

        k1 = f(t, y)
        if not np.all(np.isfinite(k1)):
            status = IntegrationStatus.NON_FINITE
            message = f"Non-finite derivative at t={t}"
            h = 0.0
        elif cfg.first_step is not None:
            h = min(cfg.first_step, h_max)
        elif f.n_calls + 1 > cfg.max_evals:
            # no room for the starting step heuristic
            status = IntegrationStatus.EVALUATION_LIMIT_EXCEEDED
            message = f"Evaluation limit of {cfg.max_evals} reached at t={t} before the first step"
            h = 0.0
        else:
            h = self._select_initial_step(f, t, y, k1, span, controller, h_max)
        if status is IntegrationStatus.RUNNING:
            h = max(h, self._min_step(t))
        end_tol = 10.0 * _ulp(t_end)

        while not status.is_terminal:
            if f.n_calls + self._N_STAGES > cfg.max_evals:
                status = IntegrationStatus.EVALUATION_LIMIT_EXCEEDED
                message = (f"Evaluation limit of {cfg.max_evals} reached at t={t} "
                           f"after {n_accepted} accepted steps")
                break

            remaining = t_end - t
            # Stretch or clip the last step onto t_end; the controller's h is kept.
            last = h >= remaining - end_tol
            h_step = remaining if last else h

            step = self._rk_embedded_step(f, t, y, h_step, k1)
            if not (np.all(np.isfinite(step.y_high)) and np.all(np.isfinite(step.K))):
                status = IntegrationStatus.NON_FINITE
                message = f"Non-finite state or derivative in step from t={t} with h={h_step}"
                break

            decision = controller.control(step.err, y, step.y_high, h_step)
            if decision.accepted:
                t_new = t_end if last else t + h_step
                sampler.consume(t, t_new, y, step.y_high, step.K, h_step)
                t, y, k1 = t_new, step.y_high, step.K[self._N_STAGES]
                n_accepted += 1
                if last:
                    status = IntegrationStatus.SUCCEEDED
                else:
                    h = min(max(decision.h_next, self._min_step(t)), h_max)
            else:
                n_rejected += 1
                logger.debug(f"Step rejected at t={t:.6e}: h={h_step:.3e}, "
                             f"err_norm={decision.err_norm:.3e}, next h={decision.h_next:.3e}")
                h_min = self._min_step(t)
                if decision.h_next < h_min:
                    status = IntegrationStatus.STEP_UNDERFLOW
                    message = (f"Step size {decision.h_next:.3e} fell below minimum "
                               f"{h_min:.3e} at t={t}")
                    break
                h = decision.h_next

        if status is IntegrationStatus.SUCCEEDED:
            sampler.finish(t_end, y)
            message = "Integration successful"

        stats = IntegrationStats(
            n_evals=f.n_calls,
            n_accepted=n_accepted,
            n_rejected=n_rejected,
            status=status,
        )
        if status is IntegrationStatus.SUCCEEDED:
            logger.info(f"{self.name}: {stats}")
        else:
            logger.warning(f"{self.name} failed: {message}; {stats}")

        return IntegrationResult(
            times=sampler.times(),
            states=sampler.states(dim),
            stats=stats,
            message=message,
            t_reached=t,
        )


class AdaptiveRK:
    """Implement a factory class for creating adaptive step-size Runge-Kutta integrators.

    Only the Dormand-Prince 5(4) pair is available.

    Examples
    --------
    >>> rk45 = AdaptiveRK(order=5, rtol=1e-8, atol=1e-8)
    """
    _map = {5: Dopri5}

    def __new__(cls, order=5, **opts):
        if order not in cls._map:
            raise ValueError("Adaptive RK order not supported")
        return cls._map[order](**opts)


def integrate(
    system: Union[_DynamicalSystemProtocol, Callable[[float, np.ndarray], np.ndarray]],
    y0,
    t_span: Tuple[float, float],
    dt_out: float,
    *,
    rtol=TOL,
    atol=TOL,
    **opts,
) -> IntegrationResult:
    """Integrate ``dy/dt = f(t, y)`` with :class:`Dopri5`.

    See :meth:`Dopri5.integrate` for the arguments; *opts* are forwarded to
    :class:`~odekit.algorithms.integrators.configs._SolverConfig`.
    """
    return Dopri5(rtol=rtol, atol=atol, **opts).integrate(system, y0, t_span, dt_out)


def _as_system(system, y0: np.ndarray) -> _DynamicalSystemProtocol:
    if hasattr(system, "rhs"):
        return system
    if callable(system):
        return RHSSystem(system, dim=max(y0.size, 1), name=getattr(system, "__name__", "Generic RHS"))
    raise InvalidConfigurationError(f"Expected a dynamical system or a callable, got {type(system).__name__}")


def _build_rhs_wrapper(system: _DynamicalSystemProtocol) -> Callable[[float, np.ndarray], np.ndarray]:
    """Return the ``(t, y)`` RHS of *system*.

    Raises
    ------
    :class:`~odekit.algorithms.utils.exceptions.InvalidConfigurationError`
        If ``system.rhs`` does not accept ``(t, y)``.
    """
    rhs_func = system.rhs
    try:
        sig = inspect.signature(rhs_func)
    except (TypeError, ValueError):
        return rhs_func
    params = list(sig.parameters.values())
    if not any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params) and len(params) < 2:
        raise InvalidConfigurationError("System.rhs must have signature (t, y)")
    return rhs_func
