import logging

import numpy as np
import pytest

from odekit.algorithms.dynamics.logistic import (create_logistic_system,
                                                 logistic_solution)
from odekit.algorithms.dynamics.rhs import create_rhs_system
from odekit.algorithms.integrators.control import _StepSizeController
from odekit.algorithms.integrators.rk import AdaptiveRK, Dopri5, integrate
from odekit.algorithms.integrators.types import IntegrationStatus
from odekit.algorithms.utils.exceptions import (EvaluationLimitError,
                                                InvalidConfigurationError,
                                                NonFiniteError,
                                                StepUnderflowError)

R, K, Y0 = 0.1, 1000.0, 100.0


@pytest.fixture
def logistic():
    return create_logistic_system(R, K)


def test_logistic_reference_run(logistic):
    res = integrate(logistic, [Y0], (0.0, 100.0), 10.0, rtol=1e-10, atol=1e-10)

    assert res.succeeded
    assert res.status is IntegrationStatus.SUCCEEDED
    np.testing.assert_array_equal(res.times, 10.0 * np.arange(11))
    assert res.y_out.shape == (11,)
    assert res.y_out[0] == Y0
    # closed form: 1000 / (1 + 9 exp(-10))
    assert abs(res.y_out[-1] - 999.5915675) < 1e-5
    assert res.t_reached == 100.0
    assert res.stats.n_accepted > 0
    assert res.stats.n_evals > 0


def test_logistic_matches_closed_form(logistic):
    res = integrate(logistic, [Y0], (0.0, 100.0), 2.5, rtol=1e-10, atol=1e-10)
    exact = logistic_solution(res.times, Y0, R, K)
    np.testing.assert_allclose(res.y_out, exact, rtol=1e-8)
    np.testing.assert_allclose(np.diff(res.times), 2.5, rtol=1e-12)


def test_partial_final_interval(logistic):
    res = integrate(logistic, [Y0], (0.0, 95.0), 10.0)
    np.testing.assert_array_equal(res.times, 10.0 * np.arange(10))
    assert res.t_reached == 95.0

    res_end = integrate(logistic, [Y0], (0.0, 95.0), 10.0, include_end=True)
    assert res_end.times[-1] == 95.0
    assert len(res_end) == 11
    assert res_end.y_out[-1] == pytest.approx(logistic_solution(95.0, Y0, R, K), rel=1e-8)


def test_output_is_independent_of_stepping(logistic):
    # a poor first step forces rejections; the sampled values must not notice
    res = integrate(logistic, [Y0], (0.0, 100.0), 10.0, first_step=50.0)
    assert res.succeeded
    assert res.stats.n_rejected > 0
    np.testing.assert_allclose(res.y_out, logistic_solution(res.times, Y0, R, K), rtol=1e-8)


def test_rejections_retry_with_smaller_step(logistic, monkeypatch):
    decisions = []
    original = _StepSizeController.control

    def recording(self, err, y, y_new, h):
        decision = original(self, err, y, y_new, h)
        decisions.append((h, decision))
        return decision

    monkeypatch.setattr(_StepSizeController, "control", recording)
    res = integrate(logistic, [Y0], (0.0, 100.0), 10.0, first_step=50.0)

    rejected = [(h, d) for h, d in decisions if not d.accepted]
    assert len(rejected) == res.stats.n_rejected > 0
    assert sum(d.accepted for _, d in decisions) == res.stats.n_accepted
    for h, d in rejected:
        assert d.err_norm > 1.0
        assert 0.0 < d.h_next < h
    for i, (h, d) in enumerate(decisions[:-1]):
        if not d.accepted:
            assert decisions[i + 1][0] == pytest.approx(d.h_next, rel=1e-15)


def test_deterministic(logistic):
    a = integrate(logistic, [Y0], (0.0, 100.0), 10.0)
    b = integrate(logistic, [Y0], (0.0, 100.0), 10.0)
    np.testing.assert_array_equal(a.times, b.times)
    np.testing.assert_array_equal(a.states, b.states)
    assert a.stats == b.stats


@pytest.mark.parametrize("r, y0", [(0.0, Y0), (R, K)])
def test_equilibrium_is_constant(r, y0):
    system = create_logistic_system(r, K)
    res = integrate(system, [y0], (0.0, 100.0), 10.0)
    assert res.succeeded
    assert res.stats.n_rejected == 0
    np.testing.assert_array_equal(res.y_out, np.full(11, y0))


def test_tighter_tolerance_is_not_less_accurate(logistic):
    errs, evals = [], []
    for tol in (1e-6, 1e-8):
        res = integrate(logistic, [Y0], (0.0, 40.0), 5.0, rtol=tol, atol=tol)
        errs.append(np.max(np.abs(res.y_out - logistic_solution(res.times, Y0, R, K))))
        evals.append(res.stats.n_evals)
    assert errs[1] <= errs[0]
    assert evals[1] >= evals[0]


def test_evaluation_count(logistic):
    res = integrate(logistic, [Y0], (0.0, 100.0), 10.0)
    # FSAL: one evaluation for f(t0, y0), one for the starting step heuristic
    assert res.stats.n_evals == 2 + 6 * res.stats.n_steps

    res = integrate(logistic, [Y0], (0.0, 100.0), 10.0, first_step=0.1)
    assert res.stats.n_evals == 1 + 6 * res.stats.n_steps


def test_harmonic_oscillator():
    solve_ivp = pytest.importorskip("scipy.integrate").solve_ivp

    def f(t, y):
        return np.array([y[1], -y[0]])

    res = integrate(create_rhs_system(f, 2, "oscillator"), [1.0, 0.0], (0.0, 10.0), 0.5)
    assert res.succeeded
    assert res.states.shape == (21, 2)
    assert res.y_out.shape == (21, 2)
    np.testing.assert_allclose(res.states[:, 0], np.cos(res.times), atol=1e-8)
    np.testing.assert_allclose(res.states[:, 1], -np.sin(res.times), atol=1e-8)

    ref = solve_ivp(f, (0.0, 10.0), [1.0, 0.0], method="RK45", t_eval=res.times, rtol=1e-11, atol=1e-12)
    np.testing.assert_allclose(res.states, ref.y.T, atol=1e-7)


def test_plain_callable_and_component_tolerances():
    res = integrate(lambda t, y: -np.array([0.5, 2.0]) * y, [1.0, 1.0], (0.0, 2.0), 0.5,
                    rtol=[1e-9, 1e-10], atol=[1e-12, 1e-12])
    assert res.succeeded
    exact = np.exp(-np.outer(res.times, [0.5, 2.0]))
    np.testing.assert_allclose(res.states, exact, rtol=1e-7)


def test_hermite_interpolant(logistic):
    res = integrate(logistic, [Y0], (0.0, 100.0), 7.0, interpolant="hermite")
    np.testing.assert_allclose(res.y_out, logistic_solution(res.times, Y0, R, K), rtol=1e-5)


def test_step_underflow_keeps_partial_output():
    # y' = y^2 blows up at t = 1
    res = integrate(lambda t, y: y ** 2, [1.0], (0.0, 2.0), 0.1, rtol=1e-8, atol=1e-8, h_min=1e-3)

    assert res.status is IntegrationStatus.STEP_UNDERFLOW
    assert not res.succeeded
    assert res.stats.n_rejected > 0
    assert 0.5 < res.t_reached < 1.0
    assert len(res) >= 2
    assert np.all(res.times < 1.0)
    np.testing.assert_allclose(res.y_out, 1.0 / (1.0 - res.times), rtol=1e-4)

    with pytest.raises(StepUnderflowError) as excinfo:
        res.raise_for_status()
    assert excinfo.value.result is res


def test_non_finite_derivative_stops_run():
    def f(t, y):
        return np.array([np.nan]) if t > 1.0 else -y

    res = integrate(f, [1.0], (0.0, 3.0), 0.25)
    assert res.status is IntegrationStatus.NON_FINITE
    assert res.t_reached <= 1.0
    assert np.all(res.times <= 1.0)
    assert len(res) >= 1
    with pytest.raises(NonFiniteError):
        res.raise_for_status()


def test_non_finite_initial_derivative():
    res = integrate(lambda t, y: np.full_like(y, np.inf), [1.0], (0.0, 1.0), 0.5)
    assert res.status is IntegrationStatus.NON_FINITE
    assert res.stats.n_evals == 1
    assert res.stats.n_steps == 0
    np.testing.assert_array_equal(res.times, [0.0])


def test_evaluation_limit(logistic):
    res = integrate(logistic, [Y0], (0.0, 100.0), 10.0, max_evals=50)

    assert res.status is IntegrationStatus.EVALUATION_LIMIT_EXCEEDED
    assert res.stats.n_evals <= 50
    assert res.stats.n_evals + 6 > 50
    np.testing.assert_array_equal(res.times, 10.0 * np.arange(len(res)))
    assert res.t_reached < 100.0
    with pytest.raises(EvaluationLimitError):
        res.raise_for_status()


def test_failure_is_logged(logistic, caplog):
    caplog.set_level(logging.WARNING, logger="odekit")
    integrate(logistic, [Y0], (0.0, 100.0), 10.0, max_evals=20)
    assert any(rec.levelno == logging.WARNING and "Evaluation limit" in rec.getMessage()
               for rec in caplog.records)


class _Counting:
    def __init__(self):
        self.calls = 0

    def __call__(self, t, y):
        self.calls += 1
        return -y


@pytest.mark.parametrize(
    "y0, t_span, dt_out, opts",
    [
        ([1.0], (1.0, 1.0), 0.1, {}),
        ([1.0], (1.0, 0.0), 0.1, {}),
        ([1.0], (0.0, np.inf), 0.1, {}),
        ([1.0], (0.0, 1.0), 0.0, {}),
        ([1.0], (0.0, 1.0), -0.5, {}),
        ([1.0], (0.0, 1.0), np.nan, {}),
        ([], (0.0, 1.0), 0.1, {}),
        ([np.nan], (0.0, 1.0), 0.1, {}),
        ([1.0], (0.0, 1.0), 0.1, {"rtol": 0.0}),
        ([1.0], (0.0, 1.0), 0.1, {"atol": -1e-8}),
        ([1.0], (0.0, 1.0), 0.1, {"atol": [1e-8, 1e-8]}),
        ([1.0], (0.0, 1.0), 0.1, {"h_min": 0.5, "h_max": 0.1}),
        ([1.0], (0.0, 1.0), 0.1, {"h_min": 2.0}),
        ([1.0], (0.0, 1.0), 0.1, {"h_min": 0.0}),
        ([1.0], (0.0, 1.0), 0.1, {"first_step": -1.0}),
        ([1.0], (0.0, 1.0), 0.1, {"max_evals": 0}),
        ([1.0], (0.0, 1.0), 0.1, {"interpolant": "linear"}),
    ],
)
def test_invalid_configuration_is_rejected_before_evaluation(y0, t_span, dt_out, opts):
    f = _Counting()
    with pytest.raises(InvalidConfigurationError):
        integrate(f, y0, t_span, dt_out, **opts)
    assert f.calls == 0


def test_dimension_mismatch(logistic):
    with pytest.raises(InvalidConfigurationError):
        integrate(logistic, [1.0, 2.0], (0.0, 1.0), 0.1)


def test_invalid_configuration_is_a_value_error():
    with pytest.raises(ValueError):
        Dopri5(rtol=-1.0)


def test_adaptive_rk_factory(logistic):
    solver = AdaptiveRK(order=5, rtol=1e-8, atol=1e-8)
    assert isinstance(solver, Dopri5)
    assert solver.order == 5
    assert str(solver) == "odekit-Dopri5"
    with pytest.raises(ValueError):
        AdaptiveRK(order=8)


def test_result_accessors(logistic):
    res = Dopri5().integrate(logistic, [Y0], (0.0, 20.0), 10.0)
    pairs = res.pairs()
    assert [t for t, _ in pairs] == [0.0, 10.0, 20.0]
    assert pairs[0][1].shape == (1,)
    np.testing.assert_array_equal(res.x_out, res.times)
    assert res.dim == 1
    assert res.raise_for_status() is res
    with pytest.raises(ValueError):
        res.states[0, 0] = 0.0


def test_step_size_stays_within_bounds(logistic, monkeypatch):
    decisions = []
    original = _StepSizeController.control

    def recording(self, err, y, y_new, h):
        decision = original(self, err, y, y_new, h)
        decisions.append((h, decision))
        return decision

    monkeypatch.setattr(_StepSizeController, "control", recording)
    h_min, h_max = 1e-4, 3.0
    res = integrate(logistic, [Y0], (0.0, 100.0), 10.0, h_min=h_min, h_max=h_max)

    assert res.succeeded
    assert res.stats.n_accepted >= 100.0 / h_max
    # the final step is clipped onto t_end
    for h, _ in decisions[:-1]:
        assert h_min <= h <= h_max
    for h, d in decisions:
        if d.accepted:
            assert d.err_norm <= 1.0
        else:
            assert d.err_norm > 1.0


def test_unknown_integrate_keyword_is_rejected(logistic):
    f = _Counting()
    with pytest.raises(TypeError):
        Dopri5().integrate(f, [1.0], (0.0, 1.0), 0.1, rtol=1e-3)
    assert f.calls == 0


@pytest.mark.parametrize("max_evals", [1, 2, 7])
def test_evaluation_limit_is_never_exceeded(logistic, max_evals):
    res = integrate(logistic, [Y0], (0.0, 100.0), 10.0, max_evals=max_evals)
    assert res.status is IntegrationStatus.EVALUATION_LIMIT_EXCEEDED
    assert res.stats.n_evals == min(max_evals, 2)
    assert res.stats.n_steps == 0
    np.testing.assert_array_equal(res.times, [0.0])
