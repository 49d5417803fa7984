import numpy as np
import pytest

from odekit.algorithms.dynamics.logistic import create_logistic_system
from odekit.algorithms.integrators.rk import integrate
from odekit.algorithms.integrators.types import (IntegrationResult,
                                                 IntegrationStats,
                                                 IntegrationStatus)
from odekit.utils.io import load_csv, load_result, save_csv, save_result, to_df


@pytest.fixture
def logistic_result():
    return integrate(create_logistic_system(0.1, 1000.0), [100.0], (0.0, 100.0), 10.0)


def _failed_result():
    stats = IntegrationStats(n_evals=74, n_accepted=9, n_rejected=3, status=IntegrationStatus.STEP_UNDERFLOW)
    return IntegrationResult(
        times=np.array([0.0, 0.5]),
        states=np.array([[1.0, 0.0], [0.5, 2.0]]),
        stats=stats,
        message="Step size fell below minimum",
        t_reached=0.73,
    )


def test_to_df_scalar(logistic_result):
    df = to_df(logistic_result)
    assert list(df.columns) == ["x_out", "y_out"]
    assert len(df) == 11
    np.testing.assert_array_equal(df["x_out"].to_numpy(), logistic_result.times)
    np.testing.assert_array_equal(df["y_out"].to_numpy(), logistic_result.y_out)


def test_to_df_vector():
    df = to_df(_failed_result())
    assert list(df.columns) == ["x_out", "y_out_0", "y_out_1"]
    assert df.shape == (2, 3)


def test_csv_roundtrip(tmp_path, logistic_result):
    path = tmp_path / "out" / "output.csv"
    save_csv(logistic_result, path)
    assert path.exists()
    assert path.read_text().splitlines()[0] == "x_out,y_out"

    df = load_csv(path)
    np.testing.assert_allclose(df["x_out"].to_numpy(), logistic_result.times)
    np.testing.assert_allclose(df["y_out"].to_numpy(), logistic_result.y_out, rtol=1e-15)


def test_load_csv_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_csv(tmp_path / "missing.csv")


def test_hdf5_roundtrip(tmp_path, logistic_result):
    path = tmp_path / "result.h5"
    save_result(logistic_result, path)
    loaded = load_result(path)

    np.testing.assert_array_equal(loaded.times, logistic_result.times)
    np.testing.assert_array_equal(loaded.states, logistic_result.states)
    assert loaded.stats == logistic_result.stats
    assert loaded.message == logistic_result.message
    assert loaded.t_reached == logistic_result.t_reached
    assert loaded.succeeded


def test_hdf5_keeps_failure_status(tmp_path):
    path = tmp_path / "failed.h5"
    save_result(_failed_result(), path, compression=None)
    loaded = load_result(path)
    assert loaded.status is IntegrationStatus.STEP_UNDERFLOW
    assert loaded.stats.n_rejected == 3
    assert loaded.message == "Step size fell below minimum"
    assert loaded.states.shape == (2, 2)


def test_load_result_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_result(tmp_path / "missing.h5")
