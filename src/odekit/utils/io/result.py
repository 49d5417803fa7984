"""Input/output utilities for integration results.

Two formats are supported:

* CSV, through :mod:`pandas`, with an ``x_out`` time column followed by one
  ``y_out`` column per state component (``y_out`` for scalar problems,
  ``y_out_0, y_out_1, ...`` otherwise).
* HDF5, through :mod:`h5py`, storing the sampled trajectory together with
  the statistics and the terminal status so that a result can be reloaded
  unchanged.
"""

from pathlib import Path
from typing import List

import h5py
import numpy as np
import pandas as pd

from odekit.algorithms.integrators.types import (IntegrationResult,
                                                 IntegrationStats,
                                                 IntegrationStatus)
from odekit.utils.io.common import _ensure_dir, _write_dataset
from odekit.utils.log_config import logger


HDF5_VERSION = "1.0"
"""HDF5 format version for integration results."""


def _state_columns(dim: int) -> List[str]:
    if dim == 1:
        return ["y_out"]
    return [f"y_out_{i}" for i in range(dim)]


def to_df(result: IntegrationResult) -> pd.DataFrame:
    """Return the sampled trajectory as a DataFrame.

    Parameters
    ----------
    result : :class:`~odekit.algorithms.integrators.types.IntegrationResult`
        Result to convert.

    Returns
    -------
    pandas.DataFrame
        One row per sample; columns ``x_out`` and the state columns.
    """
    df = pd.DataFrame(np.asarray(result.states), columns=_state_columns(result.dim))
    df.insert(0, "x_out", np.asarray(result.times))
    return df


def save_csv(result: IntegrationResult, path: "str | Path") -> None:
    """Write the sampled trajectory of *result* to a CSV file.

    Parameters
    ----------
    result : :class:`~odekit.algorithms.integrators.types.IntegrationResult`
        Result to export. Failed runs export their partial output.
    path : str or pathlib.Path
        Destination file; parent directories are created.
    """
    path = Path(path)
    _ensure_dir(path.parent)
    to_df(result).to_csv(path, index=False)
    logger.info(f"Trajectory with {len(result)} samples exported to {path}")


def load_csv(path: "str | Path") -> pd.DataFrame:
    """Read a CSV written by :func:`save_csv`."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    return pd.read_csv(path)


def save_result(
    result: IntegrationResult,
    path: "str | Path",
    *,
    compression: str = "gzip",
    level: int = 4,
) -> None:
    """Serialize an integration result to an HDF5 file.

    Parameters
    ----------
    result : :class:`~odekit.algorithms.integrators.types.IntegrationResult`
        Result to serialize.
    path : str or pathlib.Path
        File path where to save the result.
    compression : str, default "gzip"
        Compression algorithm for the datasets.
    level : int, default 4
        Compression level (0-9).
    """
    path = Path(path)
    _ensure_dir(path.parent)

    with h5py.File(path, "w") as f:
        f.attrs["format_version"] = HDF5_VERSION
        f.attrs["class"] = result.__class__.__name__
        f.attrs["message"] = result.message
        f.attrs["t_reached"] = float(result.t_reached)

        _write_dataset(f, "times", np.asarray(result.times), compression=compression, level=level)
        _write_dataset(f, "states", np.asarray(result.states), compression=compression, level=level)

        sgrp = f.create_group("stats")
        sgrp.attrs["n_evals"] = int(result.stats.n_evals)
        sgrp.attrs["n_accepted"] = int(result.stats.n_accepted)
        sgrp.attrs["n_rejected"] = int(result.stats.n_rejected)
        sgrp.attrs["status"] = result.stats.status.value


def load_result(path: "str | Path") -> IntegrationResult:
    """Load an integration result from an HDF5 file.

    Parameters
    ----------
    path : str or pathlib.Path
        File written by :func:`save_result`.

    Returns
    -------
    :class:`~odekit.algorithms.integrators.types.IntegrationResult`
        The reconstructed result.

    Raises
    ------
    FileNotFoundError
        If the specified file does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    with h5py.File(path, "r") as f:
        times = np.array(f["times"][()], dtype=np.float64)
        states = np.array(f["states"][()], dtype=np.float64)
        sgrp = f["stats"]
        stats = IntegrationStats(
            n_evals=int(sgrp.attrs["n_evals"]),
            n_accepted=int(sgrp.attrs["n_accepted"]),
            n_rejected=int(sgrp.attrs["n_rejected"]),
            status=IntegrationStatus(_as_str(sgrp.attrs["status"])),
        )
        message = _as_str(f.attrs.get("message", ""))
        t_reached = float(f.attrs.get("t_reached", np.nan))

    return IntegrationResult(times=times, states=states, stats=stats, message=message, t_reached=t_reached)


def _as_str(value) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)
