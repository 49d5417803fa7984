"""Helpers shared by the HDF5 and CSV writers."""

import os
from pathlib import Path
from typing import Optional

import h5py
import numpy as np


def _ensure_dir(path: "str | Path") -> None:
    """Create *path* (and parents) if it does not exist yet."""
    path = Path(path)
    if str(path) in ("", "."):
        return
    os.makedirs(path, exist_ok=True)


def _write_dataset(
    group: h5py.Group,
    name: str,
    data: np.ndarray,
    *,
    compression: Optional[str] = "gzip",
    level: int = 4,
) -> h5py.Dataset:
    """Write *data* under *name*, compressed when the array is non-trivial.

    HDF5 only compresses chunked datasets, which scalars and empty arrays
    cannot be; those are stored uncompressed.
    """
    data = np.asarray(data)
    if compression is None or data.ndim == 0 or data.size == 0:
        return group.create_dataset(name, data=data)
    return group.create_dataset(name, data=data, compression=compression, compression_opts=level)
