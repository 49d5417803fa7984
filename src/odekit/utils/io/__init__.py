"""Persistence of integration results (CSV via pandas, HDF5 via h5py)."""

from .result import load_csv, load_result, save_csv, save_result, to_df

__all__ = ["load_csv", "load_result", "save_csv", "save_result", "to_df"]
