"""Command line entry point: integrate the logistic growth model.

Run with
    odekit --t-end 100 --t-step 10 --y0 100 --r 0.1 --k 1000 --output output.csv
or
    python -m odekit ...
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import matplotlib.pyplot as plt
import numpy as np

from odekit.algorithms.dynamics.logistic import LogisticSystem
from odekit.algorithms.integrators.rk import Dopri5
from odekit.algorithms.utils.exceptions import (IntegrationError,
                                                InvalidConfigurationError)
from odekit.utils.io.result import save_csv
from odekit.utils.log_config import logger
from odekit.utils.plots import plot_trajectory

T_START = 0.0
T_END = 100.0
T_STEP = 10.0
Y0 = 100.0
GROWTH_RATE = 0.1
CARRYING_CAPACITY = 1000.0
RTOL = 1.0e-10
ATOL = 1.0e-10
OUTPUT = "output.csv"


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="odekit",
        description="Integrate the logistic growth model dy/dt = r*y*(1 - y/k) with Dormand-Prince 5(4).",
    )
    ap.add_argument("--t-start", type=float, default=T_START, help="Time start (default: %(default)s).")
    ap.add_argument("--t-end", type=float, default=T_END, help="Time end (default: %(default)s).")
    ap.add_argument("--t-step", type=float, default=T_STEP, help="Output time step (default: %(default)s).")
    ap.add_argument("--y0", type=float, default=Y0, help="Initial population (default: %(default)s).")
    ap.add_argument("--r", type=float, default=GROWTH_RATE, help="Growth rate (default: %(default)s).")
    ap.add_argument("--k", type=float, default=CARRYING_CAPACITY, help="Carrying capacity (default: %(default)s).")
    ap.add_argument("--rtol", type=float, default=RTOL, help="Relative tolerance (default: %(default)s).")
    ap.add_argument("--atol", type=float, default=ATOL, help="Absolute tolerance (default: %(default)s).")
    ap.add_argument("--max-evals", type=int, default=None, help="Ceiling on derivative evaluations.")
    ap.add_argument("--output", type=Path, default=Path(OUTPUT), help="Output CSV path (default: %(default)s).")
    ap.add_argument("--plot", type=Path, default=None, help="Save a line plot of the trajectory to this path.")
    ap.add_argument("--quiet", action="store_true", help="Do not print the sampled times and states.")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    opts = {"rtol": args.rtol, "atol": args.atol}
    if args.max_evals is not None:
        opts["max_evals"] = args.max_evals

    try:
        system = LogisticSystem(args.r, args.k)
        solver = Dopri5(**opts)
        result = solver.integrate(system, np.array([args.y0]), (args.t_start, args.t_end), args.t_step)
    except (InvalidConfigurationError, ValueError) as exc:
        logger.error(f"Invalid configuration: {exc}")
        return 2

    logger.info(str(result.stats))

    if not args.quiet:
        print(result.x_out.tolist())
        print(result.y_out.tolist())

    try:
        save_csv(result, args.output)
    except OSError as exc:
        logger.error(f"Could not write {args.output}: {exc}")
        return 1

    if args.plot is not None:
        try:
            fig, _ = plot_trajectory(
                result,
                title=f"Logistic growth (r={args.r}, k={args.k})",
                save=True,
                filepath=args.plot,
            )
        except OSError as exc:
            plt.close("all")
            logger.error(f"Could not write {args.plot}: {exc}")
            return 1
        plt.close(fig)
        logger.info(f"Plot saved to {args.plot}")

    try:
        result.raise_for_status()
    except IntegrationError as exc:
        logger.error(f"An error occurred: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
