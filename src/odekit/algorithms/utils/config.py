"""Package-wide numerical settings."""

FASTMATH = False  # Global flag for Numba's fastmath option; NaN checks rely on it being off

TOL = 1e-10  # Default relative and absolute tolerance

MAX_EVALS = 1_000_000  # Default ceiling on derivative evaluations per run

# Step-size controller
SAFETY = 0.9
MIN_FACTOR = 0.2
MAX_FACTOR = 10.0
