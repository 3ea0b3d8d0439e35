"""Simulated dataset for the worked linear regression example.

Generates N scalar pairs (x, y) from a known linear-Gaussian process so the
posterior estimates shown on the slides can be compared against the values
that generated the data.

Example:
    >>> data = simulate_regression_data(n=50, seed=42)
    >>> data.n
    50
    >>> sorted(data.to_record())
    ['N', 'x', 'y']
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

# Generating parameters of the worked example
TRUE_PARAMS: dict[str, float] = {
    "a": 0.5,
    "b": 2.25,
    "sigma": 1.75,
}

DEFAULT_N = 50
DEFAULT_SEED = 42

# Predictor range, x ~ Uniform(X_LOW, X_HIGH)
X_LOW = 0.0
X_HIGH = 10.0


@dataclass
class RegressionData:
    """A simulated regression dataset with the values that generated it.

    Attributes:
        x: Predictor values, shape (n,).
        y: Response values, shape (n,).
        true_params: Generating intercept ``a``, slope ``b`` and residual sd ``sigma``.
        seed: Seed passed to the random generator (None if unseeded).
    """

    x: np.ndarray
    y: np.ndarray
    true_params: dict[str, float] = field(default_factory=lambda: dict(TRUE_PARAMS))
    seed: int | None = None

    @property
    def n(self) -> int:
        """Sample size."""
        return int(self.x.shape[0])

    def to_record(self) -> dict[str, Any]:
        """Build the data record handed to the sampler.

        Returns:
            Dict with the sample size ``N``, response vector ``y`` and
            predictor vector ``x`` as plain (JSON-serialisable) Python values.
        """
        return {
            "N": self.n,
            "y": [float(v) for v in self.y],
            "x": [float(v) for v in self.x],
        }

    def to_frame(self) -> pd.DataFrame:
        """Return the dataset as a two-column DataFrame."""
        return pd.DataFrame({"x": self.x, "y": self.y})


def simulate_regression_data(
    n: int = DEFAULT_N,
    a: float = TRUE_PARAMS["a"],
    b: float = TRUE_PARAMS["b"],
    sigma: float = TRUE_PARAMS["sigma"],
    x_low: float = X_LOW,
    x_high: float = X_HIGH,
    seed: int | None = DEFAULT_SEED,
) -> RegressionData:
    """Simulate ``y = a + b * x + eps`` with ``eps ~ Normal(0, sigma)``.

    Args:
        n: Number of (x, y) pairs.
        a: Intercept.
        b: Slope.
        sigma: Residual standard deviation.
        x_low: Lower bound of the uniform predictor range.
        x_high: Upper bound of the uniform predictor range.
        seed: Seed for ``numpy.random.default_rng``. The same seed always
            yields the same dataset.

    Returns:
        RegressionData holding x, y and the generating parameters.

    Raises:
        ValueError: If n < 2, sigma <= 0 or the predictor range is empty.
    """
    if n < 2:
        raise ValueError(f"n must be at least 2, got {n}")
    if sigma <= 0:
        raise ValueError(f"sigma must be positive, got {sigma}")
    if x_high <= x_low:
        raise ValueError(f"x_high must exceed x_low, got [{x_low}, {x_high}]")

    rng = np.random.default_rng(seed)
    x = rng.uniform(x_low, x_high, size=n)
    y = a + b * x + rng.normal(0.0, sigma, size=n)

    return RegressionData(
        x=x,
        y=y,
        true_params={"a": float(a), "b": float(b), "sigma": float(sigma)},
        seed=seed,
    )
