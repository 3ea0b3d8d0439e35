"""
Pytest configuration and fixtures for the Bayesian data analysis deck tests.

Provides a simulated dataset, a synthetic posterior that stands in for a
sampler run, and small markup documents, so most tests run without PyMC.
"""

import sys

sys.path.insert(0, "src")

import numpy as np
import pytest

from data.simulate import TRUE_PARAMS, simulate_regression_data
from models.schemas import FitSummary, ParameterSummary
from tools.sampler_executor import SamplerResult


def _synthetic_samples(chains=4, draws=500, seed=0):
    """Independent Normal draws centred on the generating parameters."""
    rng = np.random.default_rng(seed)
    scales = {"a": 0.45, "b": 0.08, "sigma": 0.18}
    return {
        name: rng.normal(TRUE_PARAMS[name], scales[name], size=(chains, draws)).tolist()
        for name in ("a", "b", "sigma")
    }


@pytest.fixture
def regression_data():
    """The default simulated dataset (N=50, seed=42)."""
    return simulate_regression_data()


@pytest.fixture
def synthetic_result():
    """A successful SamplerResult with synthetic draws and no divergences."""
    samples = _synthetic_samples()
    diverging = [[False] * 500 for _ in range(4)]
    return SamplerResult.from_samples(samples=samples, diverging=diverging)


@pytest.fixture
def synthetic_idata(synthetic_result):
    """ArviZ InferenceData built from the synthetic draws."""
    return synthetic_result.to_inference_data()


@pytest.fixture
def fit_summary():
    """A hand-written FitSummary with the generating values inside every interval."""
    return FitSummary(
        chains=4,
        draws=1000,
        parameters=[
            ParameterSummary(
                name="a", mean=0.62, se_mean=0.01, sd=0.48, q2_5=-0.33, q25=0.30,
                q50=0.62, q75=0.94, q97_5=1.56, n_eff=1650, rhat=1.00,
            ),
            ParameterSummary(
                name="b", mean=2.23, se_mean=0.002, sd=0.08, q2_5=2.07, q25=2.18,
                q50=2.23, q75=2.28, q97_5=2.39, n_eff=1700, rhat=1.00,
            ),
            ParameterSummary(
                name="sigma", mean=1.81, se_mean=0.004, sd=0.19, q2_5=1.48, q25=1.68,
                q50=1.80, q75=1.93, q97_5=2.23, n_eff=2100, rhat=1.00,
            ),
        ],
    )


@pytest.fixture
def tiny_png(tmp_path):
    """A small PNG file for image blocks."""
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(2, 1.5))
    ax.plot([0, 1], [0, 1])
    path = tmp_path / "tiny.png"
    fig.savefig(path, dpi=50)
    plt.close(fig)
    return path


@pytest.fixture
def sample_markup():
    """A short document touching every block type."""
    return """---
title: Test Deck
subtitle: {{ subtitle }}
author: Someone
---

# First slide
## A subtitle
Intro paragraph with {{ n }} points
continued on a second line.
- top level
  - nested level
- back to top

# Math and code
$$ p(\\theta \\mid y) \\propto p(y \\mid \\theta)\\, p(\\theta) $$
```python
x = 1
# not a heading
```
> a speaker note

# Results
{{ table }}
![The figure](figure:plot)
"""
