"""
End-to-end test against the real sampling engine.

Skipped when PyMC is not installed.
"""

import pytest

import sys

sys.path.insert(0, "src")

pytest.importorskip("pymc")

from data.simulate import TRUE_PARAMS, simulate_regression_data
from evaluation.summary import check_recovery, summarize_fit
from models.schemas import SamplerConfig
from tools.sampler_executor import DEFAULT_MODEL_PATH, run_sampler


@pytest.fixture(scope="module")
def fitted():
    data = simulate_regression_data(n=50, seed=42)
    config = SamplerConfig(warmup=500, iter=1000, chains=2, seed=1, timeout=600)
    result = run_sampler(data.to_record(), DEFAULT_MODEL_PATH, config)
    assert result.success, result.error
    return result


class TestLinearRegressionFit:
    """The worked example fit with PyMC."""

    def test_shapes(self, fitted):
        """Each parameter comes back as chains x draws."""
        for name in ("a", "b", "sigma"):
            assert len(fitted.samples[name]) == 2
            assert len(fitted.samples[name][0]) == 500

    def test_estimates_near_truth(self, fitted):
        """Posterior means are close to a=0.5, b=2.25, sigma=1.75."""
        summary = summarize_fit(fitted.to_inference_data(), ["a", "b", "sigma"])
        assert summary.get("a").mean == pytest.approx(TRUE_PARAMS["a"], abs=2.0)
        assert summary.get("b").mean == pytest.approx(TRUE_PARAMS["b"], abs=0.5)
        assert summary.get("sigma").mean == pytest.approx(TRUE_PARAMS["sigma"], abs=0.75)

    def test_sigma_positive(self, fitted):
        """HalfNormal prior keeps sigma positive."""
        assert min(min(chain) for chain in fitted.samples["sigma"]) > 0

    def test_recovery_table(self, fitted):
        """Recovery checks are produced for every parameter."""
        summary = summarize_fit(fitted.to_inference_data(), ["a", "b", "sigma"])
        checks = check_recovery(summary, TRUE_PARAMS)
        assert len(checks) == 3
        assert all(c.lower < c.upper for c in checks)
