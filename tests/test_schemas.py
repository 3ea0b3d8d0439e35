"""
Unit tests for models/schemas.py

Tests Pydantic model validation and serialization.
"""

import pytest
from pydantic import ValidationError

import sys

sys.path.insert(0, "src")

from models.schemas import (
    MIN_DRAWS,
    FitSummary,
    RecoveryCheck,
    SamplerConfig,
)


class TestSamplerConfig:
    """Tests for SamplerConfig model."""

    def test_defaults(self):
        """Defaults follow the usual 2000 iterations with 1000 warmup."""
        config = SamplerConfig()
        assert config.warmup == 1000
        assert config.iter == 2000
        assert config.chains == 4
        assert config.var_names == ["a", "b", "sigma"]
        assert config.draws == 1000

    def test_draws_exclude_warmup(self):
        """Kept draws are total iterations minus warmup."""
        config = SamplerConfig(warmup=300, iter=1000)
        assert config.draws == 700

    def test_iter_must_exceed_warmup(self):
        """iter equal to warmup leaves no draws."""
        with pytest.raises(ValidationError) as exc_info:
            SamplerConfig(warmup=1000, iter=1000)
        assert "warmup" in str(exc_info.value)

    @pytest.mark.parametrize("iter_", [1001, 1002, 1003])
    def test_too_few_draws(self, iter_):
        """Fewer than four kept draws cannot be summarized."""
        with pytest.raises(ValidationError, match="at least 4 draws"):
            SamplerConfig(warmup=1000, iter=iter_, chains=1)

    def test_minimum_draws(self):
        """Four kept draws is the smallest accepted run."""
        config = SamplerConfig(warmup=1000, iter=1004, chains=1)
        assert config.draws == MIN_DRAWS

    def test_warmup_positive(self):
        """Warmup must be at least one iteration."""
        with pytest.raises(ValidationError):
            SamplerConfig(warmup=0, iter=10)

    def test_var_names_not_empty(self):
        """At least one parameter must be reported."""
        with pytest.raises(ValidationError):
            SamplerConfig(var_names=[])

    def test_target_accept_bounds(self):
        """target_accept lies strictly between 0 and 1."""
        with pytest.raises(ValidationError):
            SamplerConfig(target_accept=1.0)

    def test_serialization(self):
        """Config dumps to a plain dict."""
        dumped = SamplerConfig(seed=None).model_dump()
        assert dumped["seed"] is None
        assert dumped["iter"] == 2000


class TestFitSummary:
    """Tests for FitSummary model."""

    def test_lookup(self, fit_summary):
        """Parameters are found by name."""
        assert fit_summary.get("b").mean == 2.23
        assert fit_summary.names == ["a", "b", "sigma"]

    def test_lookup_missing(self, fit_summary):
        """Unknown parameters raise KeyError."""
        with pytest.raises(KeyError):
            fit_summary.get("tau")

    def test_converged(self, fit_summary):
        """Rhat of 1.00 and no divergences counts as converged."""
        assert fit_summary.converged is True

    def test_divergences_break_convergence(self, fit_summary):
        """Any divergent transition flags the fit."""
        flagged = fit_summary.model_copy(update={"n_divergences": 3})
        assert flagged.converged is False

    def test_high_rhat_breaks_convergence(self, fit_summary):
        """Rhat at or above 1.01 flags the fit."""
        params = [p.model_copy() for p in fit_summary.parameters]
        params[0] = params[0].model_copy(update={"rhat": 1.05})
        flagged = fit_summary.model_copy(update={"parameters": params})
        assert flagged.converged is False

    def test_negative_sd_rejected(self, fit_summary):
        """Posterior sd cannot be negative."""
        row = fit_summary.parameters[0].model_dump()
        row["sd"] = -1.0
        with pytest.raises(ValidationError):
            FitSummary(chains=1, draws=10, parameters=[row])


class TestRecoveryCheck:
    """Tests for RecoveryCheck model."""

    def test_abs_error_non_negative(self):
        """abs_error must be >= 0."""
        with pytest.raises(ValidationError):
            RecoveryCheck(
                name="a", true_value=0.5, estimate=0.6, lower=0.0, upper=1.0,
                abs_error=-0.1, covered=True,
            )
