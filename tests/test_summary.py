"""
Unit tests for evaluation/summary.py

Uses synthetic posterior draws centred on the generating parameters instead of
a real sampler run.
"""

import numpy as np
import pytest

import sys

sys.path.insert(0, "src")

from data.simulate import TRUE_PARAMS
from evaluation.summary import (
    SUMMARY_COLUMNS,
    check_recovery,
    format_recovery_table,
    format_summary_table,
    summarize_fit,
    summary_to_frame,
)
from tools.sampler_executor import SamplerResult


class TestSummarizeFit:
    """Tests for summarize_fit on synthetic draws."""

    def test_one_row_per_parameter(self, synthetic_idata):
        """Every requested parameter is summarized, in order."""
        summary = summarize_fit(synthetic_idata, ["a", "b", "sigma"])
        assert summary.names == ["a", "b", "sigma"]
        assert summary.chains == 4
        assert summary.draws == 500

    def test_defaults_to_all_variables(self, synthetic_idata):
        """Without var_names every posterior variable is summarized."""
        summary = summarize_fit(synthetic_idata)
        assert set(summary.names) == {"a", "b", "sigma"}

    def test_means_match_draws(self, synthetic_idata):
        """Means equal the pooled draw means."""
        summary = summarize_fit(synthetic_idata, ["b"])
        expected = float(synthetic_idata.posterior["b"].values.mean())
        assert summary.get("b").mean == pytest.approx(expected)

    def test_quantiles_ordered(self, synthetic_idata):
        """Reported quantiles are non-decreasing."""
        for p in summarize_fit(synthetic_idata).parameters:
            assert p.q2_5 <= p.q25 <= p.q50 <= p.q75 <= p.q97_5

    def test_interval_width_matches_scale(self, synthetic_idata):
        """The 95% interval of a Normal is about 3.92 sd wide."""
        b = summarize_fit(synthetic_idata, ["b"]).get("b")
        assert (b.q97_5 - b.q2_5) == pytest.approx(3.92 * b.sd, rel=0.1)

    def test_diagnostics_for_independent_draws(self, synthetic_idata):
        """Independent draws mix perfectly: Rhat ~ 1 and large n_eff."""
        summary = summarize_fit(synthetic_idata)
        for p in summary.parameters:
            assert p.rhat < 1.01
            assert p.n_eff > 1000
            assert p.se_mean < p.sd / 10
        assert summary.n_divergences == 0
        assert summary.converged

    def test_counts_divergences(self, synthetic_result):
        """Divergent transitions are counted from sample_stats."""
        synthetic_result.diverging[0][0] = True
        synthetic_result.diverging[2][10] = True
        summary = summarize_fit(synthetic_result.to_inference_data())
        assert summary.n_divergences == 2
        assert not summary.converged

    def test_unknown_parameter(self, synthetic_idata):
        """Asking for a missing parameter raises ValueError."""
        with pytest.raises(ValueError, match="tau"):
            summarize_fit(synthetic_idata, ["a", "tau"])

    def test_single_draw_rejected(self):
        """A one-draw chain has no sd or diagnostics and is refused."""
        result = SamplerResult.from_samples(samples={"a": [[0.5]]}, diverging=[[False]])
        with pytest.raises(ValueError, match="at least 4 draws"):
            summarize_fit(result.to_inference_data(), ["a"])


class TestSummaryFormatting:
    """Tests for the table views of a summary."""

    def test_frame_columns(self, fit_summary):
        """DataFrame has Stan's columns, indexed by parameter."""
        frame = summary_to_frame(fit_summary)
        assert list(frame.columns) == SUMMARY_COLUMNS
        assert list(frame.index) == ["a", "b", "sigma"]
        assert frame.loc["b", "mean"] == 2.23

    def test_text_table(self, fit_summary):
        """Text table has a header line and one row per parameter."""
        table = format_summary_table(fit_summary)
        lines = table.splitlines()
        assert lines[0].startswith("4 chains, each with 1000 post-warmup draws")
        assert "total post-warmup draws=4000" in lines[0]
        assert "se_mean" in lines[2] and "97.5%" in lines[2] and "Rhat" in lines[2]
        assert lines[3].startswith("a ")
        assert lines[5].startswith("sigma")
        assert "2.23" in lines[4]

    def test_text_table_warns_on_divergences(self, fit_summary):
        """Divergences are reported under the table."""
        flagged = fit_summary.model_copy(update={"n_divergences": 5})
        assert "5 divergent transitions" in format_summary_table(flagged)

    def test_text_table_handles_nan_diagnostics(self, fit_summary):
        """NaN n_eff or Rhat are printed as NaN."""
        params = [p.model_copy(update={"rhat": float("nan")}) for p in fit_summary.parameters]
        table = format_summary_table(fit_summary.model_copy(update={"parameters": params}))
        assert "NaN" in table


class TestCheckRecovery:
    """Tests for recovery of the generating parameters."""

    def test_all_covered(self, fit_summary):
        """The generating values sit inside every 95% interval."""
        checks = check_recovery(fit_summary, TRUE_PARAMS)
        assert [c.name for c in checks] == ["a", "b", "sigma"]
        assert all(c.covered for c in checks)

    def test_abs_error(self, fit_summary):
        """abs_error is the distance from the posterior mean."""
        check = check_recovery(fit_summary, {"b": 2.25})[0]
        assert check.abs_error == pytest.approx(0.02)
        assert check.lower == 2.07
        assert check.upper == 2.39

    def test_not_covered(self, fit_summary):
        """A value outside the interval is flagged."""
        check = check_recovery(fit_summary, {"b": 3.0})[0]
        assert check.covered is False

    def test_unknown_parameter(self, fit_summary):
        """Parameters missing from the summary raise ValueError."""
        with pytest.raises(ValueError, match="tau"):
            check_recovery(fit_summary, {"tau": 1.0})

    def test_synthetic_recovery(self, synthetic_idata):
        """Draws centred on the truth recover it."""
        checks = check_recovery(summarize_fit(synthetic_idata), TRUE_PARAMS)
        assert all(c.covered for c in checks)
        assert all(np.isfinite(c.abs_error) for c in checks)

    def test_recovery_table(self, fit_summary):
        """Markdown table has a header, a separator and one row per check."""
        table = format_recovery_table(check_recovery(fit_summary, TRUE_PARAMS))
        lines = table.strip().splitlines()
        assert len(lines) == 5
        assert lines[0].startswith("| Parameter")
        assert "| b | 2.25 | 2.23 | [2.07, 2.39] | 0.02 | yes |" in table
