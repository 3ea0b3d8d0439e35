"""
Posterior summaries for the worked example.

Builds the tabular fit summary shown on the slides (the columns of Stan's
printed fit: mean, se_mean, sd, quantiles, n_eff, Rhat) and compares the
estimates against the parameters that generated the simulated data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

import numpy as np
import pandas as pd

from models.schemas import MIN_DRAWS, FitSummary, ParameterSummary, RecoveryCheck

if TYPE_CHECKING:
    import arviz as az

# Posterior quantiles reported per parameter
QUANTILES = (0.025, 0.25, 0.50, 0.75, 0.975)

SUMMARY_COLUMNS = ["mean", "se_mean", "sd", "2.5%", "25%", "50%", "75%", "97.5%", "n_eff", "Rhat"]


def summarize_fit(idata: "az.InferenceData", var_names: Optional[List[str]] = None) -> FitSummary:
    """
    Summarize the posterior draws of the requested parameters.

    Diagnostics (MCSE of the mean, bulk ESS, R-hat) come from ArviZ;
    quantiles are computed over all chains pooled.

    Args:
        idata: InferenceData with a posterior group (and optionally sample_stats)
        var_names: Parameters to summarize (default: every posterior variable)

    Returns:
        FitSummary with one ParameterSummary per parameter
    """
    import arviz as az

    posterior = idata.posterior
    if var_names is None:
        var_names = list(posterior.data_vars)

    missing = [name for name in var_names if name not in posterior.data_vars]
    if missing:
        raise ValueError(f"Parameters not in posterior: {missing}")

    if posterior.sizes["draw"] < MIN_DRAWS:
        raise ValueError(
            f"Need at least {MIN_DRAWS} draws per chain to summarize, got {posterior.sizes['draw']}"
        )

    table = az.summary(idata, var_names=var_names, kind="all", stat_focus="mean")

    parameters = []
    for name in var_names:
        row = table.loc[name]
        draws = np.asarray(posterior[name].values, dtype=float).ravel()
        q2_5, q25, q50, q75, q97_5 = np.quantile(draws, QUANTILES)
        parameters.append(
            ParameterSummary(
                name=name,
                mean=float(np.mean(draws)),
                se_mean=float(row["mcse_mean"]),
                sd=float(np.std(draws, ddof=1)),
                q2_5=float(q2_5),
                q25=float(q25),
                q50=float(q50),
                q75=float(q75),
                q97_5=float(q97_5),
                n_eff=float(row["ess_bulk"]),
                rhat=float(row["r_hat"]),
            )
        )

    n_divergences = 0
    if "sample_stats" in idata.groups() and "diverging" in idata.sample_stats:
        n_divergences = int(np.asarray(idata.sample_stats["diverging"].values).sum())

    return FitSummary(
        parameters=parameters,
        chains=int(posterior.sizes["chain"]),
        draws=int(posterior.sizes["draw"]),
        n_divergences=n_divergences,
    )


def summary_to_frame(summary: FitSummary) -> pd.DataFrame:
    """Return the summary as a DataFrame indexed by parameter name."""
    rows = [
        [p.mean, p.se_mean, p.sd, p.q2_5, p.q25, p.q50, p.q75, p.q97_5, p.n_eff, p.rhat]
        for p in summary.parameters
    ]
    return pd.DataFrame(rows, index=summary.names, columns=SUMMARY_COLUMNS)


def format_summary_table(summary: FitSummary) -> str:
    """
    Format the summary as a fixed-width text table, Stan print() style.

    Returns:
        Multi-line string with a header describing the chains and one row per parameter
    """
    total = summary.chains * summary.draws
    lines = [
        f"{summary.chains} chains, each with {summary.draws} post-warmup draws; "
        f"total post-warmup draws={total}.",
        "",
    ]

    name_width = max([len(n) for n in summary.names] + [5])
    header = " " * name_width + "".join(f"{col:>9}" for col in SUMMARY_COLUMNS)
    lines.append(header)

    for p in summary.parameters:
        values = [p.mean, p.se_mean, p.sd, p.q2_5, p.q25, p.q50, p.q75, p.q97_5]
        row = f"{p.name:<{name_width}}" + "".join(f"{v:>9.2f}" for v in values)
        n_eff = f"{p.n_eff:>9.0f}" if np.isfinite(p.n_eff) else f"{'NaN':>9}"
        rhat = f"{p.rhat:>9.2f}" if np.isfinite(p.rhat) else f"{'NaN':>9}"
        lines.append(row + n_eff + rhat)

    if summary.n_divergences:
        lines.append("")
        lines.append(f"Warning: {summary.n_divergences} divergent transitions after warmup.")

    return "\n".join(lines)


def check_recovery(summary: FitSummary, true_params: Dict[str, float]) -> List[RecoveryCheck]:
    """
    Compare posterior estimates against the generating parameter values.

    Args:
        summary: FitSummary of the fit
        true_params: Generating value per parameter name

    Returns:
        One RecoveryCheck per entry of true_params, in the same order

    Raises:
        ValueError: If a parameter in true_params was not summarized
    """
    checks = []
    for name, true_value in true_params.items():
        try:
            param = summary.get(name)
        except KeyError:
            raise ValueError(f"Parameter '{name}' is not in the fit summary") from None

        checks.append(
            RecoveryCheck(
                name=name,
                true_value=float(true_value),
                estimate=param.mean,
                lower=param.q2_5,
                upper=param.q97_5,
                abs_error=abs(param.mean - true_value),
                covered=param.q2_5 <= true_value <= param.q97_5,
            )
        )
    return checks


def format_recovery_table(checks: List[RecoveryCheck]) -> str:
    """Format recovery checks as a markdown table."""
    table = "| Parameter | True | Estimate | 95% interval | Abs error | Covered |\n"
    table += "|-----------|------|----------|--------------|-----------|---------|\n"
    for c in checks:
        covered = "yes" if c.covered else "no"
        table += (
            f"| {c.name} "
            f"| {c.true_value:.2f} "
            f"| {c.estimate:.2f} "
            f"| [{c.lower:.2f}, {c.upper:.2f}] "
            f"| {c.abs_error:.2f} "
            f"| {covered} |\n"
        )
    return table
