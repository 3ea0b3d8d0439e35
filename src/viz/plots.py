"""Plots shown on the worked-example slides.

Three figures come out of a fit: the trace of every parameter, an interval
plot of the posteriors, and posterior histograms with the generating values
marked. A fourth, data-free figure illustrates Bayes' rule on the
Beta-Binomial model for the introductory slides. ``render_math`` typesets
display equations to images for the presentation file.

All figures are written as PNG files and closed; nothing is shown on screen.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

if TYPE_CHECKING:
    import arviz as az

    from evaluation.conjugate import BetaBinomialUpdate

DPI = 150

TRACE_FILENAME = "trace.png"
INTERVAL_FILENAME = "intervals.png"
HISTOGRAM_FILENAME = "histograms.png"
PRIOR_POSTERIOR_FILENAME = "prior_posterior.png"


def _prepare_dir(output_dir: str | Path) -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def plot_trace_intervals(
    idata: "az.InferenceData",
    var_names: List[str],
    output_dir: str | Path,
    hdi_prob: float = 0.95,
) -> Tuple[Path, Path]:
    """Draw the trace plot and the posterior interval plot.

    Args:
        idata: InferenceData with a posterior group
        var_names: Parameters to plot
        output_dir: Directory for the PNG files
        hdi_prob: Probability mass of the outer interval

    Returns:
        Tuple of (trace_path, interval_path)
    """
    import arviz as az

    output_dir = _prepare_dir(output_dir)

    # Trace: marginal density and draws per chain
    axes = az.plot_trace(idata, var_names=var_names, compact=False, figsize=(10, 2.5 * len(var_names)))
    fig = np.asarray(axes).ravel()[0].figure
    fig.tight_layout()
    trace_path = output_dir / TRACE_FILENAME
    fig.savefig(trace_path, dpi=DPI, bbox_inches="tight")
    plt.close(fig)

    # Intervals: interquartile range inside the HDI, chains combined
    axes = az.plot_forest(
        idata,
        var_names=var_names,
        combined=True,
        hdi_prob=hdi_prob,
        quartiles=True,
        figsize=(8, 1 + 0.8 * len(var_names)),
    )
    fig = np.asarray(axes).ravel()[0].figure
    interval_path = output_dir / INTERVAL_FILENAME
    fig.savefig(interval_path, dpi=DPI, bbox_inches="tight")
    plt.close(fig)

    return trace_path, interval_path


def plot_posterior_histograms(
    idata: "az.InferenceData",
    var_names: List[str],
    output_dir: str | Path,
    true_params: Optional[Dict[str, float]] = None,
    bins: int = 30,
) -> Path:
    """Draw one histogram of the pooled posterior draws per parameter.

    Args:
        idata: InferenceData with a posterior group
        var_names: Parameters to plot
        output_dir: Directory for the PNG file
        true_params: Generating values, drawn as dashed vertical lines
        bins: Histogram bins

    Returns:
        Path of the written PNG
    """
    output_dir = _prepare_dir(output_dir)

    fig, axes = plt.subplots(1, len(var_names), figsize=(4 * len(var_names), 3.2), squeeze=False)
    for ax, name in zip(axes[0], var_names):
        draws = np.asarray(idata.posterior[name].values, dtype=float).ravel()
        ax.hist(draws, bins=bins, color="#4C72B0", alpha=0.8, edgecolor="white")
        ax.axvline(draws.mean(), color="black", linewidth=1.5, label="posterior mean")
        if true_params and name in true_params:
            ax.axvline(true_params[name], color="#C44E52", linestyle="--", linewidth=1.5, label="true value")
        ax.set_title(name)
        ax.set_yticks([])
    axes[0][0].legend(loc="upper right", fontsize=8, frameon=False)
    fig.tight_layout()

    path = output_dir / HISTOGRAM_FILENAME
    fig.savefig(path, dpi=DPI, bbox_inches="tight")
    plt.close(fig)
    return path


def plot_prior_posterior(update: "BetaBinomialUpdate", output_dir: str | Path, n_grid: int = 500) -> Path:
    """Plot prior, likelihood and posterior of a Beta-Binomial update.

    Returns:
        Path of the written PNG
    """
    output_dir = _prepare_dir(output_dir)

    grid = np.linspace(0, 1, n_grid)
    prior, likelihood, posterior = update.densities(grid)

    fig, ax = plt.subplots(figsize=(7, 3.5))
    ax.plot(grid, prior, color="#8C8C8C", linestyle="--", label=f"prior Beta({update.prior_alpha:g}, {update.prior_beta:g})")
    ax.plot(grid, likelihood, color="#55A868", linestyle=":", label=f"likelihood ({update.successes}/{update.trials})")
    ax.plot(
        grid,
        posterior,
        color="#4C72B0",
        linewidth=2,
        label=f"posterior Beta({update.posterior_alpha:g}, {update.posterior_beta:g})",
    )
    ax.set_xlabel("p")
    ax.set_yticks([])
    ax.legend(frameon=False)
    fig.tight_layout()

    path = output_dir / PRIOR_POSTERIOR_FILENAME
    fig.savefig(path, dpi=DPI, bbox_inches="tight")
    plt.close(fig)
    return path


def render_math(tex: str, path: str | Path, fontsize: int = 22) -> Path:
    """Typeset display math with matplotlib mathtext and save it as a transparent PNG.

    Each line of ``tex`` is typeset as its own equation.

    Raises:
        ValueError: If mathtext cannot parse the expression
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    text = "\n".join(f"${line.strip()}$" for line in tex.splitlines() if line.strip())
    fig = plt.figure(figsize=(0.01, 0.01))
    try:
        fig.text(0, 0, text, fontsize=fontsize, color="#0B1F33")
        fig.savefig(path, dpi=DPI * 2, bbox_inches="tight", pad_inches=0.05, transparent=True)
    finally:
        plt.close(fig)
    return path
