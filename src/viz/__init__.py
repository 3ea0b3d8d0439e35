"""Figures for the deck."""

from .plots import plot_posterior_histograms, plot_prior_posterior, plot_trace_intervals, render_math

__all__ = ["plot_posterior_histograms", "plot_prior_posterior", "plot_trace_intervals", "render_math"]
