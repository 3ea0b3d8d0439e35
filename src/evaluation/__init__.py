"""Posterior summaries and closed-form updates for the deck.

This module provides:

- Fit summaries: Stan-style summary table and parameter recovery checks
- Conjugate updating: Beta-Binomial prior/posterior for the introductory slides

Example:
    >>> from evaluation import summarize_fit, check_recovery
    >>> summary = summarize_fit(idata, ["a", "b", "sigma"])
    >>> checks = check_recovery(summary, {"a": 0.5, "b": 2.25, "sigma": 1.75})
"""

from .conjugate import BetaBinomialUpdate, beta_binomial_update
from .summary import (
    check_recovery,
    format_recovery_table,
    format_summary_table,
    summarize_fit,
    summary_to_frame,
)

__all__ = [
    "BetaBinomialUpdate",
    "beta_binomial_update",
    "check_recovery",
    "format_recovery_table",
    "format_summary_table",
    "summarize_fit",
    "summary_to_frame",
]
