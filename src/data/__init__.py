"""Data simulation for the worked example."""

from .simulate import DEFAULT_N, DEFAULT_SEED, TRUE_PARAMS, RegressionData, simulate_regression_data

__all__ = [
    "DEFAULT_N",
    "DEFAULT_SEED",
    "TRUE_PARAMS",
    "RegressionData",
    "simulate_regression_data",
]
