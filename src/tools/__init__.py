"""Tools for the Bayesian data analysis deck.

This package contains the bridge to the external sampling engine.
"""

from .sampler_executor import (
    DEFAULT_MODEL_PATH,
    SamplerResult,
    load_model_program,
    prepare_model_code,
    run_sampler,
    validate_model_code,
)

__all__ = [
    "DEFAULT_MODEL_PATH",
    "SamplerResult",
    "load_model_program",
    "prepare_model_code",
    "run_sampler",
    "validate_model_code",
]
