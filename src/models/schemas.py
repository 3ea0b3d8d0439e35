"""
Data models for the Bayesian data analysis deck.
Sampler configuration, posterior summaries and parameter recovery checks.
"""

from typing import List, Optional
from pydantic import BaseModel, Field, model_validator


# Fewest kept draws per chain ArviZ computes R-hat and ESS from
MIN_DRAWS = 4


class SamplerConfig(BaseModel):
    """Invocation parameters for the external sampler.

    Follows the Stan convention: ``iter`` is the total number of iterations
    per chain, warmup included, so the number of kept draws is
    ``iter - warmup``.
    """

    warmup: int = Field(1000, ge=1, description="Warmup (tuning) iterations per chain")
    iter: int = Field(2000, ge=2, description="Total iterations per chain, warmup included")
    chains: int = Field(4, ge=1, description="Number of Markov chains")
    seed: Optional[int] = Field(42, description="Random seed for the sampler")
    var_names: List[str] = Field(
        default_factory=lambda: ["a", "b", "sigma"],
        min_length=1,
        description="Parameter names to report",
    )
    target_accept: float = Field(0.8, gt=0, lt=1, description="NUTS target acceptance rate")
    timeout: int = Field(300, gt=0, description="Subprocess timeout in seconds")

    @model_validator(mode="after")
    def _check_iterations(self) -> "SamplerConfig":
        if self.iter - self.warmup < MIN_DRAWS:
            raise ValueError(
                f"iter ({self.iter}) must exceed warmup ({self.warmup}) by at least {MIN_DRAWS} draws"
            )
        return self

    @property
    def draws(self) -> int:
        """Post-warmup draws kept per chain."""
        return self.iter - self.warmup


class ParameterSummary(BaseModel):
    """One row of the posterior summary table."""

    name: str
    mean: float
    se_mean: float = Field(..., description="Monte Carlo standard error of the mean")
    sd: float = Field(..., ge=0)
    q2_5: float
    q25: float
    q50: float
    q75: float
    q97_5: float
    n_eff: float = Field(..., description="Bulk effective sample size")
    rhat: float


class FitSummary(BaseModel):
    """Posterior summary for all reported parameters of one fit."""

    parameters: List[ParameterSummary]
    chains: int
    draws: int
    n_divergences: int = 0

    def get(self, name: str) -> ParameterSummary:
        """Look up a parameter row by name.

        Raises:
            KeyError: If the parameter was not summarized.
        """
        for param in self.parameters:
            if param.name == name:
                return param
        raise KeyError(name)

    @property
    def names(self) -> List[str]:
        return [p.name for p in self.parameters]

    @property
    def converged(self) -> bool:
        """All R-hat values below 1.01 and no divergent transitions."""
        return self.n_divergences == 0 and all(p.rhat < 1.01 for p in self.parameters)


class RecoveryCheck(BaseModel):
    """Comparison of a posterior estimate against the generating value."""

    name: str
    true_value: float
    estimate: float = Field(..., description="Posterior mean")
    lower: float = Field(..., description="2.5% posterior quantile")
    upper: float = Field(..., description="97.5% posterior quantile")
    abs_error: float = Field(..., ge=0)
    covered: bool = Field(..., description="True value inside the 95% interval")
