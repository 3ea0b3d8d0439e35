"""Conjugate Beta-Binomial updating for the prior/posterior slides.

The introductory slides show Bayes' rule on a coin: a Beta(alpha, beta) prior
on the probability of heads, a Binomial likelihood for the observed flips and
the Beta posterior they combine into. Everything here is closed form.

Example:
    >>> update = beta_binomial_update(prior_alpha=2, prior_beta=2, successes=7, trials=10)
    >>> update.posterior_alpha, update.posterior_beta
    (9.0, 5.0)
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from scipy import stats  # type: ignore[import-untyped]


@dataclass
class BetaBinomialUpdate:
    """Prior and posterior of a Beta-Binomial model.

    Attributes:
        prior_alpha: Prior Beta shape alpha
        prior_beta: Prior Beta shape beta
        successes: Observed successes
        trials: Observed trials
    """

    prior_alpha: float
    prior_beta: float
    successes: int
    trials: int

    @property
    def posterior_alpha(self) -> float:
        return self.prior_alpha + self.successes

    @property
    def posterior_beta(self) -> float:
        return self.prior_beta + self.trials - self.successes

    @property
    def prior_mean(self) -> float:
        return self.prior_alpha / (self.prior_alpha + self.prior_beta)

    @property
    def posterior_mean(self) -> float:
        return self.posterior_alpha / (self.posterior_alpha + self.posterior_beta)

    def credible_interval(self, level: float = 0.95) -> Tuple[float, float]:
        """Equal-tailed posterior credible interval.

        Raises:
            ValueError: If level is not in (0, 1)
        """
        if not 0 < level < 1:
            raise ValueError(f"level must be in (0, 1), got {level}")
        tail = (1 - level) / 2
        dist = stats.beta(self.posterior_alpha, self.posterior_beta)
        return float(dist.ppf(tail)), float(dist.ppf(1 - tail))

    def densities(self, grid: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Prior density, scaled likelihood and posterior density on a grid over [0, 1].

        The likelihood is normalised to integrate to one over p so that the
        three curves share an axis.
        """
        prior = stats.beta.pdf(grid, self.prior_alpha, self.prior_beta)
        likelihood = stats.beta.pdf(grid, self.successes + 1, self.trials - self.successes + 1)
        posterior = stats.beta.pdf(grid, self.posterior_alpha, self.posterior_beta)
        return prior, likelihood, posterior


def beta_binomial_update(
    prior_alpha: float = 2.0,
    prior_beta: float = 2.0,
    successes: int = 7,
    trials: int = 10,
) -> BetaBinomialUpdate:
    """Condition a Beta prior on Binomial data.

    Args:
        prior_alpha: Prior shape alpha (> 0)
        prior_beta: Prior shape beta (> 0)
        successes: Number of successes observed
        trials: Number of trials observed

    Returns:
        BetaBinomialUpdate describing prior and posterior

    Raises:
        ValueError: If the shapes are not positive or successes is outside [0, trials]
    """
    if prior_alpha <= 0 or prior_beta <= 0:
        raise ValueError(f"prior shapes must be positive, got ({prior_alpha}, {prior_beta})")
    if trials < 0 or not 0 <= successes <= trials:
        raise ValueError(f"successes must lie in [0, trials], got {successes}/{trials}")

    return BetaBinomialUpdate(
        prior_alpha=float(prior_alpha),
        prior_beta=float(prior_beta),
        successes=int(successes),
        trials=int(trials),
    )
