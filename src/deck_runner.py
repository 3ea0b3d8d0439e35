"""Build the Bayesian data analysis deck end to end.

Steps:
1. Simulate the regression dataset from known parameters
2. Fit the linear regression model with the external sampler (PyMC/NUTS)
3. Summarize the posterior and check parameter recovery
4. Draw the trace, interval and histogram plots
5. Fill the markup document with the results and render it to .pptx

Usage:
    python src/deck_runner.py --output-dir results --seed 42
"""

import argparse
import json
import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from data.simulate import DEFAULT_N, DEFAULT_SEED, RegressionData, simulate_regression_data
from evaluation.conjugate import beta_binomial_update
from evaluation.summary import (
    check_recovery,
    format_recovery_table,
    format_summary_table,
    summarize_fit,
    summary_to_frame,
)
from models.schemas import FitSummary, RecoveryCheck, SamplerConfig
from slides.markup import DEFAULT_DOCUMENT, CodeBlock, load_document
from slides.pptx_renderer import render_pptx, slide_titles
from tools.sampler_executor import DEFAULT_MODEL_PATH, load_model_program, run_sampler
from viz.plots import plot_posterior_histograms, plot_prior_posterior, plot_trace_intervals

DECK_FILENAME = "deck.pptx"


class DeckRunner:
    """
    Runs the worked example and renders the deck.

    Each step stores its output on the runner so later steps (and callers)
    can reuse it; ``run()`` executes all of them in order.
    """

    def __init__(
        self,
        config: Optional[SamplerConfig] = None,
        output_dir: Optional[str] = None,
        n: int = DEFAULT_N,
        data_seed: Optional[int] = DEFAULT_SEED,
        model_path: Path = DEFAULT_MODEL_PATH,
        document_path: Path = DEFAULT_DOCUMENT,
    ):
        self.config = config or SamplerConfig()
        # Get project root directory
        self.project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
        self.output_dir = Path(output_dir or os.path.join(self.project_root, "results"))
        self.n = n
        self.data_seed = data_seed
        self.model_path = Path(model_path)
        self.document_path = Path(document_path)

        self.data: Optional[RegressionData] = None
        self.idata = None
        self.summary: Optional[FitSummary] = None
        self.recovery: List[RecoveryCheck] = []
        self.figures: Dict[str, Path] = {}

    def simulate(self) -> RegressionData:
        """Simulate the dataset and save it as CSV."""
        self.data = simulate_regression_data(n=self.n, seed=self.data_seed)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.data.to_frame().to_csv(self.output_dir / "data.csv", index=False)
        print(f"[data] Simulated {self.data.n} points (seed={self.data_seed})")
        return self.data

    def fit(self):
        """
        Sample the posterior with the external sampler.

        Raises:
            RuntimeError: If the sampler run fails
        """
        if self.data is None:
            self.simulate()

        print(
            f"[sampler] {self.config.chains} chains, warmup={self.config.warmup}, "
            f"iter={self.config.iter} ({self.model_path.name})"
        )
        result = run_sampler(self.data.to_record(), self.model_path, self.config)
        if not result.success:
            raise RuntimeError(f"Sampler failed: {result.error}")

        self.idata = result.to_inference_data()
        print(f"[sampler] Collected {self.config.chains * self.config.draws} posterior draws")
        return self.idata

    def summarize(self) -> FitSummary:
        """Summarize the posterior, check recovery and save both tables."""
        if self.idata is None:
            self.fit()

        self.summary = summarize_fit(self.idata, self.config.var_names)
        known = {k: v for k, v in self.data.true_params.items() if k in self.config.var_names}
        self.recovery = check_recovery(self.summary, known)

        table = format_summary_table(self.summary)
        (self.output_dir / "summary.txt").write_text(table + "\n")
        summary_to_frame(self.summary).to_csv(self.output_dir / "summary.csv")
        (self.output_dir / "recovery.md").write_text(format_recovery_table(self.recovery))

        print(table)
        if not self.summary.converged:
            print("[summary] Warning: chains did not converge (Rhat >= 1.01 or divergences)")
        return self.summary

    def plot(self) -> Dict[str, Path]:
        """Draw the trace/interval plot, the histograms and the prior/posterior figure."""
        if self.summary is None:
            self.summarize()

        figure_dir = self.output_dir / "figures"
        trace_path, interval_path = plot_trace_intervals(self.idata, self.config.var_names, figure_dir)
        self.figures["trace"] = trace_path
        self.figures["intervals"] = interval_path
        self.figures["histograms"] = plot_posterior_histograms(
            self.idata, self.config.var_names, figure_dir, true_params=self.data.true_params
        )
        self.figures["prior_posterior"] = plot_prior_posterior(beta_binomial_update(), figure_dir)
        print(f"[plots] Wrote {len(self.figures)} figures to {figure_dir}/")
        return self.figures

    def build_context(self) -> Dict[str, Any]:
        """Collect every value the markup document refers to."""
        if not self.figures:
            self.plot()

        coin = beta_binomial_update()
        coin_lower, coin_upper = coin.credible_interval(0.95)

        recovery_frame = pd.DataFrame(
            [
                {
                    "true": c.true_value,
                    "estimate": c.estimate,
                    "2.5%": c.lower,
                    "97.5%": c.upper,
                    "covered": "yes" if c.covered else "no",
                }
                for c in self.recovery
            ],
            index=pd.Index([c.name for c in self.recovery], name="parameter"),
        )

        if self.summary.converged:
            convergence_note = "All Rhat < 1.01 and no divergent transitions"
        else:
            max_rhat = max(p.rhat for p in self.summary.parameters)
            convergence_note = (
                f"Check convergence: max Rhat {max_rhat:.3f}, "
                f"{self.summary.n_divergences} divergent transitions"
            )

        context: Dict[str, Any] = {
            "date": date.today().isoformat(),
            "n": self.data.n,
            "true_a": self.data.true_params["a"],
            "true_b": self.data.true_params["b"],
            "true_sigma": self.data.true_params["sigma"],
            "chains": self.config.chains,
            "warmup": self.config.warmup,
            "draws": self.config.draws,
            "model_program": CodeBlock(code=load_model_program(self.model_path).strip(), language="python"),
            "summary_table": CodeBlock(code=format_summary_table(self.summary), language="text"),
            "convergence_note": convergence_note,
            "recovery_table": recovery_frame,
            "coin_alpha": f"{coin.prior_alpha:g}",
            "coin_beta": f"{coin.prior_beta:g}",
            "coin_successes": coin.successes,
            "coin_trials": coin.trials,
            "coin_posterior_mean": coin.posterior_mean,
            "coin_lower": coin_lower,
            "coin_upper": coin_upper,
        }
        for name in ("a", "b", "sigma"):
            if name in self.summary.names:
                context[f"{name}_hat"] = self.summary.get(name).mean
        context.update({key: str(path) for key, path in self.figures.items()})
        return context

    def render(self) -> Path:
        """Fill the markup document and write the presentation file."""
        deck = load_document(self.document_path, self.build_context())
        path = render_pptx(deck, self.output_dir / DECK_FILENAME)
        print(f"[slides] Rendered {len(deck.slides) + 1} slides")
        return path

    def run(self) -> Path:
        """Run every step and return the path of the presentation file."""
        self.simulate()
        self.fit()
        self.summarize()
        self.plot()
        path = self.render()
        self.save_results()
        return path

    def save_results(self):
        """Save the summary and recovery checks as JSON."""
        results = {
            "config": self.config.model_dump(),
            "summary": self.summary.model_dump() if self.summary else None,
            "recovery": [c.model_dump() for c in self.recovery],
            "figures": {k: str(v) for k, v in self.figures.items()},
        }
        with open(self.output_dir / "results.json", "w") as f:
            json.dump(results, f, indent=2)

        print(f"\n✓ Results saved to {self.output_dir}/")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fit the worked example and render the Bayesian data analysis deck.")
    parser.add_argument("--output-dir", default=None, help="Directory for data, figures and the deck")
    parser.add_argument("--n", type=int, default=DEFAULT_N, help="Number of simulated points")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="Seed for the data and the sampler")
    parser.add_argument("--warmup", type=int, default=1000, help="Warmup iterations per chain")
    parser.add_argument("--iter", type=int, default=2000, help="Total iterations per chain, warmup included")
    parser.add_argument("--chains", type=int, default=4, help="Number of chains")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    print("Bayesian Data Analysis Deck")
    print("=" * 60)

    config = SamplerConfig(warmup=args.warmup, iter=args.iter, chains=args.chains, seed=args.seed)
    runner = DeckRunner(config=config, output_dir=args.output_dir, n=args.n, data_seed=args.seed)
    path = runner.run()

    print("\n" + "=" * 60)
    print("RECOVERY OF GENERATING PARAMETERS")
    print("=" * 60 + "\n")
    for c in runner.recovery:
        mark = "✓" if c.covered else "✗"
        print(
            f"  {mark} {c.name:6s}: true={c.true_value:.2f}, estimate={c.estimate:.2f}, "
            f"95% [{c.lower:.2f}, {c.upper:.2f}]"
        )

    print(f"\nDeck: {path}")
    for i, title in enumerate(slide_titles(path), start=1):
        print(f"  {i:2d}. {title}")


if __name__ == "__main__":
    main()
