"""Sampler Executor - Run a PyMC model program on a data record and collect posterior draws.

The model program is a plain PyMC script kept in its own file. It sees the
data record as a ``data`` dict and must define a ``model`` context. This module
validates the program, wraps it with the data record and the sampling code, and
runs it in a subprocess so the engine's own process state never leaks into the
caller.

Example:
    >>> from data.simulate import simulate_regression_data
    >>> from models.schemas import SamplerConfig
    >>> data = simulate_regression_data(n=50, seed=42)
    >>> result = run_sampler(data.to_record(), DEFAULT_MODEL_PATH, SamplerConfig())
    >>> if result.success:
    ...     idata = result.to_inference_data()
"""

from dataclasses import dataclass
import json
import re
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Any

import numpy as np

from models.schemas import SamplerConfig

__all__ = [
    "DEFAULT_MODEL_PATH",
    "SamplerResult",
    "load_model_program",
    "prepare_model_code",
    "run_sampler",
    "validate_model_code",
]


DEFAULT_MODEL_PATH = Path(__file__).resolve().parent.parent / "models" / "programs" / "linear_regression.pymc"

RESULT_MARKER = "SAMPLER_RESULT:"


# Dangerous patterns that should not appear in a model program
DANGEROUS_PATTERNS: list[str] = [
    "import os",
    "import sys",
    "import subprocess",
    "from os",
    "from sys",
    "from subprocess",
    "open(",
    "exec(",
    "eval(",
    "__import__",
    "os.system",
    "os.popen",
    "shutil",
    "socket",
    "urllib",
    "requests",
    "http.client",
    "pickle",
    "marshal",
    "compile(",
    "globals(",
    "locals(",
    "getattr(",
    "setattr(",
    "delattr(",
    "breakpoint(",
]


# Prepended before the model program; exposes the data record as `data`
DATA_CODE = """import json as _json

data = _json.loads({payload!r})
"""


# Appended after the model program
SAMPLING_CODE = """
# ==== Auto-appended sampling code ====
import warnings as _warnings

_warnings.filterwarnings("ignore")

with model:
    _trace = pm.sample(
        draws={draws},
        tune={warmup},
        chains={chains},
        cores=1,
        target_accept={target_accept},
        random_seed={seed},
        progressbar=False,
        return_inferencedata=True,
    )

_result = {{
    "samples": {{
        _name: _trace.posterior[_name].values.tolist()
        for _name in {var_names!r}
    }},
    "diverging": _trace.sample_stats["diverging"].values.tolist(),
}}
print("{marker}" + _json.dumps(_result))
"""


@dataclass
class SamplerResult:
    """Result of a sampler run.

    Attributes:
        success: Whether sampling completed and every requested parameter came back
        samples: Posterior draws per parameter, nested as [chain][draw]
        diverging: Divergent-transition flags, nested as [chain][draw]
        error: Error message if the run failed
        raw_output: Raw stdout (and stderr) from the subprocess
    """

    success: bool
    samples: dict[str, list[list[float]]] | None = None
    diverging: list[list[bool]] | None = None
    error: str | None = None
    raw_output: str | None = None

    @classmethod
    def from_error(cls, error: str, raw_output: str | None = None) -> "SamplerResult":
        """Create a failed result from an error message."""
        return cls(success=False, error=error, raw_output=raw_output)

    @classmethod
    def from_samples(
        cls,
        samples: dict[str, list[list[float]]],
        diverging: list[list[bool]] | None = None,
        raw_output: str | None = None,
    ) -> "SamplerResult":
        """Create a successful result from posterior draws."""
        return cls(success=True, samples=samples, diverging=diverging, raw_output=raw_output)

    def to_inference_data(self):
        """Convert the draws to an ArviZ InferenceData object.

        Raises:
            ValueError: If the run failed and there are no samples.
        """
        if not self.success or not self.samples:
            raise ValueError(f"No posterior samples available: {self.error}")

        import arviz as az

        posterior = {name: np.asarray(draws, dtype=float) for name, draws in self.samples.items()}
        sample_stats = None
        if self.diverging is not None:
            sample_stats = {"diverging": np.asarray(self.diverging, dtype=bool)}
        return az.from_dict(posterior=posterior, sample_stats=sample_stats)


def load_model_program(path: str | Path) -> str:
    """Read a model program from disk.

    Raises:
        ValueError: If the file does not exist.
    """
    path = Path(path)
    if not path.is_file():
        raise ValueError(f"Model program not found: {path}")
    return path.read_text()


def validate_model_code(code: str, var_names: list[str]) -> tuple[bool, str]:
    """Validate a model program before execution.

    Performs security and structural validation:
    1. Checks for dangerous imports/patterns that could be exploited
    2. Verifies the program opens a PyMC model context named ``model``
    3. Verifies every requested parameter is declared
    4. Verifies the program reads the ``data`` record

    Args:
        code: Model program source
        var_names: Parameter names the caller wants reported

    Returns:
        Tuple of (is_valid, error_message).
        If valid, error_message is empty string.

    Examples:
        >>> dangerous = "import os; os.system('rm -rf /')"
        >>> valid, msg = validate_model_code(dangerous, ["a"])
        >>> valid
        False
    """
    code_lower = code.lower()
    for pattern in DANGEROUS_PATTERNS:
        if pattern.lower() in code_lower:
            return False, f"Dangerous pattern detected: '{pattern}'"

    has_model = bool(re.search(r"(pm|pymc)\.Model\s*\(", code))
    if not has_model:
        return False, "Code must contain 'pm.Model()' or 'pymc.Model()' context"

    if not re.search(r"\bas\s+model\s*:", code):
        return False, "Model context must be bound to the name 'model'"

    for name in var_names:
        if not re.search(r"['\"]" + re.escape(name) + r"['\"]", code):
            return False, f"Code must define a '{name}' random variable"

    if not re.search(r"\bdata\s*\[", code):
        return False, "Code must read its observations from the 'data' record"

    return True, ""


def prepare_model_code(raw_code: str, data_record: dict[str, Any], config: SamplerConfig) -> str:
    """Prepare a model program for execution.

    Adds necessary components:
    1. Import statements (pymc, numpy) if missing
    2. The data record, bound to the name ``data``
    3. Sampling code driven by ``config``
    4. Extraction code that prints the draws as one JSON line

    Args:
        raw_code: Model program (should define a ``model`` context)
        data_record: JSON-serialisable data record
        config: Sampler configuration

    Returns:
        Code ready for subprocess execution
    """
    lines = []

    has_pymc_import = "import pymc" in raw_code or "from pymc" in raw_code
    has_numpy_import = "import numpy" in raw_code or "from numpy" in raw_code

    if not has_pymc_import:
        lines.append("import pymc as pm")
    if not has_numpy_import:
        lines.append("import numpy as np")

    lines.append(DATA_CODE.format(payload=json.dumps(data_record)))
    lines.append(raw_code.strip())
    lines.append(
        SAMPLING_CODE.format(
            draws=config.draws,
            warmup=config.warmup,
            chains=config.chains,
            target_accept=config.target_accept,
            seed=config.seed,
            var_names=list(config.var_names),
            marker=RESULT_MARKER,
        )
    )

    return "\n".join(lines)


def _parse_result(output: str) -> dict[str, Any] | None:
    """Parse the SAMPLER_RESULT JSON from subprocess output.

    Args:
        output: Raw stdout from subprocess

    Returns:
        Parsed result dict or None if not found
    """
    idx = output.find(RESULT_MARKER)
    if idx == -1:
        return None

    json_start = idx + len(RESULT_MARKER)
    json_end = output.find("\n", json_start)
    if json_end == -1:
        json_str = output[json_start:]
    else:
        json_str = output[json_start:json_end]

    try:
        return json.loads(json_str.strip())
    except json.JSONDecodeError:
        return None


def run_sampler(
    data_record: dict[str, Any],
    model_path: str | Path = DEFAULT_MODEL_PATH,
    config: SamplerConfig | None = None,
) -> SamplerResult:
    """Sample the posterior of a model program in a subprocess.

    The execution flow:
    1. Load and validate the model program
    2. Prepare the code by adding the data record and sampling
    3. Write to a temporary file and execute with subprocess
    4. Parse the output to extract the posterior draws

    Args:
        data_record: Data handed to the model as ``data``
        model_path: Path of the model program file
        config: Warmup/total iterations, chains, seed and the parameter
            names to report (defaults to ``SamplerConfig()``)

    Returns:
        SamplerResult with:
        - success=True and the draws of every requested parameter
        - success=False and error message if failed

    Raises:
        No exceptions are raised; errors are captured in the result.
    """
    if config is None:
        config = SamplerConfig()

    # Step 1: Load and validate
    try:
        code = load_model_program(model_path)
    except ValueError as e:
        return SamplerResult.from_error(str(e))

    is_valid, error_msg = validate_model_code(code, config.var_names)
    if not is_valid:
        return SamplerResult.from_error(f"Validation failed: {error_msg}")

    # Step 2: Prepare
    try:
        prepared_code = prepare_model_code(code, data_record, config)
    except (TypeError, ValueError) as e:
        return SamplerResult.from_error(f"Data record is not JSON-serialisable: {e}")

    # Step 3: Execute in subprocess
    try:
        with tempfile.NamedTemporaryFile(mode="w", suffix=".py", delete=False) as temp_file:
            temp_file.write(prepared_code)
            temp_path = temp_file.name

        try:
            result = subprocess.run(
                [sys.executable, temp_path],
                capture_output=True,
                timeout=config.timeout,
                text=True,
                env=None,
            )
        finally:
            Path(temp_path).unlink(missing_ok=True)

    except subprocess.TimeoutExpired:
        return SamplerResult.from_error(f"Sampling timed out after {config.timeout} seconds")
    except FileNotFoundError:
        return SamplerResult.from_error("Python interpreter not found")
    except OSError as e:
        return SamplerResult.from_error(f"Subprocess execution failed: {type(e).__name__}: {e}")

    raw_output = result.stdout
    if result.stderr:
        raw_output += "\n--- stderr ---\n" + result.stderr

    if result.returncode != 0:
        error_summary = result.stderr[-500:] if result.stderr else "Unknown error"
        return SamplerResult.from_error(
            f"Sampling failed (exit code {result.returncode}): {error_summary}",
            raw_output=raw_output,
        )

    # Step 4: Parse results
    parsed = _parse_result(result.stdout)
    if parsed is None:
        return SamplerResult.from_error(
            f"Failed to parse {RESULT_MARKER.rstrip(':')} from output",
            raw_output=raw_output,
        )

    samples = parsed.get("samples") or {}
    missing_keys = [k for k in config.var_names if k not in samples]
    if missing_keys:
        return SamplerResult.from_error(
            f"Missing parameters in result: {missing_keys}",
            raw_output=raw_output,
        )

    return SamplerResult.from_samples(
        samples={k: samples[k] for k in config.var_names},
        diverging=parsed.get("diverging"),
        raw_output=raw_output,
    )
