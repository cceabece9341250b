"""Shared helpers for the Rosetta cross-language trace suite."""

import logging

from steptrace import TracerConfig, trace
from steptrace.constants import SUPPORTED_LANGUAGES
from steptrace.trace_types import Step

logger = logging.getLogger(__name__)

ROSETTA_LANGUAGES: frozenset[str] = frozenset(SUPPORTED_LANGUAGES)


def trace_for_language(
    language: str, source: str, max_steps: int = 2000
) -> list[Step]:
    """Trace *source* with default limits apart from *max_steps*."""
    logger.info("Tracing %s program (max_steps=%d)", language, max_steps)
    steps = trace(source, language, config=TracerConfig(max_steps=max_steps))
    logger.info("Trace complete for %s: %d steps", language, len(steps))
    return steps


def simulation_descriptions(steps: list[Step], function_name: str) -> list[str]:
    """Descriptions of the simulated-call steps of *function_name*, in order."""
    prefix = f"{function_name}("
    return [s.description for s in steps if s.description.startswith(prefix)]


def extract_answer(steps: list[Step], language: str) -> object:
    """Extract the ``answer`` variable from the final step."""
    variables = steps[-1].variables
    assert "answer" in variables, (
        f"[{language}] expected 'answer' in final variables, "
        f"got: {sorted(variables.keys())}"
    )
    return variables["answer"].value


def assert_clean_trace(steps: list[Step], *, min_steps: int, language: str) -> None:
    """Run the standard assertion battery on a single language trace."""
    # Tier 1: no error step
    errors = [s.description for s in steps if s.error_flag]
    assert not errors, f"[{language}] trace ended with an error: {errors}"

    # Tier 2: minimum step count
    assert (
        len(steps) >= min_steps
    ), f"[{language}] expected >= {min_steps} steps, got {len(steps)}"

    # Tier 3: contiguous indices
    assert [s.index for s in steps] == list(
        range(len(steps))
    ), f"[{language}] step indices are not contiguous"

    # Tier 4: balanced call stack
    assert steps[-1].depth == 0, f"[{language}] call stack not empty at the end"


def assert_cross_language_consistency(
    results: dict[str, list[Step]], *, function_name: str
) -> None:
    """Every language must simulate *function_name* with the same step texts."""
    assert set(results.keys()) == set(
        ROSETTA_LANGUAGES
    ), f"Missing languages: {set(ROSETTA_LANGUAGES) - set(results.keys())}"

    simulations = {
        lang: simulation_descriptions(steps, function_name)
        for lang, steps in results.items()
    }
    reference = simulations["python"]
    assert reference, f"python trace has no simulated {function_name} steps"
    for lang, descriptions in simulations.items():
        assert descriptions == reference, (
            f"[{lang}] simulation of {function_name} differs from python: "
            f"{descriptions} != {reference}"
        )
