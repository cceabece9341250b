"""Orchestrator — trace() entry point."""

from __future__ import annotations

import logging
import time
from typing import Iterable

from . import constants
from .errors import UnsupportedLanguageError
from .normalizer import normalize
from .parser import Parser
from .recognizers import get_recognizer
from .recorder import StepRecorder
from .run_types import TraceRequest, TracerConfig, TraceStats, canonical_language
from .state import ExecutionState
from .trace_types import Step

logger = logging.getLogger(__name__)


def split_input(text: str) -> list[str]:
    """Split raw stdin text into its non-blank lines, in order."""
    return [line for line in text.splitlines() if line.strip()]


def trace_with_stats(
    source_text: str,
    language: str,
    stdin_lines: Iterable[str] = (),
    config: TracerConfig = TracerConfig(),
    parser: Parser | None = None,
) -> tuple[list[Step], TraceStats]:
    """Trace *source_text* and also return timing/size statistics.

    Raises ``UnsupportedLanguageError`` for an unknown language tag; every
    failure after that point becomes a terminal error Step instead.
    """
    pipeline_start = time.perf_counter()
    tag = canonical_language(language)
    if tag not in constants.SUPPORTED_LANGUAGES:
        raise UnsupportedLanguageError(language)

    stats = TraceStats(
        source_lines=source_text.count("\n")
        + (1 if source_text and not source_text.endswith("\n") else 0),
        language=tag,
    )
    state = ExecutionState(stdin_lines=tuple(stdin_lines))
    recorder = StepRecorder(state, max_steps=config.max_steps, verbose=config.verbose)
    recognizer = get_recognizer(tag, state, recorder, config)

    try:
        t0 = time.perf_counter()
        lines = normalize(source_text, tag, parser)
        stats.normalize_time = time.perf_counter() - t0
        stats.logical_lines = len(lines)

        t0 = time.perf_counter()
        recognizer.run(lines)
        stats.interpret_time = time.perf_counter() - t0
    except Exception as exc:  # any failure ends the trace with an error step
        logger.warning("Trace of %s snippet stopped: %s", tag, exc)
        stats.error = str(exc)
        recorder.record_error(str(exc))

    stats.steps = len(recorder.steps)
    stats.functions_defined = len(state.registry)
    stats.heap_objects = len(state.heap)
    stats.output_lines = len(state.output)
    stats.total_time = time.perf_counter() - pipeline_start
    logger.info(
        "Traced %d logical lines of %s into %d steps in %.1fms",
        stats.logical_lines,
        tag,
        stats.steps,
        stats.total_time * 1000,
    )
    if config.verbose:
        print()
        print(stats.report())
    return recorder.steps, stats


def trace(
    source_text: str,
    language: str,
    stdin_lines: Iterable[str] = (),
    config: TracerConfig = TracerConfig(),
) -> list[Step]:
    """End-to-end: normalize → classify → interpret → snapshot.

    Args:
        source_text: Raw program text.
        language: ``python``, ``java`` or ``cpp`` (aliases ``py``, ``c++``).
        stdin_lines: Pre-supplied input lines, consumed in order.
        config: Step and call-depth limits, verbose printing.
    """
    steps, _ = trace_with_stats(source_text, language, stdin_lines, config)
    return steps


def trace_request(request: TraceRequest, config: TracerConfig = TracerConfig()) -> list[Step]:
    """Trace a validated ``TraceRequest``."""
    return trace(request.source_text, request.language, request.stdin_lines, config)
