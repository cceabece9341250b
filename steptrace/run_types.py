"""Run configuration and request types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, field_validator

from . import constants


@dataclass(frozen=True)
class TracerConfig:
    """Groups trace execution limits."""

    max_steps: int = constants.DEFAULT_MAX_STEPS
    max_call_depth: int = constants.DEFAULT_MAX_CALL_DEPTH
    verbose: bool = False


@dataclass
class TraceStats:
    """Timing and size statistics for one trace run."""

    source_lines: int = 0
    language: str = ""

    # Stage timings (seconds)
    normalize_time: float = 0.0
    interpret_time: float = 0.0
    total_time: float = 0.0

    # Output sizes
    logical_lines: int = 0
    functions_defined: int = 0
    steps: int = 0
    heap_objects: int = 0
    output_lines: int = 0
    error: str = ""

    def report(self) -> str:
        lines = [
            "═══ Trace Statistics ═══",
            f"  Source: {self.source_lines} lines ({self.language})",
            "",
            f"  {'Stage':<20} {'Time':>10}  {'Output':>30}",
            f"  {'─' * 20} {'─' * 10}  {'─' * 30}",
        ]
        stages = [
            ("Normalize", self.normalize_time, f"{self.logical_lines} logical lines"),
            (
                "Interpret",
                self.interpret_time,
                f"{self.steps} steps, {self.functions_defined} functions",
            ),
        ]
        for name, t, output in stages:
            time_str = f"{t * 1000:>8.1f}ms"
            lines.append(f"  {name:<20} {time_str:>10}  {output:>30}")

        lines.append(f"  {'─' * 20} {'─' * 10}  {'─' * 30}")
        lines.append(f"  {'Total':<20} {self.total_time * 1000:>8.1f}ms")
        lines.append("")
        lines.append(
            f"  Final state: {self.heap_objects} heap objects,"
            f" {self.output_lines} output lines"
        )
        if self.error:
            lines.append(f"  Stopped with error: {self.error}")
        return "\n".join(lines)


def canonical_language(language: str) -> str:
    """Map a user-facing language tag onto its canonical name."""
    tag = language.strip().lower()
    return constants.LANGUAGE_ALIASES.get(tag, tag)


class TraceRequest(BaseModel):
    """Input contract for one trace invocation."""

    source_text: str
    language: str
    stdin_lines: list[str] = []

    @field_validator("language")
    @classmethod
    def _known_language(cls, value: str) -> str:
        tag = canonical_language(value)
        if tag not in constants.SUPPORTED_LANGUAGES:
            raise ValueError(
                f"language must be one of {', '.join(constants.SUPPORTED_LANGUAGES)}"
            )
        return tag
