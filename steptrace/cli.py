"""Command-line entry point: steptrace FILE [-l LANG] ..."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from . import constants
from .errors import UnsupportedLanguageError
from .run_types import TracerConfig
from .trace_types import Step
from .tracer import split_input, trace

_EXTENSIONS: dict[str, str] = {
    ".py": constants.LANG_PYTHON,
    ".java": constants.LANG_JAVA,
    ".cpp": constants.LANG_CPP,
    ".cc": constants.LANG_CPP,
    ".cxx": constants.LANG_CPP,
}


def _guess_language(path: str) -> str:
    return _EXTENSIONS.get(Path(path).suffix.lower(), constants.LANG_PYTHON)


def format_step(step: Step) -> str:
    """One human-readable block per step."""
    marker = "!!" if step.error_flag else "  "
    lines = [f"{marker}[{step.index:>3}] line {step.source_line:>3}  {step.description}"]
    if step.stack_frames:
        stack = " > ".join(f.function_name for f in step.stack_frames)
        lines.append(f"        stack: {stack}")
    for name, var in step.variables.items():
        lines.append(f"        {name} = {var.value!r} ({var.type})")
    for obj in step.heap_objects:
        lines.append(f"        heap #{obj.id} {obj.kind}: {obj.value!r}")
    if step.output:
        lines.append(f"        output: {step.output!r}")
    return "\n".join(lines)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="steptrace", description="Step-by-step execution tracer for teaching snippets"
    )
    parser.add_argument("file", help="Source file to trace")
    parser.add_argument(
        "--language", "-l", default=None,
        help="python, java or cpp (default: guessed from the file extension)",
    )
    stdin_group = parser.add_mutually_exclusive_group()
    stdin_group.add_argument("--input", "-i", default=None,
                             help="File whose non-blank lines are the program input")
    stdin_group.add_argument("--stdin", default=None,
                             help="Program input text; lines separated by newlines")
    parser.add_argument("--max-steps", "-n", type=int, default=constants.DEFAULT_MAX_STEPS,
                        help=f"Maximum recorded steps (default: {constants.DEFAULT_MAX_STEPS})")
    parser.add_argument("--max-depth", type=int, default=constants.DEFAULT_MAX_CALL_DEPTH,
                        help="Maximum simulated call depth "
                             f"(default: {constants.DEFAULT_MAX_CALL_DEPTH})")
    parser.add_argument("--json", action="store_true",
                        help="Print the steps as a JSON array")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log progress and print run statistics")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    source = Path(args.file).read_text()
    language = args.language or _guess_language(args.file)
    if args.input:
        stdin_lines = split_input(Path(args.input).read_text())
    elif args.stdin is not None:
        stdin_lines = split_input(args.stdin)
    else:
        stdin_lines = []

    config = TracerConfig(
        max_steps=args.max_steps,
        max_call_depth=args.max_depth,
        verbose=args.verbose,
    )
    try:
        steps = trace(source, language, stdin_lines, config)
    except UnsupportedLanguageError as exc:
        print(f"steptrace: {exc}")
        return 2

    if args.json:
        print(json.dumps([s.to_dict() for s in steps], indent=2, default=str))
    else:
        for step in steps:
            print(format_step(step))
    return 1 if steps and steps[-1].error_flag else 0


if __name__ == "__main__":
    raise SystemExit(main())
