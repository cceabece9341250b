"""CppRecognizer — ``int main()`` programs of the C++ teaching subset.

Extends the brace-language recognizer with stream I/O: ``cout << ...``
statements print, ``cin >> x`` and ``getline(cin, x)`` read one input line.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .. import constants
from ..expressions import BinOp, Expr, Name
from ..normalizer import SourceLine
from ._base import Statement, StatementKind
from ._brace import _FLOAT_TYPES, _INT_TYPES, BraceRecognizer

logger = logging.getLogger(__name__)

_STREAM_OUT = frozenset({"cout", "std::cout", "cerr", "std::cerr"})
_CIN_RE = re.compile(r"^(?:std::)?cin\s*>>\s*([A-Za-z_]\w*)\s*;?$")
_GETLINE_RE = re.compile(
    r"^(?:std::)?getline\s*\(\s*(?:std::)?cin\s*,\s*([A-Za-z_]\w*)\s*\)\s*;?$"
)

INPUT_LINE = "line"
INPUT_TOKEN = "token"


class CppRecognizer(BraceRecognizer):
    LANGUAGE = constants.LANG_CPP
    PRINT_LABEL = "Output"
    ENTRY_RE = re.compile(r"\b(?:int|void)\s+main\s*\(")
    ENTER_DESCRIPTION = "Enter main function"
    EXIT_DESCRIPTION = "Exit main function"
    EXIT_CALLS = frozenset({"exit", "std::exit"})
    CONTAINER_KINDS = {
        "vector": constants.HEAP_KIND_VECTOR,
        "array": constants.HEAP_KIND_ARRAY,
        "list": constants.HEAP_KIND_LIST,
        "map": constants.HEAP_KIND_DICT,
        "unordered_map": constants.HEAP_KIND_DICT,
    }

    # ── stream output ────────────────────────────────────────────

    def _match_print(self, lines: list[SourceLine], idx: int) -> Statement | None:
        line = lines[idx]
        if not line.text.startswith(("cout", "std::cout", "cerr", "std::cerr")):
            return None
        node: Expr = self.evaluator.parse(self._statement_text(line.text))
        segments: list[Expr] = []
        while isinstance(node, BinOp) and node.op == "<<":
            segments.insert(0, node.right)
            node = node.left
        if not (isinstance(node, Name) and node.id in _STREAM_OUT):
            return None
        return Statement(StatementKind.PRINT, line, args=tuple(segments), separator="")

    def _handle_print(self, stmt: Statement) -> None:
        evaluator = self.evaluator
        text = "".join(evaluator.display(evaluator.evaluate(a)) for a in stmt.args)
        # one output entry per statement; a trailing endl ends the entry
        if text.endswith("\n"):
            text = text[:-1]
        self.state.append_output(text)
        self.recorder.record(stmt.line.number, f"{self.PRINT_LABEL}: {text}")

    # ── stream input ─────────────────────────────────────────────

    def _match_assignment(self, lines: list[SourceLine], idx: int) -> Statement | None:
        line = lines[idx]
        for pattern, mode in ((_CIN_RE, INPUT_TOKEN), (_GETLINE_RE, INPUT_LINE)):
            m = pattern.match(line.text)
            if m:
                return Statement(
                    StatementKind.ASSIGNMENT, line, target=m.group(1), input_mode=mode
                )
        return super()._match_assignment(lines, idx)

    def _read_input_value(self, stmt: Statement) -> Any:
        raw = self.evaluator.read_input()
        if stmt.input_mode == INPUT_LINE:
            return raw
        declared = self._declared_types.get(stmt.target, "")
        text = raw.strip()
        try:
            if declared in _INT_TYPES:
                return int(text)
            if declared in _FLOAT_TYPES:
                return float(text)
        except ValueError:
            logger.debug("cin >> %s: %r is not a %s", stmt.target, raw, declared)
        return text.split()[0] if text.split() else ""

