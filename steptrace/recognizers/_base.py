"""BaseRecognizer — language-agnostic statement classification and interpretation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from .. import constants
from ..errors import SyntaxMismatch
from ..evaluator import Evaluator
from ..expressions import Call, Expr, callee_name
from ..lexer import Token, TokenKind, tokenize
from ..normalizer import SourceLine
from ..recorder import StepRecorder
from ..registry import FunctionDefinition, ReturnClause
from ..run_types import TracerConfig
from ..state import ExecutionState
from ..state_types import CompositeValue, HeapRef, Unresolved

logger = logging.getLogger(__name__)


class StatementKind(str, Enum):
    DEFINITION = "DEFINITION"
    ASSIGNMENT = "ASSIGNMENT"
    PRINT = "PRINT"
    RETURN = "RETURN"
    CALL = "CALL"
    UNRECOGNIZED = "UNRECOGNIZED"


@dataclass(frozen=True)
class Statement:
    """One classified logical line."""

    kind: StatementKind
    line: SourceLine
    target: str = ""
    declared_type: str = ""
    expr_text: str = ""
    op: str = ""  # augmented assignment operator
    input_mode: str = ""  # statement-level input read (cpp ``cin`` / ``getline``)
    args: tuple[Expr, ...] = ()
    separator: str = " "
    call: Call | None = None
    definition: FunctionDefinition | None = None
    next_index: int = 0  # index of the first line after a definition body


AUGMENTED_OPERATORS: dict[str, str] = {
    "+=": "+",
    "-=": "-",
    "*=": "*",
    "/=": "/",
    "%=": "%",
}

_OPENERS = {"(": ")", "[": "]", "{": "}"}


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split *text* on *sep* outside brackets and string literals."""
    parts: list[str] = []
    depth = 0
    quote = ""
    current: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            current.append(ch)
            if ch == "\\" and i + 1 < len(text):
                current.append(text[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch in "\"'":
            quote = ch
            current.append(ch)
        elif ch in "([{":
            depth += 1
            current.append(ch)
        elif ch in ")]}":
            depth -= 1
            current.append(ch)
        elif ch == sep and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    tail = "".join(current).strip()
    if tail or parts:
        parts.append(tail)
    return [p for p in parts if p]


def matching_paren(text: str, open_idx: int) -> int:
    """Index of the bracket closing the one at *open_idx*, or -1."""
    closer = _OPENERS.get(text[open_idx], "")
    depth = 0
    quote = ""
    i = open_idx
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch in "\"'":
            quote = ch
        elif ch == text[open_idx]:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


class BaseRecognizer:
    """Classifies normalized lines into Statements and interprets them.

    Subclasses provide the language-specific ``_match_*`` checks; the
    priority order of those checks is fixed by ``classify``.
    """

    LANGUAGE: str = ""
    PRINT_LABEL: str = "Print"
    EXIT_DESCRIPTION: str = "Exit program"
    INPUT_FUNCTIONS: frozenset[str] = frozenset()
    INPUT_METHODS: dict[str, Callable[[str], Any]] = {}
    STATEMENT_TERMINATOR: str = ""
    # Reassigning a declared variable keeps its declared type.
    KEEPS_DECLARED_TYPE: bool = False

    def __init__(
        self,
        state: ExecutionState,
        recorder: StepRecorder,
        config: TracerConfig = TracerConfig(),
    ):
        self.state = state
        self.recorder = recorder
        self.config = config
        self.evaluator = Evaluator(
            state,
            recorder,
            self.LANGUAGE,
            input_functions=self.INPUT_FUNCTIONS,
            input_methods=self.INPUT_METHODS,
            max_call_depth=config.max_call_depth,
        )
        self.stopped = False
        self._STMT_DISPATCH: dict[StatementKind, Callable[[Statement], None]] = {
            StatementKind.DEFINITION: self._handle_definition,
            StatementKind.ASSIGNMENT: self._handle_assignment,
            StatementKind.PRINT: self._handle_print,
            StatementKind.RETURN: self._handle_return,
            StatementKind.CALL: self._handle_call,
            StatementKind.UNRECOGNIZED: lambda _: None,
        }

    # ── driver ───────────────────────────────────────────────────

    def run(self, lines: list[SourceLine]) -> None:
        idx = 0
        while idx < len(lines) and not self.stopped:
            stmt = self.classify(lines, idx)
            self.interpret(stmt)
            idx = stmt.next_index if stmt.kind == StatementKind.DEFINITION else idx + 1

    def classify(self, lines: list[SourceLine], idx: int) -> Statement:
        """First matching check wins; no match yields UNRECOGNIZED."""
        checks = (
            self._match_definition,
            self._match_assignment,
            self._match_print,
            self._match_return,
            self._match_call,
        )
        for check in checks:
            try:
                stmt = check(lines, idx)
            except SyntaxMismatch as exc:
                logger.debug("Line %d: %s", lines[idx].number, exc)
                continue
            if stmt is not None:
                return stmt
        logger.debug("Line %d skipped: %s", lines[idx].number, lines[idx].text)
        return Statement(StatementKind.UNRECOGNIZED, lines[idx])

    def interpret(self, stmt: Statement) -> None:
        self.evaluator.current_line = stmt.line.number
        self._STMT_DISPATCH[stmt.kind](stmt)

    # ── language hooks ───────────────────────────────────────────

    def _match_definition(self, lines: list[SourceLine], idx: int) -> Statement | None:
        return None

    def _match_print(self, lines: list[SourceLine], idx: int) -> Statement | None:
        return None

    def _match_return(self, lines: list[SourceLine], idx: int) -> Statement | None:
        return None

    def _split_target(self, lhs: list[Token], text: str) -> tuple[str, str] | None:
        """Return (target name, declared type) for an assignment left side."""
        if len(lhs) == 1 and lhs[0].kind == TokenKind.NAME:
            return lhs[0].value, ""
        return None

    def _heap_kind(self, declared_type: str, composite: CompositeValue) -> str:
        return composite.kind

    def _coerce(self, value: Any, declared_type: str) -> Any:
        return value

    # ── shared checks ────────────────────────────────────────────

    def _statement_text(self, text: str) -> str:
        term = self.STATEMENT_TERMINATOR
        if term and text.endswith(term):
            return text[: -len(term)].rstrip()
        return text

    def _match_assignment(self, lines: list[SourceLine], idx: int) -> Statement | None:
        line = lines[idx]
        text = self._statement_text(line.text)
        tokens = tokenize(text, self.evaluator.rules)
        assign_positions = _top_level_assignments(tokens)
        if len(assign_positions) != 1:
            return None
        pos = assign_positions[0]
        tok = tokens[pos]
        split = self._split_target(tokens[:pos], text[: tok.start])
        if split is None:
            return None
        target, declared_type = split
        rhs = text[tok.end :].strip()
        if not rhs:
            return None
        return Statement(
            StatementKind.ASSIGNMENT,
            line,
            target=target,
            declared_type=declared_type,
            expr_text=rhs,
            op=AUGMENTED_OPERATORS.get(tok.value, ""),
        )

    def _match_call(self, lines: list[SourceLine], idx: int) -> Statement | None:
        line = lines[idx]
        node = self.evaluator.parse(self._statement_text(line.text))
        if isinstance(node, Call) and callee_name(node.func):
            return Statement(StatementKind.CALL, line, call=node)
        return None

    # ── handlers ─────────────────────────────────────────────────

    def _handle_definition(self, stmt: Statement) -> None:
        definition = stmt.definition
        self.state.registry.define(definition)
        logger.debug(
            "Defined %s(%s), simulatable=%s",
            definition.name,
            ", ".join(definition.params),
            definition.simulatable,
        )
        self.recorder.record(stmt.line.number, f"Define function: {definition.name}")

    def _handle_assignment(self, stmt: Statement) -> None:
        evaluator = self.evaluator
        reads_before = evaluator.inputs_read
        if stmt.input_mode:
            value = self._read_input_value(stmt)
        elif stmt.op:
            value = evaluator.evaluate_text(f"{stmt.target} {stmt.op} ({stmt.expr_text})")
        else:
            value = evaluator.evaluate_text(stmt.expr_text)
        from_input = evaluator.inputs_read > reads_before
        self.bind(stmt.target, value, stmt.declared_type, stmt.line.number, from_input)

    def _read_input_value(self, stmt: Statement) -> Any:
        return self.evaluator.read_input()

    def _handle_print(self, stmt: Statement) -> None:
        evaluator = self.evaluator
        text = stmt.separator.join(evaluator.display(evaluator.evaluate(a)) for a in stmt.args)
        self.state.append_output(text)
        self.recorder.record(stmt.line.number, f"{self.PRINT_LABEL}: {text}")

    def _handle_return(self, stmt: Statement) -> None:
        self.recorder.record(stmt.line.number, self.EXIT_DESCRIPTION)
        self.stopped = True

    def _handle_call(self, stmt: Statement) -> None:
        self.evaluator.evaluate(stmt.call)

    # ── binding ──────────────────────────────────────────────────

    def bind(
        self,
        target: str,
        value: Any,
        declared_type: str,
        line: int,
        from_input: bool = False,
    ) -> None:
        """Store *value* under *target*, allocating composites on the heap."""
        state = self.state
        display = self.evaluator.display

        if isinstance(value, CompositeValue):
            kind = self._heap_kind(declared_type, value)
            items = value.items
            if value.kind == constants.HEAP_KIND_OBJECT and kind != value.kind:
                # a constructed container such as ``new ArrayList<>()`` starts empty
                items = {} if kind == constants.HEAP_KIND_DICT else []
            heap_id = state.allocate_heap_object(kind, items, [target])
            ref = HeapRef(heap_id)
            state.set_variable(target, str(ref), declared_type or kind, heap_ref=heap_id)
            self.recorder.record(line, f"{target} = {display(ref)} (heap object #{heap_id})")
            return

        if isinstance(value, HeapRef):
            type_name = declared_type or self.evaluator.formatter.type_name(value)
            state.set_variable(target, str(value), type_name, heap_ref=value.heap_id)
            self.recorder.record(
                line, f"{target} = {display(value)} (heap object #{value.heap_id})"
            )
            return

        if isinstance(value, Unresolved):
            state.set_variable(target, value.text, declared_type or "unknown")
            self.recorder.record(line, f"{target} = {value.text} (unresolved)")
            return

        previous = state.variables.get(target)
        if (
            not declared_type
            and previous is not None
            and previous.heap_ref is None
            and self.KEEPS_DECLARED_TYPE
        ):
            declared_type = previous.type
        value = self._coerce(value, declared_type)
        type_name = declared_type or self.evaluator.formatter.type_name(value)
        state.set_variable(target, value, type_name)
        if from_input:
            self.recorder.record(line, f'{target} = "{display(value)}" (from input)')
        else:
            self.recorder.record(line, f"{target} = {display(value)} ({type_name})")

    # ── definitions ──────────────────────────────────────────────

    def _parse_clauses(
        self, raw: list[tuple[str | None, str, int]] | None
    ) -> tuple[ReturnClause, ...] | None:
        """Parse (condition text, return text, line) triples into clauses."""
        if not raw:
            return None
        clauses: list[ReturnClause] = []
        for cond_text, expr_text, line in raw:
            try:
                condition = self.evaluator.parse(cond_text) if cond_text else None
                expr = self.evaluator.parse(expr_text or self._null_literal())
            except SyntaxMismatch as exc:
                logger.debug("Function body not simulatable: %s", exc)
                return None
            clauses.append(ReturnClause(condition, expr, line))
        return tuple(clauses)

    def _null_literal(self) -> str:
        return sorted(self.evaluator.rules.null_literals)[0]

    @staticmethod
    def _param_name(param: str) -> str:
        """Last identifier of a parameter declaration (``int n``, ``n: int = 1``)."""
        head = param.split("=")[0].split(":")[0].strip()
        words = [w.strip("*&[] ") for w in head.replace("*", " ").replace("&", " ").split()]
        words = [w for w in words if w]
        return words[-1] if words else ""

    def _params(self, text: str) -> tuple[str, ...]:
        names = (self._param_name(p) for p in split_top_level(text))
        return tuple(n for n in names if n and n not in ("self", "void"))


def _top_level_assignments(tokens: list[Token]) -> list[int]:
    depth = 0
    positions: list[int] = []
    for i, tok in enumerate(tokens):
        if tok.kind != TokenKind.OP:
            continue
        if tok.value in ("(", "[", "{"):
            depth += 1
        elif tok.value in (")", "]", "}"):
            depth -= 1
        elif depth == 0 and (tok.value == "=" or tok.value in AUGMENTED_OPERATORS):
            positions.append(i)
    return positions
