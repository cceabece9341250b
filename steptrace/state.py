"""Execution state — the single mutable context of one trace run."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from . import constants
from .errors import TraceError
from .registry import FunctionRegistry
from .state_types import HeapObject, HeapRef, StackFrame, Variable

logger = logging.getLogger(__name__)


class ExecutionState:
    """Variable tables, heap, call stack, output log and input cursor.

    Created at the start of a run and discarded at its end. The function
    registry lives here too so that concurrent runs never share definitions.
    """

    def __init__(self, stdin_lines: Iterable[str] = ()):
        self.variables: dict[str, Variable] = {}
        self.heap: dict[int, HeapObject] = {}
        self.call_stack: list[StackFrame] = []
        self.output: list[str] = []
        self.registry = FunctionRegistry()
        self.stdin_lines: list[str] = list(stdin_lines)
        self.input_cursor: int = 0
        self._heap_counter: int = 1

    # ── variables ────────────────────────────────────────────────

    def set_variable(
        self, name: str, value: Any, type: str, heap_ref: int | None = None
    ) -> Variable:
        previous = self.variables.get(name)
        if previous is not None and previous.heap_ref not in (None, heap_ref):
            old = self.heap.get(previous.heap_ref)
            if old is not None:
                old.references.discard(name)
        var = Variable(name=name, value=value, type=type, heap_ref=heap_ref)
        self.variables[name] = var
        if heap_ref is not None and heap_ref in self.heap:
            self.heap[heap_ref].references.add(name)
        return var

    def lookup(self, name: str) -> Variable | None:
        """Resolve *name* innermost frame first, then outer frames, then globals."""
        for frame in reversed(self.call_stack):
            if name in frame.locals:
                return frame.locals[name]
        return self.variables.get(name)

    # ── heap ─────────────────────────────────────────────────────

    def allocate_heap_object(
        self, kind: str, value: Any, references: Iterable[str] = ()
    ) -> int:
        heap_id = self._heap_counter
        self._heap_counter += 1
        self.heap[heap_id] = HeapObject(
            id=heap_id, kind=kind, value=value, references=set(references)
        )
        logger.debug("Allocated %s heap object #%d", kind, heap_id)
        return heap_id

    def heap_value(self, ref: HeapRef) -> Any:
        obj = self.heap.get(ref.heap_id)
        return obj.value if obj is not None else None

    def heap_kind(self, ref: HeapRef) -> str:
        obj = self.heap.get(ref.heap_id)
        return obj.kind if obj is not None else ""

    # ── call stack ───────────────────────────────────────────────

    def push_frame(
        self,
        function_name: str,
        line: int,
        locals: dict[str, Variable] | None = None,
    ) -> StackFrame:
        frame = StackFrame(
            id=f"{function_name}_{len(self.call_stack)}",
            function_name=function_name,
            entry_line=line,
            locals=dict(locals or {}),
        )
        self.call_stack.append(frame)
        return frame

    def pop_frame(self) -> StackFrame:
        if not self.call_stack:
            raise TraceError("pop from an empty call stack")
        return self.call_stack.pop()

    @property
    def depth(self) -> int:
        return len(self.call_stack)

    # ── input / output ───────────────────────────────────────────

    def read_input(self) -> str:
        """Consume the next unread input line; empty string once exhausted."""
        if self.input_cursor >= len(self.stdin_lines):
            logger.debug("Input exhausted after %d lines", self.input_cursor)
            return ""
        line = self.stdin_lines[self.input_cursor]
        self.input_cursor += 1
        return line

    def append_output(self, text: str) -> None:
        self.output.append(text)


class Operators:
    """Binary and unary operator evaluation with an explicit UNCOMPUTABLE sentinel."""

    class _Uncomputable:
        """Sentinel value indicating an operation could not be computed."""

        def __repr__(self) -> str:
            return "UNCOMPUTABLE"

    UNCOMPUTABLE = _Uncomputable()

    BINOP_TABLE: dict[str, Any] = {
        "+": lambda a, b: a + b,
        "-": lambda a, b: a - b,
        "*": lambda a, b: _bounded_multiply(a, b),
        "/": lambda a, b: a / b if b != 0 else Operators.UNCOMPUTABLE,
        "//": lambda a, b: a // b if b != 0 else Operators.UNCOMPUTABLE,
        "%": lambda a, b: a % b if b != 0 else Operators.UNCOMPUTABLE,
        "**": lambda a, b: _bounded_power(a, b),
        "==": lambda a, b: a == b,
        "!=": lambda a, b: a != b,
        "<": lambda a, b: a < b,
        ">": lambda a, b: a > b,
        "<=": lambda a, b: a <= b,
        ">=": lambda a, b: a >= b,
        "and": lambda a, b: a and b,
        "or": lambda a, b: a or b,
        "in": lambda a, b: (
            a in b if hasattr(b, "__contains__") else Operators.UNCOMPUTABLE
        ),
        "<<": lambda a, b: _bounded_shift(a, b),
        ">>": lambda a, b: a >> b,
    }

    # C-family integer semantics: truncate toward zero, remainder keeps the
    # dividend's sign.
    C_INTEGER_TABLE: dict[str, Any] = {
        "/": lambda a, b: _c_div(a, b) if b != 0 else Operators.UNCOMPUTABLE,
        "%": lambda a, b: a - b * _c_div(a, b) if b != 0 else Operators.UNCOMPUTABLE,
    }

    @classmethod
    def eval_binop(
        cls, op: str, lhs: Any, rhs: Any, c_integers: bool = False
    ) -> Any:
        fn = cls.BINOP_TABLE.get(op)
        if (
            c_integers
            and op in cls.C_INTEGER_TABLE
            and isinstance(lhs, int)
            and isinstance(rhs, int)
            and not isinstance(lhs, bool)
            and not isinstance(rhs, bool)
        ):
            fn = cls.C_INTEGER_TABLE[op]
        if fn is None:
            return cls.UNCOMPUTABLE
        try:
            return fn(lhs, rhs)
        except Exception:
            return cls.UNCOMPUTABLE

    @classmethod
    def eval_unop(cls, op: str, operand: Any) -> Any:
        try:
            if op == "-":
                return -operand
            if op == "+":
                return +operand
            if op == "not":
                return not operand
        except Exception:
            return cls.UNCOMPUTABLE
        return cls.UNCOMPUTABLE


def _c_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b >= 0) else -quotient


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _bounded_power(a: Any, b: Any) -> Any:
    if _is_int(a) and _is_int(b) and b > 0 and abs(a) > 1:
        if b * a.bit_length() > constants.MAX_RESULT_BITS:
            return Operators.UNCOMPUTABLE
    return a**b


def _bounded_shift(a: Any, b: Any) -> Any:
    if _is_int(a) and _is_int(b) and a != 0:
        if b + a.bit_length() > constants.MAX_RESULT_BITS:
            return Operators.UNCOMPUTABLE
    return a << b


def _bounded_multiply(a: Any, b: Any) -> Any:
    sequence, count = (a, b) if isinstance(a, (str, list)) else (b, a)
    if isinstance(sequence, (str, list)) and _is_int(count):
        if len(sequence) * count > constants.MAX_SEQUENCE_LENGTH:
            return Operators.UNCOMPUTABLE
    return a * b
