"""Expression evaluator — resolves expression ASTs against the execution state."""

from __future__ import annotations

import logging
from typing import Any, Callable

from . import constants
from .builtins import Builtins, call_method, read_attribute
from .errors import SyntaxMismatch
from .expressions import (
    Attribute,
    BinOp,
    Call,
    Conditional,
    DictLiteral,
    Expr,
    FString,
    Index,
    ListLiteral,
    Literal,
    Name,
    New,
    Placeholder,
    UnaryOp,
    callee_name,
    parse_expression,
)
from .lexer import RULES_BY_LANGUAGE, LexicalRules
from .recorder import StepRecorder
from .simulator import CallSimulator
from .state import ExecutionState, Operators
from .state_types import CompositeValue, HeapRef, Unresolved

logger = logging.getLogger(__name__)

_UNCOMPUTABLE = Operators.UNCOMPUTABLE

_ARRAY_DEFAULTS: dict[str, Any] = {
    "int": 0,
    "long": 0,
    "short": 0,
    "byte": 0,
    "double": 0.0,
    "float": 0.0,
    "boolean": False,
    "char": "\0",
}

_CONVERSIONS: dict[str, Callable[[Any], str]] = {"r": repr, "s": str, "a": ascii}


class ValueFormatter:
    """Renders values the way the traced language would print them."""

    TYPE_NAMES: dict[str, dict[type, str]] = {
        constants.LANG_PYTHON: {
            bool: "bool", int: "int", float: "float", str: "str", type(None): "NoneType",
        },
        constants.LANG_JAVA: {
            bool: "boolean", int: "int", float: "double", str: "String", type(None): "null",
        },
        constants.LANG_CPP: {
            bool: "bool", int: "int", float: "double", str: "string", type(None): "nullptr_t",
        },
    }

    def __init__(self, language: str, state: ExecutionState):
        self._language = language
        self._state = state
        self._is_python = language == constants.LANG_PYTHON

    def format(self, value: Any) -> str:
        if isinstance(value, bool):
            if self._is_python:
                return "True" if value else "False"
            return "true" if value else "false"
        if value is None:
            return {
                constants.LANG_PYTHON: "None",
                constants.LANG_JAVA: "null",
                constants.LANG_CPP: "nullptr",
            }.get(self._language, "None")
        if isinstance(value, HeapRef):
            obj = self._state.heap.get(value.heap_id)
            if obj is None:
                return str(value)
            if obj.kind == constants.HEAP_KIND_OBJECT:
                return f"{obj.value.get('class', 'Object')}{value}"
            return self._composite(obj.value)
        if isinstance(value, CompositeValue):
            if value.kind == constants.HEAP_KIND_OBJECT:
                return f"{value.items.get('class', 'Object')} object"
            return self._composite(value.items)
        if isinstance(value, (list, dict)):
            return self._composite(value)
        return str(value)

    def _composite(self, items: Any) -> str:
        if isinstance(items, dict):
            sep = ": " if self._is_python else "="
            inner = ", ".join(
                f"{self._item(k)}{sep}{self._item(v)}" for k, v in items.items()
            )
            return "{" + inner + "}"
        return "[" + ", ".join(self._item(v) for v in items) + "]"

    def _item(self, value: Any) -> str:
        if isinstance(value, str) and self._is_python:
            return repr(value)
        return self.format(value)

    def type_name(self, value: Any) -> str:
        if isinstance(value, HeapRef):
            return self._state.heap_kind(value) or "ref"
        if isinstance(value, CompositeValue):
            return value.kind
        if isinstance(value, Unresolved):
            return "unknown"
        names = self.TYPE_NAMES.get(self._language, {})
        return names.get(type(value), type(value).__name__)


class Evaluator:
    """Evaluates expression ASTs; user-function calls go to the CallSimulator.

    Evaluation never raises for unsupported input: anything that cannot be
    computed comes back as ``Unresolved`` carrying the raw expression text.
    """

    def __init__(
        self,
        state: ExecutionState,
        recorder: StepRecorder,
        language: str,
        input_functions: frozenset[str] = frozenset(),
        input_methods: dict[str, Callable[[str], Any]] | None = None,
        max_call_depth: int = constants.DEFAULT_MAX_CALL_DEPTH,
    ):
        self.state = state
        self.language = language
        self.rules: LexicalRules = RULES_BY_LANGUAGE[language]
        self.formatter = ValueFormatter(language, state)
        self.current_line: int = 0
        self.inputs_read: int = 0
        self._recorder = recorder
        self._input_functions = input_functions
        self._input_methods = input_methods or {}
        self._c_integers = language != constants.LANG_PYTHON
        self.simulator = CallSimulator(state, recorder, self, max_call_depth)
        self._EXPR_DISPATCH: dict[type, Callable[[Any], Any]] = {
            Literal: self._eval_literal,
            Name: self._eval_name,
            Attribute: self._eval_attribute,
            Index: self._eval_index,
            Call: self._eval_call,
            BinOp: self._eval_binop,
            UnaryOp: self._eval_unop,
            Conditional: self._eval_conditional,
            ListLiteral: self._eval_list,
            DictLiteral: self._eval_dict,
            FString: self._eval_fstring,
            New: self._eval_new,
        }

    # ── entry points ─────────────────────────────────────────────

    def parse(self, text: str) -> Expr:
        return parse_expression(text, self.rules)

    def evaluate_text(self, text: str) -> Any:
        try:
            node = self.parse(text)
        except SyntaxMismatch as exc:
            logger.debug("Cannot parse %r: %s", text, exc)
            return Unresolved(text.strip())
        return self.evaluate(node)

    def evaluate(self, node: Expr) -> Any:
        handler = self._EXPR_DISPATCH.get(type(node))
        if handler is None:
            return Unresolved(getattr(node, "text", "?"))
        return handler(node)

    def display(self, value: Any) -> str:
        return self.formatter.format(value)

    def read_input(self) -> str:
        """Consume the next stdin line; counts reads even once input is exhausted."""
        self.inputs_read += 1
        return self.state.read_input()

    def is_truthy(self, value: Any) -> bool:
        if isinstance(value, Unresolved):
            return False
        if isinstance(value, HeapRef):
            return bool(self.state.heap_value(value))
        return bool(value)

    def short_circuits(self, op: str, left: Any) -> bool:
        """True when *left* alone decides an ``and`` / ``or`` result."""
        if op not in ("and", "or") or isinstance(left, Unresolved):
            return False
        return self.is_truthy(left) == (op == "or")

    # ── handlers ─────────────────────────────────────────────────

    def _eval_literal(self, node: Literal) -> Any:
        return node.value

    def _eval_name(self, node: Name) -> Any:
        var = self.state.lookup(node.id)
        if var is not None:
            return HeapRef(var.heap_ref) if var.heap_ref is not None else var.value
        value = Builtins.constant(self.language, node.id)
        if value is not _UNCOMPUTABLE:
            return value
        return Unresolved(node.id)

    def _eval_attribute(self, node: Attribute) -> Any:
        dotted = callee_name(node)
        if dotted:
            value = Builtins.constant(self.language, dotted)
            if value is not _UNCOMPUTABLE:
                return value
        receiver = self.evaluate(node.value)
        return self._or_unresolved(read_attribute(receiver, node.attr, self.state), node)

    def _eval_index(self, node: Index) -> Any:
        container = self._concrete(self.evaluate(node.value))
        index = self._concrete(self.evaluate(node.index))
        if container is _UNCOMPUTABLE or index is _UNCOMPUTABLE:
            return Unresolved(node.text)
        try:
            return container[index]
        except (IndexError, KeyError, TypeError):
            return Unresolved(node.text)

    def _eval_call(self, node: Call) -> Any:
        func = node.func
        if isinstance(func, Attribute) and func.attr in self._input_methods:
            return self._input_methods[func.attr](self.read_input())
        if isinstance(func, Name) and func.id in self._input_functions:
            return self.read_input()
        args = [self.evaluate(arg) for arg in node.args]
        return self.apply_call(node, args)

    def _eval_binop(self, node: BinOp) -> Any:
        left = self.evaluate(node.left)
        if self.short_circuits(node.op, left):
            return left
        right = self.evaluate(node.right)
        return self.apply_binop(node, left, right)

    def _eval_unop(self, node: UnaryOp) -> Any:
        operand = self.evaluate(node.operand)
        return self.apply_unop(node, operand)

    def _eval_conditional(self, node: Conditional) -> Any:
        condition = self.evaluate(node.condition)
        if isinstance(condition, Unresolved):
            return Unresolved(node.text)
        branch = node.then if self.is_truthy(condition) else node.orelse
        return self.evaluate(branch)

    def _eval_list(self, node: ListLiteral) -> Any:
        kind = constants.HEAP_KIND_LIST if node.delimiter == "[" else constants.HEAP_KIND_ARRAY
        return CompositeValue(kind, [self._element(e) for e in node.elements])

    def _eval_dict(self, node: DictLiteral) -> Any:
        items: dict[Any, Any] = {}
        for key_node, value_node in node.pairs:
            key = self._element(key_node)
            if isinstance(key, (list, dict)):
                key = key_node.text
            items[key] = self._element(value_node)
        return CompositeValue(constants.HEAP_KIND_DICT, items)

    def _eval_fstring(self, node: FString) -> Any:
        pieces: list[str] = []
        for part in node.parts:
            if isinstance(part, Placeholder):
                pieces.append(self._render_placeholder(part))
            else:
                pieces.append(part)
        return "".join(pieces)

    def _eval_new(self, node: New) -> Any:
        if not node.is_array:
            return CompositeValue(
                constants.HEAP_KIND_OBJECT,
                {
                    "class": node.type_name,
                    "args": [self._element(a) for a in node.args],
                },
            )
        if node.initializer is not None:
            return CompositeValue(
                constants.HEAP_KIND_ARRAY,
                [self._element(e) for e in node.initializer.elements],
            )
        size = self.evaluate(node.args[0]) if node.args else 0
        if not isinstance(size, int) or isinstance(size, bool) or size < 0:
            return Unresolved(node.text)
        if size > constants.MAX_SEQUENCE_LENGTH:
            return Unresolved(node.text)
        default = _ARRAY_DEFAULTS.get(node.type_name)
        return CompositeValue(constants.HEAP_KIND_ARRAY, [default] * size)

    # ── shared operations (also used by the CallSimulator) ───────

    def apply_call(self, node: Call, args: list[Any]) -> Any:
        name = callee_name(node.func)
        definition = self.state.registry.get(name) if name else None
        if definition is not None and self.simulator.can_simulate(definition):
            self._record_call(name, args)
            return self.simulator.call(definition, args)

        builtin = Builtins.lookup(self.language, name) if name else None
        if builtin is not None:
            result = builtin(args, self.state)
            if result is not _UNCOMPUTABLE:
                return result

        if isinstance(node.func, Attribute) and not node.args:
            receiver = self.evaluate(node.func.value)
            result = call_method(receiver, node.func.attr, self.state)
            if result is not _UNCOMPUTABLE:
                return result

        logger.debug("No value for call %s", node.text)
        self._record_call(name or node.text, args)
        return Unresolved(node.text)

    def apply_binop(self, node: BinOp, left: Any, right: Any) -> Any:
        if node.op == "+" and (isinstance(left, str) or isinstance(right, str)):
            if not (isinstance(left, Unresolved) and isinstance(right, Unresolved)):
                return self.display(left) + self.display(right)
        lhs, rhs = self._concrete(left), self._concrete(right)
        if lhs is _UNCOMPUTABLE or rhs is _UNCOMPUTABLE:
            return Unresolved(node.text)
        result = Operators.eval_binop(node.op, lhs, rhs, c_integers=self._c_integers)
        return self._or_unresolved(result, node)

    def apply_unop(self, node: UnaryOp, operand: Any) -> Any:
        value = self._concrete(operand)
        if value is _UNCOMPUTABLE:
            return Unresolved(node.text)
        return self._or_unresolved(Operators.eval_unop(node.op, value), node)

    # ── helpers ──────────────────────────────────────────────────

    def _record_call(self, name: str, args: list[Any]) -> None:
        shown = ", ".join(self.display(a) for a in args)
        self._recorder.record(self.current_line, f"Call {name}({shown})")

    def _concrete(self, value: Any) -> Any:
        if isinstance(value, Unresolved):
            return _UNCOMPUTABLE
        if isinstance(value, HeapRef):
            return self.state.heap_value(value)
        if isinstance(value, CompositeValue):
            return value.items
        return value

    def _element(self, node: Expr) -> Any:
        """Resolve one composite element; unresolvable ones keep their bare text."""
        value = self.evaluate(node)
        if isinstance(value, Unresolved):
            return node.text
        if isinstance(value, CompositeValue):
            return value.items
        return value

    def _render_placeholder(self, part: Placeholder) -> str:
        if part.expr is None:
            return part.text
        value = self.evaluate(part.expr)
        if isinstance(value, Unresolved):
            return part.text
        if part.conversion in _CONVERSIONS and not isinstance(value, (HeapRef, CompositeValue)):
            return _CONVERSIONS[part.conversion](value)
        if part.format_spec and not isinstance(value, (HeapRef, CompositeValue)):
            try:
                return format(value, part.format_spec)
            except (ValueError, TypeError):
                pass
        return self.display(value)

    def _or_unresolved(self, result: Any, node: Expr) -> Any:
        if result is _UNCOMPUTABLE:
            return Unresolved(node.text)
        return result
