"""Built-in function implementations for the step tracer."""

from __future__ import annotations

import math
from typing import Any

from . import constants
from .state import ExecutionState, Operators
from .state_types import CompositeValue, HeapRef, Unresolved

_UNCOMPUTABLE = Operators.UNCOMPUTABLE


def _concrete(val: Any, state: ExecutionState) -> Any:
    """Dereference heap values; UNCOMPUTABLE for unresolved input."""
    if isinstance(val, Unresolved):
        return _UNCOMPUTABLE
    if isinstance(val, HeapRef):
        return state.heap_value(val)
    if isinstance(val, CompositeValue):
        return val.items
    return val


def _all_concrete(args: list[Any], state: ExecutionState) -> list[Any] | None:
    values = [_concrete(a, state) for a in args]
    if any(v is _UNCOMPUTABLE for v in values):
        return None
    return values


def _builtin_len(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if not values or not hasattr(values[0], "__len__"):
        return _UNCOMPUTABLE
    return len(values[0])


def _builtin_int(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values:
        try:
            return int(values[0])
        except (ValueError, TypeError):
            pass
    return _UNCOMPUTABLE


def _builtin_float(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values:
        try:
            return float(values[0])
        except (ValueError, TypeError):
            pass
    return _UNCOMPUTABLE


def _builtin_str(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values and not isinstance(values[0], (list, dict)):
        return str(values[0])
    return _UNCOMPUTABLE


def _builtin_bool(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values:
        return bool(values[0])
    return _UNCOMPUTABLE


def _builtin_abs(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values:
        try:
            return abs(values[0])
        except TypeError:
            pass
    return _UNCOMPUTABLE


def _builtin_round(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values:
        try:
            return round(*values[:2])
        except TypeError:
            pass
    return _UNCOMPUTABLE


def _spread(values: list[Any]) -> list[Any]:
    """max([1, 2]) and max(1, 2) both compare the same items."""
    if len(values) == 1 and isinstance(values[0], list):
        return values[0]
    return values


def _builtin_max(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values:
        try:
            return max(_spread(values))
        except (ValueError, TypeError):
            pass
    return _UNCOMPUTABLE


def _builtin_min(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values:
        try:
            return min(_spread(values))
        except (ValueError, TypeError):
            pass
    return _UNCOMPUTABLE


def _builtin_sum(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values and isinstance(values[0], list):
        try:
            return sum(values[0])
        except TypeError:
            pass
    return _UNCOMPUTABLE


def _builtin_pow(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values and len(values) == 2:
        try:
            return float(math.pow(values[0], values[1]))
        except (TypeError, ValueError, OverflowError):
            pass
    return _UNCOMPUTABLE


def _builtin_sqrt(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values:
        try:
            return math.sqrt(values[0])
        except (TypeError, ValueError):
            pass
    return _UNCOMPUTABLE


def _builtin_to_string(args: list[Any], state: ExecutionState) -> Any:
    values = _all_concrete(args, state)
    if values and not isinstance(values[0], (list, dict)):
        value = values[0]
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
    return _UNCOMPUTABLE


class Builtins:
    """Per-language tables of built-in function implementations."""

    PYTHON: dict[str, Any] = {
        "len": _builtin_len,
        "int": _builtin_int,
        "float": _builtin_float,
        "str": _builtin_str,
        "bool": _builtin_bool,
        "abs": _builtin_abs,
        "round": _builtin_round,
        "max": _builtin_max,
        "min": _builtin_min,
        "sum": _builtin_sum,
    }

    JAVA: dict[str, Any] = {
        "Math.max": _builtin_max,
        "Math.min": _builtin_min,
        "Math.abs": _builtin_abs,
        "Math.pow": _builtin_pow,
        "Math.sqrt": _builtin_sqrt,
        "Integer.parseInt": _builtin_int,
        "Double.parseDouble": _builtin_float,
        "String.valueOf": _builtin_to_string,
    }

    CPP: dict[str, Any] = {
        "max": _builtin_max,
        "min": _builtin_min,
        "abs": _builtin_abs,
        "pow": _builtin_pow,
        "sqrt": _builtin_sqrt,
        "to_string": _builtin_to_string,
        "stoi": _builtin_int,
        "stod": _builtin_float,
    }

    TABLE: dict[str, dict[str, Any]] = {
        constants.LANG_PYTHON: PYTHON,
        constants.LANG_JAVA: JAVA,
        constants.LANG_CPP: CPP,
    }

    CONSTANTS: dict[str, dict[str, Any]] = {
        constants.LANG_PYTHON: {},
        constants.LANG_JAVA: {"Math.PI": math.pi},
        constants.LANG_CPP: {"endl": "\n", "M_PI": math.pi},
    }

    @classmethod
    def lookup(cls, language: str, name: str):
        table = cls.TABLE.get(language, {})
        if language == constants.LANG_CPP and name.startswith("std::"):
            name = name[len("std::"):]
        return table.get(name)

    @classmethod
    def constant(cls, language: str, name: str) -> Any:
        if language == constants.LANG_CPP and name.startswith("std::"):
            name = name[len("std::"):]
        return cls.CONSTANTS.get(language, {}).get(name, _UNCOMPUTABLE)


# ── Methods on string / sequence receivers ───────────────────────

_STRING_METHODS: dict[str, Any] = {
    "upper": str.upper,
    "lower": str.lower,
    "strip": str.strip,
    "title": str.title,
    "toUpperCase": str.upper,
    "toLowerCase": str.lower,
    "trim": str.strip,
    "length": len,
    "size": len,
}

_SEQUENCE_METHODS: dict[str, Any] = {
    "size": len,
    "length": len,
}


def call_method(receiver: Any, method: str, state: ExecutionState) -> Any:
    """Apply a zero-argument, non-mutating method to a concrete receiver."""
    value = _concrete(receiver, state)
    if isinstance(value, str) and method in _STRING_METHODS:
        return _STRING_METHODS[method](value)
    if isinstance(value, list) and method in _SEQUENCE_METHODS:
        return _SEQUENCE_METHODS[method](value)
    return _UNCOMPUTABLE


def read_attribute(receiver: Any, attr: str, state: ExecutionState) -> Any:
    """Field access on a heap value — only ``array.length`` is meaningful."""
    value = _concrete(receiver, state)
    if isinstance(value, list) and attr == "length":
        return len(value)
    return _UNCOMPUTABLE
