"""Execution state — data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from . import constants

# ── Value types ──────────────────────────────────────────────────


@dataclass(frozen=True)
class HeapRef:
    """Value of a heap-backed variable during evaluation."""

    heap_id: int

    def __str__(self) -> str:
        return f"{constants.HEAP_REF_PREFIX}{self.heap_id}"


@dataclass(frozen=True)
class Unresolved:
    """An expression that could not be computed; carries its raw text."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class CompositeValue:
    """A composite literal that has not been allocated on the heap yet."""

    kind: str
    items: Any  # list for sequences, dict for mappings

    def __str__(self) -> str:
        return str(self.items)


# ── State records ────────────────────────────────────────────────


@dataclass
class Variable:
    name: str
    value: Any
    type: str
    heap_ref: int | None = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "name": self.name,
            "value": _serialize_value(self.value),
            "type": self.type,
        }
        if self.heap_ref is not None:
            d["heap_ref"] = self.heap_ref
        return d


@dataclass
class HeapObject:
    id: int
    kind: str
    value: Any
    references: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "value": _serialize_value(self.value),
            "references": sorted(self.references),
        }


@dataclass
class StackFrame:
    id: str
    function_name: str
    entry_line: int
    locals: dict[str, Variable] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "function_name": self.function_name,
            "entry_line": self.entry_line,
            "locals": {k: v.to_dict() for k, v in self.locals.items()},
        }


def _serialize_value(v: Any) -> Any:
    if isinstance(v, (HeapRef, Unresolved)):
        return str(v)
    if isinstance(v, CompositeValue):
        return _serialize_value(v.items)
    if isinstance(v, list):
        return [_serialize_value(item) for item in v]
    if isinstance(v, dict):
        return {str(k): _serialize_value(item) for k, item in v.items()}
    return v
