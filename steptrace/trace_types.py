"""Trace data types for step-by-step execution replay."""

from __future__ import annotations

from dataclasses import dataclass, field

from .state_types import HeapObject, StackFrame, Variable


@dataclass(frozen=True)
class Step:
    """A single snapshot in the execution trace.

    Holds deep copies of the variables, heap, call stack and output log as
    they were right after the statement on ``source_line`` was interpreted.
    """

    index: int
    source_line: int
    stack_frames: list[StackFrame] = field(default_factory=list)
    heap_objects: list[HeapObject] = field(default_factory=list)
    variables: dict[str, Variable] = field(default_factory=dict)
    output: list[str] = field(default_factory=list)
    description: str = ""
    error_flag: bool = False

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "source_line": self.source_line,
            "stack_frames": [f.to_dict() for f in self.stack_frames],
            "heap_objects": [h.to_dict() for h in self.heap_objects],
            "variables": {k: v.to_dict() for k, v in self.variables.items()},
            "output": list(self.output),
            "description": self.description,
            "error_flag": self.error_flag,
        }

    @property
    def depth(self) -> int:
        return len(self.stack_frames)
