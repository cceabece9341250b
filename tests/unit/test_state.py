"""Tests for ExecutionState, StepRecorder and the snapshot data types."""

from __future__ import annotations

import pytest

from steptrace.errors import StepLimitExceeded, TraceError
from steptrace.recorder import StepRecorder
from steptrace.state import ExecutionState, Operators
from steptrace.state_types import HeapRef, Unresolved, Variable


class TestVariables:
    def test_set_and_lookup(self):
        state = ExecutionState()
        state.set_variable("x", 1, "int")
        assert state.lookup("x").value == 1
        assert state.lookup("missing") is None

    def test_innermost_frame_wins(self):
        state = ExecutionState()
        state.set_variable("n", 0, "int")
        state.push_frame("outer", 1, {"n": Variable("n", 1, "int")})
        state.push_frame("inner", 2, {"n": Variable("n", 2, "int")})
        assert state.lookup("n").value == 2
        state.pop_frame()
        assert state.lookup("n").value == 1
        state.pop_frame()
        assert state.lookup("n").value == 0

    def test_rebinding_drops_old_heap_reference(self):
        state = ExecutionState()
        first = state.allocate_heap_object("list", [1], ["xs"])
        state.set_variable("xs", "@1", "list", heap_ref=first)
        second = state.allocate_heap_object("list", [2], ["xs"])
        state.set_variable("xs", "@2", "list", heap_ref=second)
        assert state.heap[first].references == set()
        assert state.heap[second].references == {"xs"}


class TestHeap:
    def test_ids_start_at_one_and_increase(self):
        state = ExecutionState()
        ids = [state.allocate_heap_object("list", []) for _ in range(3)]
        assert ids == [1, 2, 3]

    def test_heap_value_and_kind(self):
        state = ExecutionState()
        state.allocate_heap_object("dict", {"a": 1})
        assert state.heap_value(HeapRef(1)) == {"a": 1}
        assert state.heap_kind(HeapRef(1)) == "dict"
        assert state.heap_value(HeapRef(99)) is None


class TestCallStack:
    def test_frame_ids_use_stack_position(self):
        state = ExecutionState()
        assert state.push_frame("main", 3).id == "main_0"
        assert state.push_frame("factorial", 1).id == "factorial_1"
        assert state.depth == 2

    def test_pop_empty_stack_raises(self):
        with pytest.raises(TraceError):
            ExecutionState().pop_frame()


class TestInput:
    def test_cursor_advances_until_exhausted(self):
        state = ExecutionState(stdin_lines=["a"])
        assert state.read_input() == "a"
        assert state.read_input() == ""
        assert state.input_cursor == 1


class TestOperators:
    def test_unknown_operator_is_uncomputable(self):
        assert Operators.eval_binop("@", 1, 2) is Operators.UNCOMPUTABLE

    def test_type_error_is_uncomputable(self):
        assert Operators.eval_binop("-", "a", 1) is Operators.UNCOMPUTABLE

    def test_c_integer_division_truncates_toward_zero(self):
        assert Operators.eval_binop("/", -7, 2, c_integers=True) == -3
        assert Operators.eval_binop("%", 7, -3, c_integers=True) == 1
        assert Operators.eval_binop("/", 7.0, 2, c_integers=True) == 3.5


    def test_power_beyond_result_ceiling_is_uncomputable(self):
        assert Operators.eval_binop("**", 9, 387420489) is Operators.UNCOMPUTABLE
        assert Operators.eval_binop("**", 2, 10) == 1024
        assert Operators.eval_binop("**", 1, 10**9) == 1

    def test_shift_beyond_result_ceiling_is_uncomputable(self):
        assert Operators.eval_binop("<<", 1, 10**8) is Operators.UNCOMPUTABLE
        assert Operators.eval_binop("<<", 1, 3) == 8

    def test_repetition_beyond_length_ceiling_is_uncomputable(self):
        assert Operators.eval_binop("*", "ab", 10**9) is Operators.UNCOMPUTABLE
        assert Operators.eval_binop("*", 10**9, [0]) is Operators.UNCOMPUTABLE
        assert Operators.eval_binop("*", "ab", 3) == "ababab"


class TestStepRecorder:
    def test_snapshots_are_independent(self):
        state = ExecutionState()
        recorder = StepRecorder(state)
        state.set_variable("x", 1, "int")
        recorder.record(1, "x = 1 (int)")
        state.set_variable("x", 2, "int")
        recorder.record(2, "x = 2 (int)")
        assert recorder.steps[0].variables["x"].value == 1
        assert recorder.steps[1].variables["x"].value == 2

    def test_indices_are_contiguous(self):
        state = ExecutionState()
        recorder = StepRecorder(state)
        for line in range(5):
            recorder.record(line + 1, "step")
        assert [s.index for s in recorder.steps] == [0, 1, 2, 3, 4]

    def test_step_limit(self):
        recorder = StepRecorder(ExecutionState(), max_steps=2)
        recorder.record(1, "a")
        recorder.record(2, "b")
        with pytest.raises(StepLimitExceeded):
            recorder.record(3, "c")

    def test_error_step_exempt_from_limit(self):
        recorder = StepRecorder(ExecutionState(), max_steps=1)
        recorder.record(1, "a")
        step = recorder.record_error("boom")
        assert step.source_line == -1
        assert step.error_flag is True
        assert step.description == "Error: boom"

    def test_verbose_prints_each_step(self, capsys):
        recorder = StepRecorder(ExecutionState(), verbose=True)
        recorder.record(4, "Print: hi")
        assert "[step 0] line 4: Print: hi" in capsys.readouterr().out


class TestSerialization:
    def test_step_to_dict(self):
        state = ExecutionState()
        heap_id = state.allocate_heap_object("list", [1, 2], ["xs"])
        state.set_variable("xs", "@1", "list", heap_ref=heap_id)
        state.set_variable("y", Unresolved("f(x)"), "unknown")
        state.push_frame("main", 1)
        state.append_output("hi")
        step = StepRecorder(state).record(7, "xs = [1, 2] (heap object #1)")

        d = step.to_dict()
        assert d["index"] == 0
        assert d["source_line"] == 7
        assert d["variables"]["xs"] == {
            "name": "xs", "value": "@1", "type": "list", "heap_ref": 1,
        }
        assert d["variables"]["y"]["value"] == "f(x)"
        assert d["heap_objects"] == [
            {"id": 1, "kind": "list", "value": [1, 2], "references": ["xs"]}
        ]
        assert d["stack_frames"][0]["id"] == "main_0"
        assert d["output"] == ["hi"]
        assert d["error_flag"] is False
        assert step.depth == 1
