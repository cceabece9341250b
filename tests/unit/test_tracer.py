"""End-to-end tests for trace() — scenarios, trace-wide properties, limits, entry points."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from steptrace import constants
from steptrace import (
    TraceRequest,
    TracerConfig,
    UnsupportedLanguageError,
    split_input,
    trace,
    trace_request,
    trace_with_stats,
)
from steptrace.normalizer import normalize
from steptrace.recognizers import get_recognizer
from steptrace.recorder import StepRecorder
from steptrace.state import ExecutionState

FACTORIAL = """\
def factorial(n):
    if n <= 1:
        return 1
    return n * factorial(n - 1)

result = factorial(5)
print(f"Factorial of 5 is: {result}")
"""


class TestScenarios:
    def test_factorial(self):
        steps = trace(FACTORIAL, "python")
        assert steps[-1].output == ["Factorial of 5 is: 120"]

        descending = [s.depth for s in steps if "case" in s.description]
        assert descending == [1, 2, 3, 4, 5]

        returns = [s.description.rsplit(" ", 1)[1] for s in steps if " return " in s.description]
        assert returns == ["1", "2", "6", "24", "120"]

    def test_list_literal(self):
        step = trace("numbers = [1, 2, 3, 4, 5]\n", "python")[-1]
        assert len(step.heap_objects) == 1
        obj = step.heap_objects[0]
        assert obj.kind == "list"
        assert obj.value == [1, 2, 3, 4, 5]
        assert step.variables["numbers"].heap_ref == obj.id
        assert step.variables["numbers"].value == f"@{obj.id}"

    def test_unknown_call_is_described_not_computed(self):
        source = 'total = compute(3)\nprint(f"Total: {total}")\n'
        steps = trace(source, "python")
        assert [s.description for s in steps] == [
            "Call compute(3)",
            "total = compute(3) (unresolved)",
            "Print: Total: compute(3)",
        ]
        assert not any(s.error_flag for s in steps)
        assert steps[-1].variables["total"].type == "unknown"

    def test_print_with_input_consumes_one_line(self):
        source = 'name = input()\nprint(f"{name}")\n'
        state = ExecutionState(stdin_lines=["Ada", "Bob"])
        recorder = StepRecorder(state)
        get_recognizer("python", state, recorder).run(normalize(source, "python"))

        assert recorder.steps[-1].output == ["Ada"]
        assert state.input_cursor == 1

    def test_exhausted_input_reads_empty_string(self):
        steps = trace("name = input()\n", "python", [])
        assert steps[-1].variables["name"].value == ""
        assert not steps[-1].error_flag


class TestTraceProperties:
    SOURCE = (
        "a = [1]\n"
        'b = {"k": 2}\n'
        "c = a\n"
        "d = [3]\n"
        + FACTORIAL
    )

    def test_indices_are_contiguous(self):
        steps = trace(self.SOURCE, "python")
        assert [s.index for s in steps] == list(range(len(steps)))

    def test_heap_ids_unique_and_increasing(self):
        final = trace(self.SOURCE, "python")[-1]
        ids = [obj.id for obj in final.heap_objects]
        assert ids == [1, 2, 3]
        assert final.heap_objects[0].references == {"a", "c"}

    def test_call_stack_balanced_at_end(self):
        assert trace(self.SOURCE, "python")[-1].depth == 0

    def test_deterministic(self):
        first = [s.to_dict() for s in trace(self.SOURCE, "python")]
        second = [s.to_dict() for s in trace(self.SOURCE, "python")]
        assert first == second

    def test_json_serializable(self):
        steps = trace(self.SOURCE, "python")
        payload = json.dumps([s.to_dict() for s in steps])
        assert json.loads(payload)[-1]["output"] == ["Factorial of 5 is: 120"]

    def test_snapshots_are_independent(self):
        steps = trace("x = 1\nx = 2\n", "python")
        assert steps[0].variables["x"].value == 1
        assert steps[1].variables["x"].value == 2

    def test_comments_do_not_produce_steps(self):
        source = "# setup\nx = 1  # one\n\n# done\n"
        steps = trace(source, "python")
        assert [(s.source_line, s.description) for s in steps] == [(2, "x = 1 (int)")]

    def test_empty_source(self):
        assert trace("", "python") == []


class TestLimits:
    def test_step_limit(self):
        source = "a = 1\nb = 2\nc = 3\nd = 4\n"
        steps = trace(source, "python", config=TracerConfig(max_steps=3))
        assert len(steps) == 4
        assert steps[-1].error_flag
        assert steps[-1].description == "Error: Trace exceeded 3 steps"
        assert steps[-1].source_line == -1

    def test_only_last_step_is_error(self):
        source = "def loop(n):\n    return loop(n + 1)\nloop(0)\n"
        steps = trace(source, "python", config=TracerConfig(max_call_depth=5))
        assert [s.error_flag for s in steps].count(True) == 1
        assert steps[-1].description == "Error: Call depth of loop exceeded 5 frames"


class TestLanguages:
    @pytest.mark.parametrize("language", constants.SUPPORTED_LANGUAGES)
    def test_every_supported_language_has_a_recognizer(self, language):
        state = ExecutionState()
        recognizer = get_recognizer(language, state, StepRecorder(state))
        assert recognizer.LANGUAGE == language

    def test_router_rejects_unknown_language(self):
        state = ExecutionState()
        with pytest.raises(UnsupportedLanguageError):
            get_recognizer("ruby", state, StepRecorder(state))

    def test_unsupported_language_raises(self):
        with pytest.raises(UnsupportedLanguageError):
            trace("x = 1\n", "ruby")

    def test_unsupported_language_is_value_error(self):
        with pytest.raises(ValueError):
            trace("x = 1\n", "cobol")

    @pytest.mark.parametrize("tag", ["py", "Python", "python3"])
    def test_python_aliases(self, tag):
        assert trace("x = 1\n", tag)[0].description == "x = 1 (int)"

    def test_cpp_alias(self):
        steps = trace("int main() {\n    return 0;\n}\n", "c++")
        assert steps[0].description == "Enter main function"


class TestEntryPoints:
    def test_trace_request(self):
        request = TraceRequest(
            source_text="int main() {\n    int x = 3;\n}\n", language="C++"
        )
        assert request.language == "cpp"
        assert trace_request(request)[1].description == "x = 3 (int)"

    def test_trace_request_rejects_unknown_language(self):
        with pytest.raises(ValidationError):
            TraceRequest(source_text="", language="fortran")

    def test_trace_request_stdin(self):
        request = TraceRequest(
            source_text="name = input()\n", language="python", stdin_lines=["Ada"]
        )
        assert trace_request(request)[0].description == 'name = "Ada" (from input)'

    def test_split_input_drops_blank_lines(self):
        assert split_input("Ada\n\n  \n36\n") == ["Ada", "36"]

    def test_trace_with_stats(self):
        steps, stats = trace_with_stats(FACTORIAL, "python")
        assert stats.language == "python"
        assert stats.source_lines == 7
        assert stats.logical_lines == 6
        assert stats.steps == len(steps)
        assert stats.functions_defined == 1
        assert stats.output_lines == 1
        assert stats.error == ""
        assert "Trace Statistics" in stats.report()

    def test_trace_with_stats_records_error(self):
        steps, stats = trace_with_stats(
            "a = 1\nb = 2\n", "python", config=TracerConfig(max_steps=1)
        )
        assert stats.error == "Trace exceeded 1 steps"
        assert "Stopped with error" in stats.report()
