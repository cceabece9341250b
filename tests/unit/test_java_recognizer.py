"""Tests for JavaRecognizer — main-method scoping, typed declarations, Scanner input."""

from __future__ import annotations

from steptrace import trace

FACTORIAL = """\
public class Main {
    static int factorial(int n) {
        if (n <= 1) {
            return 1;
        }
        return n * factorial(n - 1);
    }

    public static void main(String[] args) {
        int[] numbers = {1, 2, 3};
        int result = factorial(5);
        System.out.println("Factorial of 5 is: " + result);
    }
}
"""


def _main(body: str) -> str:
    """Wrap statement lines in a class with a main method (body starts on line 3)."""
    return (
        "public class Main {\n"
        "    public static void main(String[] args) {\n"
        + body
        + "    }\n"
        "}\n"
    )


def _descriptions(source: str, stdin_lines=()) -> list[str]:
    return [s.description for s in trace(source, "java", stdin_lines)]


class TestFactorialProgram:
    def test_descriptions(self):
        assert _descriptions(FACTORIAL) == [
            "Define function: factorial",
            "Enter main method",
            "numbers = [1, 2, 3] (heap object #1)",
            "Call factorial(5)",
            "factorial(5): recursive case, calculate 5 * factorial(4)",
            "factorial(4): recursive case, calculate 4 * factorial(3)",
            "factorial(3): recursive case, calculate 3 * factorial(2)",
            "factorial(2): recursive case, calculate 2 * factorial(1)",
            "factorial(1): base case, return 1",
            "factorial(2): return 2",
            "factorial(3): return 6",
            "factorial(4): return 24",
            "factorial(5): return 120",
            "result = 120 (int)",
            "Print: Factorial of 5 is: 120",
            "Exit main method",
        ]

    def test_source_lines(self):
        steps = trace(FACTORIAL, "java")
        assert [s.source_line for s in steps[:4]] == [2, 9, 10, 11]
        assert steps[-1].source_line == 13

    def test_main_frame_bracket(self):
        steps = trace(FACTORIAL, "java")
        assert steps[0].depth == 0
        assert [f.id for f in steps[1].stack_frames] == ["main_0"]
        assert steps[1].stack_frames[0].entry_line == 9
        assert steps[-1].depth == 0

    def test_recursive_frames_sit_above_main(self):
        steps = trace(FACTORIAL, "java")
        deepest = max(steps, key=lambda s: s.depth)
        assert deepest.depth == 6
        assert deepest.stack_frames[-1].id == "factorial_5"

    def test_array_declaration(self):
        steps = trace(FACTORIAL, "java")
        step = steps[2]
        assert step.heap_objects[0].kind == "array"
        assert step.variables["numbers"].type == "int[]"
        assert step.variables["numbers"].heap_ref == 1

    def test_output(self):
        assert trace(FACTORIAL, "java")[-1].output == ["Factorial of 5 is: 120"]


class TestScoping:
    def test_function_defined_after_main_is_callable(self):
        source = (
            "public class Main {\n"
            "    public static void main(String[] args) {\n"
            "        int d = twice(4);\n"
            "    }\n"
            "    static int twice(int x) {\n"
            "        return x * 2;\n"
            "    }\n"
            "}\n"
        )
        assert _descriptions(source) == [
            "Enter main method",
            "Call twice(4)",
            "twice(4): base case, return 8",
            "d = 8 (int)",
            "Exit main method",
            "Define function: twice",
        ]

    def test_statements_outside_main_do_not_run(self):
        source = (
            "import java.util.Scanner;\n"
            "public class Main {\n"
            "    static int limit = 10;\n"
            "    public static void main(String[] args) {\n"
            "        int x = 1;\n"
            "    }\n"
            "}\n"
        )
        assert _descriptions(source) == [
            "Enter main method",
            "x = 1 (int)",
            "Exit main method",
        ]

    def test_loop_headers_are_skipped(self):
        source = _main(
            "        int total = 0;\n"
            "        for (int i = 0; i < 3; i++) {\n"
            "            total += 2;\n"
            "        }\n"
        )
        assert _descriptions(source) == [
            "Enter main method",
            "total = 0 (int)",
            "total = 2 (int)",
            "Exit main method",
        ]


class TestTypedAssignment:
    def test_integer_division_truncates(self):
        steps = trace(_main("        int a = 7 / 2;\n        int b = -7 / 2;\n"), "java")
        assert steps[-1].variables["a"].value == 3
        assert steps[-1].variables["b"].value == -3

    def test_double_division(self):
        steps = trace(_main("        double r = 7 / 2.0;\n"), "java")
        assert steps[1].description == "r = 3.5 (double)"

    def test_int_literal_coerced_to_declared_double(self):
        steps = trace(_main("        double d = 5;\n"), "java")
        assert steps[1].description == "d = 5.0 (double)"
        assert steps[1].variables["d"].value == 5.0

    def test_reassignment_keeps_declared_type(self):
        steps = trace(_main("        double total = 0;\n        total = 4;\n"), "java")
        assert steps[2].description == "total = 4.0 (double)"

    def test_bare_declaration_type_used_later(self):
        steps = trace(_main("        double price;\n        price = 3;\n"), "java")
        assert steps[1].description == "price = 3.0 (double)"

    def test_compound_and_increment(self):
        source = _main(
            "        int e = 10;\n"
            "        e += 3;\n"
            "        e++;\n"
            "        e--;\n"
            "        e--;\n"
        )
        assert _descriptions(source)[1:-1] == [
            "e = 10 (int)",
            "e = 13 (int)",
            "e = 14 (int)",
            "e = 13 (int)",
            "e = 12 (int)",
        ]

    def test_var_infers_type(self):
        steps = trace(_main('        var greeting = "hi";\n'), "java")
        assert steps[1].variables["greeting"].type == "String"

    def test_string_concatenation(self):
        source = _main('        String s = "n=" + 4 + true;\n')
        assert _descriptions(source)[1] == "s = n=4true (String)"

    def test_array_length(self):
        source = _main("        int[] xs = {4, 5, 6};\n        int n = xs.length;\n")
        assert _descriptions(source)[2] == "n = 3 (int)"

    def test_new_array_defaults(self):
        steps = trace(_main("        int[] zeros = new int[3];\n"), "java")
        assert steps[1].heap_objects[0].value == [0, 0, 0]

    def test_array_list_kind(self):
        steps = trace(_main("        List<Integer> xs = new ArrayList<>();\n"), "java")
        assert steps[1].heap_objects[0].kind == "list"
        assert steps[1].heap_objects[0].value == []
        assert steps[1].description == "xs = [] (heap object #1)"


    def test_shift_operators(self):
        source = _main("        int x = 1 << 3;\n        int y = x >> 1;\n")
        assert _descriptions(source)[1:3] == ["x = 8 (int)", "y = 4 (int)"]

    def test_nested_generic_declaration(self):
        steps = trace(_main("        Map<String, List<Integer>> m = new HashMap<>();\n"), "java")
        assert not any(s.error_flag for s in steps)
        assert steps[1].heap_objects[0].kind == "dict"
        assert steps[1].heap_objects[0].value == {}

class TestPrint:
    def test_println_concatenation(self):
        steps = trace(_main('        int x = 2;\n        System.out.println("x is " + x);\n'), "java")
        assert steps[2].description == "Print: x is 2"
        assert steps[2].output == ["x is 2"]

    def test_booleans_print_lowercase(self):
        steps = trace(_main("        System.out.println(3 > 2);\n"), "java")
        assert steps[-1].output == ["true"]


class TestInput:
    SOURCE = """\
import java.util.Scanner;

public class Main {
    public static void main(String[] args) {
        Scanner sc = new Scanner(System.in);
        String name = sc.nextLine();
        int age = sc.nextInt();
        System.out.println("Hi " + name + ", you are " + age);
    }
}
"""

    def test_descriptions(self):
        assert _descriptions(self.SOURCE, ["Ada", "36"]) == [
            "Enter main method",
            "sc = Scanner@1 (heap object #1)",
            'name = "Ada" (from input)',
            'age = "36" (from input)',
            "Print: Hi Ada, you are 36",
            "Exit main method",
        ]

    def test_scanner_is_object_on_heap(self):
        step = trace(self.SOURCE, "java", ["Ada", "36"])[1]
        assert step.heap_objects[0].kind == "object"
        assert step.variables["sc"].type == "Scanner"

    def test_next_int_converts(self):
        step = trace(self.SOURCE, "java", ["Ada", "36"])[3]
        assert step.variables["age"].value == 36
        assert step.variables["age"].type == "int"

    def test_exhausted_input_reads_empty(self):
        steps = trace(self.SOURCE, "java", [])
        assert steps[2].variables["name"].value == ""


class TestExit:
    def test_system_exit_stops_main(self):
        source = _main(
            '        System.out.println("before");\n'
            "        System.exit(0);\n"
            '        System.out.println("after");\n'
        )
        steps = trace(source, "java")
        assert [s.description for s in steps] == [
            "Enter main method",
            "Print: before",
            "Return from main",
            "Exit main method",
        ]
        assert steps[-1].output == ["before"]
        assert steps[-1].depth == 0
