"""Tests for the source normalizer — comment and blank-line removal."""

from __future__ import annotations

from steptrace.normalizer import SourceLine, normalize
from steptrace.parser import Parser, ParserFactory, TreeSitterParserFactory


def _texts(lines: list[SourceLine]) -> list[tuple[int, str]]:
    return [(line.number, line.text) for line in lines]


class TestPythonNormalization:
    def test_blank_and_comment_lines_dropped(self):
        source = "x = 1\n\n# a comment\ny = 2\n"
        assert _texts(normalize(source, "python")) == [(1, "x = 1"), (4, "y = 2")]

    def test_trailing_comment_cut(self):
        lines = normalize("x = 1  # set x\n", "python")
        assert _texts(lines) == [(1, "x = 1")]

    def test_hash_inside_string_is_kept(self):
        lines = normalize('s = "a # b"\n', "python")
        assert lines[0].text == 's = "a # b"'

    def test_indent_width_recorded(self):
        lines = normalize("def f(n):\n    return n\n", "python")
        assert [line.indent for line in lines] == [0, 4]

    def test_tabs_expand_to_four_columns(self):
        lines = normalize("def f(n):\n\treturn n\n", "python")
        assert lines[1].indent == 4

    def test_empty_source(self):
        assert normalize("", "python") == []


class TestJavaNormalization:
    def test_line_comment_cut(self):
        lines = normalize("int a = 1; // one\n", "java")
        assert _texts(lines) == [(1, "int a = 1;")]

    def test_block_comment_spanning_lines_dropped(self):
        source = "int a = 1;\n/* block\n   more */\nint b = 2;\n"
        assert _texts(normalize(source, "java")) == [(1, "int a = 1;"), (4, "int b = 2;")]

    def test_comment_markers_inside_strings_kept(self):
        lines = normalize('String s = "// not a comment";\n', "java")
        assert lines[0].text == 'String s = "// not a comment";'


class TestCppNormalization:
    def test_preprocessor_directives_dropped(self):
        source = "#include <iostream>\nusing namespace std;\n"
        assert _texts(normalize(source, "cpp")) == [(2, "using namespace std;")]

    def test_line_numbers_preserved_after_gaps(self):
        source = "#include <iostream>\n\n\nint main() {\n    return 0; // done\n}\n"
        assert _texts(normalize(source, "cpp")) == [
            (4, "int main() {"),
            (5, "return 0;"),
            (6, "}"),
        ]


class TestParser:
    def test_find_nodes_in_source_order(self):
        tree = Parser(TreeSitterParserFactory()).parse("# a\nx = 1  # b\n", "python")
        rows = [n.start_point[0] for n in Parser.find_nodes(tree, frozenset({"comment"}))]
        assert rows == [0, 1]

    def test_factory_reuses_loaded_grammar(self):
        factory = TreeSitterParserFactory()
        assert factory.get_parser("cpp") is factory.get_parser("cpp")

    def test_injected_factory_is_used(self):
        class RecordingFactory(ParserFactory):
            def __init__(self):
                self.requested: list[str] = []
                self._inner = TreeSitterParserFactory()

            def get_parser(self, language: str):
                self.requested.append(language)
                return self._inner.get_parser(language)

        factory = RecordingFactory()
        lines = normalize("x = 1\n", "python", Parser(factory))
        assert factory.requested == ["python"]
        assert lines[0].text == "x = 1"
