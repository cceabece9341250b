"""Source normalizer — drops comments and blank lines, keeps original line numbers."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from . import constants
from .parser import Parser, TreeSitterParserFactory

logger = logging.getLogger(__name__)

COMMENT_NODE_TYPES: dict[str, frozenset[str]] = {
    constants.LANG_PYTHON: frozenset({"comment"}),
    constants.LANG_JAVA: frozenset({"line_comment", "block_comment"}),
    constants.LANG_CPP: frozenset({"comment"}),
}

# Languages whose preprocessor directive lines are not statements.
DIRECTIVE_PREFIXES: dict[str, str] = {
    constants.LANG_CPP: "#",
}


@dataclass(frozen=True)
class SourceLine:
    """One logical line: 1-based original line number, trimmed text, indent width."""

    number: int
    text: str
    indent: int = 0


def _comment_spans(tree, comment_types: frozenset[str]) -> dict[int, list[tuple[int, int]]]:
    """Map each row to the byte-column ranges covered by comments.

    An end column of -1 means "to the end of the row".
    """
    spans: dict[int, list[tuple[int, int]]] = {}
    for node in Parser.find_nodes(tree, comment_types):
        (start_row, start_col), (end_row, end_col) = node.start_point, node.end_point
        if start_row == end_row:
            spans.setdefault(start_row, []).append((start_col, end_col))
            continue
        spans.setdefault(start_row, []).append((start_col, -1))
        for row in range(start_row + 1, end_row):
            spans.setdefault(row, []).append((0, -1))
        spans.setdefault(end_row, []).append((0, end_col))
    return spans


def _cut_spans(raw: str, row_spans: list[tuple[int, int]]) -> str:
    data = raw.encode("utf-8")
    for start, end in sorted(row_spans, reverse=True):
        stop = len(data) if end < 0 else end
        data = data[:start] + data[stop:]
    return data.decode("utf-8", errors="replace")


def _indent_width(text: str) -> int:
    expanded = text.expandtabs(constants.TAB_WIDTH)
    return len(expanded) - len(expanded.lstrip())


def normalize(
    source: str, language: str, parser: Parser | None = None
) -> list[SourceLine]:
    """Return the non-blank, non-comment lines of *source* in order."""
    parser = parser or Parser(TreeSitterParserFactory())
    tree = parser.parse(source, language)
    spans = _comment_spans(tree, COMMENT_NODE_TYPES.get(language, frozenset()))
    directive = DIRECTIVE_PREFIXES.get(language)

    lines: list[SourceLine] = []
    for row, raw in enumerate(source.split("\n")):
        text = _cut_spans(raw, spans[row]) if row in spans else raw
        text = text.rstrip("\r")
        stripped = text.strip()
        if not stripped:
            continue
        if directive and stripped.startswith(directive):
            continue
        lines.append(SourceLine(number=row + 1, text=stripped, indent=_indent_width(text)))

    logger.debug(
        "Normalized %d source lines to %d logical lines (%s)",
        source.count("\n") + 1,
        len(lines),
        language,
    )
    return lines
