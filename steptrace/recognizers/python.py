"""PythonRecognizer — indentation-scoped statements of the Python teaching subset."""

from __future__ import annotations

import logging
import re

from .. import constants
from ..expressions import Call, Literal, callee_name
from ..lexer import Token, TokenKind
from ..normalizer import SourceLine
from ..registry import FunctionDefinition
from ._base import BaseRecognizer, Statement, StatementKind

logger = logging.getLogger(__name__)

_DEF_RE = re.compile(r"^def\s+([A-Za-z_]\w*)\s*\((.*)\)\s*(?:->\s*[^:]+)?:\s*(.*)$")
_IF_RE = re.compile(r"^(if|elif)\s+(.+?):\s*(.*)$")
_ELSE_RE = re.compile(r"^else\s*:\s*(.*)$")
_RETURN_RE = re.compile(r"^return(?:\s+(.*))?$")
_EXIT_CALLS = frozenset({"exit", "quit", "sys.exit"})


class PythonRecognizer(BaseRecognizer):
    LANGUAGE = constants.LANG_PYTHON
    PRINT_LABEL = "Print"
    EXIT_DESCRIPTION = "Exit program"
    INPUT_FUNCTIONS = frozenset({"input"})

    # ── definition ───────────────────────────────────────────────

    def _match_definition(self, lines: list[SourceLine], idx: int) -> Statement | None:
        line = lines[idx]
        m = _DEF_RE.match(line.text)
        if not m:
            return None
        name, params_text, inline = m.group(1), m.group(2), m.group(3).strip()

        end = idx + 1
        while end < len(lines) and lines[end].indent > line.indent:
            end += 1
        body = list(lines[idx + 1 : end])
        if inline:
            body.insert(0, SourceLine(line.number, inline, line.indent + 1))

        definition = FunctionDefinition(
            name=name,
            params=self._params(params_text),
            line=line.number,
            body_lines=tuple(b.number for b in body),
            clauses=self._parse_clauses(self._clauses(body)),
        )
        return Statement(StatementKind.DEFINITION, line, definition=definition, next_index=end)

    def _clauses(self, body: list[SourceLine]) -> list[tuple[str | None, str, int]] | None:
        """Read a body made only of guarded returns; None if anything else is there."""
        clauses: list[tuple[str | None, str, int]] = []
        pending: str | None = None
        pending_else = False
        statements = [b for b in body if b.text != "pass" and not _is_docstring(b.text)]
        for line in statements:
            text = line.text
            if_match = _IF_RE.match(text)
            else_match = _ELSE_RE.match(text)
            return_match = _RETURN_RE.match(text)
            if if_match:
                if pending is not None:
                    return None
                cond, rest = if_match.group(2), if_match.group(3).strip()
                if rest:
                    inline = _RETURN_RE.match(rest)
                    if not inline:
                        return None
                    clauses.append((cond, inline.group(1) or "", line.number))
                else:
                    pending = cond
            elif else_match:
                rest = else_match.group(1).strip()
                if rest:
                    inline = _RETURN_RE.match(rest)
                    if not inline:
                        return None
                    clauses.append((None, inline.group(1) or "", line.number))
                else:
                    pending_else = True
            elif return_match:
                expr = return_match.group(1) or ""
                if pending is not None:
                    clauses.append((pending, expr, line.number))
                    pending = None
                else:
                    clauses.append((None, expr, line.number))
                    pending_else = False
            else:
                return None
        if pending is not None or pending_else:
            return None
        return clauses

    # ── assignment ───────────────────────────────────────────────

    def _split_target(self, lhs: list[Token], text: str) -> tuple[str, str] | None:
        if len(lhs) == 1 and lhs[0].kind == TokenKind.NAME:
            return lhs[0].value, ""
        # annotated assignment: ``x: int = 5``
        if (
            len(lhs) >= 3
            and lhs[0].kind == TokenKind.NAME
            and lhs[1].kind == TokenKind.OP
            and lhs[1].value == ":"
        ):
            return lhs[0].value, text[lhs[1].end :].strip()
        return None

    # ── print / exit ─────────────────────────────────────────────

    def _match_print(self, lines: list[SourceLine], idx: int) -> Statement | None:
        line = lines[idx]
        if not line.text.startswith("print"):
            return None
        node = self.evaluator.parse(line.text)
        if not isinstance(node, Call) or callee_name(node.func) != "print":
            return None
        separator = " "
        for key, value in node.keywords:
            if key == "sep" and isinstance(value, Literal) and isinstance(value.value, str):
                separator = value.value
        return Statement(StatementKind.PRINT, line, args=node.args, separator=separator)

    def _match_return(self, lines: list[SourceLine], idx: int) -> Statement | None:
        line = lines[idx]
        if _RETURN_RE.match(line.text):
            return Statement(StatementKind.RETURN, line)
        if not any(line.text.startswith(c) for c in _EXIT_CALLS):
            return None
        node = self.evaluator.parse(line.text)
        if isinstance(node, Call) and callee_name(node.func) in _EXIT_CALLS:
            return Statement(StatementKind.RETURN, line)
        return None


def _is_docstring(text: str) -> bool:
    return text.startswith(('"""', "'''"))

