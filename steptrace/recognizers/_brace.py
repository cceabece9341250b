"""BraceRecognizer — shared logic for brace-delimited languages (Java, C++).

Only the body of the program entry function (``main``) executes. Function
definitions elsewhere are registered up front, since both languages let
``main`` call functions that appear later in the file.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .. import constants
from ..expressions import callee_name
from ..lexer import Token, TokenKind, tokenize
from ..normalizer import SourceLine
from ..registry import FunctionDefinition
from ..state_types import CompositeValue
from ._base import BaseRecognizer, Statement, StatementKind, matching_paren

logger = logging.getLogger(__name__)

_DEF_RE = re.compile(
    r"^(?:[\w:<>,\[\]&*]+\s+)+?\*?&?([A-Za-z_]\w*)\s*\(([^()]*)\)"
    r"\s*(?:const\s*)?(?:throws\s+[\w.,\s]+?)?\s*(\{.*)?$"
)
_IF_RE = re.compile(r"^(?:else\s+)?if\s*\(")
_ELSE_RE = re.compile(r"^else\b\s*(.*)$")
_RETURN_RE = re.compile(r"^return\b\s*(.*?)\s*;?$")
_DECL_RE = re.compile(
    r"^((?:[A-Za-z_][\w:]*(?:<[^=;]*>)?(?:\[\])?\s+)+)([A-Za-z_]\w*)\s*(\[\s*\w*\s*\])?\s*;$"
)

_NOT_FUNCTIONS = frozenset(
    {"if", "while", "for", "switch", "catch", "return", "else", "new", "do", "sizeof"}
)
_TYPE_MODIFIERS = frozenset(
    {"final", "const", "static", "constexpr", "volatile", "public", "private", "protected"}
)
_TYPE_TOKENS = frozenset({"::", "<", ">", ">>", ",", "[", "]", "&", "*", "."})
_INT_TYPES = frozenset({"int", "long", "short", "byte", "long long", "unsigned", "size_t"})
_FLOAT_TYPES = frozenset({"double", "float"})
_INFERRED_TYPES = frozenset({"auto", "var"})


def brace_delta(text: str) -> int:
    """Net ``{`` minus ``}`` outside string and character literals."""
    delta = 0
    quote = ""
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
        elif ch in "\"'":
            quote = ch
        elif ch == "{":
            delta += 1
        elif ch == "}":
            delta -= 1
        i += 1
    return delta


def _strip_braces(text: str) -> str:
    text = text.strip()
    while text.startswith("}"):
        text = text[1:].lstrip()
    while text.endswith(("{", "}")):
        text = text[:-1].rstrip()
    return text


def _normalize_type(text: str) -> str:
    words = [w for w in text.split() if w not in _TYPE_MODIFIERS]
    return " ".join(words)


class BraceRecognizer(BaseRecognizer):
    ENTRY_RE: re.Pattern = re.compile(r"\bvoid\s+main\s*\(")
    ENTER_DESCRIPTION = "Enter main function"
    EXIT_DESCRIPTION = "Exit main function"
    RETURN_DESCRIPTION = "Return from main"
    STATEMENT_TERMINATOR = ";"
    KEEPS_DECLARED_TYPE = True
    EXIT_CALLS: frozenset[str] = frozenset({"exit"})
    CONTAINER_KINDS: dict[str, str] = {}

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._declared_types: dict[str, str] = {}

    # ── driver ───────────────────────────────────────────────────

    def run(self, lines: list[SourceLine]) -> None:
        self._prescan(lines)
        depth = 0
        entry_depth: int | None = None
        idx = 0
        while idx < len(lines) and not self.stopped:
            line = lines[idx]
            delta = brace_delta(line.text)

            if entry_depth is None:
                if self.ENTRY_RE.search(line.text):
                    entry_depth = depth
                    self._enter_scope(line)
                    depth += delta
                    idx += 1
                    continue
                stmt = self._match_definition(lines, idx)
                if stmt is not None:
                    self.interpret(stmt)
                    idx = stmt.next_index
                    continue
                depth += delta
                idx += 1
                continue

            depth += delta
            if depth <= entry_depth:
                self._exit_scope(line.number)
                entry_depth = None
                idx += 1
                continue

            self._note_declaration(line.text)
            stmt = self.classify(lines, idx)
            self.interpret(stmt)
            idx = stmt.next_index if stmt.kind == StatementKind.DEFINITION else idx + 1

        if entry_depth is not None and not self.stopped:
            self._exit_scope(lines[-1].number)

    def _prescan(self, lines: list[SourceLine]) -> None:
        idx = 0
        while idx < len(lines):
            stmt = None
            if not self.ENTRY_RE.search(lines[idx].text):
                stmt = self._match_definition(lines, idx)
            if stmt is None:
                idx += 1
                continue
            self.state.registry.define(stmt.definition)
            idx = stmt.next_index

    def _enter_scope(self, line: SourceLine) -> None:
        self.state.push_frame(constants.MAIN_FRAME_NAME, line.number, {})
        self.recorder.record(line.number, self.ENTER_DESCRIPTION)

    def _exit_scope(self, line_number: int) -> None:
        self.state.pop_frame()
        self.recorder.record(line_number, self.EXIT_DESCRIPTION)

    def _note_declaration(self, text: str) -> None:
        """Remember the type of an uninitialized declaration such as ``int age;``."""
        m = _DECL_RE.match(text)
        if not m:
            return
        declared = _normalize_type(m.group(1))
        if not declared or declared.split()[0] in _NOT_FUNCTIONS:
            return
        self._declared_types[m.group(2)] = declared + ("[]" if m.group(3) else "")

    # ── definition ───────────────────────────────────────────────

    def _match_definition(self, lines: list[SourceLine], idx: int) -> Statement | None:
        line = lines[idx]
        m = _DEF_RE.match(line.text)
        if not m:
            return None
        name = m.group(1)
        if name in _NOT_FUNCTIONS or line.text.split()[0] in _NOT_FUNCTIONS:
            return None
        brace_follows = idx + 1 < len(lines) and lines[idx + 1].text.startswith("{")
        if m.group(3) is None and not brace_follows:
            return None

        end = self._body_end(lines, idx)
        body = self._body_texts(lines, idx, end)
        definition = FunctionDefinition(
            name=name,
            params=self._params(m.group(2)),
            line=line.number,
            body_lines=tuple(number for number, _ in body),
            clauses=self._parse_clauses(self._clauses(body)),
        )
        return Statement(StatementKind.DEFINITION, line, definition=definition, next_index=end + 1)

    @staticmethod
    def _body_end(lines: list[SourceLine], idx: int) -> int:
        depth = 0
        opened = False
        for pos in range(idx, len(lines)):
            depth += brace_delta(lines[pos].text)
            opened = opened or "{" in lines[pos].text
            if opened and depth <= 0:
                return pos
        return len(lines) - 1

    @staticmethod
    def _body_texts(lines: list[SourceLine], idx: int, end: int) -> list[tuple[int, str]]:
        """(line number, text) pairs strictly inside the function braces."""
        texts: list[tuple[int, str]] = []
        for pos in range(idx, end + 1):
            line = lines[pos]
            text = line.text
            if pos == idx or (pos == idx + 1 and "{" not in lines[idx].text):
                brace = text.find("{")
                text = text[brace + 1 :] if brace >= 0 else ""
            if pos == end:
                closing = text.rfind("}")
                text = text[:closing] if closing >= 0 else text
            text = _strip_braces(text)
            if text:
                texts.append((line.number, text))
        return texts

    def _clauses(self, body: list[tuple[int, str]]) -> list[tuple[str | None, str, int]] | None:
        """Read a body made only of guarded returns; None if anything else is there."""
        clauses: list[tuple[str | None, str, int]] = []
        pending: str | None = None
        pending_else = False
        for number, text in body:
            if _IF_RE.match(text):
                if pending is not None:
                    return None
                open_idx = text.index("(")
                close_idx = matching_paren(text, open_idx)
                if close_idx < 0:
                    return None
                cond = text[open_idx + 1 : close_idx].strip()
                rest = _strip_braces(text[close_idx + 1 :]).lstrip("{").strip()
                if rest:
                    inline = _RETURN_RE.match(rest)
                    if not inline:
                        return None
                    clauses.append((cond, inline.group(1), number))
                else:
                    pending = cond
                continue

            else_match = _ELSE_RE.match(text)
            if else_match:
                rest = else_match.group(1).lstrip("{").strip()
                if rest:
                    inline = _RETURN_RE.match(rest)
                    if not inline:
                        return None
                    clauses.append((None, inline.group(1), number))
                else:
                    pending_else = True
                continue

            return_match = _RETURN_RE.match(text)
            if not return_match:
                return None
            if pending is not None:
                clauses.append((pending, return_match.group(1), number))
                pending = None
            else:
                clauses.append((None, return_match.group(1), number))
                pending_else = False
        if pending is not None or pending_else:
            return None
        return clauses

    # ── assignment ───────────────────────────────────────────────

    def _match_assignment(self, lines: list[SourceLine], idx: int) -> Statement | None:
        stmt = super()._match_assignment(lines, idx)
        if stmt is not None:
            return stmt
        return self._match_increment(lines[idx])

    def _match_increment(self, line: SourceLine) -> Statement | None:
        """``i++;`` / ``--i;`` as an augmented assignment by one."""
        tokens = tokenize(self._statement_text(line.text), self.evaluator.rules)[:-1]
        if len(tokens) != 2:
            return None
        ops = [t for t in tokens if t.kind == TokenKind.OP and t.value in ("++", "--")]
        names = [t for t in tokens if t.kind == TokenKind.NAME]
        if len(ops) != 1 or len(names) != 1:
            return None
        op = "+" if ops[0].value == "++" else "-"
        return Statement(
            StatementKind.ASSIGNMENT, line, target=names[0].value, expr_text="1", op=op
        )

    def _split_target(self, lhs: list[Token], text: str) -> tuple[str, str] | None:
        tokens = list(lhs)
        suffix = ""
        # ``int arr[]`` / ``int arr[5]``: the brackets belong to the type
        if tokens and tokens[-1].kind == TokenKind.OP and tokens[-1].value == "]":
            open_pos = max(
                (i for i, t in enumerate(tokens) if t.kind == TokenKind.OP and t.value == "["),
                default=-1,
            )
            if open_pos <= 0:
                return None
            tokens = tokens[:open_pos]
            suffix = "[]"
        if not tokens or tokens[-1].kind != TokenKind.NAME:
            return None
        target = tokens[-1]
        type_tokens = tokens[:-1]
        if not type_tokens:
            return (target.value, "") if not suffix else None
        for tok in type_tokens:
            if tok.kind == TokenKind.NAME:
                continue
            if tok.kind == TokenKind.OP and tok.value in _TYPE_TOKENS:
                continue
            return None
        if type_tokens[0].value in _NOT_FUNCTIONS:
            return None
        declared = _normalize_type(text[type_tokens[0].start : target.start])
        if declared in _INFERRED_TYPES:
            declared = ""
        return target.value, declared + suffix

    def _heap_kind(self, declared_type: str, composite: CompositeValue) -> str:
        base = declared_type.replace("std::", "")
        if base.endswith("[]"):
            return constants.HEAP_KIND_ARRAY
        return self.CONTAINER_KINDS.get(base.split("<")[0].strip(), composite.kind)

    def _coerce(self, value: Any, declared_type: str) -> Any:
        if isinstance(value, bool) or not declared_type:
            return value
        if declared_type in _INT_TYPES and isinstance(value, float):
            return int(value)
        if declared_type in _FLOAT_TYPES and isinstance(value, int):
            return float(value)
        return value

    def bind(
        self,
        target: str,
        value: Any,
        declared_type: str,
        line: int,
        from_input: bool = False,
    ) -> None:
        if not declared_type:
            declared_type = self._declared_types.get(target, "")
        if declared_type:
            self._declared_types[target] = declared_type
        super().bind(target, value, declared_type, line, from_input)

    # ── return ───────────────────────────────────────────────────

    def _match_return(self, lines: list[SourceLine], idx: int) -> Statement | None:
        line = lines[idx]
        if _RETURN_RE.match(line.text):
            return Statement(StatementKind.RETURN, line)
        call = self._match_call(lines, idx)
        if call is not None and callee_name(call.call.func) in self.EXIT_CALLS:
            return Statement(StatementKind.RETURN, line)
        return None

    def _handle_return(self, stmt: Statement) -> None:
        self.recorder.record(stmt.line.number, self.RETURN_DESCRIPTION)
        self._exit_scope(stmt.line.number)
        self.stopped = True
