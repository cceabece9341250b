"""Lexer for the teaching subset — one shared token grammar, per-language lexical rules."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from . import constants
from .errors import SyntaxMismatch


class TokenKind(str, Enum):
    NUMBER = "NUMBER"
    STRING = "STRING"
    FSTRING = "FSTRING"
    NAME = "NAME"
    OP = "OP"
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str  # raw source slice
    start: int
    end: int
    value: Any = None  # decoded literal value for NUMBER / STRING / FSTRING


@dataclass(frozen=True)
class LexicalRules:
    """The lexical differences between the supported languages."""

    language: str
    quote_chars: frozenset[str]
    char_quote: str = ""  # quote that delimits a single character literal
    string_prefixes: frozenset[str] = frozenset()
    true_literal: str = "true"
    false_literal: str = "false"
    null_literals: frozenset[str] = frozenset({"null"})
    operators: tuple[str, ...] = ()
    operator_aliases: dict[str, str] = field(default_factory=dict)
    keyword_operators: frozenset[str] = frozenset()
    numeric_suffixes: str = ""
    digit_separator: str = ""


_COMMON_OPERATORS: tuple[str, ...] = (
    "==", "!=", "<=", ">=", "+=", "-=", "*=", "/=", "%=",
    "+", "-", "*", "/", "%", "<", ">", "=",
    "(", ")", "[", "]", "{", "}", ",", ":", ".", "?",
)

PYTHON_RULES = LexicalRules(
    language=constants.LANG_PYTHON,
    quote_chars=frozenset({'"', "'"}),
    string_prefixes=frozenset({"f", "r", "b", "u", "fr", "rf", "br", "rb"}),
    true_literal="True",
    false_literal="False",
    null_literals=frozenset({"None"}),
    operators=("**", "//") + _COMMON_OPERATORS,
    keyword_operators=frozenset({"and", "or", "not", "in"}),
    digit_separator="_",
)

JAVA_RULES = LexicalRules(
    language=constants.LANG_JAVA,
    quote_chars=frozenset({'"'}),
    char_quote="'",
    null_literals=frozenset({"null"}),
    operators=("<<", ">>", "&&", "||", "++", "--") + _COMMON_OPERATORS + ("!",),
    operator_aliases={"&&": "and", "||": "or", "!": "not"},
    numeric_suffixes="lLfFdD",
    digit_separator="_",
)

CPP_RULES = LexicalRules(
    language=constants.LANG_CPP,
    quote_chars=frozenset({'"'}),
    char_quote="'",
    null_literals=frozenset({"nullptr", "NULL"}),
    operators=("<<", ">>", "::", "&&", "||", "++", "--", "->")
    + _COMMON_OPERATORS
    + ("!", "&"),
    operator_aliases={"&&": "and", "||": "or", "!": "not"},
    numeric_suffixes="lLfFuU",
    digit_separator="'",
)

RULES_BY_LANGUAGE: dict[str, LexicalRules] = {
    constants.LANG_PYTHON: PYTHON_RULES,
    constants.LANG_JAVA: JAVA_RULES,
    constants.LANG_CPP: CPP_RULES,
}

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_HEX_RE = re.compile(r"0[xX][0-9a-fA-F]+")

_ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


def decode_escapes(body: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(_ESCAPES.get(nxt, "\\" + nxt))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _number_re(rules: LexicalRules) -> re.Pattern:
    sep = re.escape(rules.digit_separator) if rules.digit_separator else ""
    digits = f"[0-9](?:[0-9{sep}]*[0-9])?" if sep else "[0-9]+"
    suffix = f"[{rules.numeric_suffixes}]?" if rules.numeric_suffixes else ""
    return re.compile(
        rf"(?:{digits}(?:\.(?:[0-9]+)?)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?{suffix}"
    )


def _parse_number(text: str, rules: LexicalRules) -> int | float:
    body = text
    if rules.digit_separator:
        body = body.replace(rules.digit_separator, "")
    if rules.numeric_suffixes:
        body = body.rstrip(rules.numeric_suffixes)
    is_float = "." in body or "e" in body or "E" in body
    if not is_float and text[-1:] in ("f", "F", "d", "D") and rules.numeric_suffixes:
        is_float = True
    return float(body) if is_float else int(body)


class Lexer:
    """Splits one logical line into tokens according to *rules*."""

    def __init__(self, rules: LexicalRules):
        self._rules = rules
        self._number_re = _number_re(rules)
        self._operators = sorted(rules.operators, key=len, reverse=True)

    def tokenize(self, text: str) -> list[Token]:
        tokens: list[Token] = []
        pos = 0
        while pos < len(text):
            ch = text[pos]
            if ch.isspace():
                pos += 1
                continue
            token = (
                self._scan_string(text, pos)
                or self._scan_number(text, pos)
                or self._scan_name(text, pos)
                or self._scan_operator(text, pos)
            )
            if token is None:
                raise SyntaxMismatch(f"unexpected character {ch!r} in {text!r}")
            tokens.append(token)
            pos = token.end
        tokens.append(Token(TokenKind.EOF, "", len(text), len(text)))
        return tokens

    # ── scanners ─────────────────────────────────────────────────

    def _scan_string(self, text: str, pos: int) -> Token | None:
        rules = self._rules
        prefix = ""
        quote_pos = pos
        m = _NAME_RE.match(text, pos)
        if m and m.group(0).lower() in rules.string_prefixes:
            end = m.end()
            if end < len(text) and text[end] in rules.quote_chars:
                prefix = m.group(0).lower()
                quote_pos = end
        quote = text[quote_pos] if quote_pos < len(text) else ""
        is_char = bool(rules.char_quote) and quote == rules.char_quote
        if quote not in rules.quote_chars and not is_char:
            return None

        i = quote_pos + 1
        while i < len(text):
            if text[i] == "\\" and "r" not in prefix:
                i += 2
                continue
            if text[i] == quote:
                break
            i += 1
        if i >= len(text):
            raise SyntaxMismatch(f"unterminated string literal in {text!r}")

        body = text[quote_pos + 1 : i]
        value = body if "r" in prefix else decode_escapes(body)
        kind = TokenKind.FSTRING if "f" in prefix else TokenKind.STRING
        if kind == TokenKind.FSTRING:
            value = body
        return Token(kind, text[pos : i + 1], pos, i + 1, value)

    def _scan_number(self, text: str, pos: int) -> Token | None:
        hex_match = _HEX_RE.match(text, pos)
        if hex_match:
            return Token(
                TokenKind.NUMBER,
                hex_match.group(0),
                pos,
                hex_match.end(),
                int(hex_match.group(0), 16),
            )
        m = self._number_re.match(text, pos)
        if not m or not m.group(0) or m.group(0) == ".":
            return None
        return Token(
            TokenKind.NUMBER, m.group(0), pos, m.end(), _parse_number(m.group(0), self._rules)
        )

    def _scan_name(self, text: str, pos: int) -> Token | None:
        m = _NAME_RE.match(text, pos)
        if not m:
            return None
        word = m.group(0)
        if word in self._rules.keyword_operators:
            return Token(TokenKind.OP, word, pos, m.end(), word)
        return Token(TokenKind.NAME, word, pos, m.end(), word)

    def _scan_operator(self, text: str, pos: int) -> Token | None:
        for op in self._operators:
            if text.startswith(op, pos):
                canonical = self._rules.operator_aliases.get(op, op)
                return Token(TokenKind.OP, op, pos, pos + len(op), canonical)
        return None


def tokenize(text: str, rules: LexicalRules) -> list[Token]:
    return Lexer(rules).tokenize(text)
