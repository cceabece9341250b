"""Expression AST and precedence-climbing parser for the teaching subset."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .errors import SyntaxMismatch
from .lexer import LexicalRules, Token, TokenKind, decode_escapes, tokenize

# ── AST ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Literal:
    text: str
    value: Any


@dataclass(frozen=True)
class Name:
    text: str
    id: str


@dataclass(frozen=True)
class Attribute:
    text: str
    value: "Expr"
    attr: str


@dataclass(frozen=True)
class Index:
    text: str
    value: "Expr"
    index: "Expr"


@dataclass(frozen=True)
class Call:
    text: str
    func: "Expr"
    args: tuple["Expr", ...] = ()
    keywords: tuple[tuple[str, "Expr"], ...] = ()


@dataclass(frozen=True)
class BinOp:
    text: str
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class UnaryOp:
    text: str
    op: str
    operand: "Expr"


@dataclass(frozen=True)
class Conditional:
    text: str
    condition: "Expr"
    then: "Expr"
    orelse: "Expr"


@dataclass(frozen=True)
class ListLiteral:
    text: str
    elements: tuple["Expr", ...]
    delimiter: str = "["


@dataclass(frozen=True)
class DictLiteral:
    text: str
    pairs: tuple[tuple["Expr", "Expr"], ...]


@dataclass(frozen=True)
class Placeholder:
    text: str  # the placeholder body without braces
    expr: "Expr | None"
    format_spec: str = ""
    conversion: str = ""  # "r", "s" or "a" from a trailing ``!r`` style suffix


@dataclass(frozen=True)
class FString:
    text: str
    parts: tuple[Union[str, Placeholder], ...]


@dataclass(frozen=True)
class New:
    text: str
    type_name: str
    args: tuple["Expr", ...] = ()
    initializer: ListLiteral | None = None
    is_array: bool = False


Expr = Union[
    Literal, Name, Attribute, Index, Call, BinOp, UnaryOp, Conditional,
    ListLiteral, DictLiteral, FString, New,
]


def callee_name(node: Expr) -> str:
    """Dotted name of a call target (``print``, ``sc.nextLine``, ``Math.max``)."""
    if isinstance(node, Name):
        return node.id
    if isinstance(node, Attribute):
        base = callee_name(node.value)
        return f"{base}.{node.attr}" if base else ""
    return ""


def iter_calls(node: Expr):
    """Yield every Call node inside *node*, outermost first."""
    stack: list[Any] = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, Call):
            yield current
            stack.extend(reversed(current.args))
            stack.extend(v for _, v in current.keywords)
            stack.append(current.func)
        elif isinstance(current, BinOp):
            stack.extend((current.right, current.left))
        elif isinstance(current, UnaryOp):
            stack.append(current.operand)
        elif isinstance(current, Conditional):
            stack.extend((current.orelse, current.then, current.condition))
        elif isinstance(current, (Attribute, Index)):
            stack.append(current.value)
            if isinstance(current, Index):
                stack.append(current.index)
        elif isinstance(current, ListLiteral):
            stack.extend(current.elements)
        elif isinstance(current, DictLiteral):
            for key, value in current.pairs:
                stack.extend((key, value))
        elif isinstance(current, New):
            stack.extend(current.args)


# ── Parser ───────────────────────────────────────────────────────

BINARY_PRECEDENCE: dict[str, int] = {
    "or": 1,
    "and": 2,
    "==": 4, "!=": 4, "<": 4, ">": 4, "<=": 4, ">=": 4, "in": 4,
    "<<": 5, ">>": 5,
    "+": 6, "-": 6,
    "*": 7, "/": 7, "//": 7, "%": 7,
    "**": 9,
}
RIGHT_ASSOCIATIVE: frozenset[str] = frozenset({"**"})
NOT_PRECEDENCE = 3
UNARY_PRECEDENCE = 8


class ExpressionParser:
    """Parses one expression string into an AST.

    Raises ``SyntaxMismatch`` when the text is not a single well-formed
    expression of the supported subset.
    """

    def __init__(self, source: str, rules: LexicalRules):
        self._source = source
        self._rules = rules
        self._tokens: list[Token] = tokenize(source, rules)
        self._pos = 0

    # ── token helpers ────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> Token:
        idx = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[idx]

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.kind != TokenKind.EOF:
            self._pos += 1
        return tok

    def _at_op(self, *ops: str) -> bool:
        tok = self._peek()
        return tok.kind == TokenKind.OP and tok.value in ops

    def _expect_op(self, op: str) -> Token:
        if not self._at_op(op):
            raise SyntaxMismatch(f"expected {op!r} in {self._source!r}")
        return self._advance()

    def _span(self, start: int) -> str:
        end = self._tokens[self._pos - 1].end if self._pos > 0 else start
        return self._source[start:end]

    # ── entry ────────────────────────────────────────────────────

    def parse(self) -> Expr:
        node = self._parse_conditional()
        if self._peek().kind != TokenKind.EOF:
            raise SyntaxMismatch(
                f"unexpected {self._peek().text!r} in {self._source!r}"
            )
        return node

    def _parse_conditional(self) -> Expr:
        start = self._peek().start
        node = self._parse_binary(0)
        if self._at_op("?"):
            self._advance()
            then = self._parse_conditional()
            self._expect_op(":")
            orelse = self._parse_conditional()
            return Conditional(self._span(start), node, then, orelse)
        if self._peek().kind == TokenKind.NAME and self._peek().value == "if":
            self._advance()
            condition = self._parse_binary(0)
            tok = self._advance()
            if tok.value != "else":
                raise SyntaxMismatch(f"expected 'else' in {self._source!r}")
            orelse = self._parse_conditional()
            return Conditional(self._span(start), condition, node, orelse)
        return node

    def _parse_binary(self, min_prec: int) -> Expr:
        start = self._peek().start
        left = self._parse_unary()
        while True:
            tok = self._peek()
            if tok.kind != TokenKind.OP:
                break
            prec = BINARY_PRECEDENCE.get(tok.value)
            if prec is None or prec <= min_prec:
                break
            self._advance()
            next_min = prec - 1 if tok.value in RIGHT_ASSOCIATIVE else prec
            right = self._parse_binary(next_min)
            left = BinOp(self._span(start), tok.value, left, right)
        return left

    def _parse_unary(self) -> Expr:
        start = self._peek().start
        if self._at_op("not"):
            self._advance()
            operand = self._parse_binary(NOT_PRECEDENCE)
            return UnaryOp(self._span(start), "not", operand)
        if self._at_op("-", "+"):
            op = self._advance().value
            operand = self._parse_binary(UNARY_PRECEDENCE)
            return UnaryOp(self._span(start), op, operand)
        return self._parse_postfix()

    def _parse_postfix(self) -> Expr:
        start = self._peek().start
        node = self._parse_primary()
        while True:
            if self._at_op("("):
                args, keywords = self._parse_call_args()
                node = Call(self._span(start), node, args, keywords)
            elif self._at_op("."):
                self._advance()
                attr = self._advance()
                if attr.kind != TokenKind.NAME:
                    raise SyntaxMismatch(f"expected attribute name in {self._source!r}")
                node = Attribute(self._span(start), node, attr.value)
            elif self._at_op("["):
                self._advance()
                index = self._parse_conditional()
                self._expect_op("]")
                node = Index(self._span(start), node, index)
            else:
                return node

    def _parse_call_args(self) -> tuple[tuple[Expr, ...], tuple[tuple[str, Expr], ...]]:
        self._expect_op("(")
        args: list[Expr] = []
        keywords: list[tuple[str, Expr]] = []
        while not self._at_op(")"):
            tok, nxt = self._peek(), self._peek(1)
            if (
                tok.kind == TokenKind.NAME
                and nxt.kind == TokenKind.OP
                and nxt.value == "="
            ):
                self._advance()
                self._advance()
                keywords.append((tok.value, self._parse_conditional()))
            else:
                args.append(self._parse_conditional())
            if not self._at_op(")"):
                self._expect_op(",")
        self._expect_op(")")
        return tuple(args), tuple(keywords)

    def _parse_sequence(self, close: str) -> tuple[Expr, ...]:
        elements: list[Expr] = []
        while not self._at_op(close):
            elements.append(self._parse_conditional())
            if not self._at_op(close):
                self._expect_op(",")
        self._expect_op(close)
        return tuple(elements)

    def _parse_primary(self) -> Expr:
        tok = self._peek()
        start = tok.start
        rules = self._rules

        if tok.kind == TokenKind.NUMBER:
            self._advance()
            return Literal(tok.text, tok.value)
        if tok.kind == TokenKind.STRING:
            self._advance()
            return Literal(tok.text, tok.value)
        if tok.kind == TokenKind.FSTRING:
            self._advance()
            return FString(tok.text, self._split_fstring(tok.value))

        if tok.kind == TokenKind.NAME:
            self._advance()
            word = tok.value
            if word == rules.true_literal:
                return Literal(tok.text, True)
            if word == rules.false_literal:
                return Literal(tok.text, False)
            if word in rules.null_literals:
                return Literal(tok.text, None)
            if word == "new" and self._peek().kind == TokenKind.NAME:
                return self._parse_new(start)
            qualified = word
            while self._at_op("::") and self._peek(1).kind == TokenKind.NAME:
                self._advance()
                qualified += "::" + self._advance().value
            return Name(self._span(start), qualified)

        if self._at_op("("):
            self._advance()
            node = self._parse_conditional()
            self._expect_op(")")
            return node
        if self._at_op("["):
            self._advance()
            return ListLiteral(self._span(start), self._parse_sequence("]"), "[")
        if self._at_op("{"):
            return self._parse_brace(start)

        raise SyntaxMismatch(f"unexpected {tok.text or 'end of line'!r} in {self._source!r}")

    def _parse_brace(self, start: int) -> Expr:
        self._expect_op("{")
        if self._at_op("}"):
            self._advance()
            return ListLiteral(self._span(start), (), "{")
        first = self._parse_conditional()
        if self._at_op(":"):
            self._advance()
            pairs = [(first, self._parse_conditional())]
            while self._at_op(","):
                self._advance()
                if self._at_op("}"):
                    break
                key = self._parse_conditional()
                self._expect_op(":")
                pairs.append((key, self._parse_conditional()))
            self._expect_op("}")
            return DictLiteral(self._span(start), tuple(pairs))
        elements = [first]
        if not self._at_op("}"):
            self._expect_op(",")
            elements.extend(self._parse_sequence("}"))
        else:
            self._advance()
        return ListLiteral(self._span(start), tuple(elements), "{")

    def _parse_new(self, start: int) -> Expr:
        type_name = self._advance().value
        while self._at_op(".") and self._peek(1).kind == TokenKind.NAME:
            self._advance()
            type_name += "." + self._advance().value
        if self._at_op("<"):
            depth = 0
            while self._peek().kind != TokenKind.EOF:
                tok = self._advance()
                if tok.value == "<":
                    depth += 1
                elif tok.value in (">", ">>"):
                    depth -= len(tok.value)
                    if depth <= 0:
                        break
        if self._at_op("["):
            args: list[Expr] = []
            while self._at_op("["):
                self._advance()
                if not self._at_op("]"):
                    args.append(self._parse_conditional())
                self._expect_op("]")
            initializer = None
            if self._at_op("{"):
                brace_start = self._peek().start
                node = self._parse_brace(brace_start)
                if not isinstance(node, ListLiteral):
                    raise SyntaxMismatch(f"bad array initializer in {self._source!r}")
                initializer = node
            return New(self._span(start), type_name, tuple(args), initializer, True)
        args_tuple, _ = self._parse_call_args()
        return New(self._span(start), type_name, args_tuple)

    def _split_fstring(self, body: str) -> tuple[Union[str, Placeholder], ...]:
        parts: list[Union[str, Placeholder]] = []
        literal: list[str] = []
        i = 0
        while i < len(body):
            ch = body[i]
            if ch in "{}" and body[i : i + 2] in ("{{", "}}"):
                literal.append(ch)
                i += 2
                continue
            if ch != "{":
                literal.append(ch)
                i += 1
                continue
            close = _matching_brace(body, i)
            if close < 0:
                raise SyntaxMismatch(f"unterminated placeholder in {body!r}")
            if literal:
                parts.append(decode_escapes("".join(literal)))
                literal = []
            parts.append(self._placeholder(body[i + 1 : close]))
            i = close + 1
        if literal:
            parts.append(decode_escapes("".join(literal)))
        return tuple(parts)

    def _placeholder(self, content: str) -> Placeholder:
        expr_text, spec = _split_format_spec(content)
        expr_text = expr_text.strip()
        conversion = ""
        if expr_text.endswith(("!r", "!s", "!a")):
            conversion = expr_text[-1]
            expr_text = expr_text[:-2].rstrip()
        try:
            expr = parse_expression(expr_text, self._rules)
        except SyntaxMismatch:
            expr = None
        return Placeholder(expr_text, expr, spec, conversion)


def _matching_brace(body: str, open_idx: int) -> int:
    depth = 0
    quote = ""
    for i in range(open_idx, len(body)):
        ch = body[i]
        if quote:
            if ch == quote:
                quote = ""
            continue
        if ch in "\"'":
            quote = ch
        elif ch in "{[(":
            depth += 1
        elif ch in "}])":
            depth -= 1
            if depth == 0:
                return i if ch == "}" else -1
    return -1


def _split_format_spec(content: str) -> tuple[str, str]:
    depth = 0
    quote = ""
    for i, ch in enumerate(content):
        if quote:
            if ch == quote:
                quote = ""
            continue
        if ch in "\"'":
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == ":" and depth == 0:
            return content[:i], content[i + 1 :]
    return content, ""


def parse_expression(text: str, rules: LexicalRules) -> Expr:
    return ExpressionParser(text, rules).parse()
