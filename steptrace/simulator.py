"""Recursive call simulator — runs user functions on an explicit activation stack.

A simulatable function body is a chain of guarded returns followed by a final
return (see ``registry.ReturnClause``). The return expression chosen for an
activation is compiled into postfix code; user-function calls inside it push a
new activation instead of recursing on the host stack, so both singly and
doubly recursive shapes (factorial, fibonacci) unwind depth-first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .errors import CallDepthExceeded, SyntaxMismatch
from .expressions import (
    BinOp,
    Call,
    Conditional,
    Expr,
    Literal,
    Name,
    UnaryOp,
    callee_name,
    iter_calls,
)
from .recorder import StepRecorder
from .registry import FunctionDefinition, ReturnClause
from .state import ExecutionState
from .state_types import HeapRef, Variable

if TYPE_CHECKING:
    from .evaluator import Evaluator

logger = logging.getLogger(__name__)


class OpKind(str, Enum):
    EVAL = "EVAL"  # evaluate a call-free sub-expression
    BINOP = "BINOP"
    UNOP = "UNOP"
    CALL = "CALL"  # user function: pushes an activation
    CALL_EXTERNAL = "CALL_EXTERNAL"  # builtin / unknown call with computed args
    JUMP_IF_FALSE = "JUMP_IF_FALSE"
    SHORT_CIRCUIT = "SHORT_CIRCUIT"  # and/or: keep the left operand and jump when it decides
    JUMP = "JUMP"


@dataclass(frozen=True)
class Op:
    kind: OpKind
    node: Any = None
    argc: int = 0
    target: int = 0


@dataclass
class Activation:
    definition: FunctionDefinition
    args: list[Any]
    code: list[Op]
    line: int
    pc: int = 0
    operands: list[Any] = field(default_factory=list)


class CallSimulator:
    def __init__(
        self,
        state: ExecutionState,
        recorder: StepRecorder,
        evaluator: "Evaluator",
        max_call_depth: int,
    ):
        self._state = state
        self._recorder = recorder
        self._evaluator = evaluator
        self._max_call_depth = max_call_depth
        self._code_cache: dict[tuple[str, int, str], list[Op]] = {}

    # ── public ───────────────────────────────────────────────────

    def can_simulate(self, definition: FunctionDefinition) -> bool:
        if not definition.simulatable:
            return False
        try:
            for clause in definition.clauses or ():
                if clause.condition is not None and self._has_user_call(clause.condition):
                    raise SyntaxMismatch(f"call inside guard of {definition.name}")
                self._code_for(definition, clause.expr)
        except SyntaxMismatch as exc:
            logger.debug("%s is not simulatable: %s", definition.name, exc)
            return False
        return True

    def call(self, definition: FunctionDefinition, args: list[Any]) -> Any:
        """Simulate ``definition(*args)`` and return its value."""
        activations: list[Activation] = []
        value, entered = self._enter(definition, args, activations)
        if not entered:
            return value

        while activations:
            act = activations[-1]
            if act.pc >= len(act.code):
                result = act.operands.pop() if act.operands else None
                self._leave(act, result)
                activations.pop()
                if not activations:
                    return result
                activations[-1].operands.append(result)
                continue

            op = act.code[act.pc]
            act.pc += 1
            self._step(op, act, activations)
        return None

    # ── activation lifecycle ─────────────────────────────────────

    def _enter(
        self,
        definition: FunctionDefinition,
        args: list[Any],
        activations: list[Activation],
    ) -> tuple[Any, bool]:
        """Push a frame for the call; returns (value, pushed_activation)."""
        if len(activations) >= self._max_call_depth:
            raise CallDepthExceeded(definition.name, self._max_call_depth)

        self._state.push_frame(definition.name, definition.line, self._bind(definition, args))
        label = self._label(definition, args)

        clause = self._select_clause(definition)
        expr = self._resolve_conditional(clause.expr)
        if not self._has_user_call(expr):
            value = self._evaluator.evaluate(expr)
            self._recorder.record(
                clause.line, f"{label}: base case, return {self._evaluator.display(value)}"
            )
            self._state.pop_frame()
            return value, False

        self._recorder.record(
            clause.line, f"{label}: recursive case, calculate {self._render(expr)}"
        )
        activations.append(
            Activation(
                definition=definition,
                args=args,
                code=self._code_for(definition, expr),
                line=clause.line,
            )
        )
        return None, True

    def _leave(self, act: Activation, result: Any) -> None:
        label = self._label(act.definition, act.args)
        self._recorder.record(act.line, f"{label}: return {self._evaluator.display(result)}")
        self._state.pop_frame()

    def _step(self, op: Op, act: Activation, activations: list[Activation]) -> None:
        evaluator = self._evaluator
        if op.kind == OpKind.EVAL:
            act.operands.append(evaluator.evaluate(op.node))
        elif op.kind == OpKind.BINOP:
            right = act.operands.pop()
            left = act.operands.pop()
            act.operands.append(evaluator.apply_binop(op.node, left, right))
        elif op.kind == OpKind.UNOP:
            act.operands.append(evaluator.apply_unop(op.node, act.operands.pop()))
        elif op.kind in (OpKind.CALL, OpKind.CALL_EXTERNAL):
            args = self._pop_args(act, op.argc)
            if op.kind == OpKind.CALL_EXTERNAL:
                act.operands.append(evaluator.apply_call(op.node, args))
                return
            definition = self._state.registry.get(callee_name(op.node.func))
            value, entered = self._enter(definition, args, activations)
            if not entered:
                act.operands.append(value)
        elif op.kind == OpKind.JUMP_IF_FALSE:
            if not evaluator.is_truthy(act.operands.pop()):
                act.pc = op.target
        elif op.kind == OpKind.SHORT_CIRCUIT:
            if evaluator.short_circuits(op.node.op, act.operands[-1]):
                act.pc = op.target
        elif op.kind == OpKind.JUMP:
            act.pc = op.target

    @staticmethod
    def _pop_args(act: Activation, argc: int) -> list[Any]:
        if argc == 0:
            return []
        args = act.operands[-argc:]
        del act.operands[-argc:]
        return args

    # ── helpers ──────────────────────────────────────────────────

    def _bind(self, definition: FunctionDefinition, args: list[Any]) -> dict[str, Variable]:
        formatter = self._evaluator.formatter
        bound: dict[str, Variable] = {}
        for idx, param in enumerate(definition.params):
            value = args[idx] if idx < len(args) else None
            heap_ref = value.heap_id if isinstance(value, HeapRef) else None
            bound[param] = Variable(
                name=param,
                value=str(value) if heap_ref is not None else value,
                type=formatter.type_name(value),
                heap_ref=heap_ref,
            )
        return bound

    def _label(self, definition: FunctionDefinition, args: list[Any]) -> str:
        shown = ", ".join(self._evaluator.display(a) for a in args)
        return f"{definition.name}({shown})"

    def _select_clause(self, definition: FunctionDefinition) -> ReturnClause:
        clauses = definition.clauses or ()
        for clause in clauses:
            if clause.condition is None:
                return clause
            if self._evaluator.is_truthy(self._evaluator.evaluate(clause.condition)):
                return clause
        return clauses[-1]

    def _resolve_conditional(self, node: Expr) -> Expr:
        """Pick the taken branch of call-free ternary guards ahead of time."""
        while isinstance(node, Conditional) and not self._has_user_call(node.condition):
            condition = self._evaluator.evaluate(node.condition)
            node = node.then if self._evaluator.is_truthy(condition) else node.orelse
        return node

    def _is_simulated(self, name: str) -> bool:
        definition = self._state.registry.get(name)
        return definition is not None and definition.simulatable

    def _has_user_call(self, node: Expr) -> bool:
        return any(self._is_simulated(callee_name(c.func)) for c in iter_calls(node))

    def _render(self, node: Expr) -> str:
        """Show the pending computation with parameters and arguments substituted.

        Only call-free parts are evaluated; calls are spelled out so that
        rendering never reads input or records a call a second time.
        """
        if not any(iter_calls(node)):
            if isinstance(node, Literal):
                return node.text
            value = self._evaluator.evaluate(node)
            return self._evaluator.display(value)
        if isinstance(node, BinOp):
            return f"{self._render(node.left)} {node.op} {self._render(node.right)}"
        if isinstance(node, UnaryOp):
            sep = " " if node.op == "not" else ""
            return f"{node.op}{sep}{self._render(node.operand)}"
        if isinstance(node, Call):
            args = ", ".join(self._render(a) for a in node.args)
            return f"{callee_name(node.func) or node.func.text}({args})"
        return node.text

    def _code_for(self, definition: FunctionDefinition, expr: Expr) -> list[Op]:
        key = (definition.name, definition.line, expr.text)
        if key not in self._code_cache:
            code: list[Op] = []
            self._compile(expr, code)
            self._code_cache[key] = code
        return self._code_cache[key]

    def _compile(self, node: Expr, code: list[Op]) -> None:
        if not self._has_user_call(node):
            code.append(Op(OpKind.EVAL, node=node))
            return
        if isinstance(node, BinOp) and node.op in ("and", "or"):
            self._compile(node.left, code)
            branch = len(code)
            code.append(Op(OpKind.SHORT_CIRCUIT))
            self._compile(node.right, code)
            code.append(Op(OpKind.BINOP, node=node))
            code[branch] = Op(OpKind.SHORT_CIRCUIT, node=node, target=len(code))
        elif isinstance(node, BinOp):
            self._compile(node.left, code)
            self._compile(node.right, code)
            code.append(Op(OpKind.BINOP, node=node))
        elif isinstance(node, UnaryOp):
            self._compile(node.operand, code)
            code.append(Op(OpKind.UNOP, node=node))
        elif isinstance(node, Call):
            if node.keywords:
                raise SyntaxMismatch(f"keyword arguments in {node.text!r}")
            for arg in node.args:
                self._compile(arg, code)
            user = self._is_simulated(callee_name(node.func))
            kind = OpKind.CALL if user else OpKind.CALL_EXTERNAL
            code.append(Op(kind, node=node, argc=len(node.args)))
        elif isinstance(node, Conditional):
            self._compile(node.condition, code)
            branch = len(code)
            code.append(Op(OpKind.JUMP_IF_FALSE))
            self._compile(node.then, code)
            jump = len(code)
            code.append(Op(OpKind.JUMP))
            code[branch] = Op(OpKind.JUMP_IF_FALSE, target=len(code))
            self._compile(node.orelse, code)
            code[jump] = Op(OpKind.JUMP, target=len(code))
        elif isinstance(node, Name):
            code.append(Op(OpKind.EVAL, node=node))
        else:
            raise SyntaxMismatch(f"unsupported call site in {node.text!r}")
