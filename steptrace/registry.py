"""Function registry — user function definitions recognized during one run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .expressions import Expr

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReturnClause:
    """``if condition: return expr`` — or the final ``return expr`` when
    ``condition`` is None."""

    condition: Expr | None
    expr: Expr
    line: int


@dataclass(frozen=True)
class FunctionDefinition:
    name: str
    params: tuple[str, ...]
    line: int
    body_lines: tuple[int, ...] = ()
    clauses: tuple[ReturnClause, ...] | None = None  # None: body not simulatable

    @property
    def simulatable(self) -> bool:
        return bool(self.clauses) and self.clauses[-1].condition is None


@dataclass
class FunctionRegistry:
    """Per-run table of user functions keyed by name."""

    functions: dict[str, FunctionDefinition] = field(default_factory=dict)

    def define(self, definition: FunctionDefinition) -> None:
        if definition.name in self.functions:
            logger.debug("Redefining function %s", definition.name)
        self.functions[definition.name] = definition

    def get(self, name: str) -> FunctionDefinition | None:
        return self.functions.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self.functions

    def __len__(self) -> int:
        return len(self.functions)
