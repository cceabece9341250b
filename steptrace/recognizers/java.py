"""JavaRecognizer — ``public static void main`` programs of the Java teaching subset."""

from __future__ import annotations

import logging
import re

from .. import constants
from ..expressions import Call, callee_name
from ..normalizer import SourceLine
from ._base import Statement, StatementKind
from ._brace import BraceRecognizer

logger = logging.getLogger(__name__)

_PRINT_CALLS = frozenset({"System.out.println", "System.out.print"})


def _next_token(line: str) -> str:
    parts = line.split()
    return parts[0] if parts else ""


def _next_int(line: str) -> int | str:
    try:
        return int(line.strip())
    except ValueError:
        logger.debug("nextInt on non-integer input %r", line)
        return line


def _next_double(line: str) -> float | str:
    try:
        return float(line.strip())
    except ValueError:
        logger.debug("nextDouble on non-numeric input %r", line)
        return line


def _next_boolean(line: str) -> bool:
    return line.strip().lower() == "true"


class JavaRecognizer(BraceRecognizer):
    LANGUAGE = constants.LANG_JAVA
    PRINT_LABEL = "Print"
    ENTRY_RE = re.compile(r"\bstatic\s+void\s+main\s*\(")
    ENTER_DESCRIPTION = "Enter main method"
    EXIT_DESCRIPTION = "Exit main method"
    EXIT_CALLS = frozenset({"System.exit"})
    INPUT_METHODS = {
        "nextLine": str,
        "readLine": str,
        "next": _next_token,
        "nextInt": _next_int,
        "nextDouble": _next_double,
        "nextBoolean": _next_boolean,
    }
    CONTAINER_KINDS = {
        "List": constants.HEAP_KIND_LIST,
        "ArrayList": constants.HEAP_KIND_LIST,
        "LinkedList": constants.HEAP_KIND_LIST,
        "Map": constants.HEAP_KIND_DICT,
        "HashMap": constants.HEAP_KIND_DICT,
        "TreeMap": constants.HEAP_KIND_DICT,
    }

    def _match_print(self, lines: list[SourceLine], idx: int) -> Statement | None:
        line = lines[idx]
        if not line.text.startswith("System.out."):
            return None
        node = self.evaluator.parse(self._statement_text(line.text))
        if not isinstance(node, Call) or callee_name(node.func) not in _PRINT_CALLS:
            return None
        return Statement(StatementKind.PRINT, line, args=node.args, separator="")
