"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

LANG_PYTHON = "python"
LANG_JAVA = "java"
LANG_CPP = "cpp"

SUPPORTED_LANGUAGES: tuple[str, ...] = (LANG_PYTHON, LANG_JAVA, LANG_CPP)

LANGUAGE_ALIASES: dict[str, str] = {
    "py": LANG_PYTHON,
    "python3": LANG_PYTHON,
    "c++": LANG_CPP,
    "cxx": LANG_CPP,
}

# tree-sitter-language-pack grammar names
TREE_SITTER_GRAMMARS: dict[str, str] = {
    LANG_PYTHON: "python",
    LANG_JAVA: "java",
    LANG_CPP: "cpp",
}

HEAP_REF_PREFIX = "@"
ERROR_LINE = -1

HEAP_KIND_LIST = "list"
HEAP_KIND_DICT = "dict"
HEAP_KIND_ARRAY = "array"
HEAP_KIND_VECTOR = "vector"
HEAP_KIND_OBJECT = "object"

MAIN_FRAME_NAME = "main"

DEFAULT_MAX_STEPS = 2000
DEFAULT_MAX_CALL_DEPTH = 200

TAB_WIDTH = 4

# Ceilings on operator results; anything larger is left unresolved.
MAX_RESULT_BITS = 65536
MAX_SEQUENCE_LENGTH = 100_000
