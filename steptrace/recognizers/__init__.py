"""Statement recognizers for all supported languages."""

from __future__ import annotations

from .. import constants
from ..errors import UnsupportedLanguageError
from ..recorder import StepRecorder
from ..run_types import TracerConfig
from ..state import ExecutionState
from ._base import BaseRecognizer, Statement, StatementKind
from .python import PythonRecognizer

# Lazy imports to avoid loading every recognizer at startup
_RECOGNIZER_CLASSES: dict[str, str] = {
    constants.LANG_PYTHON: "python.PythonRecognizer",
    constants.LANG_JAVA: "java.JavaRecognizer",
    constants.LANG_CPP: "cpp.CppRecognizer",
}


def get_recognizer(
    language: str,
    state: ExecutionState,
    recorder: StepRecorder,
    config: TracerConfig = TracerConfig(),
) -> BaseRecognizer:
    """Instantiate the recognizer for *language* bound to one run's state.

    Raises ``UnsupportedLanguageError`` if *language* has no recognizer.
    """
    spec = _RECOGNIZER_CLASSES.get(language)
    if spec is None:
        raise UnsupportedLanguageError(language)
    module_name, class_name = spec.split(".")
    import importlib

    mod = importlib.import_module(f".{module_name}", package=__package__)
    cls = getattr(mod, class_name)
    return cls(state, recorder, config)


__all__ = [
    "BaseRecognizer",
    "PythonRecognizer",
    "Statement",
    "StatementKind",
    "get_recognizer",
]
