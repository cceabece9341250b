"""Exception hierarchy for trace runs."""

from __future__ import annotations


class TraceError(Exception):
    """Base class for failures raised while tracing a snippet."""


class TraceLimitError(TraceError):
    """A configured resource ceiling was hit."""


class StepLimitExceeded(TraceLimitError):
    def __init__(self, limit: int):
        super().__init__(f"Trace exceeded {limit} steps")
        self.limit = limit


class CallDepthExceeded(TraceLimitError):
    def __init__(self, function_name: str, limit: int):
        super().__init__(
            f"Call depth of {function_name} exceeded {limit} frames"
        )
        self.function_name = function_name
        self.limit = limit


class UnsupportedLanguageError(TraceError, ValueError):
    def __init__(self, language: str):
        super().__init__(f"Unsupported language: {language}")
        self.language = language


class SyntaxMismatch(TraceError):
    """A line or expression falls outside the recognized teaching subset."""
