"""Step-by-step execution tracer for Python, Java and C++ teaching snippets."""

from .tracer import split_input, trace, trace_request, trace_with_stats  # noqa: F401
from .run_types import TraceRequest, TracerConfig, TraceStats  # noqa: F401
from .trace_types import Step  # noqa: F401
from .errors import (  # noqa: F401
    CallDepthExceeded,
    StepLimitExceeded,
    TraceError,
    UnsupportedLanguageError,
)
