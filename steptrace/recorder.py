"""Step recorder — snapshots the execution state into immutable Steps."""

from __future__ import annotations

import copy
import logging

from . import constants
from .errors import StepLimitExceeded
from .state import ExecutionState
from .trace_types import Step

logger = logging.getLogger(__name__)


class StepRecorder:
    def __init__(
        self,
        state: ExecutionState,
        max_steps: int = constants.DEFAULT_MAX_STEPS,
        verbose: bool = False,
    ):
        self._state = state
        self._max_steps = max_steps
        self._verbose = verbose
        self.steps: list[Step] = []

    def record(self, line: int, description: str) -> Step:
        """Append a deep-copied snapshot of the current state."""
        if len(self.steps) >= self._max_steps:
            raise StepLimitExceeded(self._max_steps)
        return self._append(line, description, error_flag=False)

    def record_error(self, message: str) -> Step:
        """Append the terminal error marker; exempt from the step ceiling."""
        return self._append(constants.ERROR_LINE, f"Error: {message}", error_flag=True)

    def _append(self, line: int, description: str, error_flag: bool) -> Step:
        state = self._state
        step = Step(
            index=len(self.steps),
            source_line=line,
            stack_frames=copy.deepcopy(state.call_stack),
            heap_objects=copy.deepcopy(list(state.heap.values())),
            variables=copy.deepcopy(state.variables),
            output=list(state.output),
            description=description,
            error_flag=error_flag,
        )
        self.steps.append(step)
        if self._verbose:
            print(f"[step {step.index}] line {line}: {description}")
        logger.debug("Step %d (line %d): %s", step.index, line, description)
        return step
