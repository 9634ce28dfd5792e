"""Sequential step execution."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable

from .errors import ResourceMissing, ToolFailure, UserDeclined, tail
from .reporting import Reporter

_logging = logging.getLogger(__name__)


class StepStatus(Enum):
    SUCCESS = "success"
    ALREADY_PRESENT = "already_present"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StepOutcome:
    status: StepStatus
    reason: str | None = None

    @classmethod
    def success(cls, reason: str | None = None) -> "StepOutcome":
        return cls(StepStatus.SUCCESS, reason)

    @classmethod
    def already_present(cls, reason: str | None = None) -> "StepOutcome":
        return cls(StepStatus.ALREADY_PRESENT, reason)

    @classmethod
    def skipped(cls, reason: str = "user declined") -> "StepOutcome":
        return cls(StepStatus.SKIPPED, reason)

    @classmethod
    def failed(cls, reason: str) -> "StepOutcome":
        return cls(StepStatus.FAILED, reason)

    @property
    def is_failure(self) -> bool:
        return self.status == StepStatus.FAILED


@dataclass
class Step:
    name: str
    action: Callable[[], Awaitable[StepOutcome]]
    fatal_on_failure: bool = False


class RunState(Enum):
    NOT_STARTED = "not_started"
    PROMPTING = "prompting"
    EXECUTING = "executing"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class RunResult:
    state: RunState
    outcomes: list[tuple[str, StepOutcome]] = field(default_factory=list)
    failed_step: str | None = None
    reason: str | None = None

    @property
    def completed(self) -> bool:
        return self.state == RunState.COMPLETED

    @property
    def exit_code(self) -> int:
        return 0 if self.completed else 1

    @property
    def warnings(self) -> list[str]:
        return [name for name, outcome in self.outcomes if outcome.is_failure]


class StepRunner:
    """Runs steps in order, stopping at the first failing fatal step.

    A runner is single use: it moves NOT_STARTED -> PROMPTING ->
    EXECUTING -> COMPLETED or ABORTED and never goes back.
    """

    def __init__(self, reporter: Reporter):
        self.reporter = reporter
        self.state = RunState.NOT_STARTED
        self.step_index: int | None = None

    def begin_prompting(self) -> None:
        if self.state != RunState.NOT_STARTED:
            raise RuntimeError(f"Runner cannot prompt from state {self.state.value}")
        self.state = RunState.PROMPTING

    def abort(self, step_name: str, reason: str) -> RunResult:
        """Stop before any step runs, e.g. when the summary is declined."""
        if self.state not in (RunState.NOT_STARTED, RunState.PROMPTING):
            raise RuntimeError(f"Runner cannot abort from state {self.state.value}")
        self.state = RunState.ABORTED
        return RunResult(RunState.ABORTED, failed_step=step_name, reason=reason)

    async def _execute(self, step: Step) -> StepOutcome:
        try:
            return await step.action()
        except ToolFailure as e:
            if e.output:
                self.reporter.detail(tail(e.output))
            return StepOutcome.failed(str(e))
        except ResourceMissing as e:
            return StepOutcome.failed(str(e))
        except UserDeclined as e:
            return StepOutcome.skipped(str(e))

    async def run(self, steps: list[Step]) -> RunResult:
        if self.state not in (RunState.NOT_STARTED, RunState.PROMPTING):
            raise RuntimeError(f"Runner already used (state {self.state.value})")

        result = RunResult(RunState.EXECUTING)
        total = len(steps)

        for index, step in enumerate(steps):
            self.state = RunState.EXECUTING
            self.step_index = index
            self.reporter.step(index + 1, total, step.name)

            outcome = await self._execute(step)
            result.outcomes.append((step.name, outcome))
            _logging.debug(f"{step.name}: {outcome.status.value} {outcome.reason or ''}")

            if not outcome.is_failure:
                continue

            if step.fatal_on_failure:
                self.reporter.error(f"{step.name} failed: {outcome.reason}")
                self.state = RunState.ABORTED
                result.state = RunState.ABORTED
                result.failed_step = step.name
                result.reason = outcome.reason
                return result

            self.reporter.warn(f"{step.name} failed: {outcome.reason}. Continuing.")

        self.state = RunState.COMPLETED
        result.state = RunState.COMPLETED
        return result


__all__ = [
    "StepStatus",
    "StepOutcome",
    "Step",
    "RunState",
    "RunResult",
    "StepRunner",
]
