"""Models for the line-delimited runner event stream."""

from collections.abc import Sequence
from typing import Annotated, Literal, TypeAlias

from pydantic import Field, TypeAdapter

from workspace_testing.models.base import Model
from workspace_testing.models.manifest import TestManifest, TestRuntime
from workspace_testing.models.result import RunnerSummary, TestRunResult

LogLevel: TypeAlias = Literal["info", "warn", "error"]


class StartEvent(Model):
    """Emitted once per run, after discovery."""

    type: Literal["start"] = "start"
    run_id: str
    manifest: TestManifest


class ResultEvent(Model):
    """Emitted for every test result as soon as it is produced."""

    type: Literal["result"] = "result"
    run_id: str
    runtime: TestRuntime
    module_id: str
    result: TestRunResult


class SummaryEvent(Model):
    """Emitted per runtime group and once for the whole run."""

    type: Literal["summary"] = "summary"
    run_id: str
    runtime: TestRuntime | Literal["all"]
    summary: RunnerSummary


class LogEvent(Model):
    """Informational message about the run itself."""

    type: Literal["log"] = "log"
    run_id: str
    level: LogLevel
    message: str


class ErrorEvent(Model):
    """An exception that escaped the orchestration layer."""

    type: Literal["error"] = "error"
    run_id: str
    message: str
    stack: str | None = None


class WatchIterationEvent(Model):
    """Marks the start and completion of one watch iteration."""

    type: Literal["watch-iteration"] = "watch-iteration"
    run_id: str
    iteration: int
    phase: Literal["start", "complete"]
    changed_files: Sequence[str] = Field(default_factory=tuple)
    summary: RunnerSummary | None = None


RunnerEvent = Annotated[
    StartEvent
    | ResultEvent
    | SummaryEvent
    | LogEvent
    | ErrorEvent
    | WatchIterationEvent,
    Field(discriminator="type"),
]

runner_event_adapter: TypeAdapter[RunnerEvent] = TypeAdapter(RunnerEvent)
