"""Writing and reading of the runner event stream."""

import json
import sys
import uuid
from dataclasses import dataclass, field
from typing import TextIO

from workspace_testing.models.events import LogLevel, RunnerEvent, runner_event_adapter

MODULE_EVENT_PREFIX = "WORKSPACE_TEST_MODULE_EVENT "


def create_run_id() -> str:
    """Return a short identifier correlating the events of one run."""
    return uuid.uuid4().hex[:12]


def parse_event(line: str) -> RunnerEvent:
    """Validate one line of the event stream back into an event model."""
    return runner_event_adapter.validate_json(line)


@dataclass(frozen=True, kw_only=True)
class EventEmitter:
    """Serialises runner events as one JSON object per line."""

    stream: TextIO = field(default_factory=lambda: sys.stdout)

    def emit(self, event: RunnerEvent) -> None:
        """Write a single event and flush so consumers see it immediately."""
        self.stream.write(event.model_dump_json(by_alias=True, exclude_none=True))
        self.stream.write("\n")
        self.stream.flush()


def emit_module_event(
    level: LogLevel, message: str, stream: TextIO | None = None
) -> None:
    """Write a harness notice under its own prefix, apart from runner events."""
    target = stream if stream is not None else sys.stdout
    payload = json.dumps({"type": level, "message": message})
    target.write(f"{MODULE_EVENT_PREFIX}{payload}\n")
    target.flush()
