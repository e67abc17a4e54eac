"""Helpers for inspecting captured event streams."""

from io import StringIO

from workspace_testing.events import parse_event
from workspace_testing.models.events import RunnerEvent


def read_events(stream: StringIO) -> list[RunnerEvent]:
    """Parse every line written to ``stream`` so far."""
    return [parse_event(line) for line in stream.getvalue().splitlines() if line]
