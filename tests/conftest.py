"""Shared fixtures."""

from collections.abc import Generator
from io import StringIO

import pytest
from aioresponses import aioresponses as aioresponses_cls

from workspace_testing.events import EventEmitter


@pytest.fixture
def event_stream() -> StringIO:
    """In-memory stream receiving emitted events."""
    return StringIO()


@pytest.fixture
def emitter(event_stream: StringIO) -> EventEmitter:
    """Emitter writing to the in-memory stream."""
    return EventEmitter(stream=event_stream)


@pytest.fixture
def aioresponses() -> Generator[aioresponses_cls, None, None]:
    """Intercept aiohttp requests."""
    with aioresponses_cls() as mocked:
        yield mocked
