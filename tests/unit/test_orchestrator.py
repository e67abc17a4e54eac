"""Tests for the test orchestrator."""

from io import StringIO
from pathlib import Path

import pytest

from workspace_testing.events import EventEmitter
from workspace_testing.models.events import (
    LogEvent,
    ResultEvent,
    StartEvent,
    SummaryEvent,
)
from workspace_testing.orchestrator import (
    NO_TESTS_MESSAGE,
    TestOrchestrator,
    group_modules_by_runtime,
)
from workspace_testing.providers.registry import ProviderRegistry
from workspace_testing.providers.sandbox import SandboxProvider
from workspace_testing.runtime_filter import RuntimeFilter
from workspace_testing.testing.events import read_events
from workspace_testing.testing.factories import TestModuleFactory
from workspace_testing.testing.workspace import write_test_file

PASSING = 'test("passes", lambda: None)'
FAILING = """
test("passes", lambda: None)

@test("fails")
def _():
    expect.fail("boom")
"""


@pytest.fixture
def sandbox_registry() -> ProviderRegistry:
    provider = SandboxProvider()
    return ProviderRegistry({"frontend": provider, "backend": provider})


def make_orchestrator(
    workspace: Path,
    registry: ProviderRegistry,
    emitter: EventEmitter,
    runtime: RuntimeFilter = None,
) -> TestOrchestrator:
    return TestOrchestrator(
        workspace_root=workspace, registry=registry, emitter=emitter, runtime=runtime
    )


async def test_empty_workspace(
    tmp_path: Path,
    sandbox_registry: ProviderRegistry,
    emitter: EventEmitter,
    event_stream: StringIO,
) -> None:
    """No tests: start, a log, and an all-zero summary."""
    summary = await make_orchestrator(tmp_path, sandbox_registry, emitter).run_pipeline(
        "run-1"
    )

    assert summary.total == 0
    start, message, final = read_events(event_stream)
    assert isinstance(start, StartEvent)
    assert not start.manifest.modules
    assert isinstance(message, LogEvent)
    assert message.message == NO_TESTS_MESSAGE
    assert isinstance(final, SummaryEvent)
    assert final.runtime == "all"
    summary = final.summary
    assert (summary.passed, summary.failed, summary.total) == (0, 0, 0)


async def test_runs_groups_and_reports_results(
    tmp_path: Path,
    sandbox_registry: ProviderRegistry,
    emitter: EventEmitter,
    event_stream: StringIO,
) -> None:
    """Each runtime group reports results and its own summary."""
    write_test_file(tmp_path, "app/tests/ok.test.py", PASSING)
    write_test_file(tmp_path, "backend/tests/mixed.test.py", FAILING)

    summary = await make_orchestrator(tmp_path, sandbox_registry, emitter).run_pipeline(
        "run-2"
    )

    assert (summary.passed, summary.failed, summary.total) == (2, 1, 3)
    events = read_events(event_stream)
    assert all(event.run_id == "run-2" for event in events)
    assert [event.type for event in events] == [
        "start",
        "result",
        "summary",
        "result",
        "result",
        "summary",
        "summary",
    ]

    results = [event for event in events if isinstance(event, ResultEvent)]
    assert [(event.runtime, event.module_id) for event in results] == [
        ("frontend", "app/tests/ok.test.py"),
        ("backend", "backend/tests/mixed.test.py"),
        ("backend", "backend/tests/mixed.test.py"),
    ]
    summaries = [event for event in events if isinstance(event, SummaryEvent)]
    assert [event.runtime for event in summaries] == ["frontend", "backend", "all"]
    assert summaries[-1].summary.total == 3


async def test_runtime_filter_is_logged(
    tmp_path: Path,
    sandbox_registry: ProviderRegistry,
    emitter: EventEmitter,
    event_stream: StringIO,
) -> None:
    """The filtered manifest is announced and described."""
    write_test_file(tmp_path, "app/tests/ok.test.py", PASSING)
    write_test_file(tmp_path, "backend/tests/ok.test.py", PASSING)

    summary = await make_orchestrator(
        tmp_path, sandbox_registry, emitter, runtime="backend"
    ).run_pipeline("run-3")

    assert summary.total == 1
    events = read_events(event_stream)
    assert isinstance(events[0], StartEvent)
    assert [module.id for module in events[0].manifest.modules] == [
        "backend/tests/ok.test.py"
    ]
    assert isinstance(events[1], LogEvent)
    assert events[1].message == "Runtime filter 'backend' matched 1 test (1 skipped)."


async def test_missing_build_directory_skips_modules(
    tmp_path: Path,
    sandbox_registry: ProviderRegistry,
    emitter: EventEmitter,
    event_stream: StringIO,
) -> None:
    """Modules without build output are skipped with a warning."""
    source = tmp_path / "src" / "app" / "tests" / "ok.test.py"
    source.parent.mkdir(parents=True)
    source.write_text(PASSING)

    summary = await make_orchestrator(tmp_path, sandbox_registry, emitter).run_pipeline(
        "run-4"
    )

    assert summary.total == 0
    warnings = [
        event
        for event in read_events(event_stream)
        if isinstance(event, LogEvent) and event.level == "warn"
    ]
    assert [event.message for event in warnings] == [
        "Test app/tests/ok.test.py has no compiled output; skipping."
    ]


async def test_unsupported_runtime_is_skipped(
    tmp_path: Path, emitter: EventEmitter, event_stream: StringIO
) -> None:
    """Groups without a provider are skipped with a warning."""
    write_test_file(tmp_path, "app/tests/ok.test.py", PASSING)
    write_test_file(tmp_path, "backend/tests/a.test.py", PASSING)
    write_test_file(tmp_path, "backend/tests/b.test.py", PASSING)
    registry = ProviderRegistry({"frontend": SandboxProvider()})

    summary = await make_orchestrator(tmp_path, registry, emitter).run_pipeline("run-5")

    assert (summary.passed, summary.total) == (1, 1)
    warnings = [
        event.message
        for event in read_events(event_stream)
        if isinstance(event, LogEvent) and event.level == "warn"
    ]
    assert warnings == ["Skipping 2 tests for unsupported runtime 'backend'."]


def test_group_modules_by_runtime_keeps_first_seen_order() -> None:
    """Groups keep the order in which runtimes first appear."""
    modules = [
        TestModuleFactory.build(id="b", runtime="backend"),
        TestModuleFactory.build(id="f", runtime="frontend"),
        TestModuleFactory.build(id="b2", runtime="backend"),
    ]

    groups = group_modules_by_runtime(modules)

    assert list(groups) == ["backend", "frontend"]
    assert [module.id for module in groups["backend"]] == ["b", "b2"]
