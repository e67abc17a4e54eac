"""Execution of compiled test files inside the sandbox."""

import asyncio
import inspect
import logging
import time
import traceback
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeAlias

from workspace_testing.models.result import RunnerSummary, TestRunResult
from workspace_testing.sandbox.loader import load_module
from workspace_testing.sandbox.registry import RegisteredTest

log = logging.getLogger(__name__)

MISSING_FILE_TEST = "[missing compiled file]"
MODULE_EVALUATION_TEST = "[module evaluation]"

ResultCallback: TypeAlias = Callable[[TestRunResult], None]


def format_error(error: BaseException) -> str:
    """Render an exception with its traceback."""
    return "".join(traceback.format_exception(error)).rstrip()


def elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def cancelled_from_outside() -> bool:
    """Check if the running task itself was asked to cancel.

    A ``CancelledError`` raised while the task has no pending cancellation
    request came from code under test (e.g. awaiting a cancelled task) and is
    reported like any other failure.
    """
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


@dataclass(frozen=True, kw_only=True)
class ExecutionEngine:
    """Evaluates files one at a time and runs the tests each one declares."""

    async def run(
        self,
        files: Sequence[Path],
        *,
        context: Any = None,
        on_result: ResultCallback | None = None,
    ) -> RunnerSummary:
        """Run every file in order and summarise the results.

        Args:
            files: Compiled test files belonging to one runtime kind
            context: Object handed to tests that accept a positional argument
            on_result: Called with each result as soon as it is produced

        Returns:
            Summary of all results, in the order they were produced

        """
        start = time.perf_counter()
        results: list[TestRunResult] = []

        def record(result: TestRunResult) -> None:
            results.append(result)
            if on_result is not None:
                on_result(result)

        for file in files:
            await self._run_file(file, context, record)

        return RunnerSummary.from_results(results, elapsed_ms(start))

    async def _run_file(
        self, file: Path, context: Any, record: ResultCallback
    ) -> None:
        if not file.exists():
            log.warning("Compiled test file %s not found", file)
            record(
                TestRunResult(
                    name=MISSING_FILE_TEST,
                    file=str(file),
                    passed=False,
                    message="Compiled file not found",
                )
            )
            return

        try:
            registry = await load_module(file)
        except (Exception, SystemExit, asyncio.CancelledError) as exc:
            if isinstance(exc, asyncio.CancelledError) and cancelled_from_outside():
                raise
            log.warning("Failed to evaluate %s: %s", file, exc)
            record(
                TestRunResult(
                    name=MODULE_EVALUATION_TEST,
                    file=str(file),
                    passed=False,
                    message=format_error(exc),
                )
            )
            return

        log.debug("Running %d test(s) from %s", len(registry.tests), file)
        for entry in registry.tests:
            record(await run_single_test(entry, file, context))


async def run_single_test(
    entry: RegisteredTest, file: Path, context: Any = None
) -> TestRunResult:
    """Run one test, turning any raised exception into a failed result."""
    start = time.perf_counter()
    try:
        outcome = entry.invoke(context)
        if inspect.isawaitable(outcome):
            await outcome
    except (Exception, SystemExit, asyncio.CancelledError) as exc:
        if isinstance(exc, asyncio.CancelledError) and cancelled_from_outside():
            raise
        return TestRunResult(
            name=entry.name,
            file=str(file),
            passed=False,
            message=format_error(exc),
            duration_ms=elapsed_ms(start),
        )

    return TestRunResult(
        name=entry.name,
        file=str(file),
        passed=True,
        duration_ms=elapsed_ms(start),
    )
