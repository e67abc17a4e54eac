"""CLI entry point for the workspace test runner."""

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
import traceback
from pathlib import Path

from workspace_testing.config import RunnerConfig
from workspace_testing.discovery import SRC_FOLDER
from workspace_testing.events import EventEmitter, create_run_id
from workspace_testing.models.events import ErrorEvent
from workspace_testing.orchestrator import TestOrchestrator
from workspace_testing.providers.registry import ProviderRegistry
from workspace_testing.runtime_filter import normalize_runtime_filter
from workspace_testing.watch import SourceWatcher, WatchScheduler

log = logging.getLogger("workspace_testing")


def create_orchestrator(
    config: RunnerConfig,
    emitter: EventEmitter,
    registry: ProviderRegistry | None = None,
) -> TestOrchestrator:
    """Wire an orchestrator for the configured workspace."""
    workspace_root = config.workspace_root.resolve()
    return TestOrchestrator(
        workspace_root=workspace_root,
        registry=registry or ProviderRegistry.from_entry_points(workspace_root),
        emitter=emitter,
        runtime=config.runtime,
    )


async def run(
    config: RunnerConfig,
    *,
    emitter: EventEmitter | None = None,
    registry: ProviderRegistry | None = None,
) -> int:
    """Run all tests once and return exit code."""
    emitter = emitter or EventEmitter()
    run_id = create_run_id()

    try:
        orchestrator = create_orchestrator(config, emitter, registry)
        summary = await orchestrator.run_pipeline(run_id)
    except Exception as exc:
        log.error("Test run failed: %s", exc, exc_info=exc)
        emitter.emit(
            ErrorEvent(
                run_id=run_id,
                message=str(exc),
                stack="".join(traceback.format_exception(exc)),
            )
        )
        return 1

    return 1 if summary.failed > 0 else 0


async def watch(
    config: RunnerConfig,
    *,
    emitter: EventEmitter | None = None,
    registry: ProviderRegistry | None = None,
    stop: asyncio.Event | None = None,
) -> int:
    """Run tests, then re-run them on every change until interrupted."""
    emitter = emitter or EventEmitter()
    stop = stop or asyncio.Event()
    orchestrator = create_orchestrator(config, emitter, registry)

    scheduler = WatchScheduler(
        pipeline=orchestrator.run_pipeline,
        workspace_root=orchestrator.workspace_root,
        emitter=emitter,
        debounce=config.debounce,
    )
    watcher = SourceWatcher(orchestrator.workspace_root / SRC_FOLDER, scheduler.notify)

    loop = asyncio.get_running_loop()
    handled: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)
            handled.append(sig)

    try:
        watcher.start(loop)
        scheduler.start()
        await stop.wait()
    finally:
        log.info("Stopping watch session %s", scheduler.session_id)
        for sig in handled:
            loop.remove_signal_handler(sig)
        await watcher.stop()
        exit_code = await scheduler.shutdown()

    return exit_code


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Run workspace tests")
    parser.add_argument(
        "command",
        nargs="?",
        choices=["test", "watch"],
        default="test",
        help="Run once (default) or re-run on every change",
    )
    parser.add_argument(
        "-w",
        "--workspace",
        type=Path,
        help="Workspace root (default: WORKSPACE_TEST_ROOT or the current directory)",
    )
    parser.add_argument(
        "-r",
        "--runtime",
        help="Only run 'frontend' or 'backend' tests ('all' runs both)",
    )
    parser.add_argument(
        "-d",
        "--debounce",
        type=parse_debounce,
        help="Quiet period in milliseconds before a watch re-run (default: 150)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    config = RunnerConfig.from_env(
        workspace_root=args.workspace, debounce=args.debounce
    )
    if args.runtime is not None:
        config = config.model_copy(
            update={"runtime": normalize_runtime_filter(args.runtime)}
        )

    if args.command == "watch":
        exit_code = asyncio.run(watch(config))
    else:
        exit_code = asyncio.run(run(config))
    sys.exit(exit_code)


def parse_debounce(value: str) -> float:
    """Parse a debounce duration in milliseconds into seconds."""
    try:
        parsed = int(value, 10)
    except ValueError:
        parsed = -1
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"Invalid debounce value: {value}")
    return parsed / 1000


if __name__ == "__main__":  # pragma: no cover
    main()
