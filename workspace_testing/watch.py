"""Re-run the pipeline whenever source files change."""

import asyncio
import logging
import traceback
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Literal, TypeAlias

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from workspace_testing.discovery import is_excluded_directory
from workspace_testing.events import EventEmitter, create_run_id
from workspace_testing.models.events import ErrorEvent, WatchIterationEvent
from workspace_testing.models.result import RunnerSummary
from workspace_testing.sandbox.engine import cancelled_from_outside

log = logging.getLogger(__name__)

Pipeline: TypeAlias = Callable[[str], Awaitable[RunnerSummary]]

DEFAULT_DEBOUNCE = 0.15
CHANGE_EVENTS = frozenset(["created", "modified", "deleted", "moved"])


class WatchScheduler:
    """Debounces change notifications into serialized pipeline iterations.

    Iterations never overlap: each one is chained after the previous, so the
    completion of iteration N always precedes the start of iteration N + 1.
    """

    def __init__(
        self,
        *,
        pipeline: Pipeline,
        workspace_root: Path,
        emitter: EventEmitter | None = None,
        debounce: float = DEFAULT_DEBOUNCE,
        session_id: str | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.workspace_root = workspace_root
        self.emitter = emitter or EventEmitter()
        self.debounce = debounce
        self.session_id = session_id or create_run_id()
        self.iteration = 0
        self.exit_code = 0
        self._queued: dict[str, None] = {}
        self._timer: asyncio.TimerHandle | None = None
        self._pending: asyncio.Future[None] | None = None
        self._closed = False

    @property
    def armed(self) -> bool:
        return self._timer is not None

    @property
    def queued(self) -> Sequence[str]:
        return tuple(self._queued)

    def start(self) -> asyncio.Future[None]:
        """Chain the initial iteration, which runs with no changed files."""
        return self._chain(())

    def notify(self, path: Path) -> None:
        """Record a changed path and arm the debounce timer."""
        if self._closed:
            return

        try:
            relative = path.relative_to(self.workspace_root).as_posix()
        except ValueError:
            relative = path.as_posix()

        self._queued.setdefault(relative, None)
        if self._timer is None:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self.debounce, self._flush)

    async def shutdown(self) -> int:
        """Cancel the timer, wait for the last iteration and return the exit code."""
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._queued.clear()

        if self._pending is not None:
            await self._pending
        return self.exit_code

    def _flush(self) -> None:
        files = tuple(self._queued)
        self._queued.clear()
        self._timer = None
        self._chain(files)

    def _chain(self, changed_files: Sequence[str]) -> asyncio.Future[None]:
        previous = self._pending
        self._pending = asyncio.ensure_future(self._after(previous, changed_files))
        return self._pending

    async def _after(
        self, previous: asyncio.Future[None] | None, changed_files: Sequence[str]
    ) -> None:
        if previous is not None:
            # waits without re-raising a cancellation of the previous iteration
            await asyncio.wait([previous])

        try:
            await self.run_iteration(changed_files)
        except Exception as exc:
            log.error("Watch iteration failed: %s", exc, exc_info=exc)
            self.emitter.emit(ErrorEvent(run_id=self.session_id, message=str(exc)))
            self.exit_code = 1

    async def run_iteration(self, changed_files: Sequence[str]) -> None:
        """Run the pipeline once, bracketed by watch-iteration events."""
        self.iteration += 1
        iteration = self.iteration
        iteration_id = f"{self.session_id}-{iteration}"
        log.info(
            "Watch iteration %d (%d changed file(s))", iteration, len(changed_files)
        )
        self._emit_iteration(iteration, "start", changed_files)

        try:
            summary = await self.pipeline(iteration_id)
        except (Exception, asyncio.CancelledError) as exc:
            if isinstance(exc, asyncio.CancelledError) and cancelled_from_outside():
                raise
            log.error("Watch iteration %d failed: %s", iteration, exc)
            self.emitter.emit(
                ErrorEvent(
                    run_id=iteration_id,
                    message=str(exc),
                    stack="".join(traceback.format_exception(exc)),
                )
            )
            self._emit_iteration(iteration, "complete", changed_files)
            self.exit_code = 1
            return

        self._emit_iteration(iteration, "complete", changed_files, summary)
        if summary.failed > 0:
            self.exit_code = 1

    def _emit_iteration(
        self,
        iteration: int,
        phase: Literal["start", "complete"],
        changed_files: Sequence[str],
        summary: RunnerSummary | None = None,
    ) -> None:
        self.emitter.emit(
            WatchIterationEvent(
                run_id=self.session_id,
                iteration=iteration,
                phase=phase,
                changed_files=tuple(changed_files),
                summary=summary,
            )
        )


class _ChangeHandler(FileSystemEventHandler):
    """Forwards file events from the observer thread to the event loop."""

    def __init__(
        self,
        root: Path,
        loop: asyncio.AbstractEventLoop,
        callback: Callable[[Path], None],
    ) -> None:
        self.root = root
        self.loop = loop
        self.callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in CHANGE_EVENTS:
            return

        raw = event.dest_path if event.event_type == "moved" else event.src_path
        path = Path(raw.decode() if isinstance(raw, bytes) else raw)
        if is_ignored(self.root, path):
            return
        self.loop.call_soon_threadsafe(self.callback, path)


def is_ignored(root: Path, path: Path) -> bool:
    """Skip files inside hidden, build or dependency directories."""
    try:
        parts = path.relative_to(root).parts
    except ValueError:
        return True
    if not parts or parts[-1].startswith("."):
        return True
    return any(is_excluded_directory(part) for part in parts[:-1])


class SourceWatcher:
    """Watches a source tree and reports changed files to a callback."""

    def __init__(self, root: Path, callback: Callable[[Path], None]) -> None:
        self.root = root
        self.callback = callback
        self._observer: BaseObserver | None = None

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._observer is not None:
            return
        if not self.root.is_dir():
            log.warning("Not watching %s: directory does not exist", self.root)
            return

        observer = Observer()
        observer.schedule(
            _ChangeHandler(self.root, loop, self.callback),
            str(self.root),
            recursive=True,
        )
        observer.start()
        self._observer = observer
        log.info("Watching %s for changes", self.root)

    async def stop(self) -> None:
        """Stop the observer; safe when it was never started."""
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        await asyncio.to_thread(observer.join)
