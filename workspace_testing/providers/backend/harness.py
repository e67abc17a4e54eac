"""Lifecycle of the server process backing backend tests."""

import asyncio
import contextlib
import json
import logging
import os
import socket
from collections.abc import AsyncGenerator, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from types import MappingProxyType
from typing import Any, TypeAlias

import aiohttp

from workspace_testing.events import emit_module_event
from workspace_testing.models.events import LogLevel
from workspace_testing.providers.backend.config import BackendHarnessConfig
from workspace_testing.providers.backend.context import BackendTestContext

log = logging.getLogger(__name__)

LOCALHOST = "127.0.0.1"
STREAM_LIMIT = 2**20

NoticeFn: TypeAlias = Callable[[LogLevel, str], None]


class HarnessStartupError(RuntimeError):
    """Raised when the backend server cannot be brought up."""


def is_port_available(port: int, host: str = LOCALHOST) -> bool:
    """Check if ``port`` can be bound, releasing it immediately."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except (OSError, OverflowError):
            return False
    return True


async def find_open_port(start: int, attempts: int = 10, host: str = LOCALHOST) -> int:
    """Probe ports sequentially from ``start`` and return the first free one.

    Raises:
        HarnessStartupError: If none of the ``attempts`` ports is free

    """
    for port in range(start, start + attempts):
        if await asyncio.to_thread(is_port_available, port, host):
            return port

    raise HarnessStartupError(
        f"Unable to find an open port for backend tests (starting at {start})."
    )


def create_runtime_env(
    config: BackendHarnessConfig, port: int, environ: Mapping[str, str]
) -> dict[str, str]:
    """Environment for the server process: parent environment plus run details."""
    env = dict(environ)
    env.update(
        {
            "PORT": str(port),
            "API_BASE_URL": environ.get("API_BASE_URL") or f"http://{LOCALHOST}:{port}",
            "APP_ENV": environ.get("APP_ENV") or "test",
            "WORKSPACE_ROOT": str(config.workspace_root),
            "WORKSPACE_TEST_BACKEND_RUN": "1",
            "PYTHONUNBUFFERED": "1",
        }
    )
    return env


def is_ready_line(line: str, markers: Sequence[str]) -> bool:
    """Check a line for any readiness marker; without markers any line counts."""
    if not markers:
        return bool(line)
    return any(marker in line for marker in markers)


async def read_chunks(stream: asyncio.StreamReader) -> AsyncGenerator[bytes, None]:
    """Yield lines until EOF, splitting lines longer than the stream limit.

    An oversized line is yielded in limit-sized pieces instead of ending the
    reader, so the pipe keeps draining.
    """
    while True:
        try:
            chunk = await stream.readuntil(b"\n")
        except asyncio.IncompleteReadError as exc:
            if exc.partial:
                yield exc.partial
            return
        except asyncio.LimitOverrunError as exc:
            chunk = await stream.read(exc.consumed)
        yield chunk


async def load_manifest(path: Path) -> Any:
    """Load the external manifest JSON, returning None when absent or invalid."""
    try:
        raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
    except OSError:
        log.debug("No backend manifest at %s", path)
        return None

    try:
        return json.loads(raw)
    except ValueError as exc:
        log.warning("Ignoring invalid backend manifest %s: %s", path, exc)
        return None


class BackendHarness:
    """Owns one server process and the context describing it.

    :meth:`stop` releases everything :meth:`start` acquired, whether or not
    start completed, and may be called any number of times.
    """

    def __init__(
        self,
        config: BackendHarnessConfig,
        *,
        notify: NoticeFn = emit_module_event,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config
        self._notify = notify
        self._environ = os.environ if environ is None else environ
        self._process: asyncio.subprocess.Process | None = None
        self._readers: list[asyncio.Task[None]] = []
        self._context: BackendTestContext | None = None

    @property
    def context(self) -> BackendTestContext | None:
        return self._context

    @property
    def process(self) -> asyncio.subprocess.Process | None:
        return self._process

    async def start(self) -> BackendTestContext:
        """Launch the server, wait for readiness and build the test context.

        Raises:
            HarnessStartupError: If the entry is missing, no port is free, or
                the server exits or times out before becoming ready

        """
        config = self.config
        if not config.entry.exists():
            raise HarnessStartupError(
                f"Backend test entry not found at {config.entry}. "
                "Run a backend build before executing backend tests."
            )

        port = await find_open_port(config.port, config.port_attempts)
        env = create_runtime_env(config, port, self._environ)

        log.info("Starting backend test server %s on port %d", config.entry, port)
        process = await asyncio.create_subprocess_exec(
            config.python_executable,
            str(config.entry),
            cwd=config.workspace_root,
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            limit=STREAM_LIMIT,
        )
        self._process = process

        ready = asyncio.Event()
        self._readers = [
            asyncio.create_task(self._forward(process.stdout, "info", ready)),
            asyncio.create_task(self._forward(process.stderr, "error", ready)),
        ]
        await self._wait_until_ready(process, ready)
        log.info("Backend test server ready on port %d", port)

        self._context = BackendTestContext(
            base_url=env["API_BASE_URL"],
            port=port,
            manifest=await load_manifest(config.manifest_path),
            env=MappingProxyType(env),
            session=aiohttp.ClientSession(),
        )
        return self._context

    async def stop(self) -> None:
        """Close the context, terminate the process and stop stream readers."""
        context, self._context = self._context, None
        if context is not None:
            await context.close()

        process, self._process = self._process, None
        if process is not None:
            await self._terminate(process)

        readers, self._readers = self._readers, []
        for reader in readers:
            reader.cancel()
        await asyncio.gather(*readers, return_exceptions=True)

    async def _wait_until_ready(
        self, process: asyncio.subprocess.Process, ready: asyncio.Event
    ) -> None:
        ready_waiter = asyncio.create_task(ready.wait())
        exit_waiter = asyncio.create_task(process.wait())
        try:
            done, _ = await asyncio.wait(
                {ready_waiter, exit_waiter},
                timeout=self.config.ready_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            ready_waiter.cancel()
            exit_waiter.cancel()

        if ready_waiter in done:
            return

        if exit_waiter in done:
            raise HarnessStartupError(
                "Backend test server exited before it was ready "
                f"(code {process.returncode})."
            )

        self._notify("error", "Backend test server readiness timed out.")
        raise HarnessStartupError(
            "Backend test server did not become ready within "
            f"{self.config.ready_timeout:g}s."
        )

    async def _forward(
        self,
        stream: asyncio.StreamReader | None,
        level: LogLevel,
        ready: asyncio.Event,
    ) -> None:
        if stream is None:
            return

        markers = self.config.ready_markers
        async for raw in read_chunks(stream):
            line = raw.decode(errors="replace").rstrip("\r\n")
            if not line:
                continue
            self._notify(level, line)
            if not ready.is_set() and is_ready_line(line, markers):
                ready.set()

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()

        try:
            await asyncio.wait_for(process.wait(), self.config.stop_timeout)
        except TimeoutError:
            log.warning(
                "Backend test server did not stop within %.1fs, killing it",
                self.config.stop_timeout,
            )
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()


@asynccontextmanager
async def run_backend_harness(
    config: BackendHarnessConfig,
    *,
    notify: NoticeFn = emit_module_event,
    environ: Mapping[str, str] | None = None,
) -> AsyncGenerator[BackendTestContext, None]:
    """Provide a ready backend context, tearing the server down on exit."""
    harness = BackendHarness(config, notify=notify, environ=environ)
    try:
        yield await harness.start()
    finally:
        await harness.stop()
