"""Backend provider: the sandbox wrapped by the server harness."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from workspace_testing.events import emit_module_event
from workspace_testing.models.result import RunnerSummary, TestRunResult
from workspace_testing.providers.backend.config import BackendHarnessConfig
from workspace_testing.providers.backend.harness import NoticeFn, run_backend_harness
from workspace_testing.providers.base import TestProvider
from workspace_testing.sandbox import ExecutionEngine, ResultCallback

log = logging.getLogger(__name__)

HARNESS_TEST = "[backend test harness]"
HARNESS_FILE = "backend-server"


@dataclass(frozen=True, kw_only=True)
class BackendProvider(TestProvider):
    """Runs backend tests against a freshly started server process."""

    id: str = "workspace-testing/backend"
    config: BackendHarnessConfig
    engine: ExecutionEngine = field(default_factory=ExecutionEngine)
    notify: NoticeFn = field(default=emit_module_event, repr=False)
    environ: Mapping[str, str] | None = field(default=None, repr=False)

    @classmethod
    def from_env(
        cls, workspace_root: Path, environ: Mapping[str, str]
    ) -> "BackendProvider":
        """Create provider with harness settings read from the environment."""
        return cls(
            config=BackendHarnessConfig.from_env(workspace_root, environ),
            environ=environ,
        )

    async def run_tests(
        self,
        files: Sequence[Path],
        on_result: ResultCallback | None = None,
    ) -> RunnerSummary:
        """Run files with a backend context, or plainly when the harness is off."""
        if not files or not self.config.enabled:
            return await self.engine.run(files, on_result=on_result)

        try:
            async with run_backend_harness(
                self.config, notify=self.notify, environ=self.environ
            ) as context:
                return await self.engine.run(
                    files, context=context, on_result=on_result
                )
        except Exception as exc:
            log.error("Backend test harness failed: %s", exc, exc_info=exc)
            result = TestRunResult(
                name=HARNESS_TEST,
                file=HARNESS_FILE,
                passed=False,
                message=str(exc) or type(exc).__name__,
            )
            if on_result is not None:
                on_result(result)
            return RunnerSummary.from_results([result])
