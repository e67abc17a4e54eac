"""Plain sandbox provider used for frontend tests."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from workspace_testing.models.result import RunnerSummary
from workspace_testing.providers.base import TestProvider
from workspace_testing.sandbox import ExecutionEngine, ResultCallback


@dataclass(frozen=True, kw_only=True)
class SandboxProvider(TestProvider):
    """Runs test files directly in the in-process sandbox."""

    id: str = "workspace-testing/sandbox"
    engine: ExecutionEngine = field(default_factory=ExecutionEngine)

    @classmethod
    def from_env(
        cls, workspace_root: Path, environ: Mapping[str, str]
    ) -> "SandboxProvider":
        """The sandbox needs no configuration."""
        return cls()

    async def run_tests(
        self,
        files: Sequence[Path],
        on_result: ResultCallback | None = None,
    ) -> RunnerSummary:
        """Run files in the sandbox without any external process."""
        return await self.engine.run(files, on_result=on_result)
