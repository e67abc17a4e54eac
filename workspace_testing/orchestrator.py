"""Test orchestrator for running a manifest through its providers."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from workspace_testing.discovery import discover_test_manifest
from workspace_testing.events import EventEmitter
from workspace_testing.models.events import (
    LogEvent,
    LogLevel,
    ResultEvent,
    StartEvent,
    SummaryEvent,
)
from workspace_testing.models.manifest import TestManifest, TestModule, TestRuntime
from workspace_testing.models.result import RunnerSummary, TestRunResult
from workspace_testing.providers.base import TestProvider
from workspace_testing.providers.registry import ProviderRegistry
from workspace_testing.runtime_filter import (
    RuntimeFilter,
    apply_runtime_filter,
    describe_runtime_filter,
)

log = logging.getLogger(__name__)

NO_TESTS_MESSAGE = "No tests found under src/**/tests/."


def group_modules_by_runtime(
    modules: Sequence[TestModule],
) -> Mapping[TestRuntime, Sequence[TestModule]]:
    """Group modules by runtime, keeping first-seen order of the groups."""
    groups: dict[TestRuntime, list[TestModule]] = {}
    for module in modules:
        groups.setdefault(module.runtime, []).append(module)
    return groups


@dataclass(frozen=True, kw_only=True)
class TestOrchestrator:
    """Runs discovery and each runtime group, reporting through events."""

    __test__ = False

    workspace_root: Path
    registry: ProviderRegistry
    emitter: EventEmitter = field(default_factory=EventEmitter)
    runtime: RuntimeFilter = None

    async def run_pipeline(self, run_id: str) -> RunnerSummary:
        """Discover, filter and execute all tests of the workspace.

        Args:
            run_id: Identifier attached to every event of this run

        Returns:
            Summary merged over all runtime groups

        """
        discovered = await discover_test_manifest(self.workspace_root)
        manifest = apply_runtime_filter(discovered, self.runtime)
        self.emitter.emit(StartEvent(run_id=run_id, manifest=manifest))

        description = describe_runtime_filter(
            self.runtime, len(discovered.modules), len(manifest.modules)
        )
        if description is not None:
            self._log(run_id, "info", description)

        if not manifest.modules:
            self._log(run_id, "info", NO_TESTS_MESSAGE)
            summary = RunnerSummary.empty()
        else:
            summary = await self.execute_run(run_id, manifest)

        self.emitter.emit(SummaryEvent(run_id=run_id, runtime="all", summary=summary))
        return summary

    async def execute_run(self, run_id: str, manifest: TestManifest) -> RunnerSummary:
        """Run every runtime group of the manifest in grouping order."""
        overall = RunnerSummary.empty()

        for runtime, modules in group_modules_by_runtime(manifest.modules).items():
            provider = self.registry.get(runtime)
            if provider is None:
                noun = "test" if len(modules) == 1 else "tests"
                self._log(
                    run_id,
                    "warn",
                    f"Skipping {len(modules)} {noun} "
                    f"for unsupported runtime '{runtime}'.",
                )
                continue

            summary = await self._run_group(run_id, runtime, modules, provider)
            overall = overall.merge(summary)

        log.info(
            "Run %s completed: %d passed, %d failed",
            run_id,
            overall.passed,
            overall.failed,
        )
        return overall

    async def _run_group(
        self,
        run_id: str,
        runtime: TestRuntime,
        modules: Sequence[TestModule],
        provider: TestProvider,
    ) -> RunnerSummary:
        files: list[Path] = []
        module_ids: dict[str, str] = {}

        for module in modules:
            if module.compiled_path is None:
                self._log(
                    run_id,
                    "warn",
                    f"Test {module.id} has no compiled output; skipping.",
                )
                continue
            compiled = module.compiled_path.resolve()
            module_ids[str(compiled)] = module.id
            files.append(compiled)

        if not files:
            summary = RunnerSummary.empty()
            self.emitter.emit(
                SummaryEvent(run_id=run_id, runtime=runtime, summary=summary)
            )
            return summary

        def report(result: TestRunResult) -> None:
            self.emitter.emit(
                ResultEvent(
                    run_id=run_id,
                    runtime=runtime,
                    module_id=module_ids.get(result.file, result.file),
                    result=result,
                )
            )

        log.info("Running %d %s test file(s) with %s", len(files), runtime, provider.id)
        summary = await provider.run_tests(files, on_result=report)
        self.emitter.emit(SummaryEvent(run_id=run_id, runtime=runtime, summary=summary))
        return summary

    def _log(self, run_id: str, level: LogLevel, message: str) -> None:
        self.emitter.emit(LogEvent(run_id=run_id, level=level, message=message))
