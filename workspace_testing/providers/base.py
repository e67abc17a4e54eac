"""Abstract base class for runtime test providers."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from workspace_testing.models.result import RunnerSummary
from workspace_testing.sandbox import ResultCallback


@dataclass(frozen=True, kw_only=True)
class TestProvider(ABC):
    """Execution strategy for the test files of one runtime kind."""

    __test__ = False

    id: str

    @abstractmethod
    async def run_tests(
        self,
        files: Sequence[Path],
        on_result: ResultCallback | None = None,
    ) -> RunnerSummary:
        """Execute a batch of compiled test files.

        Args:
            files: Compiled test files, in manifest order
            on_result: Called with each result as soon as it is produced,
                including synthetic failures

        Returns:
            Summary of the batch

        """
