"""Models for test execution results."""

from collections.abc import Iterable, Sequence
from typing import Self

from pydantic import Field, model_validator

from workspace_testing.models.base import Model


class TestRunResult(Model):
    """Outcome of one registered test (or one synthetic failure)."""

    __test__ = False

    name: str
    file: str
    passed: bool
    message: str | None = None
    duration_ms: float = 0.0


class RunnerSummary(Model):
    """Aggregated outcome of a group of test files."""

    passed: int = 0
    failed: int = 0
    total: int = 0
    duration_ms: float = 0.0
    results: Sequence[TestRunResult] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def _check_total(self) -> Self:
        if self.total != self.passed + self.failed:
            raise ValueError(
                f"total ({self.total}) must equal passed ({self.passed})"
                f" + failed ({self.failed})"
            )
        return self

    @classmethod
    def empty(cls) -> "RunnerSummary":
        """Return a summary with no results."""
        return cls()

    @classmethod
    def from_results(
        cls, results: Iterable[TestRunResult], duration_ms: float = 0.0
    ) -> "RunnerSummary":
        """Count results into a summary, keeping their order."""
        collected = tuple(results)
        passed = sum(1 for result in collected if result.passed)
        return cls(
            passed=passed,
            failed=len(collected) - passed,
            total=len(collected),
            duration_ms=duration_ms,
            results=collected,
        )

    def merge(self, other: "RunnerSummary") -> "RunnerSummary":
        """Sum counts and durations, and concatenate result lists."""
        return RunnerSummary(
            passed=self.passed + other.passed,
            failed=self.failed + other.failed,
            total=self.total + other.total,
            duration_ms=self.duration_ms + other.duration_ms,
            results=(*self.results, *other.results),
        )
