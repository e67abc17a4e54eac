"""Models for discovered test modules."""

from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Literal, TypeAlias

from pydantic import Field

from workspace_testing.models.base import Model

TestRuntime: TypeAlias = Literal["frontend", "backend"]

RUNTIMES: tuple[TestRuntime, ...] = ("frontend", "backend")


class TestModule(Model):
    """A single test file found under the workspace source tree."""

    __test__ = False

    id: str = Field(..., description="Source-relative path joined with '/'")
    runtime: TestRuntime = Field(..., description="Execution strategy for the file")
    source_path: Path = Field(..., description="Absolute path of the source file")
    compiled_path: Path | None = Field(
        default=None,
        description="Absolute path of the build output (None when no build exists)",
    )


class TestManifest(Model):
    """Sorted collection of test modules produced by one discovery pass."""

    __test__ = False

    workspace_root: Path
    generated_at: datetime
    modules: Sequence[TestModule] = Field(default_factory=tuple)
