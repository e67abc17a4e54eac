"""Narrow a manifest to a single runtime kind."""

from typing import TypeAlias

from workspace_testing.models.manifest import RUNTIMES, TestManifest, TestRuntime

RuntimeFilter: TypeAlias = TestRuntime | None


def normalize_runtime_filter(value: str | None) -> RuntimeFilter:
    """Map user input to a runtime kind; empty, 'all' or unknown mean no filter."""
    normalized = (value or "").strip().lower()
    for runtime in RUNTIMES:
        if normalized == runtime:
            return runtime
    return None


def apply_runtime_filter(
    manifest: TestManifest, runtime: RuntimeFilter
) -> TestManifest:
    """Return a manifest holding only the modules of the given runtime."""
    if runtime is None:
        return manifest

    return manifest.model_copy(
        update={
            "modules": tuple(
                module for module in manifest.modules if module.runtime == runtime
            )
        }
    )


def describe_runtime_filter(
    runtime: RuntimeFilter, before: int, after: int
) -> str | None:
    """Describe how many modules a filter kept, or None when unfiltered."""
    if runtime is None:
        return None

    skipped = max(before - after, 0)
    noun = "test" if after == 1 else "tests"
    return f"Runtime filter '{runtime}' matched {after} {noun} ({skipped} skipped)."
