"""Runner configuration read from the environment and command line."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from workspace_testing.providers.backend.config import read_int
from workspace_testing.runtime_filter import RuntimeFilter, normalize_runtime_filter

ENV_PREFIX = "WORKSPACE_TEST"

DEFAULT_DEBOUNCE_MS = 150


class RunnerConfig(BaseModel):
    """Settings shared by one-shot and watch runs."""

    workspace_root: Path
    runtime: RuntimeFilter = None
    debounce: float = Field(
        default=DEFAULT_DEBOUNCE_MS / 1000, ge=0, description="Seconds"
    )

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides: Any
    ) -> "RunnerConfig":
        """Read ``WORKSPACE_TEST_*`` variables; non-None overrides win."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {
            "workspace_root": Path(env.get(f"{ENV_PREFIX}_ROOT") or Path.cwd()),
            "runtime": normalize_runtime_filter(env.get(f"{ENV_PREFIX}_RUNTIME")),
            "debounce": read_int(
                env.get(f"{ENV_PREFIX}_DEBOUNCE_MS"), DEFAULT_DEBOUNCE_MS
            )
            / 1000,
        }
        values.update(
            {key: value for key, value in overrides.items() if value is not None}
        )
        return cls(**values)
