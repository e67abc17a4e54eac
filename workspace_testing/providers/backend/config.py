"""Configuration for the backend test harness."""

import sys
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field

ENV_PREFIX = "WORKSPACE_TEST_BACKEND"

DEFAULT_READY_TEXT = "API server running"
DEFAULT_READY_TIMEOUT_MS = 15_000
DEFAULT_PORT = 4100
DISABLED_VALUES = frozenset(["off", "skip", "false"])


def read_int(value: str | None, fallback: int) -> int:
    """Parse a positive integer, falling back on anything else."""
    if not value:
        return fallback
    try:
        parsed = int(value.strip(), 10)
    except ValueError:
        return fallback
    return parsed if parsed > 0 else fallback


class BackendHarnessConfig(BaseModel):
    """Configuration for the backend test harness."""

    workspace_root: Path
    build_root: Path
    entry: Path
    manifest_path: Path
    ready_text: str = DEFAULT_READY_TEXT
    ready_timeout: float = Field(
        default=DEFAULT_READY_TIMEOUT_MS / 1000, gt=0, description="Seconds"
    )
    port: int = Field(default=DEFAULT_PORT, gt=0, lt=65536)
    port_attempts: int = Field(default=10, gt=0)
    stop_timeout: float = Field(default=5.0, gt=0, description="Seconds")
    enabled: bool = True
    python_executable: str = sys.executable

    @property
    def ready_markers(self) -> tuple[str, ...]:
        """Readiness markers, split on ``|``."""
        return tuple(
            token.strip() for token in self.ready_text.split("|") if token.strip()
        )

    @classmethod
    def from_env(
        cls, workspace_root: Path, environ: Mapping[str, str]
    ) -> "BackendHarnessConfig":
        """Read the harness settings from ``WORKSPACE_TEST_BACKEND*`` variables."""
        build_root = Path(
            environ.get(f"{ENV_PREFIX}_BUILD_ROOT")
            or workspace_root / "build" / "backend"
        )
        toggle = environ.get(ENV_PREFIX, "").strip().lower()
        return cls(
            workspace_root=workspace_root,
            build_root=build_root,
            entry=Path(environ.get(f"{ENV_PREFIX}_ENTRY") or build_root / "main.py"),
            manifest_path=Path(
                environ.get(f"{ENV_PREFIX}_MANIFEST")
                or workspace_root / ".workspace" / "backend-manifest.json"
            ),
            ready_text=environ.get(f"{ENV_PREFIX}_READY") or DEFAULT_READY_TEXT,
            ready_timeout=read_int(
                environ.get(f"{ENV_PREFIX}_READY_TIMEOUT"), DEFAULT_READY_TIMEOUT_MS
            )
            / 1000,
            port=read_int(environ.get(f"{ENV_PREFIX}_PORT"), DEFAULT_PORT),
            enabled=toggle not in DISABLED_VALUES,
        )
