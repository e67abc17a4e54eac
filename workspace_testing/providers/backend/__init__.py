"""Backend provider module."""

from workspace_testing.providers.backend.config import BackendHarnessConfig
from workspace_testing.providers.backend.context import (
    BackendResponse,
    BackendTestContext,
    ContextClosedError,
)
from workspace_testing.providers.backend.harness import (
    BackendHarness,
    HarnessStartupError,
)
from workspace_testing.providers.backend.manifest import backend_manifest
from workspace_testing.providers.backend.provider import BackendProvider

__all__ = [
    "BackendHarness",
    "BackendHarnessConfig",
    "BackendProvider",
    "BackendResponse",
    "BackendTestContext",
    "ContextClosedError",
    "HarnessStartupError",
    "backend_manifest",
]
