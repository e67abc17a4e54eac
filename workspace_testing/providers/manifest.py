"""Provider manifest definition for the plugin system."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, TypeVar

from workspace_testing.models.manifest import TestRuntime
from workspace_testing.providers.base import TestProvider

ProviderT = TypeVar("ProviderT", bound=TestProvider)


@dataclass(frozen=True, kw_only=True)
class ProviderManifest(Generic[ProviderT]):
    """Manifest describing a provider plugin.

    The factory receives the workspace root and the process environment so
    each provider reads its own configuration lazily.
    """

    runtime: TestRuntime
    provider_factory: Callable[[Path, Mapping[str, str]], ProviderT]
